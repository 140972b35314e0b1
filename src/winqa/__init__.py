"""winqa -- adaptive synchronization and resilience for desktop acceptance tests."""

__version__ = "0.1.0"
