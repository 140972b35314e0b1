"""winqa command-line interface."""
