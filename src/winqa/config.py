"""winqa configuration management."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from winqa.models import (
    DEFAULT_ACQUIRE_TIMEOUT_MS,
    DEFAULT_INITIAL_TIMEOUT_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_TIMEOUT_MS,
    DEFAULT_MIN_TIMEOUT_MS,
    DEFAULT_RESPONSE_TIME_WINDOW,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_TIMEOUT_MS,
)

logger = logging.getLogger("winqa.config")

PROJECT_DIR_NAME = ".winqa"
CONFIG_FILENAME = "config.yaml"
BACKENDS = ("uia", "win32")

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


class WinQAConfigError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


@dataclass(frozen=True)
class TimeoutBounds:
    """Clamp range and starting point for adaptive timeouts, in ms."""

    minimum: int = DEFAULT_MIN_TIMEOUT_MS
    maximum: int = DEFAULT_MAX_TIMEOUT_MS
    initial: int = DEFAULT_INITIAL_TIMEOUT_MS

    @property
    def is_ordered(self) -> bool:
        return self.minimum <= self.initial <= self.maximum


@dataclass
class WinQAConfig:
    """Configuration for a winqa test run."""

    # Target application
    app_path: str = ""
    backend: str = "uia"

    # Paths
    project_dir: Path = field(default_factory=lambda: Path(PROJECT_DIR_NAME))
    evidence_dir: Path = field(default_factory=lambda: Path(PROJECT_DIR_NAME) / "evidence")
    log_file: Path | None = None

    # Timeouts (ms)
    default_timeout: int = DEFAULT_TIMEOUT_MS
    adaptive_timeouts: bool = False
    initial_timeout: int = DEFAULT_INITIAL_TIMEOUT_MS
    min_timeout: int = DEFAULT_MIN_TIMEOUT_MS
    max_timeout: int = DEFAULT_MAX_TIMEOUT_MS
    response_time_window: int = DEFAULT_RESPONSE_TIME_WINDOW
    acquire_timeout: int = DEFAULT_ACQUIRE_TIMEOUT_MS

    # Retry
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: int = DEFAULT_RETRY_DELAY_MS

    # Behavior
    reset_latency_per_test: bool = False

    @property
    def timeout_bounds(self) -> TimeoutBounds:
        return TimeoutBounds(
            minimum=self.min_timeout,
            maximum=self.max_timeout,
            initial=self.initial_timeout,
        )

    @classmethod
    def from_file(
        cls,
        config_path: Path,
        environ: Mapping[str, str] | None = None,
    ) -> WinQAConfig:
        """Load config from a YAML file, then apply environment overrides."""
        if not config_path.exists():
            raise WinQAConfigError(f"Config file not found: {config_path}\n\nTo fix: winqa init")
        with open(config_path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise WinQAConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise WinQAConfigError(f"Config file must contain a mapping: {config_path}")

        config = cls._from_dict(data, config_path.parent)
        config.apply_env(os.environ if environ is None else environ)
        config.warn_if_misordered()
        return config

    @classmethod
    def load(cls, project_dir: Path, environ: Mapping[str, str] | None = None) -> WinQAConfig:
        """Load ``project_dir/config.yaml`` if present, else defaults plus env."""
        config_path = project_dir / CONFIG_FILENAME
        if config_path.is_file():
            return cls.from_file(config_path, environ)
        config = cls()
        config.project_dir = project_dir
        config.evidence_dir = project_dir / "evidence"
        config.apply_env(os.environ if environ is None else environ)
        return config

    @classmethod
    def _from_dict(cls, data: dict[str, Any], project_dir: Path) -> WinQAConfig:
        """Create config from a dictionary."""
        config = cls()
        config.project_dir = project_dir

        if "app_path" in data:
            config.app_path = str(data["app_path"] or "")
        if "backend" in data:
            config.backend = _parse_backend(data["backend"])

        if "evidence_dir" in data:
            config.evidence_dir = project_dir / data["evidence_dir"]
        else:
            config.evidence_dir = project_dir / "evidence"
        if data.get("log_file"):
            config.log_file = project_dir / data["log_file"]

        if "default_timeout" in data:
            config.default_timeout = _parse_int("default_timeout", data["default_timeout"])
        if "reset_latency_per_test" in data:
            config.reset_latency_per_test = _parse_bool("reset_latency_per_test", data["reset_latency_per_test"])

        timeouts = _section(data, "timeouts")
        if "adaptive" in timeouts:
            config.adaptive_timeouts = _parse_bool("timeouts.adaptive", timeouts["adaptive"])
        if "initial" in timeouts:
            config.initial_timeout = _parse_int("timeouts.initial", timeouts["initial"])
        if "min" in timeouts:
            config.min_timeout = _parse_int("timeouts.min", timeouts["min"])
        if "max" in timeouts:
            config.max_timeout = _parse_int("timeouts.max", timeouts["max"])
        if "response_time_window" in timeouts:
            window = _parse_int("timeouts.response_time_window", timeouts["response_time_window"])
            if window < 1:
                raise WinQAConfigError(f"timeouts.response_time_window must be >= 1, got {window}")
            config.response_time_window = window

        acquisition = _section(data, "acquisition")
        if "timeout" in acquisition:
            config.acquire_timeout = _parse_int("acquisition.timeout", acquisition["timeout"])

        retry = _section(data, "retry")
        if "max_retries" in retry:
            config.max_retries = _parse_int("retry.max_retries", retry["max_retries"])
        if "delay" in retry:
            config.retry_delay = _parse_int("retry.delay", retry["delay"])

        return config

    def apply_env(self, environ: Mapping[str, str]) -> None:
        """Override file values with ``WINQA_*`` environment variables."""
        if value := environ.get("WINQA_APP_PATH"):
            self.app_path = value
        if value := environ.get("WINQA_BACKEND"):
            self.backend = _parse_backend(value)
        if value := environ.get("WINQA_DEFAULT_TIMEOUT"):
            self.default_timeout = _parse_int("WINQA_DEFAULT_TIMEOUT", value)
        if value := environ.get("WINQA_ADAPTIVE_TIMEOUTS"):
            self.adaptive_timeouts = _parse_bool("WINQA_ADAPTIVE_TIMEOUTS", value)
        if value := environ.get("WINQA_ACQUIRE_TIMEOUT"):
            self.acquire_timeout = _parse_int("WINQA_ACQUIRE_TIMEOUT", value)

    def warn_if_misordered(self) -> None:
        """Log (but accept) timeout bounds where min <= initial <= max fails."""
        bounds = self.timeout_bounds
        if not bounds.is_ordered:
            logger.warning(
                "Timeout bounds are not ordered (min=%d, initial=%d, max=%d); adaptive timeouts may be meaningless",
                bounds.minimum,
                bounds.initial,
                bounds.maximum,
            )


def find_project_dir(start: Path | None = None) -> Path:
    """Locate the .winqa/ project directory by searching upward from *start*."""
    current = start or Path.cwd()
    for base in [current, *current.parents]:
        candidate = base / PROJECT_DIR_NAME
        if candidate.is_dir():
            return candidate
    return current / PROJECT_DIR_NAME


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise WinQAConfigError(f"'{name}' must be a mapping, got {type(value).__name__}")
    return value


def _parse_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise WinQAConfigError(f"'{key}' must be an integer (ms), got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise WinQAConfigError(f"'{key}' must be an integer (ms), got {value!r}") from exc


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise WinQAConfigError(f"'{key}' must be a boolean, got {value!r}")


def _parse_backend(value: Any) -> str:
    backend = str(value).strip().lower()
    if backend not in BACKENDS:
        raise WinQAConfigError(f"Unknown backend '{value}'. Expected one of: {', '.join(BACKENDS)}")
    return backend
