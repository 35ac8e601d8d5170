"""shell-task environment variable configuration.

Environment variables:
    SHELL_TASK_READ_SIZE: Maximum bytes per chunk read from stdout/stderr
        - default 4096
        - clamped to 1..1048576, invalid values fall back to the default

    SHELL_TASK_LOG_LAUNCH: Log every launch at INFO level
        - true/1/yes/on = enabled (default)
        - false/0/no/off = launches are logged at DEBUG only

    SHELL_TASK_LOG_DEBUG: Debug logging mode
        - true/1/yes/on = DEBUG logs written to a temp file
        - false/0/no/off = INFO logs on stderr (default)

    SHELL_TASK_ENCODING: Text encoding used by Print sinks
        - default utf-8
"""

from __future__ import annotations

import codecs
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = ["Config", "load_config", "get_config", "reload_config"]

DEFAULT_READ_SIZE = 4096
MAX_READ_SIZE = 1024 * 1024
DEFAULT_ENCODING = "utf-8"


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_read_size(value: str | None) -> int:
    """Parse the chunk size, clamped to 1..MAX_READ_SIZE."""
    if not value:
        return DEFAULT_READ_SIZE
    try:
        size = int(value)
    except ValueError:
        return DEFAULT_READ_SIZE
    return max(1, min(size, MAX_READ_SIZE))


def _parse_encoding(value: str | None) -> str:
    """Parse the Print sink encoding, unknown codecs fall back to utf-8."""
    if not value or not value.strip():
        return DEFAULT_ENCODING
    try:
        return codecs.lookup(value.strip()).name
    except LookupError:
        return DEFAULT_ENCODING


@dataclass
class Config:
    """shell-task configuration.

    Attributes:
        read_size: Maximum bytes per chunk read
        log_launch: Log launches at INFO (otherwise DEBUG)
        log_debug: Debug logging mode (temp file output)
        log_file: Log file path (set automatically when log_debug=True)
        encoding: Text encoding for Print sinks
    """

    read_size: int = DEFAULT_READ_SIZE
    log_launch: bool = True
    log_debug: bool = False
    log_file: str | None = None
    encoding: str = DEFAULT_ENCODING


def _generate_log_file_path() -> str:
    """Build a timestamped log file path under the system temp dir."""
    log_dir = Path(tempfile.gettempdir()) / "shell-task"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"shell_task_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """Load configuration from the environment."""
    log_debug = _parse_bool(os.environ.get("SHELL_TASK_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        read_size=_parse_read_size(os.environ.get("SHELL_TASK_READ_SIZE")),
        log_launch=_parse_bool(os.environ.get("SHELL_TASK_LOG_LAUNCH"), default=True),
        log_debug=log_debug,
        log_file=log_file,
        encoding=_parse_encoding(os.environ.get("SHELL_TASK_ENCODING")),
    )


# Lazily loaded global instance
_config: Config | None = None


def get_config() -> Config:
    """Return the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration from the environment (used by tests)."""
    global _config
    _config = load_config()
    return _config
