"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Add src to the Python path
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from shell_task.config import reload_config  # noqa: E402

CONFIG_ENV_VARS = (
    "SHELL_TASK_READ_SIZE",
    "SHELL_TASK_LOG_LAUNCH",
    "SHELL_TASK_LOG_DEBUG",
    "SHELL_TASK_ENCODING",
)


@pytest.fixture(autouse=True)
def default_config(monkeypatch: pytest.MonkeyPatch):
    """Run every test against the default configuration."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reload_config()
    yield
    monkeypatch.undo()
    reload_config()


@pytest.fixture
def temp_workspace(tmp_path: Path) -> Path:
    """Create temporary workspace directory."""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return workspace
