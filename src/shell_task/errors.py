"""shell-task exception classes.

Process outcomes are never raised: a non-zero exit, a failed launch or a
broken output pipe are all reported as a ``Result``. These exceptions are
reserved for programmer errors against the runner itself.
"""

from __future__ import annotations

__all__ = [
    "ShellTaskError",
    "TaskAlreadyRunningError",
    "TaskConfigurationError",
]


class ShellTaskError(Exception):
    """Base exception for shell-task."""
    pass


class TaskAlreadyRunningError(ShellTaskError, RuntimeError):
    """``launch()`` was called while a previous run has not completed.

    Attributes:
        launch_path: Executable of the runner that is still busy
    """

    def __init__(self, launch_path: str) -> None:
        self.launch_path = launch_path
        super().__init__(f"The runner for {launch_path!r} has already launched.")


class TaskConfigurationError(ShellTaskError, ValueError):
    """Invalid runner configuration, or configuration changed mid-run."""
    pass
