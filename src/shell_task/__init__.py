"""shell-task - asynchronous external process runner.

Environment variables:
    SHELL_TASK_READ_SIZE: Bytes per chunk read (default 4096)
    SHELL_TASK_LOG_LAUNCH: Log launches at INFO (default true)
    SHELL_TASK_LOG_DEBUG: Debug logs to a temp file (default false)
    SHELL_TASK_ENCODING: Print sink encoding (default utf-8)

Usage:
    shell-task --prefix "[build]" -- make all
"""

__version__ = "0.1.0"

from .errors import ShellTaskError, TaskAlreadyRunningError, TaskConfigurationError
from .runtime import (
    Failure,
    FailureKind,
    HandleOption,
    PrintOption,
    ProcessRunner,
    Result,
    Success,
    run_process,
)

__all__ = [
    "__version__",
    "Failure",
    "FailureKind",
    "HandleOption",
    "PrintOption",
    "ProcessRunner",
    "Result",
    "ShellTaskError",
    "Success",
    "TaskAlreadyRunningError",
    "TaskConfigurationError",
    "run_process",
]
