"""Result types delivered to a runner's completion callback."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

__all__ = [
    "FailureKind",
    "Success",
    "Failure",
    "Result",
    "result_for_exit_code",
    "EXIT_SUCCESS",
    "EXIT_NOT_FOUND",
    "EXIT_NOT_EXECUTABLE",
]

EXIT_SUCCESS = 0
# Shell conventions for a command that could not be started
EXIT_NOT_EXECUTABLE = 126
EXIT_NOT_FOUND = 127


class FailureKind(str, Enum):
    """Why a run failed.

    - EXIT_STATUS: the child exited with a non-zero status
    - LAUNCH_ERROR: the OS refused to start the child
    - STREAM_ERROR: reading stdout or stderr failed before EOF
    """

    EXIT_STATUS = "exit_status"
    LAUNCH_ERROR = "launch_error"
    STREAM_ERROR = "stream_error"


@dataclass(frozen=True)
class Success:
    """The child exited with status 0 and both channels were drained."""

    @property
    def success(self) -> bool:
        return True

    @property
    def exit_code(self) -> int:
        return EXIT_SUCCESS


@dataclass(frozen=True)
class Failure:
    """The run did not succeed.

    Attributes:
        exit_code: Termination status (negative N when killed by signal N)
        kind: Failure classification
        message: Optional detail for launch and stream errors
    """

    exit_code: int
    kind: FailureKind = FailureKind.EXIT_STATUS
    message: str | None = None

    @property
    def success(self) -> bool:
        return False


Result = Union[Success, Failure]


def result_for_exit_code(exit_code: int) -> Result:
    """Map a termination status to a Result (0 is the only success)."""
    if exit_code == EXIT_SUCCESS:
        return Success()
    return Failure(exit_code)
