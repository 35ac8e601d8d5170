"""Completion barrier merging the three end-of-run signals.

A run is over once stdout has reached EOF, stderr has reached EOF and the
child's exit status is known. Those signals arrive from independent tasks
in any order; the barrier fires its action exactly once, on the signal
that completes the set.

The flags, the exit code and the first stream error live in one record
guarded by a single lock, so the action always receives a settled exit
code and no two signals can both observe "complete".
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

__all__ = ["Channel", "CompletionBarrier", "Completion"]

logger = logging.getLogger(__name__)


class Channel(str, Enum):
    """Output channel of a child process."""

    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass(frozen=True)
class Completion:
    """Settled state handed to the barrier action.

    Attributes:
        exit_code: Child termination status
        stream_error: First read error seen on either channel, if any
    """

    exit_code: int
    stream_error: str | None = None


class CompletionBarrier:
    """Fire ``action`` once stdout EOF, stderr EOF and exit code are all set.

    Every signal is idempotent: repeating one is a no-op. The action runs on
    the thread that delivered the final signal, outside the lock.

    Example:
        barrier = CompletionBarrier(lambda done: print(done.exit_code))
        barrier.mark_eof(Channel.STDOUT)
        barrier.set_exit_code(0)
        barrier.mark_eof(Channel.STDERR)  # fires here
    """

    def __init__(self, action: Callable[[Completion], None]) -> None:
        self._action = action
        self._lock = threading.Lock()
        self._eof: dict[Channel, bool] = {Channel.STDOUT: False, Channel.STDERR: False}
        self._exit_code: int | None = None
        self._stream_error: str | None = None
        self._fired = False

    @property
    def stdout_eof(self) -> bool:
        with self._lock:
            return self._eof[Channel.STDOUT]

    @property
    def stderr_eof(self) -> bool:
        with self._lock:
            return self._eof[Channel.STDERR]

    @property
    def exit_code(self) -> int | None:
        with self._lock:
            return self._exit_code

    @property
    def is_complete(self) -> bool:
        with self._lock:
            return self._is_complete_locked()

    @property
    def fired(self) -> bool:
        with self._lock:
            return self._fired

    def mark_eof(self, channel: Channel) -> None:
        """Record that ``channel`` has been read to EOF."""
        self._update(lambda: self._eof.__setitem__(channel, True))
        logger.debug(f"{channel.value} reached EOF")

    def set_exit_code(self, exit_code: int) -> None:
        """Record the child's exit status; later values are ignored."""

        def update() -> None:
            if self._exit_code is None:
                self._exit_code = exit_code
            elif self._exit_code != exit_code:
                logger.debug(
                    f"Ignoring exit code {exit_code}, already set to {self._exit_code}"
                )

        self._update(update)

    def record_stream_error(self, channel: Channel, error: BaseException) -> None:
        """Record a read failure and treat ``channel`` as finished."""

        def update() -> None:
            if self._stream_error is None:
                self._stream_error = f"{channel.value}: {error}"
            self._eof[channel] = True

        self._update(update)

    def _is_complete_locked(self) -> bool:
        return all(self._eof.values()) and self._exit_code is not None

    def _update(self, mutate: Callable[[], None]) -> None:
        with self._lock:
            if self._fired:
                return
            mutate()
            if not self._is_complete_locked():
                return
            self._fired = True
            completion = Completion(
                exit_code=self._exit_code,  # type: ignore[arg-type]
                stream_error=self._stream_error,
            )

        self._action(completion)
