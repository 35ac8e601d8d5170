"""CompletionBarrier tests.

Test coverage:
- Fires once for every arrival order of the three signals
- Idempotent signals
- Stream errors
- Concurrent signal delivery from threads
"""

from __future__ import annotations

import itertools
import threading

import pytest

from shell_task.runtime.barrier import Channel, Completion, CompletionBarrier


def make_barrier() -> tuple[CompletionBarrier, list[Completion]]:
    fired: list[Completion] = []
    return CompletionBarrier(fired.append), fired


SIGNALS = {
    "stdout": lambda b: b.mark_eof(Channel.STDOUT),
    "stderr": lambda b: b.mark_eof(Channel.STDERR),
    "exit": lambda b: b.set_exit_code(3),
}


class TestArrivalOrder:
    """Order independence."""

    @pytest.mark.parametrize("order", list(itertools.permutations(SIGNALS)))
    def test_fires_once_after_last_signal(self, order: tuple[str, ...]):
        barrier, fired = make_barrier()

        for name in order:
            assert fired == [], f"fired before {name}"
            SIGNALS[name](barrier)

        assert fired == [Completion(exit_code=3)]
        assert barrier.fired is True
        assert barrier.is_complete is True

    @pytest.mark.parametrize("order", list(itertools.permutations(SIGNALS)))
    def test_repeated_signals_after_completion(self, order: tuple[str, ...]):
        barrier, fired = make_barrier()

        for name in order:
            SIGNALS[name](barrier)
        for name in order:
            SIGNALS[name](barrier)

        assert len(fired) == 1


class TestSignals:
    """Individual signal semantics."""

    def test_initial_state(self):
        barrier, fired = make_barrier()
        assert barrier.stdout_eof is False
        assert barrier.stderr_eof is False
        assert barrier.exit_code is None
        assert barrier.is_complete is False
        assert barrier.fired is False

    def test_repeated_eof_is_noop(self):
        barrier, fired = make_barrier()
        barrier.mark_eof(Channel.STDOUT)
        barrier.mark_eof(Channel.STDOUT)
        barrier.set_exit_code(0)

        assert barrier.stdout_eof is True
        assert barrier.stderr_eof is False
        assert fired == []

    def test_exit_code_written_once(self):
        barrier, fired = make_barrier()
        barrier.set_exit_code(1)
        barrier.set_exit_code(0)
        barrier.mark_eof(Channel.STDOUT)
        barrier.mark_eof(Channel.STDERR)

        assert barrier.exit_code == 1
        assert fired == [Completion(exit_code=1)]

    def test_zero_exit_code_counts_as_set(self):
        barrier, fired = make_barrier()
        barrier.mark_eof(Channel.STDOUT)
        barrier.mark_eof(Channel.STDERR)
        barrier.set_exit_code(0)
        assert fired == [Completion(exit_code=0)]

    def test_stream_error_finishes_channel(self):
        barrier, fired = make_barrier()
        barrier.record_stream_error(Channel.STDERR, OSError("broken pipe"))

        assert barrier.stderr_eof is True
        barrier.mark_eof(Channel.STDOUT)
        barrier.set_exit_code(0)

        assert fired == [Completion(exit_code=0, stream_error="stderr: broken pipe")]

    def test_first_stream_error_wins(self):
        barrier, fired = make_barrier()
        barrier.record_stream_error(Channel.STDOUT, OSError("first"))
        barrier.record_stream_error(Channel.STDERR, OSError("second"))
        barrier.set_exit_code(2)

        assert fired[0].stream_error == "stdout: first"


class TestConcurrency:
    """Signals racing from several threads."""

    @pytest.mark.parametrize("round_", range(20))
    def test_racing_threads_fire_once(self, round_: int):
        barrier, fired = make_barrier()
        start = threading.Barrier(6)

        def signal(name: str) -> None:
            start.wait()
            SIGNALS[name](barrier)

        threads = [
            threading.Thread(target=signal, args=(name,))
            for name in list(SIGNALS) * 2
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert fired == [Completion(exit_code=3)]
