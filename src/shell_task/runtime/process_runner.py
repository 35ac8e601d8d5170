"""Asynchronous process runner with concurrent output draining.

shell-task runtime module v0.1.0

This module provides:
- Non-blocking launch of a child process from inside an asyncio loop
- Concurrent draining of stdout and stderr into pluggable output options
- A single completion callback once the child has exited and both
  channels have reached EOF

Key design points:
- One runner handles one run at a time: Idle -> Running -> Idle
- The three end-of-run signals are merged by a CompletionBarrier
- The completion callback runs on the loop that called launch(), after
  which the run state is discarded and the runner can launch again
- Configuration is snapshotted at launch and cannot change mid-run
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Any, TextIO

from ..config import Config, get_config
from ..errors import TaskAlreadyRunningError, TaskConfigurationError
from .barrier import Channel, Completion, CompletionBarrier
from .pump import StreamPump
from .result import (
    EXIT_NOT_EXECUTABLE,
    EXIT_NOT_FOUND,
    Failure,
    FailureKind,
    Result,
    result_for_exit_code,
)
from .sinks import HandleOption, OutputOption, PrintOption, TextSink

__all__ = [
    "CompletionCallback",
    "ProcessConfig",
    "ProcessRunner",
    "RunState",
    "RunnerStatus",
    "run_process",
]

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[Result], None]


class RunnerStatus(str, Enum):
    """Lifecycle of a ProcessRunner."""

    IDLE = "idle"
    RUNNING = "running"


@dataclass(frozen=True)
class ProcessConfig:
    """Snapshot of what a single run executes.

    Attributes:
        launch_path: Executable to run
        arguments: Arguments passed after the executable
        environment: Environment variables (None = inherit parent)
        current_directory: Working directory (None = inherit parent)
    """

    launch_path: str
    arguments: tuple[str, ...] = ()
    environment: Mapping[str, str] | None = None
    current_directory: Path | None = None

    def __post_init__(self) -> None:
        if not self.launch_path:
            raise TaskConfigurationError("launch_path must be a non-empty string")

    @property
    def argv(self) -> list[str]:
        return [self.launch_path, *self.arguments]


@dataclass
class RunState:
    """Per-run state, replaced wholesale when a run ends.

    A fresh RunState is idle: no completion, no process, no barrier.

    Attributes:
        completion: Callback of the active run (its presence means running)
        loop: Loop the completion is delivered on
        task: Task driving the run
        process: Child process, once started
        barrier: Merges stdout EOF, stderr EOF and exit code
        pumps: Stream pumps by channel
    """

    completion: CompletionCallback | None = None
    loop: asyncio.AbstractEventLoop | None = None
    task: asyncio.Task[None] | None = None
    process: asyncio.subprocess.Process | None = None
    barrier: CompletionBarrier | None = None
    pumps: dict[Channel, StreamPump] = field(default_factory=dict)

    @property
    def stdout_eof(self) -> bool:
        return self.barrier is not None and self.barrier.stdout_eof

    @property
    def stderr_eof(self) -> bool:
        return self.barrier is not None and self.barrier.stderr_eof

    @property
    def stdout_received_data(self) -> bool:
        pump = self.pumps.get(Channel.STDOUT)
        return pump is not None and pump.received_data

    @property
    def stderr_received_data(self) -> bool:
        pump = self.pumps.get(Channel.STDERR)
        return pump is not None and pump.received_data

    @property
    def exit_code(self) -> int | None:
        return self.barrier.exit_code if self.barrier is not None else None


def _validate_options(name: str, options: Sequence[OutputOption]) -> tuple[OutputOption, ...]:
    checked = tuple(options)
    for option in checked:
        if not isinstance(option, (PrintOption, HandleOption)):
            raise TaskConfigurationError(f"{name} contains unsupported option {option!r}")
    return checked


class ProcessRunner:
    """Launch a process asynchronously and report a single Result.

    Configure the runner, then call ``launch()`` from inside a running
    asyncio event loop. ``launch()`` returns immediately; the child's
    stdout and stderr are pumped into ``output_options`` and
    ``error_options`` while it runs, and ``completion`` is called on that
    loop once the child has exited and both channels are drained.

    Example:
        runner = ProcessRunner("/bin/sh")
        runner.arguments = ["-c", "echo hello; echo oops >&2; exit 3"]
        runner.output_options = [PrintOption(prefix="[sh]")]
        runner.error_options = [PrintOption(prefix="[sh:err]")]

        result = await runner.run()  # Failure(exit_code=3)
    """

    def __init__(
        self,
        launch_path: str,
        *,
        text_sink: TextIO | None = None,
        config: Config | None = None,
    ) -> None:
        """Create a runner.

        Args:
            launch_path: Executable to run (required, non-empty)
            text_sink: Stream PrintOption output goes to (default sys.stdout)
            config: Runtime configuration (default from environment)
        """
        if not launch_path:
            raise TaskConfigurationError("launch_path must be a non-empty string")

        self._launch_path = launch_path
        self._arguments: list[str] | None = None
        self._environment: dict[str, str] | None = None
        self._current_directory: Path | None = None
        self._output_options: tuple[OutputOption, ...] = ()
        self._error_options: tuple[OutputOption, ...] = ()

        self._config = config if config is not None else get_config()
        self._text_sink = TextSink(text_sink)
        self._state = RunState()

    # ------------------------------------------------------------------
    # Configuration

    @property
    def launch_path(self) -> str:
        return self._launch_path

    @property
    def arguments(self) -> list[str] | None:
        return list(self._arguments) if self._arguments is not None else None

    @arguments.setter
    def arguments(self, value: Sequence[str] | None) -> None:
        self._ensure_idle("arguments")
        self._arguments = list(value) if value is not None else None

    @property
    def environment(self) -> dict[str, str] | None:
        return dict(self._environment) if self._environment is not None else None

    @environment.setter
    def environment(self, value: Mapping[str, str] | None) -> None:
        self._ensure_idle("environment")
        self._environment = dict(value) if value is not None else None

    @property
    def current_directory(self) -> Path | None:
        return self._current_directory

    @current_directory.setter
    def current_directory(self, value: str | Path | None) -> None:
        self._ensure_idle("current_directory")
        self._current_directory = Path(value) if value is not None else None

    @property
    def output_options(self) -> tuple[OutputOption, ...]:
        """Options applied to every stdout chunk."""
        return self._output_options

    @output_options.setter
    def output_options(self, value: Sequence[OutputOption]) -> None:
        self._ensure_idle("output_options")
        self._output_options = _validate_options("output_options", value)

    @property
    def error_options(self) -> tuple[OutputOption, ...]:
        """Options applied to every stderr chunk."""
        return self._error_options

    @error_options.setter
    def error_options(self, value: Sequence[OutputOption]) -> None:
        self._ensure_idle("error_options")
        self._error_options = _validate_options("error_options", value)

    def process_config(self) -> ProcessConfig:
        """Snapshot the current configuration."""
        return ProcessConfig(
            launch_path=self._launch_path,
            arguments=tuple(self._arguments or ()),
            environment=dict(self._environment) if self._environment is not None else None,
            current_directory=self._current_directory,
        )

    def _ensure_idle(self, name: str) -> None:
        if self.is_running:
            raise TaskConfigurationError(f"Cannot change {name} while the task is running")

    # ------------------------------------------------------------------
    # State

    @property
    def is_running(self) -> bool:
        """True between launch() and the return of its completion callback."""
        return self._state.completion is not None

    @property
    def status(self) -> RunnerStatus:
        return RunnerStatus.RUNNING if self.is_running else RunnerStatus.IDLE

    @property
    def state(self) -> RunState:
        """State of the active run (an idle RunState when not running)."""
        return self._state

    def _reset(self) -> None:
        self._state = RunState()

    # ------------------------------------------------------------------
    # Launch

    def launch(self, completion: CompletionCallback) -> None:
        """Launch the process without waiting for it.

        Must be called from inside a running asyncio event loop; the
        completion callback is later called on that same loop.

        Args:
            completion: Called exactly once with the run's Result

        Raises:
            TaskAlreadyRunningError: If a previous run has not completed
            RuntimeError: If no event loop is running
        """
        if self.is_running:
            raise TaskAlreadyRunningError(self._launch_path)

        loop = asyncio.get_running_loop()
        spec = self.process_config()
        output_options = self._output_options
        error_options = self._error_options

        log = logger.info if self._config.log_launch else logger.debug
        log(f"Launching: {spec.launch_path} {' '.join(spec.arguments)}".rstrip())

        self._reset()
        state = RunState(completion=completion, loop=loop)
        barrier = CompletionBarrier(partial(self._on_barrier_complete, state))
        state.barrier = barrier
        self._state = state

        state.task = loop.create_task(
            self._run(state, barrier, spec, output_options, error_options),
            name=f"shell-task:{spec.launch_path}",
        )

    async def run(self) -> Result:
        """Launch the process and wait for its Result."""
        future: asyncio.Future[Result] = asyncio.get_running_loop().create_future()

        def on_complete(result: Result) -> None:
            if not future.done():
                future.set_result(result)

        self.launch(on_complete)
        return await future

    async def _run(
        self,
        state: RunState,
        barrier: CompletionBarrier,
        spec: ProcessConfig,
        output_options: tuple[OutputOption, ...],
        error_options: tuple[OutputOption, ...],
    ) -> None:
        """Start the child and drive the pumps and exit observer.

        The run ends in exactly one completion: through the barrier when
        both channels are drained and the child has exited, or as a
        STREAM_ERROR Failure when delivering output fails unexpectedly.
        Only cancellation ends it without a completion.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                *spec.argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                **self._build_subprocess_kwargs(spec),
            )
        except OSError as e:
            logger.warning(f"Failed to launch {spec.launch_path}: {e}")
            self._schedule_completion(state, self._launch_failure(e))
            return

        state.process = process
        logger.debug(
            f"Started subprocess pid={process.pid} "
            f"argv={spec.launch_path} cwd={spec.current_directory or '.'}"
        )

        try:
            for channel, reader, options in (
                (Channel.STDOUT, process.stdout, output_options),
                (Channel.STDERR, process.stderr, error_options),
            ):
                if reader is None:
                    raise RuntimeError(f"Subprocess pid={process.pid} has no {channel.value} pipe")
                state.pumps[channel] = StreamPump(
                    channel,
                    reader,
                    options,
                    barrier,
                    text_sink=self._text_sink,
                    read_size=self._config.read_size,
                    encoding=self._config.encoding,
                )

            await asyncio.gather(
                state.pumps[Channel.STDOUT].run(),
                state.pumps[Channel.STDERR].run(),
                self._observe_exit(barrier, process),
            )
        except asyncio.CancelledError:
            self._cleanup(state, barrier, process)
            raise
        except Exception as e:
            logger.exception(f"Run of {spec.launch_path} failed while draining output")
            self._kill(process)
            exit_code = await process.wait()
            # the failed channel never reaches EOF, so the barrier cannot fire
            self._schedule_completion(
                state,
                Failure(exit_code, FailureKind.STREAM_ERROR, f"{type(e).__name__}: {e}"),
            )

    def _build_subprocess_kwargs(self, spec: ProcessConfig) -> dict[str, Any]:
        """Build kwargs for asyncio.create_subprocess_exec."""
        kwargs: dict[str, Any] = {}

        if spec.environment is not None:
            kwargs["env"] = dict(spec.environment)
        if spec.current_directory is not None:
            kwargs["cwd"] = str(spec.current_directory)

        return kwargs

    async def _observe_exit(
        self,
        barrier: CompletionBarrier,
        process: asyncio.subprocess.Process,
    ) -> None:
        returncode = await process.wait()
        logger.debug(f"Subprocess exited pid={process.pid} returncode={returncode}")
        barrier.set_exit_code(returncode)

    @staticmethod
    def _launch_failure(error: OSError) -> Failure:
        if isinstance(error, (FileNotFoundError, NotADirectoryError)):
            exit_code = EXIT_NOT_FOUND
        elif isinstance(error, PermissionError):
            exit_code = EXIT_NOT_EXECUTABLE
        else:
            exit_code = 1
        return Failure(exit_code, FailureKind.LAUNCH_ERROR, str(error))

    # ------------------------------------------------------------------
    # Completion

    def _on_barrier_complete(self, state: RunState, completion: Completion) -> None:
        """Barrier action: build the Result and hand it to the front end."""
        if completion.stream_error is not None:
            result: Result = Failure(
                completion.exit_code,
                FailureKind.STREAM_ERROR,
                completion.stream_error,
            )
        else:
            result = result_for_exit_code(completion.exit_code)
        self._schedule_completion(state, result)

    def _schedule_completion(self, state: RunState, result: Result) -> None:
        if state.loop is None:
            raise RuntimeError("Cannot deliver a completion for a run that was never launched")
        state.loop.call_soon_threadsafe(self._complete, state, result)

    def _complete(self, state: RunState, result: Result) -> None:
        """Call the completion callback, then return to idle."""
        if state is not self._state or state.completion is None:
            # stale completion of an abandoned run
            logger.error(f"Dropping result {result!r} of a run that is no longer active")
            return

        completion = state.completion
        logger.debug(f"Task completed: {self._launch_path} result={result!r}")
        try:
            completion(result)
        finally:
            self._reset()

    @staticmethod
    def _kill(process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            logger.debug(f"Killing subprocess pid={process.pid}")
            try:
                process.kill()
            except ProcessLookupError:
                logger.debug(f"Subprocess already exited pid={process.pid}")

    def _cleanup(
        self,
        state: RunState,
        barrier: CompletionBarrier,
        process: asyncio.subprocess.Process,
    ) -> None:
        """Kill the child and drop a cancelled run that never completed."""
        if barrier.fired:
            return

        self._kill(process)
        if state is self._state:
            logger.warning(f"Run of {self._launch_path} was cancelled before completing")
            self._reset()


async def run_process(
    launch_path: str,
    arguments: Sequence[str] | None = None,
    *,
    environment: Mapping[str, str] | None = None,
    current_directory: str | Path | None = None,
    output_options: Sequence[OutputOption] = (),
    error_options: Sequence[OutputOption] = (),
    text_sink: TextIO | None = None,
) -> Result:
    """Run a process to completion and return its Result.

    Convenience wrapper for one-off runs.

    Args:
        launch_path: Executable to run
        arguments: Arguments passed after the executable
        environment: Environment variables (None = inherit parent)
        current_directory: Working directory (None = inherit parent)
        output_options: Options for stdout
        error_options: Options for stderr
        text_sink: Stream PrintOption output goes to

    Returns:
        Success, or Failure with the exit code
    """
    runner = ProcessRunner(launch_path, text_sink=text_sink)
    runner.arguments = arguments
    runner.environment = environment
    runner.current_directory = current_directory
    runner.output_options = output_options
    runner.error_options = error_options
    return await runner.run()
