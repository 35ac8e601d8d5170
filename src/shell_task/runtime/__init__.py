"""Runtime module for asynchronous process execution.

This module launches child processes without blocking the caller, drains
their stdout and stderr concurrently into output options, and reports a
single Result once the process has exited and both channels are drained.
"""

from __future__ import annotations

from .barrier import Channel, Completion, CompletionBarrier
from .process_runner import (
    CompletionCallback,
    ProcessConfig,
    ProcessRunner,
    RunnerStatus,
    RunState,
    run_process,
)
from .pump import StreamPump
from .result import Failure, FailureKind, Result, Success, result_for_exit_code
from .sinks import HandleOption, OutputOption, PrintOption, TextSink, format_chunk, process_data

__all__ = [
    "Channel",
    "Completion",
    "CompletionBarrier",
    "CompletionCallback",
    "Failure",
    "FailureKind",
    "HandleOption",
    "OutputOption",
    "PrintOption",
    "ProcessConfig",
    "ProcessRunner",
    "Result",
    "RunState",
    "RunnerStatus",
    "StreamPump",
    "Success",
    "TextSink",
    "format_chunk",
    "process_data",
    "result_for_exit_code",
    "run_process",
]
