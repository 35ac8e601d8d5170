"""Stream pump draining one output channel of a child process."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from anyio import to_thread

from .barrier import Channel, CompletionBarrier
from .sinks import OutputOption, TextSink, process_data

__all__ = ["StreamPump", "ChunkReader"]

logger = logging.getLogger(__name__)


class ChunkReader(Protocol):
    """Anything with an ``asyncio.StreamReader``-style ``read``."""

    async def read(self, n: int = -1) -> bytes: ...


class StreamPump:
    """Read ``reader`` chunk by chunk until EOF, feeding each chunk to sinks.

    Sink delivery runs on a worker thread and is awaited before the next
    read, so chunks of one channel reach the sinks in order and one at a
    time, while a slow sink never stalls the other channel's pump.

    Attributes:
        channel: Which output channel this pump drains
        received_data: Whether a chunk has been delivered yet
    """

    def __init__(
        self,
        channel: Channel,
        reader: ChunkReader,
        options: Sequence[OutputOption],
        barrier: CompletionBarrier,
        *,
        text_sink: TextSink,
        read_size: int = 4096,
        encoding: str = "utf-8",
    ) -> None:
        self.channel = channel
        self.received_data = False
        self._reader = reader
        self._options = tuple(options)
        self._barrier = barrier
        self._text_sink = text_sink
        self._read_size = read_size
        self._encoding = encoding

    async def run(self) -> None:
        """Pump until EOF, then mark the channel finished on the barrier."""
        while True:
            try:
                chunk = await self._reader.read(self._read_size)
            except OSError as e:
                logger.warning(f"Reading {self.channel.value} failed: {e}")
                self._barrier.record_stream_error(self.channel, e)
                return

            if self._options:
                await to_thread.run_sync(self._deliver, chunk, not self.received_data)
            self.received_data = True

            if not chunk:
                self._barrier.mark_eof(self.channel)
                return

    def _deliver(self, chunk: bytes, initial_chunk: bool) -> None:
        process_data(
            chunk,
            self._options,
            initial_chunk=initial_chunk,
            text_sink=self._text_sink,
            encoding=self._encoding,
        )

