"""Output options for a runner's stdout and stderr channels.

Two variants are supported:
- PrintOption: decode each chunk and write it to the runner's text sink,
  optionally tagging every line with a prefix
- HandleOption: forward the raw bytes of every chunk to a callback,
  including the zero-length chunk that marks EOF

Prefixing works on the stream without buffering whole lines: the first
non-empty chunk of a channel gets the prefix prepended, and every newline
inside a chunk is followed by the prefix. A zero-length chunk only writes
the newline that terminates the last line.
"""

from __future__ import annotations

import logging
import sys
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TextIO, Union

__all__ = [
    "PrintOption",
    "HandleOption",
    "OutputOption",
    "TextSink",
    "format_chunk",
    "process_data",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrintOption:
    """Write decoded chunks to the text sink.

    Attributes:
        prefix: Tag written before every line (None = write verbatim)
    """

    prefix: str | None = None


@dataclass(frozen=True)
class HandleOption:
    """Pass raw chunks to ``callback`` as they are received.

    Attributes:
        callback: Called with every chunk; ``b""`` signals EOF
    """

    callback: Callable[[bytes], None]


OutputOption = Union[PrintOption, HandleOption]


class TextSink:
    """Lock-guarded text stream shared by the stdout and stderr channels.

    Each chunk is written and flushed in one critical section so output
    from the two channels never interleaves inside a chunk. Without an
    explicit stream, whatever ``sys.stdout`` is at write time is used.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream
        self._lock = threading.Lock()

    def write(self, text: str) -> None:
        if not text:
            return
        stream = self.stream if self.stream is not None else sys.stdout
        with self._lock:
            stream.write(text)
            stream.flush()


def format_chunk(
    text: str,
    prefix: str | None,
    initial_chunk: bool,
    eof: bool,
) -> str:
    """Return the text a Print option writes for one decoded chunk.

    Args:
        text: Decoded chunk
        prefix: Line prefix, or None
        initial_chunk: True until the channel has produced a chunk
        eof: True for the zero-length chunk that ends the channel

    Returns:
        Text to write, with no terminator other than the EOF newline
    """
    # EOF is only the terminating newline, no prefix processing
    if prefix is None or eof:
        return text + "\n" if eof else text

    output = text
    if initial_chunk:
        output = f"{prefix} {output}"

    return output.replace("\n", f"\n{prefix} ")


def process_data(
    chunk: bytes,
    options: Sequence[OutputOption],
    *,
    initial_chunk: bool,
    text_sink: TextSink,
    encoding: str = "utf-8",
) -> None:
    """Deliver one chunk to every option, in list order.

    Args:
        chunk: Bytes read from the channel (``b""`` at EOF)
        options: Options configured for the channel
        initial_chunk: Whether the channel has not produced a chunk yet
        text_sink: Destination for PrintOption output
        encoding: Codec used to decode chunks for PrintOption
    """
    eof = len(chunk) == 0

    for option in options:
        if isinstance(option, PrintOption):
            try:
                text = chunk.decode(encoding)
            except UnicodeDecodeError:
                # Print is best-effort; undecodable chunks are dropped
                logger.debug(f"Dropping undecodable chunk ({len(chunk)} bytes)")
                continue
            try:
                text_sink.write(format_chunk(text, option.prefix, initial_chunk, eof))
            except OSError as e:
                # e.g. a closed pipe downstream; keep draining the child
                logger.debug(f"Dropping {len(chunk)} byte chunk, text sink failed: {e}")

        elif isinstance(option, HandleOption):
            try:
                option.callback(chunk)
            except Exception:
                # Keep draining: a stalled pipe would block the child
                logger.exception(f"Output handler raised on {len(chunk)} byte chunk")

        else:
            raise TypeError(f"Unsupported output option: {option!r}")
