"""Output collector: decodes a child's output as it arrives, mirrors and accumulates it."""

from __future__ import annotations

import asyncio
import codecs
import logging
from dataclasses import dataclass

from agentshell.models import OutputChunk, StreamName
from agentshell.reporting import NullReporter, Reporter
from agentshell.truncation import apply_tail, strip_ansi

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapturedOutput:
    """Text gathered from one command, ANSI codes still in place.

    Args:
        stdout: Everything written to stdout.
        stderr: Everything written to stderr.
        combined: Both streams interleaved in arrival order.
    """

    stdout: str = ""
    stderr: str = ""
    combined: str = ""

    def agent_text(self) -> str:
        """Plain text for the model: combined, else stdout, else stderr."""
        return strip_ansi(self.combined or self.stdout or self.stderr)


class OutputCollector:
    """Accumulates stdout and stderr chunk by chunk while the process runs.

    Bytes are decoded incrementally, so a multi-byte character split across
    two reads is reassembled. Every decoded chunk goes to the reporter
    untouched and is appended to the per-stream and combined buffers in
    arrival order.

    Args:
        reporter: Live sink for raw chunks.
        encoding: Encoding of the child's output; undecodable bytes are replaced.
    """

    def __init__(self, reporter: Reporter | None = None, encoding: str = "utf-8") -> None:
        self._reporter = reporter if reporter is not None else NullReporter()
        self._decoders = {
            stream: codecs.getincrementaldecoder(encoding)(errors="replace")
            for stream in StreamName
        }
        self._buffers: dict[StreamName, list[str]] = {stream: [] for stream in StreamName}
        self._combined: list[str] = []
        self._open = set(StreamName)
        self._all_closed = asyncio.Event()

    def feed(self, stream: StreamName, data: bytes) -> None:
        """Decode and record a chunk of raw output from *stream*."""
        if stream not in self._open:
            return
        self._append(stream, self._decoders[stream].decode(data))

    def close_stream(self, stream: StreamName) -> None:
        """Mark *stream* as finished (EOF), flushing any partial character."""
        if stream not in self._open:
            return
        self._append(stream, self._decoders[stream].decode(b"", final=True))
        self._open.discard(stream)
        if not self._open:
            self._all_closed.set()

    def _append(self, stream: StreamName, text: str) -> None:
        if not text:
            return
        self._buffers[stream].append(text)
        self._combined.append(text)
        try:
            self._reporter.on_output(OutputChunk(text=text, stream=stream))
        except Exception:
            logger.exception("Reporter failed while mirroring %s output", stream)

    @property
    def closed(self) -> bool:
        """True once both streams reached EOF (or were detached)."""
        return not self._open

    async def wait_closed(self, timeout: float | None = None) -> bool:
        """Wait until both streams hit EOF, or give up after *timeout* seconds.

        A pipe can stay open after the shell exits when a descendant that
        escaped the kill still holds it; in that case the remaining streams
        are detached and later data is ignored.

        Returns:
            True if both streams closed on their own.
        """
        try:
            await asyncio.wait_for(self._all_closed.wait(), timeout)
            return True
        except TimeoutError:
            logger.warning(
                "Output pipes still open %ss after exit; detaching %s",
                timeout,
                ", ".join(sorted(self._open)),
            )
            for stream in list(self._open):
                self.close_stream(stream)
            return False

    @property
    def stdout(self) -> str:
        return "".join(self._buffers[StreamName.STDOUT])

    @property
    def stderr(self) -> str:
        return "".join(self._buffers[StreamName.STDERR])

    @property
    def combined(self) -> str:
        return "".join(self._combined)

    def snapshot(self, tail_lines: int | None = None) -> CapturedOutput:
        """Return what has been captured so far, tail applied if requested."""
        return CapturedOutput(
            stdout=apply_tail(self.stdout, tail_lines),
            stderr=apply_tail(self.stderr, tail_lines),
            combined=apply_tail(self.combined, tail_lines),
        )
