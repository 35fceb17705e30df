"""Live output sinks: terminal mirror, UI event push and fan-out."""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console

from agentshell.models import OutputChunk, ShellOutputEvent

if TYPE_CHECKING:
    from agentshell.models import CommandResult

logger = logging.getLogger(__name__)


class Reporter(ABC):
    """Receives raw output while a command runs.

    Chunks are delivered verbatim: ANSI colour codes are kept and nothing is
    truncated, since these sinks are meant for humans watching a terminal.
    """

    def on_start(self, command: str, cwd: Path) -> None:
        """Called once before the command is spawned."""

    @abstractmethod
    def on_output(self, chunk: OutputChunk) -> None:
        """Called for every decoded chunk, in arrival order."""

    def on_finish(self, result: CommandResult) -> None:
        """Called once with the final result."""


class NullReporter(Reporter):
    """Discards everything."""

    def on_output(self, chunk: OutputChunk) -> None:
        pass


class ConsoleReporter(Reporter):
    """Mirrors command output to a Rich console.

    Args:
        console: Console to write to; a fresh stdout console by default.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console if console is not None else Console()

    def on_start(self, command: str, cwd: Path) -> None:
        if cwd != Path(os.getcwd()) and str(cwd) not in command:
            self._console.print(f"# {cwd}", style="grey50", markup=False, highlight=False)
        self._console.print(f"$ {command}", style="green", markup=False, highlight=False)

    def on_output(self, chunk: OutputChunk) -> None:
        # Bypass Rich rendering so the child's own escape codes reach the terminal.
        stream = self._console.file
        stream.write(chunk.text)
        stream.flush()

    def on_finish(self, result: CommandResult) -> None:
        if result.aborted:
            self._console.print("\nAborted by user", style="yellow")
        elif result.timed_out:
            limit = result.timeout_seconds
            if limit is None:
                limit = result.duration
            self._console.print(f"\nTimed out after {limit:g}s", style="yellow")
        elif result.exit_code is not None:
            self._console.print(f"\nExited with code {result.exit_code}", style="grey50")
        elif result.signal is not None:
            self._console.print(f"\nTerminated by {result.signal}", style="grey50")


class EventReporter(Reporter):
    """Pushes each chunk to a UI event bus as a :class:`ShellOutputEvent`.

    Args:
        emit: Callback receiving the events.
        tool_call_id: ID of the tool call the command belongs to.
    """

    def __init__(self, emit: Callable[[ShellOutputEvent], None], tool_call_id: str) -> None:
        self._emit = emit
        self._tool_call_id = tool_call_id

    def on_output(self, chunk: OutputChunk) -> None:
        self._emit(
            ShellOutputEvent(
                tool_call_id=self._tool_call_id,
                output=chunk.text,
                stream=chunk.stream,
            )
        )


class ReporterGroup(Reporter):
    """Forwards every call to several reporters; one failing does not stop the rest."""

    def __init__(self, *reporters: Reporter) -> None:
        self._reporters = list(reporters)

    def on_start(self, command: str, cwd: Path) -> None:
        for reporter in self._reporters:
            try:
                reporter.on_start(command, cwd)
            except Exception:
                logger.exception("Reporter %r failed in on_start", reporter)

    def on_output(self, chunk: OutputChunk) -> None:
        for reporter in self._reporters:
            try:
                reporter.on_output(chunk)
            except Exception:
                logger.exception("Reporter %r failed in on_output", reporter)

    def on_finish(self, result: CommandResult) -> None:
        for reporter in self._reporters:
            try:
                reporter.on_finish(result)
            except Exception:
                logger.exception("Reporter %r failed in on_finish", reporter)
