"""Process supervisor: runs one shell command and guarantees it is gone afterwards."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import subprocess
import time
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from agentshell.cancellation import CancellationToken
from agentshell.classifier import ABORTED_MARKER, ResultClassifier
from agentshell.cleanup import ExitCleanupRegistry, cleanup_registry
from agentshell.collector import OutputCollector
from agentshell.models import (
    CommandRequest,
    CommandResult,
    Config,
    Outcome,
    ProcessHandle,
    ProcessState,
    StreamName,
)
from agentshell.parser import parse_command
from agentshell.proctree import ProcessTree
from agentshell.reporting import NullReporter, Reporter, ReporterGroup
from agentshell.sandbox import SandboxViolation, resolve_working_directory
from agentshell.truncation import TokenTruncator, truncate_to_token_budget

logger = logging.getLogger(__name__)

# Keep child tools from prompting for input or dropping colour output.
_FORCED_ENV = {
    "FORCE_COLOR": "1",
    "CLICOLOR_FORCE": "1",
    "CI": "true",
    "NONINTERACTIVE": "1",
    "DEBIAN_FRONTEND": "noninteractive",
}

_FD_STREAMS = {1: StreamName.STDOUT, 2: StreamName.STDERR}


def build_child_env(base: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return the environment for a child: *base* (default ``os.environ``) plus overrides."""
    env = dict(os.environ if base is None else base)
    env.update(_FORCED_ENV)
    env["TERM"] = env.get("TERM") or "xterm-256color"
    return env


def _signal_name(returncode: int | None) -> str | None:
    if returncode is None or returncode >= 0:
        return None
    try:
        return signal.Signals(-returncode).name
    except ValueError:
        return f"signal {-returncode}"


class _SupervisedProtocol(asyncio.SubprocessProtocol):
    """Routes pipe data to the collector and resolves a future on process exit.

    ``process_exited`` fires as soon as the child is reaped, even if a
    descendant still holds the output pipes open.
    """

    def __init__(self, collector: OutputCollector, exited: asyncio.Future[None]) -> None:
        self._collector = collector
        self._exited = exited

    def pipe_data_received(self, fd: int, data: bytes) -> None:
        stream = _FD_STREAMS.get(fd)
        if stream is not None:
            self._collector.feed(stream, data)

    def pipe_connection_lost(self, fd: int, exc: Exception | None) -> None:
        stream = _FD_STREAMS.get(fd)
        if stream is not None:
            self._collector.close_stream(stream)

    def process_exited(self) -> None:
        if not self._exited.done():
            self._exited.set_result(None)


class ProcessSupervisor:
    """Executes shell commands with timeout, cancellation and orphan cleanup.

    One instance may serve many concurrent :meth:`execute` calls; each call
    keeps its own handle, timer and cancellation subscription. The only
    shared state is the exit cleanup registry.

    Args:
        config: Engine configuration; defaults to :class:`Config()`.
        registry: Exit cleanup registry; the process-wide one by default.
        truncate: Token-budget truncation function for agent-facing text.
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        registry: ExitCleanupRegistry | None = None,
        truncate: TokenTruncator = truncate_to_token_budget,
    ) -> None:
        self.config = config if config is not None else Config()
        self._registry = registry if registry is not None else cleanup_registry
        self._classifier = ResultClassifier(
            token_budget=self.config.token_budget,
            abort_token_budget=self.config.abort_token_budget,
            truncate=truncate,
        )

    async def execute(
        self,
        request: CommandRequest,
        cancellation: CancellationToken | None = None,
        reporter: Reporter | None = None,
    ) -> CommandResult:
        """Run *request* to completion, timeout or cancellation.

        Never raises for runtime failures: sandbox rejections, spawn errors,
        timeouts, cancellations and nonzero exits all come back as a
        :class:`CommandResult` with ``is_error`` set. If the awaiting task is
        itself cancelled, the process tree is killed and reaped before the
        ``CancelledError`` propagates.

        Args:
            request: What to run.
            cancellation: Token that aborts the command when fired.
            reporter: Live sink for raw output.

        Returns:
            The final :class:`CommandResult`.
        """
        started = time.monotonic()
        # Reporter failures are logged, never allowed to change the outcome.
        reporter = ReporterGroup(reporter) if reporter is not None else NullReporter()

        try:
            cwd = resolve_working_directory(
                request.working_directory,
                self.config.project_root,
                self.config.allowed_paths,
            )
        except SandboxViolation as exc:
            logger.warning("Refusing to run command: %s", exc)
            return CommandResult(
                content=f"Error: {exc}",
                is_error=True,
                outcome=Outcome.REJECTED,
                command=request.command,
            )
        except ValueError as exc:
            # e.g. an embedded NUL byte in the path
            logger.warning("Invalid working directory %r: %s", request.working_directory, exc)
            return CommandResult(
                content=f"Error: invalid working directory: {exc}",
                is_error=True,
                outcome=Outcome.REJECTED,
                command=request.command,
            )

        parsed = parse_command(request.command)
        timeout = request.timeout_seconds or self.config.default_timeout_seconds

        if cancellation is not None and cancellation.cancelled:
            logger.info("Command cancelled before start: %s", parsed.exec_command)
            return CommandResult(
                content=ABORTED_MARKER,
                is_error=True,
                outcome=Outcome.ABORTED,
                command=parsed.exec_command,
                cwd=cwd,
            )

        reporter.on_start(parsed.exec_command, cwd)
        logger.info("Running command in %s (timeout %ss): %s", cwd, timeout, parsed.exec_command)

        loop = asyncio.get_running_loop()
        collector = OutputCollector(reporter)
        exited: asyncio.Future[None] = loop.create_future()
        try:
            transport = await self._spawn(
                parsed.exec_command, cwd, _SupervisedProtocol(collector, exited)
            )
        except (OSError, ValueError) as exc:
            logger.warning("Failed to start command %r: %s", parsed.exec_command, exc)
            result = CommandResult(
                content=f"Error: failed to start command: {exc}",
                is_error=True,
                outcome=Outcome.SPAWN_FAILED,
                duration=time.monotonic() - started,
                timeout_seconds=timeout,
                command=parsed.exec_command,
                cwd=cwd,
            )
            reporter.on_finish(result)
            return result

        pid = transport.get_pid()
        pgid = pid if os.name == "posix" else None
        handle = ProcessHandle(pid=pid, process_group_id=pgid, started_at=started)
        tree = ProcessTree(pid, pgid)
        self._registry.register(pid, tree.kill)
        handle.advance(ProcessState.RUNNING)

        timer = loop.call_later(
            max(timeout - self.config.kill_margin_seconds, 0.0),
            self._interrupt,
            handle,
            transport,
            tree,
            ProcessState.TIMED_OUT,
        )
        unsubscribe = None
        if cancellation is not None:
            unsubscribe = cancellation.subscribe(
                lambda: loop.call_soon_threadsafe(
                    self._interrupt, handle, transport, tree, ProcessState.ABORTED
                )
            )

        try:
            try:
                # Shielded so a cancelled caller does not cancel the exit notification.
                await asyncio.shield(exited)
            except asyncio.CancelledError:
                self._interrupt(handle, transport, tree, ProcessState.ABORTED)
                await asyncio.shield(exited)
                raise
            finally:
                timer.cancel()
                if unsubscribe is not None:
                    unsubscribe()
                self._registry.unregister(pid)
                # Descendants of shells and wrappers can outlive a cleanly exited child.
                tree.kill()
            await collector.wait_closed(self.config.drain_timeout_seconds)
        finally:
            transport.close()

        handle.claim(ProcessState.COMPLETED)
        terminal_state = handle.state
        handle.advance(ProcessState.REAPED)

        returncode = transport.get_returncode()
        signal_name = _signal_name(returncode)
        exit_code = returncode if returncode is not None and returncode >= 0 else None
        output = collector.snapshot(parsed.tail_lines)
        verdict = self._classifier.classify(
            terminal_state,
            exit_code,
            signal_name,
            output,
            timeout_seconds=timeout,
        )

        result = CommandResult(
            content=verdict.content,
            is_error=verdict.is_error,
            outcome=verdict.outcome,
            stdout=output.stdout,
            stderr=output.stderr,
            combined=output.combined,
            exit_code=exit_code,
            signal=signal_name,
            timed_out=terminal_state is ProcessState.TIMED_OUT,
            timeout_seconds=timeout,
            duration=time.monotonic() - started,
            command=parsed.exec_command,
            cwd=cwd,
        )
        logger.debug(
            "Command finished: outcome=%s exit=%s signal=%s duration=%.2fs",
            result.outcome,
            result.exit_code,
            result.signal,
            result.duration,
        )
        reporter.on_finish(result)
        return result

    async def _spawn(
        self,
        command: str,
        cwd: Path,
        protocol: _SupervisedProtocol,
    ) -> asyncio.SubprocessTransport:
        loop = asyncio.get_running_loop()
        kwargs: dict[str, Any] = {
            "stdin": subprocess.DEVNULL,
            "stdout": subprocess.PIPE,
            "stderr": subprocess.PIPE,
            "cwd": str(cwd),
            "env": build_child_env(),
        }
        if os.name == "posix":
            # New session, hence a new process group whose id is the child's pid.
            kwargs["start_new_session"] = True
        else:
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP

        if self.config.shell:
            transport, _ = await loop.subprocess_exec(
                lambda: protocol, self.config.shell, "-c", command, **kwargs
            )
        else:
            transport, _ = await loop.subprocess_shell(lambda: protocol, command, **kwargs)
        return transport

    @staticmethod
    def _interrupt(
        handle: ProcessHandle,
        transport: asyncio.SubprocessTransport,
        tree: ProcessTree,
        state: ProcessState,
    ) -> None:
        """Kill the command on behalf of *state*, unless another outcome already won."""
        if transport.get_returncode() is not None or not handle.claim(state):
            return
        logger.info("Killing command (pid %d): %s", handle.pid, state)
        tree.kill()
