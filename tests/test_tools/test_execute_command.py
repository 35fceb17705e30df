"""Tests for tools/execute_command.py."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from agentshell.cancellation import CancellationToken
from agentshell.cleanup import ExitCleanupRegistry
from agentshell.models import Config, Outcome
from agentshell.supervisor import ProcessSupervisor
from agentshell.tools.execute_command import execute_command
from agentshell.tools.registry import ToolContext

pytestmark = pytest.mark.skipif(os.name != "posix", reason="needs a POSIX shell")


def _context(tmp_path: Path, **kwargs: object) -> ToolContext:
    supervisor = ProcessSupervisor(
        Config(project_root=tmp_path),
        registry=ExitCleanupRegistry(install_handlers=False),
    )
    return ToolContext(supervisor=supervisor, **kwargs)  # type: ignore[arg-type]


class TestExecuteCommand:
    async def test_simple_command(self, tmp_path: Path) -> None:
        result = await execute_command(_context(tmp_path), command="echo hello")
        assert result.content == "hello\n"
        assert result.is_error is False

    async def test_runs_in_requested_cwd(self, tmp_path: Path) -> None:
        (tmp_path / "sub").mkdir()
        result = await execute_command(_context(tmp_path), command="pwd", cwd="sub")
        assert result.content.strip() == str((tmp_path / "sub").resolve())

    async def test_command_with_nonzero_exit(self, tmp_path: Path) -> None:
        result = await execute_command(_context(tmp_path), command="exit 3", timeout=5)
        assert result.is_error is True
        assert result.exit_code == 3
        assert "exited with code 3" in result.content

    async def test_command_timeout(self, tmp_path: Path) -> None:
        result = await execute_command(_context(tmp_path), command="sleep 10", timeout=0.5)
        assert result.outcome is Outcome.TIMED_OUT
        assert "timed out" in result.content

    async def test_stderr_captured(self, tmp_path: Path) -> None:
        result = await execute_command(
            _context(tmp_path), command="echo oops >&2; exit 1", timeout=5
        )
        assert result.stderr == "oops\n"
        assert "Output: oops" in result.content

    async def test_cwd_outside_root_rejected(self, tmp_path: Path) -> None:
        result = await execute_command(_context(tmp_path), command="ls", cwd="/")
        assert result.outcome is Outcome.REJECTED

    async def test_uses_context_cancellation(self, tmp_path: Path) -> None:
        token = CancellationToken()
        token.cancel()
        result = await execute_command(
            _context(tmp_path, cancellation=token), command="echo never"
        )
        assert result.aborted
