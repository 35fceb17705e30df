"""Tests for tools/executor.py."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

import agentshell.tools  # noqa: F401  (ensure tools are registered)
from agentshell.cleanup import ExitCleanupRegistry
from agentshell.models import (
    CommandResult,
    Config,
    Outcome,
    ShellOutputEvent,
    StreamName,
    ToolCall,
)
from agentshell.supervisor import ProcessSupervisor
from agentshell.tools.executor import ToolExecutor

posix_only = pytest.mark.skipif(os.name != "posix", reason="needs a POSIX shell")

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_tool_call(name: str, arguments: dict | None = None, id: str = "tc-1") -> ToolCall:
    return ToolCall(id=id, name=name, arguments=arguments or {})


def _make_executor(tmp_path: Path, approve: bool = True, **kwargs: object) -> ToolExecutor:
    supervisor = ProcessSupervisor(
        Config(project_root=tmp_path),
        registry=ExitCleanupRegistry(install_handlers=False),
    )
    return ToolExecutor(
        supervisor=supervisor,
        approver=AsyncMock(return_value=approve),
        **kwargs,  # type: ignore[arg-type]
    )


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestToolExecutor:
    async def test_unknown_tool_returns_error(self, tmp_path: Path) -> None:
        executor = _make_executor(tmp_path)
        result = await executor.execute(_make_tool_call("nonexistent_tool"))
        assert result.is_error is True
        assert "unknown tool" in result.content.lower()

    @posix_only
    async def test_approval_granted_executes_command(self, tmp_path: Path) -> None:
        executor = _make_executor(tmp_path)
        tc = _make_tool_call("execute_command", {"command": "echo approved"}, id="my-id-123")
        result = await executor.execute(tc)
        assert result.is_error is False
        assert result.content == "approved\n"
        assert result.tool_call_id == "my-id-123"
        assert result.name == "execute_command"

    async def test_approval_denied_does_not_run(self, tmp_path: Path) -> None:
        executor = _make_executor(tmp_path, approve=False)
        marker = tmp_path / "ran"
        tc = _make_tool_call("execute_command", {"command": f"touch {marker}"})
        result = await executor.execute(tc)
        assert result.is_error is True
        assert "denied" in result.content.lower()
        assert not marker.exists()

    async def test_bad_arguments_returns_error(self, tmp_path: Path) -> None:
        executor = _make_executor(tmp_path)
        tc = _make_tool_call("execute_command", {"wrong_arg": "value"})
        result = await executor.execute(tc)
        assert result.is_error is True
        assert "invalid arguments" in result.content

    @posix_only
    async def test_failed_command_is_error_result(self, tmp_path: Path) -> None:
        executor = _make_executor(tmp_path)
        tc = _make_tool_call("execute_command", {"command": "exit 2"})
        result = await executor.execute(tc)
        assert result.is_error is True
        assert "exited with code 2" in result.content

    @posix_only
    async def test_emit_event_receives_raw_chunks(self, tmp_path: Path) -> None:
        events: list[ShellOutputEvent] = []
        executor = _make_executor(tmp_path, emit_event=events.append)
        tc = _make_tool_call(
            "execute_command",
            {"command": "printf '\\033[32mgreen\\033[0m\\n'; echo warn >&2"},
            id="evt",
        )
        result = await executor.execute(tc)

        assert result.content == "green\nwarn\n" or result.content == "warn\ngreen\n"
        assert {event.tool_call_id for event in events} == {"evt"}
        stdout_text = "".join(e.output for e in events if e.stream is StreamName.STDOUT)
        assert stdout_text == "\x1b[32mgreen\x1b[0m\n"


class TestNormalize:
    def test_command_result(self) -> None:
        tc = _make_tool_call("execute_command")
        value = CommandResult(content="boom", is_error=True, outcome=Outcome.FAILED)
        result = ToolExecutor.normalize(tc, value)
        assert result.content == "boom"
        assert result.is_error is True
        assert result.tool_call_id == "tc-1"

    def test_plain_string(self) -> None:
        result = ToolExecutor.normalize(_make_tool_call("x"), "fine")
        assert result.content == "fine"
        assert result.is_error is False

    def test_unsupported_type_raises(self) -> None:
        with pytest.raises(TypeError):
            ToolExecutor.normalize(_make_tool_call("x"), 42)  # type: ignore[arg-type]
