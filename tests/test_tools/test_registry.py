"""Tests for tools/registry.py."""

from __future__ import annotations

import agentshell.tools  # noqa: F401  (trigger registration)
from agentshell.models import ToolSafety
from agentshell.tools.registry import (
    TOOL_REGISTRY,
    get_safe_tool_names,
    get_tool_definitions,
)


class TestToolRegistry:
    def test_execute_command_registered(self) -> None:
        assert "execute_command" in TOOL_REGISTRY

    def test_get_tool_definitions_returns_all(self) -> None:
        names = {d.name for d in get_tool_definitions()}
        assert names == set(TOOL_REGISTRY)

    def test_execute_command_requires_approval(self) -> None:
        entry = TOOL_REGISTRY["execute_command"]
        assert entry.definition.safety == ToolSafety.REQUIRES_APPROVAL
        assert "execute_command" not in get_safe_tool_names()

    def test_execute_command_schema(self) -> None:
        params = TOOL_REGISTRY["execute_command"].definition.parameters
        assert params["required"] == ["command"]
        assert set(params["properties"]) == {"command", "cwd", "timeout"}
