"""Tool registry: maps tool names to their definitions and implementations."""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any

from agentshell.cancellation import CancellationToken
from agentshell.models import CommandResult, ToolDefinition, ToolSafety
from agentshell.reporting import Reporter
from agentshell.supervisor import ProcessSupervisor


@dataclass
class ToolContext:
    """Per-call collaborators handed to every tool function.

    Args:
        supervisor: Supervisor that runs shell commands.
        cancellation: Token fired when the user aborts the tool call.
        reporter: Live sink for the tool's output.
    """

    supervisor: ProcessSupervisor
    cancellation: CancellationToken | None = None
    reporter: Reporter | None = None


# Type alias for an async tool function: fn(context, **arguments).
ToolFn = Callable[..., Coroutine[Any, Any, str | CommandResult]]


class ToolEntry:
    """Combines a tool's schema definition with its implementation.

    Args:
        definition: The :class:`~agentshell.models.ToolDefinition` exposed to the model.
        fn: Async callable that executes the tool; receives the
            :class:`ToolContext` and **kwargs from arguments.
    """

    def __init__(self, definition: ToolDefinition, fn: ToolFn) -> None:
        self.definition = definition
        self.fn = fn


# Registry maps tool name → ToolEntry.
# Populated by each tool module via register_tool().
TOOL_REGISTRY: dict[str, ToolEntry] = {}


def register_tool(definition: ToolDefinition, fn: ToolFn) -> None:
    """Register a tool in the global registry.

    Args:
        definition: Tool schema definition.
        fn: Async function implementing the tool.
    """
    TOOL_REGISTRY[definition.name] = ToolEntry(definition=definition, fn=fn)


def get_tool_definitions() -> list[ToolDefinition]:
    """Return all registered tool definitions (for passing to the LLM).

    Returns:
        List of :class:`~agentshell.models.ToolDefinition` objects.
    """
    return [entry.definition for entry in TOOL_REGISTRY.values()]


def get_safe_tool_names() -> set[str]:
    """Return the names of all tools that are marked SAFE.

    Returns:
        Set of tool name strings.
    """
    return {
        name
        for name, entry in TOOL_REGISTRY.items()
        if entry.definition.safety == ToolSafety.SAFE
    }
