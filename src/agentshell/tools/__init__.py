"""Tools package: imports all tools to register them, exports registry helpers."""

# Import tool modules so their register_tool() calls populate TOOL_REGISTRY.
import agentshell.tools.execute_command  # noqa: F401
from agentshell.tools.executor import ToolExecutor
from agentshell.tools.registry import (
    TOOL_REGISTRY,
    ToolContext,
    ToolEntry,
    get_safe_tool_names,
    get_tool_definitions,
)

__all__ = [
    "TOOL_REGISTRY",
    "ToolContext",
    "ToolEntry",
    "ToolExecutor",
    "get_safe_tool_names",
    "get_tool_definitions",
]
