"""Tool executor: dispatches tool calls with an approval gate for unsafe tools."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from rich.console import Console
from rich.prompt import Confirm

from agentshell.cancellation import CancellationToken
from agentshell.models import CommandResult, ShellOutputEvent, ToolCall, ToolResult, ToolSafety
from agentshell.reporting import EventReporter, Reporter, ReporterGroup
from agentshell.supervisor import ProcessSupervisor
from agentshell.tools.registry import TOOL_REGISTRY, ToolContext, ToolFn

logger = logging.getLogger(__name__)

Approver = Callable[[ToolCall], Awaitable[bool]]


class ToolExecutor:
    """Dispatches tool calls from the assistant to their implementations.

    Safe tools run immediately; tools requiring approval go through
    *approver* first, which defaults to an interactive prompt on the console
    (read off the event loop via ``run_in_executor``).

    Args:
        supervisor: Supervisor handed to tools that run commands.
        approver: Async callback deciding whether a tool call may run.
        emit_event: UI event sink receiving every output chunk as a
            :class:`~agentshell.models.ShellOutputEvent`.
        reporter: Additional live sink, e.g. a terminal mirror.
        console: Console used by the default approval prompt.
    """

    def __init__(
        self,
        supervisor: ProcessSupervisor | None = None,
        approver: Approver | None = None,
        emit_event: Callable[[ShellOutputEvent], None] | None = None,
        reporter: Reporter | None = None,
        console: Console | None = None,
    ) -> None:
        self._supervisor = supervisor if supervisor is not None else ProcessSupervisor()
        self._approver = approver if approver is not None else self._request_approval
        self._emit_event = emit_event
        self._reporter = reporter
        self._console = console if console is not None else Console()

    async def execute(
        self,
        tool_call: ToolCall,
        cancellation: CancellationToken | None = None,
    ) -> ToolResult:
        """Execute a tool call, asking for approval if necessary.

        Args:
            tool_call: The tool invocation requested by the assistant.
            cancellation: Token that aborts the call when the user cancels.

        Returns:
            A :class:`~agentshell.models.ToolResult` with the tool's output or an
            error description.
        """
        entry = TOOL_REGISTRY.get(tool_call.name)
        if entry is None:
            logger.warning("Unknown tool requested: %s", tool_call.name)
            return ToolResult(
                tool_call_id=tool_call.id,
                name=tool_call.name,
                content=f"Error: unknown tool '{tool_call.name}'.",
                is_error=True,
            )

        if entry.definition.safety == ToolSafety.REQUIRES_APPROVAL:
            approved = await self._approver(tool_call)
            if not approved:
                return ToolResult(
                    tool_call_id=tool_call.id,
                    name=tool_call.name,
                    content="Tool execution denied by user.",
                    is_error=True,
                )

        context = ToolContext(
            supervisor=self._supervisor,
            cancellation=cancellation,
            reporter=self._reporter_for(tool_call),
        )
        return await self._run_tool(tool_call, entry.fn, context)

    def _reporter_for(self, tool_call: ToolCall) -> Reporter | None:
        reporters: list[Reporter] = []
        if self._reporter is not None:
            reporters.append(self._reporter)
        if self._emit_event is not None:
            reporters.append(EventReporter(self._emit_event, tool_call.id))
        if not reporters:
            return None
        if len(reporters) == 1:
            return reporters[0]
        return ReporterGroup(*reporters)

    async def _request_approval(self, tool_call: ToolCall) -> bool:
        """Print a proposal box and ask the user for confirmation.

        Args:
            tool_call: The tool call needing approval.

        Returns:
            True if the user approved, False otherwise.
        """
        args_display = "\n".join(
            f"  {k}: {v!r}" for k, v in tool_call.arguments.items()
        )
        self._console.print(
            f"\n┌─ Tool request ──────────────────────────────\n"
            f"│ Tool : {tool_call.name}\n"
            f"│ Args :\n{args_display}\n"
            f"└─────────────────────────────────────────────",
            markup=False,
            highlight=False,
        )
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, lambda: Confirm.ask("Allow?", default=False, console=self._console)
        )

    @staticmethod
    def normalize(tool_call: ToolCall, value: str | CommandResult) -> ToolResult:
        """Convert whatever a tool returned into the one canonical result shape.

        Args:
            tool_call: The originating tool call (for ID/name tracking).
            value: A plain string (success) or a :class:`CommandResult`.

        Returns:
            The :class:`~agentshell.models.ToolResult`.
        """
        if isinstance(value, CommandResult):
            return ToolResult(
                tool_call_id=tool_call.id,
                name=tool_call.name,
                content=value.content,
                is_error=value.is_error,
            )
        if isinstance(value, str):
            return ToolResult(tool_call_id=tool_call.id, name=tool_call.name, content=value)
        raise TypeError(
            f"Tool '{tool_call.name}' returned unsupported type {type(value).__name__}"
        )

    @classmethod
    async def _run_tool(
        cls,
        tool_call: ToolCall,
        fn: ToolFn,
        context: ToolContext,
    ) -> ToolResult:
        """Invoke the tool function and capture the result.

        Args:
            tool_call: The originating tool call (for ID/name tracking).
            fn: The async callable to invoke.
            context: Collaborators for this call.

        Returns:
            The :class:`~agentshell.models.ToolResult`.
        """
        try:
            value = await fn(context, **tool_call.arguments)
            return cls.normalize(tool_call, value)
        except TypeError as exc:
            logger.warning("Tool %s called with bad arguments: %s", tool_call.name, exc)
            return ToolResult(
                tool_call_id=tool_call.id,
                name=tool_call.name,
                content=f"Error: invalid arguments for tool '{tool_call.name}': {exc}",
                is_error=True,
            )
        except Exception as exc:
            logger.exception("Unexpected error in tool %s", tool_call.name)
            return ToolResult(
                tool_call_id=tool_call.id,
                name=tool_call.name,
                content=f"Error: unexpected error in tool '{tool_call.name}': {exc}",
                is_error=True,
            )
