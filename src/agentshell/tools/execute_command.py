"""Execute-command tool: runs a shell command (requires approval)."""

from __future__ import annotations

import logging

from agentshell.models import CommandRequest, CommandResult, ToolDefinition, ToolSafety
from agentshell.tools.registry import ToolContext, register_tool

logger = logging.getLogger(__name__)

_DEFINITION = ToolDefinition(
    name="execute_command",
    description=(
        "Execute a shell command on the local system and return its output.\n"
        "- Commands run in the project root unless `cwd` is given; `cwd` must stay "
        "inside the project root or an allowed path.\n"
        "- Commands are killed after `timeout` seconds (default 30).\n"
        "- Output is stripped of ANSI codes and truncated if too long. Pipe to "
        '"| tail -N" to only receive the last N lines; the user still sees everything.\n'
        "- CI=true is forced, so interactive prompts fail instead of hanging."
    ),
    parameters={
        "type": "object",
        "properties": {
            "command": {
                "type": "string",
                "description": "Full shell command to execute.",
            },
            "cwd": {
                "type": "string",
                "description": "Working directory for the command.",
            },
            "timeout": {
                "type": "number",
                "description": "Seconds until the command is killed. Defaults to 30.",
            },
        },
        "required": ["command"],
    },
    safety=ToolSafety.REQUIRES_APPROVAL,
)


async def execute_command(
    context: ToolContext,
    command: str,
    cwd: str | None = None,
    timeout: float | None = None,
) -> CommandResult:
    """Run a shell command through the context's supervisor.

    Args:
        context: Supervisor, cancellation token and reporter for this call.
        command: The shell command string to execute.
        cwd: Optional working directory.
        timeout: Maximum seconds to wait for the command to finish.

    Returns:
        The :class:`~agentshell.models.CommandResult`.
    """
    logger.info("execute_command: running: %s", command)
    request = CommandRequest(command=command, working_directory=cwd, timeout_seconds=timeout)
    return await context.supervisor.execute(
        request,
        cancellation=context.cancellation,
        reporter=context.reporter,
    )


register_tool(_DEFINITION, execute_command)
