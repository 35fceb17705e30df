"""Command parser: splits a trailing ``| tail -N`` pipe off a command."""

from __future__ import annotations

import re
from dataclasses import dataclass

# `| tail -N`, `| tail N` or `| tail -n N` at the very end of the command.
_TAIL_PIPE = re.compile(r"\|\s*tail\s+(?:-n\s+)?(-?\d+)\s*$")


@dataclass(frozen=True)
class ParsedCommand:
    """A command with its tail clause (if any) split off.

    Args:
        exec_command: The command to hand to the shell.
        tail_lines: Number of trailing lines the agent should see, or None.
    """

    exec_command: str
    tail_lines: int | None = None


def parse_command(command: str) -> ParsedCommand:
    """Extract a trailing tail pipe so it can be applied to agent output only.

    The user's terminal still sees the full output; the agent sees the last
    ``N`` lines. A non-positive count leaves the command untouched.

    Args:
        command: Raw command text.

    Returns:
        A :class:`ParsedCommand`.
    """
    match = _TAIL_PIPE.search(command)
    if match is None:
        return ParsedCommand(exec_command=command)

    tail_lines = abs(int(match.group(1)))
    if tail_lines <= 0:
        return ParsedCommand(exec_command=command)

    return ParsedCommand(
        exec_command=command[: match.start()].strip(),
        tail_lines=tail_lines,
    )
