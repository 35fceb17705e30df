"""Shared dataclasses and enums for the command execution engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any


class StreamName(StrEnum):
    """Which pipe of the child process a chunk of output came from."""

    STDOUT = "stdout"
    STDERR = "stderr"


class ProcessState(StrEnum):
    """Lifecycle state of a spawned command."""

    SPAWNED = "spawned"
    RUNNING = "running"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    ABORTED = "aborted"
    SPAWN_FAILED = "spawn_failed"
    REAPED = "reaped"


TERMINAL_STATES = frozenset(
    {
        ProcessState.COMPLETED,
        ProcessState.TIMED_OUT,
        ProcessState.ABORTED,
        ProcessState.SPAWN_FAILED,
    }
)

_STATE_RANK = {
    ProcessState.SPAWNED: 0,
    ProcessState.RUNNING: 1,
    ProcessState.COMPLETED: 2,
    ProcessState.TIMED_OUT: 2,
    ProcessState.ABORTED: 2,
    ProcessState.SPAWN_FAILED: 2,
    ProcessState.REAPED: 3,
}


class Outcome(StrEnum):
    """How a command request ended, as reported to the caller."""

    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    ABORTED = "aborted"
    SPAWN_FAILED = "spawn_failed"
    REJECTED = "rejected"


class ToolSafety(StrEnum):
    """Safety level of a tool: determines whether it requires user approval."""

    SAFE = "safe"
    REQUIRES_APPROVAL = "requires_approval"


@dataclass(frozen=True)
class CommandRequest:
    """A request to run one shell command.

    Args:
        command: Full shell command text.
        working_directory: Directory to run in; defaults to the project root.
        timeout_seconds: Seconds before the command is killed. ``None`` or
            ``0`` selects the configured default.
    """

    command: str
    working_directory: str | None = None
    timeout_seconds: float | None = None

    def __post_init__(self) -> None:
        if self.timeout_seconds is not None and self.timeout_seconds < 0:
            raise ValueError(f"timeout_seconds must not be negative: {self.timeout_seconds}")


@dataclass
class ProcessHandle:
    """Tracks one spawned child process through its lifecycle.

    Args:
        pid: OS process id of the shell.
        process_group_id: Process group the shell leads, or ``None`` where the
            platform has no POSIX process groups.
        started_at: ``time.monotonic()`` value at spawn.
    """

    pid: int
    process_group_id: int | None
    started_at: float
    state: ProcessState = ProcessState.SPAWNED

    def advance(self, state: ProcessState) -> None:
        """Move to *state*, which must be strictly later in the lifecycle.

        Raises:
            ValueError: If the transition would go backwards or sideways.
        """
        if self.state is ProcessState.REAPED or _STATE_RANK[state] <= _STATE_RANK[self.state]:
            raise ValueError(f"Illegal process state transition {self.state} -> {state}")
        self.state = state

    def claim(self, state: ProcessState) -> bool:
        """Assign the terminal *state* unless another one already won.

        Returns:
            True if this call set the terminal state, False if it was a no-op.
        """
        if state not in TERMINAL_STATES:
            raise ValueError(f"{state} is not a terminal state")
        if self.is_finished:
            return False
        self.advance(state)
        return True

    @property
    def is_finished(self) -> bool:
        """True once a terminal state (or Reaped) has been assigned."""
        return _STATE_RANK[self.state] >= 2


@dataclass(frozen=True)
class OutputChunk:
    """A piece of decoded output, exactly as the child wrote it."""

    text: str
    stream: StreamName


@dataclass(frozen=True)
class ShellOutputEvent:
    """UI event pushed for every chunk of output of a tool call."""

    tool_call_id: str
    output: str
    stream: StreamName


@dataclass(frozen=True)
class CommandResult:
    """Final result of a command request. Produced once, never mutated.

    Args:
        stdout: Raw stdout (tail applied when requested).
        stderr: Raw stderr (tail applied when requested).
        combined: Both streams in arrival order (tail applied when requested).
        exit_code: Exit status, or ``None`` when killed by a signal or never run.
        signal: Name of the terminating signal, e.g. ``"SIGKILL"``.
        timed_out: True when the timeout killed the command.
        timeout_seconds: The time limit the command ran under.
        is_error: Whether the calling agent should treat this as a failure.
        content: ANSI-stripped, budget-truncated text for the language model.
        duration: Wall-clock seconds spent in the request.
        outcome: Discriminator of how the request ended.
        command: The command actually executed (tail clause removed).
        cwd: Resolved working directory, if resolution succeeded.
    """

    content: str
    is_error: bool
    outcome: Outcome
    stdout: str = ""
    stderr: str = ""
    combined: str = ""
    exit_code: int | None = None
    signal: str | None = None
    timed_out: bool = False
    timeout_seconds: float | None = None
    duration: float = 0.0
    command: str = ""
    cwd: Path | None = None

    @property
    def aborted(self) -> bool:
        """True when the caller cancelled the command."""
        return self.outcome is Outcome.ABORTED


@dataclass
class ToolCall:
    """A tool invocation requested by the assistant.

    Args:
        id: Unique identifier for this tool call.
        name: Name of the tool to invoke.
        arguments: Parsed arguments dict for the tool.
    """

    id: str
    name: str
    arguments: dict[str, Any]


@dataclass
class ToolResult:
    """The result of executing a tool, in the one shape the agent loop consumes.

    Args:
        tool_call_id: ID of the tool call this result corresponds to.
        name: Name of the tool that was executed.
        content: Text handed back to the model.
        is_error: Whether the tool encountered an error.
    """

    tool_call_id: str
    name: str
    content: str
    is_error: bool = False


@dataclass
class ToolDefinition:
    """Schema definition for a tool exposed to the model.

    Args:
        name: Tool name (used by the model to invoke it).
        description: Human/model-readable description of what the tool does.
        parameters: JSON Schema describing the tool's parameters.
        safety: Whether this tool auto-runs or requires user confirmation.
    """

    name: str
    description: str
    parameters: dict[str, Any]
    safety: ToolSafety


@dataclass
class Config:
    """Runtime configuration for the execution engine.

    Args:
        project_root: Default working directory and sandbox root.
        allowed_paths: Extra directories commands may run in.
        default_timeout_seconds: Timeout used when a request gives none.
        token_budget: Token cap for the content returned to the model.
        abort_token_budget: Token cap for partial output of aborted commands.
        kill_margin_seconds: How long before the nominal timeout the kill fires.
        drain_timeout_seconds: How long to keep reading pipes after the
            process exited before giving up on them.
        shell: Shell binary to run commands with; ``None`` uses the platform
            default shell.
    """

    project_root: Path = field(default_factory=Path.cwd)
    allowed_paths: list[Path] = field(default_factory=list)
    default_timeout_seconds: float = 30.0
    token_budget: int = 2_000
    abort_token_budget: int = 1_000
    kill_margin_seconds: float = 0.1
    drain_timeout_seconds: float = 2.0
    shell: str | None = None
