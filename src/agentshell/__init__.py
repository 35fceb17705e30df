"""agentshell: run shell commands for a coding agent without leaking processes."""

from agentshell.cancellation import CancellationToken
from agentshell.cleanup import ExitCleanupRegistry, cleanup_registry
from agentshell.models import CommandRequest, CommandResult, Config, Outcome
from agentshell.reporting import ConsoleReporter, EventReporter, Reporter
from agentshell.sandbox import SandboxViolation
from agentshell.supervisor import ProcessSupervisor

__all__ = [
    "CancellationToken",
    "CommandRequest",
    "CommandResult",
    "Config",
    "ConsoleReporter",
    "EventReporter",
    "ExitCleanupRegistry",
    "Outcome",
    "ProcessSupervisor",
    "Reporter",
    "SandboxViolation",
    "cleanup_registry",
]
