"""Result classifier: turns raw exit data into one presentable outcome."""

from __future__ import annotations

from dataclasses import dataclass

from agentshell.collector import CapturedOutput
from agentshell.models import Outcome, ProcessState
from agentshell.truncation import TokenTruncator, strip_ansi, truncate_to_token_budget

ABORTED_MARKER = "[User aborted command]"
NO_OUTPUT = "Command executed successfully with no output"


@dataclass(frozen=True)
class Classification:
    """What the agent should be told about a finished command."""

    outcome: Outcome
    is_error: bool
    content: str


def format_seconds(seconds: float) -> str:
    """Render a duration like ``1 second`` or ``2.5 seconds``."""
    unit = "second" if seconds == 1 else "seconds"
    return f"{seconds:g} {unit}"


class ResultClassifier:
    """Builds the agent-facing content for each way a command can end.

    Args:
        token_budget: Token cap for normal and failed results.
        abort_token_budget: Token cap for partial output of aborted commands.
        truncate: Token-budget truncation function.
    """

    def __init__(
        self,
        token_budget: int = 2_000,
        abort_token_budget: int = 1_000,
        truncate: TokenTruncator = truncate_to_token_budget,
    ) -> None:
        self.token_budget = token_budget
        self.abort_token_budget = abort_token_budget
        self._truncate = truncate

    def classify(
        self,
        state: ProcessState,
        exit_code: int | None,
        signal: str | None,
        output: CapturedOutput,
        *,
        timeout_seconds: float | None = None,
    ) -> Classification:
        """Classify a finished command.

        Args:
            state: Terminal state that won the race (completed, timed out or aborted).
            exit_code: The process exit status, or None if killed by a signal.
            signal: Name of the terminating signal, if any.
            output: Output captured so far (tail already applied), ANSI included.
            timeout_seconds: The timeout that was configured for the command.

        Returns:
            A :class:`Classification`.
        """
        if state is ProcessState.ABORTED:
            text = output.agent_text()
            if not text.strip():
                return Classification(Outcome.ABORTED, True, ABORTED_MARKER)
            partial = self._truncate(text, self.abort_token_budget)
            return Classification(
                Outcome.ABORTED, True, f"{ABORTED_MARKER}\n\nPartial output:\n{partial}"
            )

        if state is ProcessState.TIMED_OUT:
            limit = format_seconds(timeout_seconds) if timeout_seconds else "its time limit"
            return Classification(
                Outcome.TIMED_OUT,
                True,
                self._error_report(f"Error: command timed out after {limit}", output),
            )

        if exit_code != 0:
            if exit_code is None:
                headline = f"Error: command was terminated by signal {signal or 'unknown'}"
            else:
                headline = f"Error: command exited with code {exit_code}"
            return Classification(Outcome.FAILED, True, self._error_report(headline, output))

        text = output.agent_text()
        if not text:
            return Classification(Outcome.COMPLETED, False, NO_OUTPUT)
        return Classification(Outcome.COMPLETED, False, self._truncate(text, self.token_budget))

    def _error_report(self, headline: str, output: CapturedOutput) -> str:
        # The headline is never truncated away; only the output sections are.
        sections = "\n\n".join(self._output_sections(output))
        if not sections:
            return headline
        return f"{headline}\n\n{self._truncate(sections, self.token_budget)}"

    @staticmethod
    def _output_sections(output: CapturedOutput) -> list[str]:
        """Labelled output blocks; STDERR first when there is no combined stream."""
        combined = strip_ansi(output.combined)
        if combined:
            return [f"Output: {combined}"]
        sections = []
        if stderr := strip_ansi(output.stderr):
            sections.append(f"STDERR: {stderr}")
        if stdout := strip_ansi(output.stdout):
            sections.append(f"STDOUT: {stdout}")
        return sections
