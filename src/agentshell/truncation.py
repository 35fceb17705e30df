"""Text shaping for agent-facing output: ANSI stripping, tail and token budget."""

from __future__ import annotations

import math
import re
from collections.abc import Callable

# Rough average for code and terminal output.
_CHARS_PER_TOKEN = 4

# CSI sequences, OSC sequences (BEL or ST terminated) and two-byte escapes.
_ANSI_ESCAPE = re.compile(
    r"\x1B(?:\][^\x07\x1B]*(?:\x07|\x1B\\)|\[[0-?]*[ -/]*[@-~]|[@-Z\\-_])"
)

_SHORT_NOTE = "\n[Output truncated]"

# (text, max_tokens) -> truncated text
TokenTruncator = Callable[[str, int], str]


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences; all other characters, ``\\r`` included, are kept."""
    return _ANSI_ESCAPE.sub("", text)


def _split_lines(text: str) -> tuple[list[str], bool]:
    # Only "\n" ends a line, as for tail(1); "\r" progress updates stay inside it.
    trailing = text.endswith("\n")
    return (text[:-1] if trailing else text).split("\n"), trailing


def count_lines(text: str) -> int:
    """Number of ``\\n``-terminated lines, counting an unterminated last line."""
    if not text:
        return 0
    return len(_split_lines(text)[0])


def apply_tail(text: str, tail_lines: int | None) -> str:
    """Keep only the last *tail_lines* lines of *text* (like ``tail -N``)."""
    if not tail_lines or tail_lines <= 0 or not text:
        return text
    lines, trailing = _split_lines(text)
    if len(lines) <= tail_lines:
        return text
    kept = "\n".join(lines[-tail_lines:])
    return kept + "\n" if trailing else kept


def estimate_tokens(text: str) -> int:
    """Cheap character-based token estimate."""
    return math.ceil(len(text) / _CHARS_PER_TOKEN)


def truncate_to_token_budget(text: str, max_tokens: int) -> str:
    """Trim *text* to roughly *max_tokens*, keeping its end.

    The end of command output (final errors, summaries) is usually the
    useful part. When anything is dropped, a note with the total line count
    is appended so the reader knows more output exists. A truncated result
    is always strictly shorter than *text*; with a budget too small for the
    full note a shorter one is used, or none at all.

    Args:
        text: Text to truncate.
        max_tokens: Token budget.

    Returns:
        *text* unchanged if it fits, otherwise its tail plus a note.
    """
    if estimate_tokens(text) <= max_tokens:
        return text

    limit = min(max(max_tokens, 0) * _CHARS_PER_TOKEN, len(text) - 1)
    note = (
        f"\n[Output truncated to the last ~{max_tokens} tokens; "
        f"{count_lines(text)} lines in total]"
    )
    if len(note) > limit:
        note = _SHORT_NOTE if len(_SHORT_NOTE) <= limit else ""

    keep = limit - len(note)
    kept = text[-keep:] if keep > 0 else ""

    # Start on a line boundary unless that would throw everything away.
    newline = kept.find("\n")
    if 0 <= newline < len(kept) - 1:
        kept = kept[newline + 1 :]

    return kept.rstrip("\n") + note
