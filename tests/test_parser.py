"""Tests for src/agentshell/parser.py."""

from __future__ import annotations

from agentshell.parser import ParsedCommand, parse_command


class TestParseCommand:
    def test_no_tail_clause(self) -> None:
        assert parse_command("ls -la") == ParsedCommand(exec_command="ls -la")

    def test_tail_dash_n(self) -> None:
        parsed = parse_command("npm test | tail -20")
        assert parsed.exec_command == "npm test"
        assert parsed.tail_lines == 20

    def test_tail_dash_n_flag(self) -> None:
        parsed = parse_command("make build 2>&1 | tail -n 5")
        assert parsed.exec_command == "make build 2>&1"
        assert parsed.tail_lines == 5

    def test_trailing_whitespace_tolerated(self) -> None:
        parsed = parse_command("cat log.txt |tail -3   ")
        assert parsed.exec_command == "cat log.txt"
        assert parsed.tail_lines == 3

    def test_negative_count_uses_absolute_value(self) -> None:
        parsed = parse_command("seq 100 | tail -n -7")
        assert parsed.tail_lines == 7
        assert parsed.exec_command == "seq 100"

    def test_zero_count_left_in_command(self) -> None:
        parsed = parse_command("seq 10 | tail -0")
        assert parsed.exec_command == "seq 10 | tail -0"
        assert parsed.tail_lines is None

    def test_tail_not_at_end_is_ignored(self) -> None:
        command = "seq 10 | tail -3 | sort -r"
        assert parse_command(command) == ParsedCommand(exec_command=command)

    def test_tail_with_follow_flag_is_ignored(self) -> None:
        command = "tail -f app.log"
        assert parse_command(command).tail_lines is None
