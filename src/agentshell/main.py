"""Entry point: runs one shell command under the supervisor from the terminal."""

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agentshell.cancellation import CancellationToken
    from agentshell.models import Config


def _setup_logging(verbose: bool) -> None:
    """Configure root logger.

    Args:
        verbose: If True, set level to DEBUG; otherwise WARNING.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


@contextmanager
def _sigint_cancels(token: "CancellationToken") -> Iterator[None]:
    """Route Ctrl+C to *token* while the block runs, then restore the old handler."""
    loop = asyncio.get_running_loop()
    previous = signal.getsignal(signal.SIGINT)
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    except NotImplementedError:
        # No add_signal_handler on Windows event loops; Ctrl+C cancels the task instead.
        yield
        return
    try:
        yield
    finally:
        # remove_signal_handler resets SIGINT to the default, dropping exit-cleanup hooks.
        loop.remove_signal_handler(signal.SIGINT)
        if previous is not None:
            signal.signal(signal.SIGINT, previous)


async def _run(
    command: str, cwd: str | None, timeout: float | None, config: "Config"
) -> bool:
    """Run *command*, mirroring output; Ctrl+C aborts it. Returns is_error."""
    from rich.console import Console

    from agentshell.cancellation import CancellationToken
    from agentshell.cleanup import cleanup_registry
    from agentshell.models import CommandRequest
    from agentshell.reporting import ConsoleReporter
    from agentshell.supervisor import ProcessSupervisor

    console = Console()
    supervisor = ProcessSupervisor(config)
    token = CancellationToken()

    # Install exit hooks first so Ctrl+C below means "abort the command".
    cleanup_registry.install()
    with _sigint_cancels(token):
        result = await supervisor.execute(
            CommandRequest(command=command, working_directory=cwd, timeout_seconds=timeout),
            cancellation=token,
            reporter=ConsoleReporter(console),
        )

    console.rule("[dim]agent output[/dim]")
    console.print(result.content, markup=False, highlight=False)
    return result.is_error


def main() -> None:
    """CLI entry point for the command runner."""
    parser = argparse.ArgumentParser(
        prog="agentshell",
        description="Run a shell command the way a coding agent does: "
        "sandboxed cwd, timeout, live output, no orphaned processes.",
    )
    parser.add_argument("command", help="Shell command to execute.")
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Path to a TOML config file (overrides default.toml).",
    )
    parser.add_argument(
        "--cwd",
        metavar="DIR",
        help="Working directory (must be inside the project root or an allowed path).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        metavar="SECONDS",
        help="Kill the command after this many seconds.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging.",
    )
    args = parser.parse_args()

    _setup_logging(args.verbose)

    # Lazy imports so startup is fast when --help is used.
    from agentshell.config import load_config

    config_path = Path(args.config) if args.config else None

    try:
        config = load_config(config_path=config_path)
    except (ValueError, FileNotFoundError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.timeout is not None and args.timeout <= 0:
        print("--timeout must be positive", file=sys.stderr)
        sys.exit(2)

    is_error = asyncio.run(_run(args.command, args.cwd, args.timeout, config))
    sys.exit(1 if is_error else 0)


if __name__ == "__main__":
    main()
