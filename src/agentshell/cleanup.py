"""Process-wide registry of running commands, killed when the host exits."""

from __future__ import annotations

import atexit
import logging
import os
import signal
import threading
from collections.abc import Callable
from types import FrameType
from typing import Any

logger = logging.getLogger(__name__)

KillFn = Callable[[], None]

_WATCHED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ExitCleanupRegistry:
    """Tracks in-flight child processes so none outlive the host process.

    Exit hooks are installed lazily on the first :meth:`register` and only
    once. On normal interpreter exit, SIGINT or SIGTERM every registered
    kill function runs, then the previous signal handler takes over so the
    host still terminates as it otherwise would.

    Args:
        install_handlers: Set to False to never touch ``atexit`` or signal
            handlers (the registry then only drains when asked to).
    """

    def __init__(self, install_handlers: bool = True) -> None:
        # Re-entrant: a signal handler may interrupt a register() on the main thread.
        self._lock = threading.RLock()
        self._entries: dict[int, KillFn] = {}
        self._install_handlers = install_handlers
        self._installed = False
        self._previous_handlers: dict[int, Any] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, pid: object) -> bool:
        with self._lock:
            return pid in self._entries

    @property
    def installed(self) -> bool:
        """True once the exit and signal hooks are in place."""
        return self._installed

    def register(self, pid: int, kill_fn: KillFn) -> None:
        """Track a running process until :meth:`unregister` is called."""
        if self._install_handlers:
            self.install()
        with self._lock:
            self._entries[pid] = kill_fn
        logger.debug("Registered pid %d for exit cleanup", pid)

    def unregister(self, pid: int) -> bool:
        """Stop tracking *pid*.

        Returns:
            True if an entry was removed, False if there was none.
        """
        with self._lock:
            removed = self._entries.pop(pid, None) is not None
        if removed:
            logger.debug("Unregistered pid %d", pid)
        return removed

    def drain_and_kill_all(self) -> int:
        """Kill every tracked process tree and empty the registry.

        Returns:
            The number of entries that were drained.
        """
        with self._lock:
            entries = list(self._entries.items())
            self._entries.clear()

        for pid, kill_fn in entries:
            try:
                kill_fn()
            except Exception:
                logger.exception("Failed to kill process tree of pid %d", pid)
        if entries:
            logger.info("Killed %d running command(s) on shutdown", len(entries))
        return len(entries)

    def install(self) -> None:
        """Install the atexit hook and SIGINT/SIGTERM handlers (idempotent)."""
        with self._lock:
            if self._installed:
                return
            self._installed = True

        atexit.register(self.drain_and_kill_all)
        for signum in _WATCHED_SIGNALS:
            try:
                self._previous_handlers[signum] = signal.getsignal(signum)
                signal.signal(signum, self._handle_signal)
            except ValueError:
                # signal.signal() only works on the main thread.
                logger.warning(
                    "Cannot install %s handler outside the main thread; "
                    "children are only cleaned up at interpreter exit",
                    signal.Signals(signum).name,
                )

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        self.drain_and_kill_all()

        previous = self._previous_handlers.get(signum, signal.SIG_DFL)
        if callable(previous):
            previous(signum, frame)
        elif previous == signal.SIG_DFL:
            # Re-deliver under the default disposition so the host still dies.
            signal.signal(signum, signal.SIG_DFL)
            os.kill(os.getpid(), signum)


cleanup_registry = ExitCleanupRegistry()
