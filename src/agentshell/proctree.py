"""Process-group and process-tree killing.

Both helpers are idempotent: killing something that is already gone is a
silent no-op, so timeout, cancellation and cleanup paths can all fire
without coordinating.
"""

from __future__ import annotations

import logging
import os
import signal

import psutil

logger = logging.getLogger(__name__)

_SIGKILL = getattr(signal, "SIGKILL", signal.SIGTERM)


def kill_process_group(pgid: int | None) -> bool:
    """Send SIGKILL to every member of process group *pgid*.

    Returns:
        True if the signal was delivered, False if there was nothing to kill,
        the group could not be signalled, or the platform has no process groups.
    """
    if pgid is None or not hasattr(os, "killpg"):
        return False
    try:
        os.killpg(pgid, _SIGKILL)
    except ProcessLookupError:
        return False
    except PermissionError as exc:
        logger.debug("Not allowed to signal process group %d: %s", pgid, exc)
        return False
    logger.debug("Sent SIGKILL to process group %d", pgid)
    return True


class ProcessTree:
    """Kill handle for a spawned process and everything below it.

    The ``psutil.Process`` is captured at construction, right after spawn, so
    a later kill never hits an unrelated process that reused the PID.

    Args:
        pid: PID of the direct child.
        pgid: Process group led by the child, or None.
    """

    def __init__(self, pid: int, pgid: int | None = None) -> None:
        self.pid = pid
        self.pgid = pgid
        try:
            self._root: psutil.Process | None = psutil.Process(pid)
        except psutil.Error:
            # Already exited and reaped; only the group kill can still help.
            self._root = None

    def descendants(self) -> list[psutil.Process]:
        """Live descendants of the child, or an empty list once it is gone."""
        if self._root is None:
            return []
        try:
            if not self._root.is_running():
                return []
            return self._root.children(recursive=True)
        except psutil.Error:
            return []

    def kill(self) -> None:
        """Group-kill, then tree-kill whatever the group signal did not reach."""
        # Snapshot first: once the child dies its children get reparented.
        descendants = self.descendants()
        kill_process_group(self.pgid)

        targets = list(descendants)
        if self._root is not None:
            targets.append(self._root)
        for proc in targets:
            try:
                if proc.is_running():
                    proc.kill()
            except psutil.Error:
                # Gone already, or not ours to kill.
                continue
