"""Caller-side cancellation token for a running command."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class CancellationToken:
    """A one-shot cancel signal that listeners can subscribe to.

    ``cancel()`` may be called from any thread; listeners run synchronously
    in the cancelling thread, so they should only schedule work.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cancelled = False
        self._listeners: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        """True once :meth:`cancel` has been called."""
        return self._cancelled

    def cancel(self) -> None:
        """Fire the token. Calling it again is a no-op."""
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            listeners = list(self._listeners)
            self._listeners.clear()

        for listener in listeners:
            try:
                listener()
            except Exception:
                logger.exception("Cancellation listener %r failed", listener)

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Call *listener* when the token fires (immediately if it already has).

        Returns:
            A function that removes the subscription; safe to call twice.
        """
        with self._lock:
            fire_now = self._cancelled
            if not fire_now:
                self._listeners.append(listener)

        if fire_now:
            listener()

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe
