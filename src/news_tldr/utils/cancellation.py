from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation handle passed down the call tree.

    Cancelling a token cancels all of its children. Callbacks registered with
    `on_cancel` run once, on the cancelling thread, and are the way blocking
    I/O (an open HTTP response) gets aborted rather than merely ignored.
    """

    def __init__(self, parent: CancellationToken | None = None) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []
        self._parent = parent
        self._unlink: Callable[[], None] | None = None
        if parent is not None:
            self._unlink = parent.on_cancel(self.cancel)

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def child(self) -> CancellationToken:
        return CancellationToken(parent=self)

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        for cb in callbacks:
            try:
                cb()
            except Exception:
                logger.debug("cancel callback failed", exc_info=True)

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register `callback`; returns a function that unregisters it.

        If the token is already cancelled the callback runs immediately.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)

                def _remove() -> None:
                    with self._lock:
                        if callback in self._callbacks:
                            self._callbacks.remove(callback)

                return _remove
        callback()
        return lambda: None

    def wait(self, timeout: float) -> bool:
        """Sleep up to `timeout` seconds; True if cancelled meanwhile."""
        return self._event.wait(max(0.0, timeout))

    def detach(self) -> None:
        # Drop the parent's reference so finished children don't accumulate.
        if self._unlink is not None:
            self._unlink()
            self._unlink = None
