"""Handle returned by every live feed; ``unsubscribe()`` ends the feed."""

from __future__ import annotations

import threading
from typing import Callable


class Subscription:
    """Idempotent cancellation handle.

    Wraps the callable that detaches a listener.  The callable runs at
    most once, however many times ``unsubscribe()`` is called.
    """

    def __init__(self, cancel: Callable[[], None]) -> None:
        self._cancel = cancel
        self._lock = threading.Lock()
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
        self._cancel()
