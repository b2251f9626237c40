"""
Periodic background member sync.

:class:`SyncWorkerService` owns one daemon thread that calls
:meth:`SyncEngine.request_sync` every ``SYNC_INTERVAL_S`` seconds.  A
cycle that ends in an error, or whose remote query failed behind an
already-served cache, doubles the wait before the next one, up to
``SYNC_MAX_INTERVAL_S``; the first clean cycle resets it.  Cycles are
skipped while the database manager reports offline mode.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

from gym_manager.config import AppConfig
from gym_manager.database import DatabaseManager
from gym_manager.logger import StructuredLogger
from gym_manager.services.base_service import BaseService
from gym_manager.services.sync_engine import MembersResource, SyncEngine

# Doubling stops here; the configured max caps it sooner in practice.
_MAX_BACKOFF_EXPONENT = 6


class SyncWorkerService(BaseService):
    """Keeps the member cache in step with the remote on a timer.

    Parameters
    ----------
    engine:
        Sync engine driven by each cycle.
    db:
        Consulted for ``is_online`` before each cycle.
    config:
        Supplies ``SYNC_INTERVAL_S`` and ``SYNC_MAX_INTERVAL_S``.
    logger:
        Structured JSON logger.
    on_result:
        Receives every ``Resource`` a cycle emits.
    """

    _JOIN_TIMEOUT_S: float = 10.0

    def __init__(
        self,
        engine: SyncEngine,
        db: DatabaseManager,
        config: AppConfig,
        logger: StructuredLogger,
        on_result: Optional[Callable[[MembersResource], None]] = None,
    ) -> None:
        super().__init__(logger)
        self._engine = engine
        self._db = db
        self._base_interval_s: float = config.SYNC_INTERVAL_S
        self._max_interval_s: float = config.SYNC_MAX_INTERVAL_S
        self._on_result = on_result
        self._thread: Optional[threading.Thread] = None
        self._stop_event: threading.Event = threading.Event()
        self._consecutive_failures: int = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def start(self) -> None:
        """Spawn the worker thread unless one is already alive."""
        if self.is_running:
            self._logger.debug("Sync worker already running.")
            return

        self._stop_event.clear()
        self._consecutive_failures = 0
        self._thread = threading.Thread(
            target=self._run_loop, name="MemberSyncWorker", daemon=True,
        )
        self._thread.start()
        self._logger.info(
            "Member sync every %.1fs (backing off to %.1fs on failure).",
            self._base_interval_s,
            self._max_interval_s,
        )

    def stop(self) -> None:
        """Ask the thread to exit and wait for it.  Safe to call twice."""
        thread, self._thread = self._thread, None
        if thread is None:
            return

        self._stop_event.set()
        thread.join(timeout=self._JOIN_TIMEOUT_S)
        if thread.is_alive():
            self._logger.warning(
                "Sync worker still busy after %.0fs; leaving daemon thread behind.",
                self._JOIN_TIMEOUT_S,
            )
        else:
            self._logger.info("Sync worker stopped.")

    def run_once(self) -> bool:
        """Run one cycle on the calling thread.

        ``True`` when the cycle ran, its last emission was not an error
        and the remote query succeeded.  A request dropped because another sync is in flight
        returns ``False`` without touching the failure count.
        """
        emitted = self._engine.request_sync(on_result=self._on_result)
        if emitted is None:
            self._logger.debug("Sync already in flight; cycle skipped.")
            return False

        last = emitted[-1] if emitted else None
        if last is not None and last.is_error:
            self._consecutive_failures += 1
            self._logger.warning(
                "Member sync failed (%d in a row, kind=%s): %s",
                self._consecutive_failures,
                last.error_kind,
                last.error,
            )
            return False

        # Served from cache, but the remote is still unreachable.
        if self._engine.last_query_failed:
            self._consecutive_failures += 1
            self._logger.warning(
                "Remote unreachable, cache served (%d in a row).",
                self._consecutive_failures,
            )
            return False

        self._consecutive_failures = 0
        return True

    def _run_loop(self) -> None:
        while not self._stop_event.wait(timeout=self._calculate_backoff_interval()):
            if not self._db.is_online:
                self._logger.debug("Offline; member sync cycle skipped.")
                continue
            try:
                self.run_once()
            except Exception:
                self._consecutive_failures += 1
                self._logger.error("Member sync cycle raised.", exc_info=True)

    def _calculate_backoff_interval(self) -> float:
        exponent = min(self._consecutive_failures, _MAX_BACKOFF_EXPONENT)
        return min(self._base_interval_s * (1 << exponent), self._max_interval_s)
