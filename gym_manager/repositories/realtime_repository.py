"""
Realtime Repository (remote).

Supabase-backed implementation of ``RealtimeStore``.

Storage layout:

- **List paths** (``Revenue``): one table per path.  ``push`` inserts the
  value plus a ``key`` column holding a time-ordered unique key, so
  ``children`` returns entries in push order.
- **Scalar paths** (``TotalRevenue``): rows of the shared
  ``realtime_values`` table, ``path TEXT PRIMARY KEY, value JSONB``.

Live subscriptions poll on a daemon thread and deliver a value only when
it differs from the last one delivered.  Callbacks run on that thread.
"""

from __future__ import annotations

import threading
import uuid
from typing import Callable, Generic, Optional, TypeVar

from gym_manager.database import DatabaseManager
from gym_manager.errors import RemoteQueryError, RemoteWriteError
from gym_manager.logger import StructuredLogger
from gym_manager.repositories.base_repository import BaseRepository
from gym_manager.utils.dates import now_millis
from gym_manager.utils.string_helpers import JsonValue
from gym_manager.utils.subscription import Subscription

V = TypeVar("V")

_UNSET = object()


def new_push_key() -> str:
    """Unique key whose lexical order follows creation time."""
    return f"{now_millis():013d}-{uuid.uuid4().hex[:12]}"


class PollingListener(Generic[V]):
    """Daemon thread that re-reads a value and reports changes.

    Follows the start/stop lifecycle of ``SyncWorkerService``: a stop
    event doubles as the sleep primitive so ``stop()`` returns promptly.

    Parameters
    ----------
    fetch:
        Zero-argument callable returning the current value.
    on_change:
        Invoked with the first value and with every value that differs
        from the previous delivery.
    on_error:
        Invoked with each fetch failure and with anything ``on_change``
        raises; polling continues either way.
    interval_s:
        Seconds between polls.
    """

    def __init__(
        self,
        fetch: Callable[[], V],
        on_change: Callable[[V], None],
        on_error: Callable[[Exception], None],
        interval_s: float,
        name: str,
        logger: StructuredLogger,
    ) -> None:
        self._fetch = fetch
        self._on_change = on_change
        self._on_error = on_error
        self._interval_s = interval_s
        self._name = name
        self._logger = logger
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> Subscription:
        self._thread = threading.Thread(
            target=self._run_loop, name=f"Listener-{self._name}", daemon=True,
        )
        self._thread.start()
        self._logger.debug("Listener started for %s.", self._name)
        return Subscription(self.stop)

    def stop(self) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._interval_s + 5.0)
        self._logger.debug("Listener stopped for %s.", self._name)

    def _run_loop(self) -> None:
        last: object = _UNSET
        try:
            while not self._stop_event.is_set():
                try:
                    value = self._fetch()
                except Exception as exc:
                    self._on_error(exc)
                else:
                    if value != last:
                        # A value the callback rejected is not redelivered
                        # until it changes.
                        last = value
                        self._deliver(value)
                if self._stop_event.wait(timeout=self._interval_s):
                    break
        except Exception:
            self._logger.error(
                "Listener thread for %s terminated due to unhandled exception.",
                self._name,
                exc_info=True,
            )

    def _deliver(self, value: V) -> None:
        try:
            self._on_change(value)
        except Exception as exc:
            self._logger.warning(
                "Listener callback for %s raised: %s", self._name, exc, exc_info=True,
            )
            self._on_error(exc)


class SupabaseRealtimeRepository(BaseRepository):
    """Realtime key-value store over Supabase tables."""

    def __init__(
        self,
        db: DatabaseManager,
        logger: StructuredLogger,
        values_table: str = "realtime_values",
        poll_interval_s: float = 5.0,
    ) -> None:
        super().__init__(db, logger)
        self.TABLE = values_table
        self._poll_interval_s = poll_interval_s

    # ------------------------------------------------------------------
    # List paths
    # ------------------------------------------------------------------

    def push(self, path: str, value: dict[str, JsonValue]) -> str:
        key = new_push_key()

        def _insert() -> None:
            self.supabase.table(path).insert({**value, "key": key}).execute()

        self._remote(_insert, RemoteWriteError, operation_name=f"push ({path})")
        return key

    def children(self, path: str) -> list[dict[str, JsonValue]]:
        def _select() -> list[dict[str, JsonValue]]:
            response = self.supabase.table(path).select("*").order("key").execute()
            return list(response.data or [])

        return self._remote(_select, RemoteQueryError, operation_name=f"children ({path})")

    # ------------------------------------------------------------------
    # Scalar paths
    # ------------------------------------------------------------------

    def get(self, path: str) -> JsonValue:
        def _select() -> JsonValue:
            response = (
                self.supabase.table(self.TABLE)
                .select("value")
                .eq("path", path)
                .limit(1)
                .execute()
            )
            rows = response.data or []
            return rows[0]["value"] if rows else None

        return self._remote(_select, RemoteQueryError, operation_name=f"get ({path})")

    def set(self, path: str, value: JsonValue) -> None:
        def _upsert() -> None:
            self.supabase.table(self.TABLE).upsert({"path": path, "value": value}).execute()

        self._remote(_upsert, RemoteWriteError, operation_name=f"set ({path})")

    # ------------------------------------------------------------------
    # Live subscriptions
    # ------------------------------------------------------------------

    def listen(
        self,
        path: str,
        on_change: Callable[[JsonValue], None],
        on_error: Callable[[Exception], None],
    ) -> Subscription:
        return PollingListener(
            fetch=lambda: self.get(path),
            on_change=on_change,
            on_error=on_error,
            interval_s=self._poll_interval_s,
            name=path,
            logger=self._logger,
        ).start()

    def listen_children(
        self,
        path: str,
        on_change: Callable[[list[dict[str, JsonValue]]], None],
        on_error: Callable[[Exception], None],
    ) -> Subscription:
        return PollingListener(
            fetch=lambda: self.children(path),
            on_change=on_change,
            on_error=on_error,
            interval_s=self._poll_interval_s,
            name=f"{path}/*",
            logger=self._logger,
        ).start()
