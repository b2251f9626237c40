"""
Revenue Ledger Service.

Append-only ledger of income and expense entries under the ``Revenue``
path plus a running total under ``TotalRevenue``.

The total is maintained by read-then-increment after each successful
push.  The two steps are not atomic: two devices appending at the same
moment can both read the same old total, and one increment is lost.  The
ledger entries themselves are never lost, so the total can always be
recomputed out of band.
"""

from __future__ import annotations

from typing import Callable

from pydantic import ValidationError as PydanticValidationError

from gym_manager.errors import GymManagerError, RemoteQueryError, RemoteWriteError
from gym_manager.logger import StructuredLogger
from gym_manager.models.enums import ErrorKind, RevenueType
from gym_manager.models.revenue import RevenueEntry
from gym_manager.models.service_models import LedgerAppendResult, Resource
from gym_manager.repositories.protocols import RealtimeStore
from gym_manager.services.base_service import BaseService
from gym_manager.utils.string_helpers import JsonValue
from gym_manager.utils.subscription import Subscription


def _coerce_total(value: JsonValue) -> int:
    """Read a stored total.  A path that was never written counts as 0."""
    if value is None:
        return 0
    if isinstance(value, bool):
        raise RemoteQueryError(f"Stored total is not a number: {value!r}")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise RemoteQueryError(f"Stored total is not a number: {value!r}")


class RevenueLedgerService(BaseService):
    """Appends ledger entries and keeps the running total.

    Parameters
    ----------
    store:
        Realtime key-value store holding both paths.
    logger:
        Structured logger instance.
    revenue_path:
        List path of ledger entries.
    total_path:
        Scalar path of the running total.
    """

    def __init__(
        self,
        store: RealtimeStore,
        logger: StructuredLogger,
        revenue_path: str = "Revenue",
        total_path: str = "TotalRevenue",
    ) -> None:
        super().__init__(logger)
        self._store = store
        self._revenue_path = revenue_path
        self._total_path = total_path

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def append_entry(self, entry: RevenueEntry) -> LedgerAppendResult:
        """Push *entry* and add its amount to the running total.

        Raises ``RemoteWriteError`` when the push fails; the total is then
        left untouched.  A failed total update after a successful push is
        logged and reported through ``total_updated``.
        """
        key = self._store.push(self._revenue_path, entry.to_remote())
        self._logger.debug("Revenue entry %s pushed under %s.", key, self._revenue_path)

        try:
            current = _coerce_total(self._store.get(self._total_path))
            new_total = current + (entry.amount or 0)
            self._store.set(self._total_path, new_total)
        except GymManagerError as exc:
            self._logger.error("Failed to update total revenue: %s", exc.message)
            return LedgerAppendResult(key=key, total_updated=False)

        self._logger.info("Total revenue updated to %d.", new_total)
        return LedgerAppendResult(key=key, total_updated=True, new_total=new_total)

    def add_revenue_entry(
        self, name: str, amount: int, revenue_type: RevenueType
    ) -> Resource[str]:
        """Record an operator-entered income or expense.

        *amount* is taken as a magnitude; its sign follows *revenue_type*.
        """
        if not name or not name.strip():
            return Resource.failure("Please fill all required fields", ErrorKind.VALIDATION)
        if not amount:
            return Resource.failure("Please enter a non-zero amount", ErrorKind.VALIDATION)

        magnitude = abs(amount)
        signed = -magnitude if revenue_type == RevenueType.EXPENSE else magnitude
        entry = RevenueEntry(name=name.strip(), amount=signed, revenue_type=revenue_type.value)

        try:
            result = self.append_entry(entry)
        except RemoteWriteError as exc:
            self._logger.error("Failed to add revenue entry: %s", exc.message)
            return Resource.failure(
                f"Failed to add revenue entry: {exc.message}", ErrorKind.REMOTE_WRITE
            )

        if not result.total_updated:
            self._logger.warning("Revenue entry %s stored without a total update.", result.key)
        return Resource.success("Revenue entry added successfully")

    # ------------------------------------------------------------------
    # One-shot reads
    # ------------------------------------------------------------------

    def get_total(self) -> int:
        """Current running total.  Raises ``RemoteQueryError`` when unreadable."""
        return _coerce_total(self._store.get(self._total_path))

    def get_entries(self) -> list[RevenueEntry]:
        """All ledger entries in push order; malformed rows are skipped."""
        return self._decode_entries(self._store.children(self._revenue_path))

    def _decode_entries(self, rows: list[dict[str, JsonValue]]) -> list[RevenueEntry]:
        entries: list[RevenueEntry] = []
        for row in rows:
            try:
                entries.append(RevenueEntry.from_remote(row))
            except PydanticValidationError as exc:
                self._logger.warning(
                    "Skipping malformed revenue entry %s: %s", row.get("key"), exc
                )
        return entries

    # ------------------------------------------------------------------
    # Live reads
    # ------------------------------------------------------------------

    def watch_total(self, callback: Callable[[Resource[int]], None]) -> Subscription:
        """Push the total to *callback* now and on every remote change."""
        callback(Resource.loading())

        def _on_change(value: JsonValue) -> None:
            try:
                callback(Resource.success(_coerce_total(value)))
            except RemoteQueryError as exc:
                callback(Resource.failure(exc.message, ErrorKind.REMOTE_QUERY))

        def _on_error(exc: Exception) -> None:
            self._logger.warning("Total revenue listener error: %s", exc)
            callback(Resource.failure(
                f"Failed to get total revenue: {exc}", ErrorKind.REMOTE_QUERY
            ))

        return self._store.listen(self._total_path, _on_change, _on_error)

    def watch_entries(
        self, callback: Callable[[Resource[list[RevenueEntry]]], None]
    ) -> Subscription:
        """Push the full ledger to *callback* now and on every remote change."""
        callback(Resource.loading())

        def _on_change(rows: list[dict[str, JsonValue]]) -> None:
            callback(Resource.success(self._decode_entries(rows)))

        def _on_error(exc: Exception) -> None:
            self._logger.warning("Revenue entries listener error: %s", exc)
            callback(Resource.failure(
                f"Failed to get revenue entries: {exc}", ErrorKind.REMOTE_QUERY
            ))

        return self._store.listen_children(self._revenue_path, _on_change, _on_error)
