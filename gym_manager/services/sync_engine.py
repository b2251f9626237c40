"""
Sync Engine.

Produces an up-to-date, locally cached member list with as few remote
reads as possible, and keeps serving the cache when the remote is down.

Incremental sync (``sync_members``):

1. Read the cached members and the ``last_fetch_time`` watermark.
2. Yield the cache immediately when it is non-empty, so the member list
   paints before the network answers.
3. Query the remote for members with ``lastUpdateDate > watermark``
   (the whole collection when the watermark is 0), newest first.
4. Re-read the cache, merge the fetched members into it by id, upsert
   only the fetched members, then move the watermark to the time the
   sync *started*.  Local deletes and edits made while the query was in
   flight survive, and members committed remotely during it fall inside
   the next window instead of being skipped.
5. Remote or cache failures are logged; they only reach the caller when
   no cached list was yielded first.

The watermark is written only after the cache write succeeds, so
a failed write means the next sync re-fetches the same window.  Merging
is idempotent by id, which makes the replay harmless.

Concurrent ``sync_members`` calls are not serialized here.
``request_sync`` offers the drop-while-in-flight behaviour callers
normally want.
"""

from __future__ import annotations

import threading
from typing import Callable, Iterable, Iterator, Optional

from pydantic import ValidationError as PydanticValidationError

from gym_manager.errors import CacheIOError, RemoteQueryError
from gym_manager.logger import StructuredLogger
from gym_manager.models.enums import ErrorKind
from gym_manager.models.member import Member
from gym_manager.models.service_models import Resource
from gym_manager.repositories.protocols import RemoteMemberStore
from gym_manager.services.base_service import BaseService
from gym_manager.services.cache_manager import CacheManager
from gym_manager.utils.dates import now_millis
from gym_manager.utils.string_helpers import JsonValue

MembersResource = Resource[list[Member]]


def merge_members(cached: Iterable[Member], incoming: Iterable[Member]) -> list[Member]:
    """Merge *incoming* into *cached* by id and sort newest first.

    An incoming member replaces the cached one with the same id outright,
    whatever either ``last_update_date`` says: last fetched wins.  Ids not
    seen before are appended.  Incoming members without an id cannot be
    matched and are ignored.

    Applying the same *incoming* twice yields the same list as applying
    it once.
    """
    merged: dict[str, Member] = {m.id: m for m in cached if m.id is not None}
    for member in incoming:
        if member.id is None:
            continue
        merged[member.id] = member
    return sorted(merged.values(), key=lambda m: m.last_update_date, reverse=True)


class SyncEngine(BaseService):
    """Reconciles the local member cache with the remote collection.

    Parameters
    ----------
    cache:
        Cache manager for members and the watermark.
    remote:
        Remote member collection.
    logger:
        Structured logger instance.
    clock:
        Returns the current time in epoch millis.  Injected for tests.
    """

    def __init__(
        self,
        cache: CacheManager,
        remote: RemoteMemberStore,
        logger: StructuredLogger,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        super().__init__(logger)
        self._cache = cache
        self._remote = remote
        self._clock = clock
        self._request_lock = threading.Lock()
        self._last_query_failed: bool = False

    @property
    def last_query_failed(self) -> bool:
        """Whether the most recent remote query failed.

        Set even when the failure was hidden behind an already-served
        cache, so callers can track remote health.
        """
        return self._last_query_failed

    @property
    def is_syncing(self) -> bool:
        """``True`` while a ``request_sync`` call is in flight."""
        return self._request_lock.locked()

    # ------------------------------------------------------------------
    # Incremental sync
    # ------------------------------------------------------------------

    def sync_members(self) -> Iterator[MembersResource]:
        """Yield LOADING, then the cached list (if any), then the synced list.

        Closing the generator cancels the sync at its next yield.
        """
        yield Resource.loading()

        sync_started_at = self._clock()
        cached = self._read_cached_members()
        watermark = self._read_watermark()

        emitted_cache = False
        if cached:
            emitted_cache = True
            yield Resource.success(cached)

        try:
            documents = self._remote.query(watermark if watermark > 0 else None)
            self._last_query_failed = False
            incoming = self._decode(documents)

            if incoming:
                # The cache may have changed while the query was in flight.
                current = self._read_cached_members(fallback=cached)
                merged = merge_members(current, incoming)
                self._cache.insert_many(incoming)
                self._advance_watermark(sync_started_at)
                self._logger.info(
                    "Synced %d changed member(s); cache now holds %d.",
                    len(incoming),
                    len(merged),
                )
                yield Resource.success(merged)
                return

            # An empty answer still proves the window up to sync start.
            self._advance_watermark(sync_started_at)
            if watermark > 0 and cached:
                self._logger.debug("No new members to sync.")
            else:
                yield Resource.success([])

        except RemoteQueryError as exc:
            self._last_query_failed = True
            self._logger.warning("Failed to fetch members from remote: %s", exc.message)
            if not emitted_cache:
                yield Resource.failure(
                    f"Failed to fetch members: {exc.message}", ErrorKind.REMOTE_QUERY
                )
        except Exception as exc:
            self._logger.error("Error processing members data: %s", exc, exc_info=True)
            if not emitted_cache:
                kind = exc.kind if isinstance(exc, CacheIOError) else ErrorKind.UNEXPECTED
                yield Resource.failure(f"Error processing data: {exc}", kind)

    def request_sync(
        self,
        on_result: Optional[Callable[[MembersResource], None]] = None,
    ) -> Optional[list[MembersResource]]:
        """Run one sync unless another ``request_sync`` is already running.

        Returns every emitted result, or ``None`` when the request was
        dropped because a sync was in flight.  *on_result* sees each result
        as it is produced.
        """
        if not self._request_lock.acquire(blocking=False):
            self._logger.info("Sync already in flight; request dropped.")
            return None
        try:
            results: list[MembersResource] = []
            for result in self.sync_members():
                results.append(result)
                if on_result is not None:
                    on_result(result)
            return results
        finally:
            self._request_lock.release()

    # ------------------------------------------------------------------
    # Full resync
    # ------------------------------------------------------------------

    def resync_members(self) -> Iterator[MembersResource]:
        """Replace the cache with the full remote collection.

        Remote deletions leave no trace an incremental sync could see;
        this is how they reach the local cache.
        """
        yield Resource.loading()
        sync_started_at = self._clock()
        try:
            documents = self._remote.query(None)
            self._last_query_failed = False
            members = sorted(
                (m for m in self._decode(documents) if m.has_id),
                key=lambda m: m.last_update_date,
                reverse=True,
            )
            self._cache.replace_all(members)
            self._advance_watermark(sync_started_at)
        except RemoteQueryError as exc:
            self._last_query_failed = True
            self._logger.warning("Full resync query failed: %s", exc.message)
            yield Resource.failure(
                f"Failed to fetch members: {exc.message}", ErrorKind.REMOTE_QUERY
            )
            return
        except CacheIOError as exc:
            self._logger.error("Full resync could not rewrite the cache: %s", exc.message)
            yield Resource.failure(exc.message, ErrorKind.CACHE_IO)
            return

        self._logger.info("Full resync complete; cache holds %d member(s).", len(members))
        yield Resource.success(members)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _read_cached_members(self, fallback: Optional[list[Member]] = None) -> list[Member]:
        try:
            return self._cache.get_all_members_snapshot()
        except CacheIOError as exc:
            self._logger.warning("Cache read failed, continuing without it: %s", exc.message)
            return list(fallback or [])

    def _read_watermark(self) -> int:
        try:
            return self._cache.get_watermark()
        except CacheIOError as exc:
            self._logger.warning("Watermark read failed, doing a full fetch: %s", exc.message)
            return 0

    def _advance_watermark(self, value: int) -> None:
        try:
            self._cache.set_watermark(value)
        except CacheIOError as exc:
            self._logger.warning(
                "Watermark not advanced, next sync repeats this window: %s", exc.message
            )

    def _decode(self, documents: list[dict[str, JsonValue]]) -> list[Member]:
        members: list[Member] = []
        for document in documents:
            try:
                member = Member.from_remote(document)
            except PydanticValidationError as exc:
                self._logger.warning("Skipping malformed remote member: %s", exc)
                continue
            if not member.has_id:
                self._logger.warning("Skipping remote member without an id.")
                continue
            members.append(member)
        return members
