"""
Cache Manager.

Typed access to the local member cache and its sync watermark.  Wraps
``MemberCacheRepository`` and adds the rules that sit above raw SQL:
members without an id are never cached, the watermark defaults to 0,
and every mutation is pushed to live subscribers.

All operations may raise ``CacheIOError``.
"""

from __future__ import annotations

import itertools
import threading
from typing import Callable, Iterator

from gym_manager.errors import CacheIOError, ValidationError
from gym_manager.logger import StructuredLogger
from gym_manager.models.member import Member
from gym_manager.repositories.member_cache_repository import MemberCacheRepository
from gym_manager.services.base_service import BaseService
from gym_manager.utils.subscription import Subscription

WATERMARK_KEY: str = "last_fetch_time"

MembersListener = Callable[[list[Member]], None]


class CacheManager(BaseService):
    """Serialization-safe facade over the members and metadata tables.

    Parameters
    ----------
    repo:
        Repository owning the SQL for both tables.
    logger:
        Structured logger instance.
    """

    def __init__(self, repo: MemberCacheRepository, logger: StructuredLogger) -> None:
        super().__init__(logger)
        self._repo = repo
        self._listeners: dict[int, MembersListener] = {}
        self._listener_ids = itertools.count()
        self._listeners_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_all_members(self) -> Iterator[Member]:
        """Iterate cached members, newest ``last_update_date`` first.

        Each call re-reads the store, so the iterator reflects the cache
        as of the moment iteration starts.
        """
        yield from self._repo.fetch_all()

    def get_all_members_snapshot(self) -> list[Member]:
        """Return the cached members as one materialized list."""
        return self._repo.fetch_all()

    # ------------------------------------------------------------------
    # Writes (idempotent upserts keyed by id)
    # ------------------------------------------------------------------

    def insert(self, member: Member) -> None:
        self._require_id(member)
        self._repo.upsert(member)
        self._notify()

    def insert_many(self, members: list[Member]) -> None:
        if not members:
            return
        for member in members:
            self._require_id(member)
        self._repo.upsert_many(members)
        self._notify()

    def update(self, member: Member) -> None:
        """Upsert; an id that is not cached yet simply becomes an insert."""
        self.insert(member)

    def delete(self, member_id: str) -> None:
        """Remove a member.  Deleting an absent id is a no-op."""
        if self._repo.delete(member_id):
            self._notify()
        else:
            self._logger.debug("Cache delete skipped, %s not cached.", member_id)

    def replace_all(self, members: list[Member]) -> None:
        """Atomically make *members* the entire cached set."""
        for member in members:
            self._require_id(member)
        self._repo.replace_all(members)
        self._notify()

    # ------------------------------------------------------------------
    # Watermark
    # ------------------------------------------------------------------

    def get_watermark(self) -> int:
        """Return the last fetch time in epoch millis, 0 if never fetched."""
        raw = self._repo.get_metadata(WATERMARK_KEY)
        if raw is None:
            return 0
        try:
            return int(raw)
        except ValueError:
            self._logger.warning(
                "Ignoring unparseable watermark %r; treating cache as never fetched.",
                raw,
            )
            return 0

    def set_watermark(self, value: int) -> None:
        if value < 0:
            raise ValueError(f"Watermark must be non-negative, got {value}")
        self._repo.set_metadata(WATERMARK_KEY, str(value))

    # ------------------------------------------------------------------
    # Live feed
    # ------------------------------------------------------------------

    def subscribe(self, listener: MembersListener) -> Subscription:
        """Call *listener* with the cached members now and after every change.

        Listener exceptions are logged and never reach the writer.
        """
        with self._listeners_lock:
            listener_id = next(self._listener_ids)
            self._listeners[listener_id] = listener

        try:
            self._deliver(listener, self._repo.fetch_all())
        except CacheIOError as exc:
            self._logger.warning("Initial cache delivery failed: %s", exc)

        def _remove() -> None:
            with self._listeners_lock:
                self._listeners.pop(listener_id, None)

        return Subscription(_remove)

    def _notify(self) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners.values())
        if not listeners:
            return
        try:
            snapshot = self._repo.fetch_all()
        except CacheIOError as exc:
            self._logger.warning("Could not refresh cache subscribers: %s", exc)
            return
        for listener in listeners:
            self._deliver(listener, snapshot)

    def _deliver(self, listener: MembersListener, snapshot: list[Member]) -> None:
        try:
            listener(list(snapshot))
        except Exception as exc:
            self._logger.warning("Cache subscriber raised: %s", exc)

    @staticmethod
    def _require_id(member: Member) -> None:
        if not member.has_id:
            raise ValidationError(
                "Member has no id yet; it must be created remotely before caching."
            )
