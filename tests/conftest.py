"""Shared fixtures: in-memory SQLite cache and in-process remote fakes."""

from __future__ import annotations

import itertools
import uuid
from pathlib import Path
from typing import Callable, Optional

import pytest

from gym_manager.database import DatabaseManager
from gym_manager.errors import RemoteQueryError, RemoteWriteError, UploadError
from gym_manager.logger import StructuredLogger
from gym_manager.models.member import Member
from gym_manager.repositories.member_cache_repository import MemberCacheRepository
from gym_manager.schema import initialize_schema
from gym_manager.services.cache_manager import CacheManager
from gym_manager.services.revenue_ledger import RevenueLedgerService
from gym_manager.utils.subscription import Subscription


# ---------------------------------------------------------------------------
# Remote fakes
# ---------------------------------------------------------------------------

class FakeRemoteMemberStore:
    """Members collection held in a dict; failures are switched on per op."""

    def __init__(self) -> None:
        self.documents: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self.fail: dict[str, str] = {}
        self._ids = itertools.count(1)

    def seed(self, *members: Member) -> None:
        for member in members:
            self.documents[member.id] = member.to_remote()

    def _maybe_fail(self, op: str, error_cls: type) -> None:
        if op in self.fail:
            raise error_cls(self.fail[op])

    def add(self, document: dict) -> str:
        self.calls.append(("add", dict(document)))
        self._maybe_fail("add", RemoteWriteError)
        member_id = f"m{next(self._ids)}"
        self.documents[member_id] = dict(document)
        return member_id

    def set(self, member_id: str, document: dict) -> None:
        self.calls.append(("set", member_id, dict(document)))
        self._maybe_fail("set", RemoteWriteError)
        self.documents[member_id] = dict(document)

    def delete(self, member_id: str) -> None:
        self.calls.append(("delete", member_id))
        self._maybe_fail("delete", RemoteWriteError)
        self.documents.pop(member_id, None)

    def query(self, updated_after: Optional[int] = None) -> list[dict]:
        self.calls.append(("query", updated_after))
        self._maybe_fail("query", RemoteQueryError)
        docs = [
            {**doc, "id": doc.get("id", member_id)}
            for member_id, doc in self.documents.items()
            if updated_after is None or (doc.get("lastUpdateDate") or 0) > updated_after
        ]
        return sorted(docs, key=lambda d: d.get("lastUpdateDate") or 0, reverse=True)


class FakeRealtimeStore:
    """Path-addressed store that notifies listeners synchronously."""

    def __init__(self) -> None:
        self.lists: dict[str, list[dict]] = {}
        self.values: dict[str, object] = {}
        self.fail: dict[str, str] = {}
        self._listeners: dict[str, list[Callable]] = {}
        self._child_listeners: dict[str, list[Callable]] = {}
        self._keys = itertools.count(1)

    def _maybe_fail(self, op: str, error_cls: type) -> None:
        if op in self.fail:
            raise error_cls(self.fail[op])

    def push(self, path: str, value: dict) -> str:
        self._maybe_fail("push", RemoteWriteError)
        key = f"k{next(self._keys):04d}"
        self.lists.setdefault(path, []).append({**value, "key": key})
        for listener in list(self._child_listeners.get(path, [])):
            listener(self.children(path))
        return key

    def get(self, path: str) -> object:
        self._maybe_fail("get", RemoteQueryError)
        return self.values.get(path)

    def set(self, path: str, value: object) -> None:
        self._maybe_fail("set", RemoteWriteError)
        self.values[path] = value
        for listener in list(self._listeners.get(path, [])):
            listener(value)

    def children(self, path: str) -> list[dict]:
        self._maybe_fail("children", RemoteQueryError)
        return [dict(row) for row in self.lists.get(path, [])]

    def listen(self, path: str, on_change: Callable, on_error: Callable) -> Subscription:
        self._listeners.setdefault(path, []).append(on_change)
        on_change(self.values.get(path))
        return Subscription(lambda: self._listeners[path].remove(on_change))

    def listen_children(self, path: str, on_change: Callable, on_error: Callable) -> Subscription:
        self._child_listeners.setdefault(path, []).append(on_change)
        on_change(self.children(path))
        return Subscription(lambda: self._child_listeners[path].remove(on_change))


class FakeObjectStorage:
    def __init__(self) -> None:
        self.uploads: dict[str, tuple[bytes, str]] = {}
        self.fail: Optional[str] = None

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        if self.fail is not None:
            raise UploadError(self.fail)
        self.uploads[path] = (data, content_type)
        return f"https://storage.test/{path}"


class FakeClock:
    """Returns ``now``; advance it between calls to simulate time passing."""

    def __init__(self, now: int = 1_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def logger(tmp_path: Path) -> StructuredLogger:
    return StructuredLogger(
        name=f"test.{uuid.uuid4().hex[:8]}",
        log_file=str(tmp_path / "test.log"),
    )


@pytest.fixture
def db(logger: StructuredLogger):
    manager = DatabaseManager("", "", Path(":memory:"), logger)
    initialize_schema(manager.sqlite, logger)
    yield manager
    manager.close()


@pytest.fixture
def cache_repo(db: DatabaseManager, logger: StructuredLogger) -> MemberCacheRepository:
    return MemberCacheRepository(db=db, logger=logger)


@pytest.fixture
def cache(cache_repo: MemberCacheRepository, logger: StructuredLogger) -> CacheManager:
    return CacheManager(repo=cache_repo, logger=logger)


@pytest.fixture
def remote() -> FakeRemoteMemberStore:
    return FakeRemoteMemberStore()


@pytest.fixture
def realtime() -> FakeRealtimeStore:
    return FakeRealtimeStore()


@pytest.fixture
def storage() -> FakeObjectStorage:
    return FakeObjectStorage()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger(realtime: FakeRealtimeStore, logger: StructuredLogger) -> RevenueLedgerService:
    return RevenueLedgerService(store=realtime, logger=logger)


def make_member(member_id: Optional[str] = "a", updated: int = 0, **fields) -> Member:
    """Complete, valid member; override any field by keyword."""
    data = {
        "id": member_id,
        "name": f"Member {member_id}",
        "subscription_start": "01/01/2025",
        "subscription_end": "31/12/2025",
        "amount_paid": 1500,
        "aadhaar_number": "123412341234",
        "address": "12 MG Road",
        "phone": "9876543210",
        "last_update_date": updated,
    }
    data.update(fields)
    return Member(**data)
