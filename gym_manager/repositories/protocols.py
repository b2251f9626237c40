"""
Remote Collaborator Interfaces.

The sync engine, mutation coordinator and revenue ledger depend only on
these structural interfaces.  Production implementations are backed by
Supabase (``member_repository``, ``realtime_repository``,
``storage_repository``); tests substitute in-memory fakes.

Failure contract: implementations raise ``RemoteQueryError`` for reads,
``RemoteWriteError`` for writes and ``UploadError`` for uploads, with the
backend's message kept verbatim.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol, runtime_checkable

from gym_manager.utils.string_helpers import JsonValue
from gym_manager.utils.subscription import Subscription

__all__ = ["ObjectStorage", "RealtimeStore", "RemoteMemberStore"]


@runtime_checkable
class RemoteMemberStore(Protocol):
    """The remote "Members" document collection."""

    def add(self, document: dict[str, JsonValue]) -> str:
        """Insert a document and return the id the server assigned."""
        ...

    def set(self, member_id: str, document: dict[str, JsonValue]) -> None:
        """Overwrite the document stored under *member_id*."""
        ...

    def delete(self, member_id: str) -> None: ...

    def query(self, updated_after: Optional[int] = None) -> list[dict[str, JsonValue]]:
        """Return documents ordered by ``lastUpdateDate`` descending.

        With *updated_after* set, only documents whose ``lastUpdateDate``
        is strictly greater are returned.
        """
        ...


@runtime_checkable
class RealtimeStore(Protocol):
    """Path-addressed realtime key-value store."""

    def push(self, path: str, value: dict[str, JsonValue]) -> str:
        """Append *value* under *path* with a new unique key; return the key."""
        ...

    def get(self, path: str) -> JsonValue: ...

    def set(self, path: str, value: JsonValue) -> None: ...

    def children(self, path: str) -> list[dict[str, JsonValue]]:
        """Return every value pushed under *path*, oldest first."""
        ...

    def listen(
        self,
        path: str,
        on_change: Callable[[JsonValue], None],
        on_error: Callable[[Exception], None],
    ) -> Subscription:
        """Deliver the scalar value at *path* now and after every change."""
        ...

    def listen_children(
        self,
        path: str,
        on_change: Callable[[list[dict[str, JsonValue]]], None],
        on_error: Callable[[Exception], None],
    ) -> Subscription:
        """Deliver ``children(path)`` now and after every change."""
        ...


@runtime_checkable
class ObjectStorage(Protocol):
    """Blob storage for member photos."""

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store *data* at *path* and return a retrievable URL."""
        ...
