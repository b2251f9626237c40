"""
Member Repository (remote).

Supabase-backed implementation of ``RemoteMemberStore`` over the
``Members`` table.  Rows carry the camelCase document keys
(``photoUrl``, ``lastUpdateDate``); the table's ``id`` column is a
server-generated UUID, which is what "the server assigns the id" means
for this backend.
"""

from __future__ import annotations

from typing import Optional

from gym_manager.database import DatabaseManager
from gym_manager.errors import RemoteQueryError, RemoteWriteError
from gym_manager.logger import StructuredLogger
from gym_manager.repositories.base_repository import BaseRepository
from gym_manager.utils.string_helpers import JsonValue

WATERMARK_FIELD: str = "lastUpdateDate"


class SupabaseMemberRepository(BaseRepository):
    """Data access layer for the remote Members collection."""

    TABLE = "Members"

    def __init__(
        self,
        db: DatabaseManager,
        logger: StructuredLogger,
        table: Optional[str] = None,
    ) -> None:
        super().__init__(db, logger)
        if table:
            self.TABLE = table

    def add(self, document: dict[str, JsonValue]) -> str:
        """Insert *document* (any ``id`` is dropped) and return the new id."""
        payload = {k: v for k, v in document.items() if k != "id"}

        def _insert() -> str:
            response = self.supabase.table(self.TABLE).insert(payload).execute()
            if not response.data:
                raise RuntimeError(f"Insert into {self.TABLE} returned no row")
            return str(response.data[0]["id"])

        member_id = self._remote(
            _insert, RemoteWriteError, operation_name=f"add ({self.TABLE})"
        )
        self._logger.info("Remote member created: %s", member_id)
        return member_id

    def set(self, member_id: str, document: dict[str, JsonValue]) -> None:
        """Overwrite the row for *member_id* with *document*."""
        payload = {**document, "id": member_id}

        def _upsert() -> None:
            self.supabase.table(self.TABLE).upsert(payload).execute()

        self._remote(_upsert, RemoteWriteError, operation_name=f"set ({self.TABLE})")

    def delete(self, member_id: str) -> None:
        def _delete() -> None:
            self.supabase.table(self.TABLE).delete().eq("id", member_id).execute()

        self._remote(_delete, RemoteWriteError, operation_name=f"delete ({self.TABLE})")
        self._logger.info("Remote member deleted: %s", member_id)

    def query(self, updated_after: Optional[int] = None) -> list[dict[str, JsonValue]]:
        """Fetch members, newest first, optionally only those changed after
        *updated_after* (strict ``>``)."""

        def _select() -> list[dict[str, JsonValue]]:
            query = self.supabase.table(self.TABLE).select("*")
            if updated_after is not None:
                query = query.gt(WATERMARK_FIELD, updated_after)
            response = query.order(WATERMARK_FIELD, desc=True).execute()
            return list(response.data or [])

        return self._remote(
            _select, RemoteQueryError, operation_name=f"query ({self.TABLE})"
        )
