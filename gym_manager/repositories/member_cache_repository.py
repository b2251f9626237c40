"""
Member Cache Repository.

SQL primitives over the local ``members`` and ``app_metadata`` tables.
This is the only code that touches those tables; both the sync engine
and the mutation coordinator go through it (via ``CacheManager``) so
neither can leave a partially-applied record.

Every SQLite or (de)serialization failure is raised as ``CacheIOError``.
"""

from __future__ import annotations

import sqlite3
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from gym_manager.database import DatabaseManager
from gym_manager.errors import CacheIOError
from gym_manager.logger import StructuredLogger
from gym_manager.models.member import Member
from gym_manager.repositories.base_repository import BaseRepository

_COLUMNS: tuple[str, ...] = (
    "id",
    "name",
    "photo_url",
    "subscription_start",
    "subscription_end",
    "amount_paid",
    "aadhaar_number",
    "address",
    "phone",
    "last_update_date",
)


class MemberCacheRepository(BaseRepository):
    """Data access layer for cached Member rows and cache metadata."""

    TABLE = "members"
    METADATA_TABLE = "app_metadata"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def fetch_all(self) -> list[Member]:
        """Return every cached member, newest ``last_update_date`` first."""
        columns = ", ".join(_COLUMNS)
        try:
            with self._db.write_lock:
                rows = self.sqlite.execute(
                    f"SELECT {columns} FROM {self.TABLE} "
                    "ORDER BY last_update_date DESC, id ASC"
                ).fetchall()
            return [Member(**dict(row)) for row in rows]
        except sqlite3.Error as exc:
            raise CacheIOError(f"Failed to read cached members: {exc}", exc) from exc
        except PydanticValidationError as exc:
            raise CacheIOError(f"Corrupt cached member row: {exc}", exc) from exc

    def upsert(self, member: Member) -> None:
        """Insert or fully overwrite the row keyed by ``member.id``."""
        try:
            with self._db.write_lock:
                self._upsert_row(member)
                self._commit()
        except sqlite3.Error as exc:
            raise CacheIOError(
                f"Failed to cache member {member.id}: {exc}", exc
            ) from exc

    def upsert_many(self, members: list[Member]) -> None:
        """Upsert *members* in a single transaction."""
        try:
            with self._db.batch_write():
                for member in members:
                    self._upsert_row(member)
        except sqlite3.Error as exc:
            raise CacheIOError(
                f"Failed to cache {len(members)} members: {exc}", exc
            ) from exc

    def replace_all(self, members: list[Member]) -> None:
        """Atomically replace the cached member set with *members*."""
        try:
            with self._db.batch_write():
                self.sqlite.execute(f"DELETE FROM {self.TABLE}")
                for member in members:
                    self._upsert_row(member)
        except sqlite3.Error as exc:
            raise CacheIOError(f"Failed to replace cached members: {exc}", exc) from exc

    def delete(self, member_id: str) -> bool:
        """Delete a cached member.  Returns ``False`` when it was absent."""
        try:
            with self._db.write_lock:
                cursor = self.sqlite.execute(
                    f"DELETE FROM {self.TABLE} WHERE id = ?", (member_id,)
                )
                self._commit()
            return cursor.rowcount > 0
        except sqlite3.Error as exc:
            raise CacheIOError(
                f"Failed to delete cached member {member_id}: {exc}", exc
            ) from exc

    def _upsert_row(self, member: Member) -> None:
        """Write one row without committing.  Caller holds the lock."""
        placeholders = ", ".join("?" for _ in _COLUMNS)
        assignments = ", ".join(
            f"{col} = excluded.{col}" for col in _COLUMNS if col != "id"
        )
        self.sqlite.execute(
            f"""
            INSERT INTO {self.TABLE} ({", ".join(_COLUMNS)})
            VALUES ({placeholders})
            ON CONFLICT(id) DO UPDATE SET {assignments}
            """,
            tuple(getattr(member, col) for col in _COLUMNS),
        )

    # ------------------------------------------------------------------
    # Metadata (key -> string value)
    # ------------------------------------------------------------------

    def get_metadata(self, key: str) -> Optional[str]:
        """Read a metadata value by key.  Returns ``None`` if not found."""
        try:
            with self._db.write_lock:
                row = self.sqlite.execute(
                    f"SELECT value FROM {self.METADATA_TABLE} WHERE key = ?",
                    (key,),
                ).fetchone()
            return row["value"] if row is not None else None
        except sqlite3.Error as exc:
            raise CacheIOError(f"Failed to read {self.METADATA_TABLE}[{key}]: {exc}", exc) from exc

    def set_metadata(self, key: str, value: str) -> None:
        """Upsert a metadata value."""
        try:
            with self._db.write_lock:
                self.sqlite.execute(
                    f"""
                    INSERT INTO {self.METADATA_TABLE} (key, value)
                    VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value      = excluded.value,
                        updated_at = CURRENT_TIMESTAMP
                    """,
                    (key, value),
                )
                self._commit()
        except sqlite3.Error as exc:
            raise CacheIOError(f"Failed to write {self.METADATA_TABLE}[{key}]: {exc}", exc) from exc
