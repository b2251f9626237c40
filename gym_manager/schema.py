"""
Local cache schema and migrations.

:func:`initialize_schema` runs on every startup.  A new cache file gets
the full current schema in one go; an older one is walked forward one
registered :class:`Migration` at a time.  Either path runs inside a
single transaction together with the version bump, so a crash mid-way
leaves the cache at its previous version and the next start retries.

To change the schema: edit :data:`_TABLES` for new installs, append a
:class:`Migration` with the next version number to :data:`_MIGRATIONS`,
and bump :data:`CURRENT_SCHEMA_VERSION`.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from typing import NamedTuple, Optional

from gym_manager.logger import StructuredLogger

__all__ = ["CURRENT_SCHEMA_VERSION", "initialize_schema"]

CURRENT_SCHEMA_VERSION: int = 2

_VERSION_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS schema_version (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    version INTEGER NOT NULL,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""

_WATERMARK_INDEX_DDL = (
    "CREATE INDEX IF NOT EXISTS idx_members_last_update_date "
    "ON members(last_update_date)"
)

# Table name -> DDL.  Mirrors the remote Members documents plus the
# key/value metadata table that stores the sync watermark.
_TABLES: dict[str, str] = {
    "members": """
        CREATE TABLE IF NOT EXISTS members (
            id TEXT PRIMARY KEY,
            name TEXT,
            photo_url TEXT,
            subscription_start TEXT,
            subscription_end TEXT,
            amount_paid INTEGER,
            aadhaar_number TEXT,
            address TEXT,
            phone TEXT,
            last_update_date INTEGER NOT NULL DEFAULT 0
        )
    """,
    "app_metadata": """
        CREATE TABLE IF NOT EXISTS app_metadata (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """,
    "audit_log": """
        CREATE TABLE IF NOT EXISTS audit_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            timestamp TEXT NOT NULL,
            action TEXT NOT NULL,
            entity_type TEXT NOT NULL,
            entity_id TEXT NOT NULL,
            actor TEXT NOT NULL,
            details TEXT DEFAULT '{}',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """,
}


class Migration(NamedTuple):
    """One forward step; ``apply`` must not commit."""

    version: int
    description: str
    apply: Callable[[sqlite3.Connection], None]


def _has_column(conn: sqlite3.Connection, table: str, column: str) -> bool:
    return any(info[1] == column for info in conn.execute(f"PRAGMA table_info({table})"))


def _add_photo_url(conn: sqlite3.Connection) -> None:
    # v1 caches dropped the photo URL; members rendered without a picture
    # until a full resync.
    if not _has_column(conn, "members", "photo_url"):
        conn.execute("ALTER TABLE members ADD COLUMN photo_url TEXT")
    conn.execute(_WATERMARK_INDEX_DDL)


_MIGRATIONS: list[Migration] = [
    Migration(2, "members.photo_url and watermark index", _add_photo_url),
]


def _stored_version(conn: sqlite3.Connection) -> int:
    conn.execute(_VERSION_TABLE_DDL)
    conn.commit()
    row: Optional[tuple[int]] = conn.execute(
        "SELECT version FROM schema_version WHERE id = 1"
    ).fetchone()
    return 0 if row is None else int(row[0])


def _record_version(conn: sqlite3.Connection, version: int) -> None:
    conn.execute(
        "INSERT INTO schema_version (id, version) VALUES (1, ?) "
        "ON CONFLICT(id) DO UPDATE SET version = excluded.version, "
        "applied_at = CURRENT_TIMESTAMP",
        (version,),
    )


def _create_fresh(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    for name, ddl in _TABLES.items():
        conn.execute(ddl)
        logger.debug("Created table %s.", name)
    conn.execute(_WATERMARK_INDEX_DDL)


def _migrate(conn: sqlite3.Connection, logger: StructuredLogger, from_version: int) -> None:
    pending = [
        m for m in sorted(_MIGRATIONS, key=lambda m: m.version)
        if from_version < m.version <= CURRENT_SCHEMA_VERSION
    ]
    if not pending:
        logger.info("No migrations registered between versions %d and %d.",
                    from_version, CURRENT_SCHEMA_VERSION)
        return
    for migration in pending:
        logger.info("Migrating cache to v%d: %s", migration.version, migration.description)
        migration.apply(conn)


def initialize_schema(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Bring the cache at *conn* up to :data:`CURRENT_SCHEMA_VERSION`.

    Idempotent.  A cache already at (or beyond) the current version is
    left untouched.  On failure the transaction is rolled back and the
    error re-raised.
    """
    current = _stored_version(conn)
    if current >= CURRENT_SCHEMA_VERSION:
        logger.info("Cache schema at version %d; nothing to do.", current)
        return

    try:
        if current == 0:
            _create_fresh(conn, logger)
        else:
            _migrate(conn, logger, current)
        _record_version(conn, CURRENT_SCHEMA_VERSION)
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        logger.error("Cache schema upgrade from version %d failed; rolled back.",
                     current, exc_info=True)
        raise

    logger.info("Cache schema upgraded from version %d to %d.", current, CURRENT_SCHEMA_VERSION)
