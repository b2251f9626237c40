"""
Database Abstraction Layer.

Owns the two stores the member data layer talks to:

- **SQLite (local)**: the member cache, the ``app_metadata`` table that
  holds the sync watermark, and the ``audit_log``.  Always available.
- **Supabase (cloud)**: the authoritative Members table, the revenue
  ledger and the photo bucket.  Optional; without credentials the app
  runs from the cache alone.

Only connections live here.  Queries belong to the repositories.

Usage::

    db = DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        sqlite_path=config.SQLITE_PATH,
        logger=StructuredLogger(name="database"),
    )
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from supabase import Client as SupabaseClient
from supabase import create_client

from gym_manager.logger import StructuredLogger

_MEMORY_PATH = ":memory:"


class DatabaseManager:
    """Local SQLite connection plus an optional Supabase client.

    Parameters
    ----------
    supabase_url, supabase_key:
        Supabase project credentials.  Either one empty means offline
        mode: :pyattr:`supabase` raises ``RuntimeError`` and the remote
        repositories report that as a query or write failure.
    sqlite_path:
        Cache file, created with its parent directory if missing, or
        ``Path(":memory:")`` for a throwaway cache.
    logger:
        Structured logger instance.
    """

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        sqlite_path: Path,
        logger: StructuredLogger,
    ) -> None:
        self._logger: StructuredLogger = logger
        self._write_lock: threading.RLock = threading.RLock()
        self._in_batch: bool = False
        self._closed: bool = False

        self._supabase: Optional[SupabaseClient] = self._connect_supabase(
            supabase_url, supabase_key
        )
        self._sqlite_conn: sqlite3.Connection = self._connect_sqlite(sqlite_path)

    # ------------------------------------------------------------------
    # Public properties
    # ------------------------------------------------------------------

    @property
    def supabase(self) -> SupabaseClient:
        """The Supabase client.  Raises ``RuntimeError`` in offline mode."""
        if self._supabase is None:
            raise RuntimeError(
                "Supabase client is not initialised; running in offline mode."
            )
        return self._supabase

    @property
    def is_online(self) -> bool:
        return self._supabase is not None

    @property
    def sqlite(self) -> sqlite3.Connection:
        return self._sqlite_conn

    @property
    def write_lock(self) -> threading.RLock:
        """Serialises every statement on the shared SQLite connection.

        The connection is used from the caller's thread, the sync worker
        and listener threads, so repositories hold this around each
        read-or-write-then-commit sequence.
        """
        return self._write_lock

    @property
    def in_batch(self) -> bool:
        return self._in_batch

    @contextmanager
    def batch_write(self) -> Generator[None, None, None]:
        """Group several writes into one transaction.

        Holds ``write_lock`` for the whole block; repository ``_commit()``
        calls inside it are skipped.  Commits once on exit, or rolls back
        and re-raises, so a reader never sees half of a member set.
        Nested blocks join the outermost one.
        """
        with self._write_lock:
            if self._in_batch:
                yield
                return

            self._in_batch = True
            try:
                yield
                self._sqlite_conn.commit()
            except Exception:
                self._sqlite_conn.rollback()
                self._logger.warning("Batch write rolled back.", exc_info=True)
                raise
            finally:
                self._in_batch = False

    def close(self) -> None:
        """Close the SQLite connection.  Later calls do nothing."""
        with self._write_lock:
            if self._closed:
                return
            self._closed = True
            try:
                self._sqlite_conn.close()
            except sqlite3.ProgrammingError:
                return
        self._logger.info("SQLite cache closed.")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _connect_supabase(self, url: str, key: str) -> Optional[SupabaseClient]:
        if not (url and key):
            self._logger.warning(
                "Supabase credentials not configured; serving members from cache only."
            )
            return None
        try:
            client = create_client(url, key)
        except (ValueError, TypeError) as exc:
            self._logger.warning("Invalid Supabase credentials (%s); offline mode.", exc)
            return None
        except Exception as exc:
            self._logger.error(
                "Supabase client failed to initialise (%s); offline mode.", exc, exc_info=True,
            )
            return None
        self._logger.info("Supabase client ready.")
        return client

    def _connect_sqlite(self, path: Path) -> sqlite3.Connection:
        """Open the cache with ``sqlite3.Row`` rows and WAL journaling.

        Raises ``PermissionError`` with an operator-facing message when
        the file or its directory cannot be written.
        """
        try:
            if str(path) != _MEMORY_PATH:
                path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(path), check_same_thread=False)
        except PermissionError as exc:
            msg = (
                f"Cannot open the member cache at '{path}'. Check that the "
                "file and its folder are writable and not locked by another process."
            )
            self._logger.error(msg)
            raise PermissionError(msg) from exc

        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        self._logger.info("SQLite cache opened at %s", path)
        return conn
