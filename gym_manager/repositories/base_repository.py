"""
Base Repository.

Provides shared infrastructure for all repositories:
- DatabaseManager reference (Supabase + SQLite)
- Logger reference
- Convenience properties for accessing clients
- Uniform translation of remote failures into the error taxonomy
"""

from __future__ import annotations

import sqlite3
from typing import Callable, TypeVar

from supabase import Client as SupabaseClient

from gym_manager.database import DatabaseManager
from gym_manager.errors import GymManagerError
from gym_manager.logger import StructuredLogger

T = TypeVar("T")


class BaseRepository:
    """Base class for all repositories. Receives dependencies via __init__."""

    TABLE: str = ""

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger

    @property
    def supabase(self) -> SupabaseClient:
        """Returns the Supabase client for cloud operations."""
        return self._db.supabase

    @property
    def sqlite(self) -> sqlite3.Connection:
        """Returns the SQLite connection for local cache operations."""
        return self._db.sqlite

    def _remote(
        self,
        op: Callable[[], T],
        error_cls: type[GymManagerError],
        *,
        operation_name: str,
    ) -> T:
        """Run a remote call, re-raising any failure as *error_cls*.

        The original exception text is kept verbatim as the error message
        so callers can surface it unchanged.  Offline mode (no Supabase
        client) surfaces the same way, through the ``RuntimeError``
        raised by :pyattr:`supabase`.
        """
        try:
            return op()
        except GymManagerError:
            raise
        except Exception as exc:
            self._logger.warning(
                "Supabase call failed for %s: %s", operation_name, exc
            )
            raise error_cls(str(exc), exc) from exc

    def _commit(self) -> None:
        """Commit the SQLite transaction unless a batch is active.

        When :meth:`DatabaseManager.batch_write` is active this is a
        no-op; the batch context manager issues a single commit (or
        rollback) when the ``with`` block exits.
        """
        if not self._db.in_batch:
            self.sqlite.commit()
