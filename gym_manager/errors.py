"""
Error Taxonomy.

Every failure the data layer reports carries an ``ErrorKind`` so callers
can branch on the category while still showing the human-readable
message.  Remote messages are kept verbatim in ``message``.
"""

from __future__ import annotations

from typing import Optional

from gym_manager.models.enums import ErrorKind

__all__ = [
    "CacheIOError",
    "GymManagerError",
    "RemoteQueryError",
    "RemoteWriteError",
    "UploadError",
    "ValidationError",
]


class GymManagerError(Exception):
    """Base exception for all data-layer failures."""

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        self.message: str = message
        self.original_error: Optional[Exception] = original_error
        super().__init__(self.message)


class RemoteWriteError(GymManagerError):
    """Remote add / set / delete / push failed."""

    kind = ErrorKind.REMOTE_WRITE


class RemoteQueryError(GymManagerError):
    """Remote query or read failed."""

    kind = ErrorKind.REMOTE_QUERY


class CacheIOError(GymManagerError):
    """Local cache read/write or (de)serialization failed."""

    kind = ErrorKind.CACHE_IO


class UploadError(GymManagerError):
    """Object storage upload failed."""

    kind = ErrorKind.UPLOAD


class ValidationError(GymManagerError):
    """Client-side validation rejected the input before any remote call."""

    kind = ErrorKind.VALIDATION
