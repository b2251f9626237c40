"""
Service Layer Data Transfer Objects.

Pydantic models for the values that cross service boundaries: the
three-state ``Resource`` envelope and the payloads it carries.
"""

from __future__ import annotations

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from gym_manager.models.enums import ErrorKind, ResultStatus
from gym_manager.models.member import Member

T = TypeVar("T")

__all__ = [
    "LedgerAppendResult",
    "MutationResult",
    "Resource",
]


# ---------------------------------------------------------------------------
# Generic result envelope
# ---------------------------------------------------------------------------

class Resource(BaseModel, Generic[T]):
    """
    Standard service return envelope.

    Every public operation completes with exactly one of three states:
    ``LOADING`` (in progress), ``SUCCESS`` with ``data``, or ``ERROR``
    with a human-readable ``error`` and a structured ``error_kind``.

    Generic over ``T`` so callers can annotate precisely, e.g.
    ``Resource[list[Member]]``.
    """

    status: ResultStatus
    data: Optional[T] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def loading(cls) -> "Resource[T]":
        return cls(status=ResultStatus.LOADING)

    @classmethod
    def success(cls, data: T) -> "Resource[T]":
        return cls(status=ResultStatus.SUCCESS, data=data)

    @classmethod
    def failure(
        cls, message: str, kind: ErrorKind = ErrorKind.UNEXPECTED
    ) -> "Resource[T]":
        return cls(status=ResultStatus.ERROR, error=message, error_kind=kind)

    @property
    def is_loading(self) -> bool:
        return self.status == ResultStatus.LOADING

    @property
    def is_success(self) -> bool:
        return self.status == ResultStatus.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.status == ResultStatus.ERROR


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------

class MutationResult(BaseModel):
    """Success payload of a member mutation.

    ``member`` is the record as written remotely (with its assigned id
    after a create).  ``revenue_recorded`` is ``True`` only when both the
    ledger entry and the running total were written.
    """

    message: str
    member: Optional[Member] = None
    revenue_recorded: bool = False


class LedgerAppendResult(BaseModel):
    """Outcome of appending one ledger entry."""

    key: str
    total_updated: bool
    new_total: Optional[int] = None
