"""
Revenue Entry Model.

A single line of the append-only revenue ledger.  The running total is
stored separately and is never derived from these entries.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from gym_manager.utils.string_helpers import JsonValue, denormalize_keys, normalize_keys


class RevenueEntry(BaseModel):
    """Ledger line: positive ``amount`` is income, negative is expense."""

    name: Optional[str] = None
    amount: Optional[int] = None
    revenue_type: Optional[str] = None

    @property
    def is_income(self) -> bool:
        return (self.amount or 0) >= 0

    @classmethod
    def from_remote(cls, row: dict[str, JsonValue]) -> RevenueEntry:
        return cls.model_validate(normalize_keys(row))

    def to_remote(self) -> dict[str, JsonValue]:
        return denormalize_keys(self.model_dump())
