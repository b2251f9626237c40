"""
Member Model.

One gym member as stored remotely and mirrored in the local cache.
Remote documents use camelCase keys (``lastUpdateDate``); the model uses
snake_case and converts at the boundary via ``from_remote`` /
``to_remote``.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from gym_manager.utils.string_helpers import JsonValue, denormalize_keys, normalize_keys


class Member(BaseModel):
    """A gym member record.

    ``id`` stays ``None`` until the first remote write assigns it; such a
    record can be created but never merged into the cache.
    ``last_update_date`` is the epoch-millis watermark field, stamped by
    the writer on every create and update.
    """

    id: Optional[str] = None
    name: Optional[str] = None
    photo_url: Optional[str] = None
    subscription_start: Optional[str] = None
    subscription_end: Optional[str] = None
    amount_paid: Optional[int] = None
    aadhaar_number: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    last_update_date: int = Field(default=0, ge=0)

    model_config = {"from_attributes": True}

    @field_validator("id", mode="before")
    @classmethod
    def _blank_id_is_unassigned(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("last_update_date", mode="before")
    @classmethod
    def _null_timestamp_is_zero(cls, v: object) -> object:
        return 0 if v is None else v

    @property
    def has_id(self) -> bool:
        return self.id is not None

    def stamped(self, now_ms: int) -> Member:
        """Return a copy with ``last_update_date`` set to *now_ms*."""
        return self.model_copy(update={"last_update_date": now_ms})

    def with_id(self, member_id: str) -> Member:
        return self.model_copy(update={"id": member_id})

    # ------------------------------------------------------------------
    # Wire conversion
    # ------------------------------------------------------------------

    @classmethod
    def from_remote(cls, row: dict[str, JsonValue]) -> Member:
        """Build a Member from a camelCase remote document."""
        return cls.model_validate(normalize_keys(row))

    def to_remote(self, include_id: bool = True) -> dict[str, JsonValue]:
        """Serialise to a camelCase remote document."""
        exclude = None if include_id else {"id"}
        return denormalize_keys(self.model_dump(exclude=exclude))
