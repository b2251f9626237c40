"""Member form validation, run before any remote call."""

from __future__ import annotations

from typing import Optional

from gym_manager.errors import ValidationError
from gym_manager.models.member import Member
from gym_manager.utils.dates import parse_date

MIN_PHONE_LENGTH: int = 10


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def validate_member(member: Member) -> None:
    """Raise ``ValidationError`` for the first rule *member* breaks."""
    required = (
        member.name,
        member.subscription_start,
        member.subscription_end,
        member.aadhaar_number,
        member.address,
        member.phone,
    )
    if any(_blank(v) for v in required) or member.amount_paid is None:
        raise ValidationError("Please fill all required fields")

    if len(member.phone.strip()) < MIN_PHONE_LENGTH:
        raise ValidationError("Please enter a valid phone number")

    start = parse_date(member.subscription_start)
    end = parse_date(member.subscription_end)
    if start is None or end is None:
        raise ValidationError("Subscription dates must use DD/MM/YYYY format")

    if end < start:
        raise ValidationError("Subscription end date cannot be earlier than start date")
