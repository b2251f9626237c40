"""Tests for member form validation."""

from __future__ import annotations

import pytest

from conftest import make_member
from gym_manager.errors import ValidationError
from gym_manager.services.validation import validate_member


def test_complete_member_passes():
    validate_member(make_member("a"))


@pytest.mark.parametrize(
    "field", ["name", "subscription_start", "subscription_end", "aadhaar_number", "address", "phone"]
)
def test_blank_required_field(field):
    with pytest.raises(ValidationError, match="Please fill all required fields"):
        validate_member(make_member("a", **{field: "  "}))


def test_missing_amount():
    with pytest.raises(ValidationError, match="Please fill all required fields"):
        validate_member(make_member("a", amount_paid=None))


def test_short_phone():
    with pytest.raises(ValidationError, match="Please enter a valid phone number"):
        validate_member(make_member("a", phone="98765"))


def test_bad_date_format():
    with pytest.raises(ValidationError, match="DD/MM/YYYY"):
        validate_member(make_member("a", subscription_start="2025-01-01"))


def test_end_before_start():
    with pytest.raises(ValidationError, match="cannot be earlier than start date"):
        validate_member(
            make_member("a", subscription_start="10/02/2025", subscription_end="09/02/2025")
        )


def test_same_day_subscription_is_allowed():
    validate_member(make_member("a", subscription_start="10/02/2025", subscription_end="10/02/2025"))


def test_id_is_not_required():
    validate_member(make_member(None))
