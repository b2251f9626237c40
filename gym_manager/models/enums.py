"""
Shared Enumerations for GymManager Models.

StrEnum values compare equal to their string equivalents, so a stored
label like ``"Expense"`` matches ``RevenueType.EXPENSE`` directly.
"""

from __future__ import annotations

from enum import StrEnum


class ResultStatus(StrEnum):
    """The three observable states of every public operation."""

    LOADING = "LOADING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class ErrorKind(StrEnum):
    """Structured failure categories carried alongside error messages."""

    REMOTE_WRITE = "REMOTE_WRITE"
    REMOTE_QUERY = "REMOTE_QUERY"
    CACHE_IO = "CACHE_IO"
    UPLOAD = "UPLOAD"
    VALIDATION = "VALIDATION"
    UNEXPECTED = "UNEXPECTED"


class RevenueType(StrEnum):
    """Ledger entry labels chosen by the operator.

    Income is stored with a positive amount and expense with a negative
    one; the label is informational only.
    """

    INCOME = "Income"
    EXPENSE = "Expense"


class MembershipStatus(StrEnum):
    """Subscription state derived from ``subscription_end``."""

    ACTIVE = "ACTIVE"
    EXPIRING_SOON = "EXPIRING_SOON"
    EXPIRED = "EXPIRED"
    UNKNOWN = "UNKNOWN"


class MemberFilter(StrEnum):
    """Member list filters offered on the home screen."""

    ALL = "All"
    ACTIVE = "Active"
    EXPIRED = "Expired"
