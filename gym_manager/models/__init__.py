"""
Data Models Package.

Re-exports all Pydantic models for convenient imports:
    from gym_manager.models import Member, RevenueEntry, Resource
    from gym_manager.models import ErrorKind, ResultStatus, RevenueType
"""

from __future__ import annotations

from gym_manager.models.enums import (
    ErrorKind,
    MemberFilter,
    MembershipStatus,
    ResultStatus,
    RevenueType,
)
from gym_manager.models.member import Member
from gym_manager.models.revenue import RevenueEntry
from gym_manager.models.service_models import LedgerAppendResult, MutationResult, Resource

__all__ = [
    "ErrorKind",
    "LedgerAppendResult",
    "Member",
    "MemberFilter",
    "MembershipStatus",
    "MutationResult",
    "Resource",
    "ResultStatus",
    "RevenueEntry",
    "RevenueType",
]
