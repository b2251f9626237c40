"""
Membership Status.

Derives a member's subscription state from ``subscription_end``.  The
end date itself counts as a paid day: a member whose subscription ends
today is still active (expiring soon).
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from gym_manager.models.enums import MemberFilter, MembershipStatus
from gym_manager.models.member import Member
from gym_manager.utils.dates import parse_date

EXPIRING_SOON_DAYS: int = 7


def days_remaining(member: Member, today: Optional[date] = None) -> Optional[int]:
    """Days from *today* until the subscription ends; negative once expired."""
    end = parse_date(member.subscription_end)
    if end is None:
        return None
    return (end - (today or date.today())).days


def membership_status(member: Member, today: Optional[date] = None) -> MembershipStatus:
    remaining = days_remaining(member, today)
    if remaining is None:
        return MembershipStatus.UNKNOWN
    if remaining < 0:
        return MembershipStatus.EXPIRED
    if remaining <= EXPIRING_SOON_DAYS:
        return MembershipStatus.EXPIRING_SOON
    return MembershipStatus.ACTIVE


def filter_members(
    members: Iterable[Member],
    member_filter: MemberFilter = MemberFilter.ALL,
    today: Optional[date] = None,
) -> list[Member]:
    """Apply the member list filter.

    ``ACTIVE`` includes members expiring soon.  Members with an
    unparseable end date appear only under ``ALL``.
    """
    if member_filter == MemberFilter.ALL:
        return list(members)

    today = today or date.today()
    if member_filter == MemberFilter.EXPIRED:
        wanted = {MembershipStatus.EXPIRED}
    else:
        wanted = {MembershipStatus.ACTIVE, MembershipStatus.EXPIRING_SOON}
    return [m for m in members if membership_status(m, today) in wanted]
