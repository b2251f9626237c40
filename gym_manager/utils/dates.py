"""Date and clock helpers shared by validation, status and sync code."""

from __future__ import annotations

import time
from datetime import date, datetime
from typing import Optional

__all__ = ["DATE_FORMAT", "format_date", "now_millis", "parse_date"]

# Subscription dates are stored as display strings, e.g. "05/01/2025".
DATE_FORMAT: str = "%d/%m/%Y"


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse a ``DD/MM/YYYY`` string.  Returns ``None`` when unparseable."""
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        return None


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def now_millis() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000
