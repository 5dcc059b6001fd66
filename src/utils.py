"""Shared utilities used across the pharmacy call orchestrator."""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("(555) 010-1234")
        '5550101234'
        >>> normalize_phone("+1 (234) 567-890")
        '+1234567890'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def medication_key(name: str) -> str:
    """Inventory key for a medication name: trimmed, lower-cased, single-spaced."""
    return " ".join(name.lower().split())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def strictly_after(previous: Optional[datetime]) -> datetime:
    """Current UTC time, nudged forward so it is strictly later than ``previous``."""
    now = utc_now()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now
