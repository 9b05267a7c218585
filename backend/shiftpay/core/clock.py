from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from shiftpay.core.errors import ValidationError


Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime, field: str = "timestamp") -> datetime:
    """Normalize an aware datetime to UTC; naive values have no absolute meaning."""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise ValidationError(f"{field} must be timezone-qualified")
    return value.astimezone(timezone.utc)
