from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from shiftpay.models.shift import ShiftStatus


class ShiftOpenIn(BaseModel):
    # Admins may clock someone else in; workers always open their own shift.
    worker_id: int | None = None
    opened_at: AwareDatetime | None = None
    expected_end: AwareDatetime | None = None
    notes: str | None = Field(default=None, max_length=280)


class ShiftCloseIn(BaseModel):
    closed_at: AwareDatetime | None = None
    notes: str | None = Field(default=None, max_length=280)


class ShiftOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    worker_id: int
    status: ShiftStatus

    opened_at: datetime
    closed_at: datetime | None
    expected_end: datetime | None

    hourly_rate_snapshot: Decimal
    minutes_worked: int | None
    payout: Decimal | None
    notes: str | None
