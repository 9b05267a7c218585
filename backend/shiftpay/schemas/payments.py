from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field


class PaymentCreateIn(BaseModel):
    worker_id: int
    period_start: AwareDatetime
    period_end: AwareDatetime
    # Sign and period order are checked by PaymentLedger so they surface as ValidationError.
    amount: Decimal
    notes: str | None = Field(default=None, max_length=280)
    paid_at: AwareDatetime | None = None


class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    worker_id: int
    period_start: datetime
    period_end: datetime
    amount: Decimal
    notes: str | None
    paid_at: datetime
    created_at: datetime
