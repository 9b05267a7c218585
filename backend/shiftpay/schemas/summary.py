from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class WorkerSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    worker_id: int
    worker_name: str | None = None
    shift_count: int = Field(..., ge=1)
    minutes_worked: int = Field(..., ge=0)
    hours_worked: Decimal
    payout: Decimal
    paid: Decimal
    pending: Decimal = Field(..., ge=0)
