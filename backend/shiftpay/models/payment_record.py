from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from shiftpay.core.clock import utcnow
from shiftpay.db.types import UTCDateTime
from shiftpay.models.base import Base


class PaymentRecord(Base):
    """One disbursement to a worker for a payroll window.

    Deliberately not linked to shifts: balances are recomputed from the window
    on every summary.
    """

    __tablename__ = "payment_records"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_payment_records_amount_non_negative"),
        CheckConstraint("period_start <= period_end", name="ck_payment_records_period_order"),
        Index("ix_payment_records_worker_period", "worker_id", "period_start", "period_end"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    worker_id: Mapped[int] = mapped_column(ForeignKey("workers.id"), index=True)

    period_start: Mapped[datetime] = mapped_column(UTCDateTime)
    period_end: Mapped[datetime] = mapped_column(UTCDateTime)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    notes: Mapped[str | None] = mapped_column(String(280), nullable=True, default=None)

    paid_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
