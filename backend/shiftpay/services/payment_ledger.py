from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import Session

from shiftpay.core.clock import Clock, ensure_aware, utcnow
from shiftpay.core.errors import NotFoundError, ValidationError
from shiftpay.core.money import quantize_cents
from shiftpay.models.payment_record import PaymentRecord
from shiftpay.models.worker import Worker


logger = logging.getLogger(__name__)


def overlapping(q, start: datetime | None, end: datetime | None):
    """Narrow a PaymentRecord query to windows touching [start, end]; partial overlap counts."""
    if start is not None:
        q = q.filter(PaymentRecord.period_end >= ensure_aware(start, "start"))
    if end is not None:
        q = q.filter(PaymentRecord.period_start <= ensure_aware(end, "end"))
    return q


class PaymentLedger:
    """History of disbursements. Holds no balances; see services.reconciliation."""

    def __init__(self, db: Session, now: Clock = utcnow):
        self.db = db
        self._now = now

    def record_payment(
        self,
        worker_id: int,
        period_start: datetime,
        period_end: datetime,
        amount: Decimal,
        paid_at: datetime | None = None,
        notes: str | None = None,
    ) -> PaymentRecord:
        period_start = ensure_aware(period_start, "period_start")
        period_end = ensure_aware(period_end, "period_end")
        if period_start > period_end:
            raise ValidationError("period_start must not be after period_end")

        try:
            amount = quantize_cents(Decimal(amount))
        except (InvalidOperation, TypeError) as exc:
            raise ValidationError("amount must be a decimal number") from exc
        if not amount.is_finite() or amount < 0:
            raise ValidationError("amount must be zero or greater")

        if self.db.query(Worker.id).filter(Worker.id == worker_id).first() is None:
            raise NotFoundError("Worker not found")

        now = ensure_aware(self._now())
        record = PaymentRecord(
            worker_id=worker_id,
            period_start=period_start,
            period_end=period_end,
            amount=amount,
            notes=notes,
            paid_at=ensure_aware(paid_at, "paid_at") if paid_at is not None else now,
            created_at=now,
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)

        logger.info(
            "Recorded payment %s for worker %s: %s covering %s..%s",
            record.id, worker_id, record.amount, period_start.isoformat(), period_end.isoformat(),
        )
        return record

    def delete_payment(self, payment_id: int) -> None:
        record = self.db.query(PaymentRecord).filter(PaymentRecord.id == payment_id).first()
        if record is None:
            raise NotFoundError("Payment record not found")

        worker_id, amount = record.worker_id, record.amount
        self.db.delete(record)
        self.db.commit()
        logger.info("Deleted payment %s for worker %s (%s)", payment_id, worker_id, amount)

    def list_payments(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        worker_id: int | None = None,
        limit: int = 50,
    ) -> list[PaymentRecord]:
        q = overlapping(self.db.query(PaymentRecord), start, end)
        if worker_id is not None:
            q = q.filter(PaymentRecord.worker_id == worker_id)
        return (
            q.order_by(PaymentRecord.paid_at.desc(), PaymentRecord.created_at.desc(), PaymentRecord.id.desc())
            .limit(limit)
            .all()
        )
