from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from shiftpay.core.clock import ensure_aware
from shiftpay.core.errors import ValidationError
from shiftpay.core.money import ZERO, quantize_cents
from shiftpay.models.payment_record import PaymentRecord
from shiftpay.models.shift import Shift, ShiftStatus
from shiftpay.models.worker import Worker
from shiftpay.services.payment_ledger import overlapping
from shiftpay.services.shift_ledger import MINUTES_PER_HOUR


logger = logging.getLogger(__name__)


@dataclass
class WorkerSummary:
    worker_id: int
    worker_name: str | None
    shift_count: int
    minutes_worked: int
    hours_worked: Decimal
    payout: Decimal
    paid: Decimal
    pending: Decimal


@dataclass
class _Accrual:
    shift_count: int = 0
    minutes_worked: int = 0
    payout: Decimal = ZERO


def summarize(
    db: Session,
    range_start: datetime | None = None,
    range_end: datetime | None = None,
) -> list[WorkerSummary]:
    """Roll closed shifts and overlapping payments up into one summary per worker.

    Shifts count when ``closed_at`` falls in [range_start, range_end]; payments
    count when their period overlaps the range at all (no pro-rating). Workers
    without a closed shift in range are left out even if they were paid.

    Sums are taken in Python over Decimal values so SQLite's float SUM never
    touches money.
    """
    if range_start is not None:
        range_start = ensure_aware(range_start, "start")
    if range_end is not None:
        range_end = ensure_aware(range_end, "end")
    if range_start is not None and range_end is not None and range_start > range_end:
        raise ValidationError("start must not be after end")

    q = (
        db.query(Shift.worker_id, Shift.minutes_worked, Shift.payout)
        .filter(Shift.status == ShiftStatus.CLOSED)
    )
    if range_start is not None:
        q = q.filter(Shift.closed_at >= range_start)
    if range_end is not None:
        q = q.filter(Shift.closed_at <= range_end)

    accruals: dict[int, _Accrual] = defaultdict(_Accrual)
    for row in q.all():
        acc = accruals[row.worker_id]
        acc.shift_count += 1
        acc.minutes_worked += int(row.minutes_worked or 0)
        acc.payout += Decimal(row.payout or ZERO)

    if not accruals:
        return []

    worker_ids = sorted(accruals)

    paid: dict[int, Decimal] = defaultdict(lambda: ZERO)
    payments = overlapping(
        db.query(PaymentRecord.worker_id, PaymentRecord.amount).filter(PaymentRecord.worker_id.in_(worker_ids)),
        range_start,
        range_end,
    )
    for row in payments.all():
        paid[row.worker_id] += Decimal(row.amount)

    names = {
        wid: name
        for wid, name in db.query(Worker.id, Worker.name).filter(Worker.id.in_(worker_ids)).all()
    }

    summaries = []
    for wid in worker_ids:
        acc = accruals[wid]
        payout = quantize_cents(acc.payout)
        paid_amount = quantize_cents(paid[wid])
        summaries.append(
            WorkerSummary(
                worker_id=wid,
                worker_name=names.get(wid),
                shift_count=acc.shift_count,
                minutes_worked=acc.minutes_worked,
                hours_worked=Decimal(acc.minutes_worked) / MINUTES_PER_HOUR,
                payout=payout,
                paid=paid_amount,
                pending=max(payout - paid_amount, ZERO),
            )
        )

    logger.debug(
        "Summarized %s worker(s) for %s..%s",
        len(summaries),
        range_start.isoformat() if range_start else "-",
        range_end.isoformat() if range_end else "-",
    )
    return summaries
