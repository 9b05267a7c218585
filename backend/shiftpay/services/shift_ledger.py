from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shiftpay.core.clock import Clock, ensure_aware, utcnow
from shiftpay.core.errors import ConflictError, ForbiddenError, NotFoundError
from shiftpay.core.money import quantize_cents
from shiftpay.models.shift import Shift, ShiftStatus
from shiftpay.models.worker import WorkerRole
from shiftpay.services.rates import RateLookup


logger = logging.getLogger(__name__)

MINUTES_PER_HOUR = Decimal(60)
MIN_BILLABLE_MINUTES = 1

_MICROS_PER_MINUTE = Decimal(60 * 1_000_000)


@dataclass
class PayoutOutput:
    minutes_worked: int
    hours_worked: Decimal
    payout: Decimal


def compute_payout(hourly_rate: Decimal, opened_at: datetime, closed_at: datetime) -> PayoutOutput:
    elapsed_micros = (closed_at - opened_at) // timedelta(microseconds=1)
    rounded = (Decimal(elapsed_micros) / _MICROS_PER_MINUTE).to_integral_value(rounding=ROUND_HALF_UP)

    # Clock skew or an instant open/close must still bill a minute, never zero or less.
    minutes_worked = max(int(rounded), MIN_BILLABLE_MINUTES)

    hours_worked = Decimal(minutes_worked) / MINUTES_PER_HOUR
    payout = quantize_cents(Decimal(hourly_rate) * Decimal(minutes_worked) / MINUTES_PER_HOUR)
    return PayoutOutput(minutes_worked=minutes_worked, hours_worked=hours_worked, payout=payout)


class ShiftLedger:
    """Owns the OPEN -> CLOSED lifecycle of shifts.

    The worker's rate is read through ``rate_lookup`` exactly once, when a shift
    opens; later rate changes never touch an existing shift.
    """

    def __init__(self, db: Session, rate_lookup: RateLookup, now: Clock = utcnow):
        self.db = db
        self._rate_lookup = rate_lookup
        self._now = now

    def _find_open_shift(self, worker_id: int) -> Shift | None:
        return (
            self.db.query(Shift)
            .filter(Shift.worker_id == worker_id)
            .filter(Shift.status == ShiftStatus.OPEN)
            .first()
        )

    def get_shift(self, shift_id: int) -> Shift:
        shift = self.db.query(Shift).filter(Shift.id == shift_id).first()
        if shift is None:
            raise NotFoundError("Shift not found")
        return shift

    def open_shift(
        self,
        worker_id: int,
        opened_at: datetime | None = None,
        expected_end: datetime | None = None,
        notes: str | None = None,
    ) -> Shift:
        if self._find_open_shift(worker_id) is not None:
            logger.warning("Rejected open for worker %s: a shift is already open", worker_id)
            raise ConflictError("Worker already has an open shift")

        rate = self._rate_lookup(worker_id)
        if rate is None:
            raise NotFoundError("Worker not found")

        shift = Shift(
            worker_id=worker_id,
            opened_at=ensure_aware(opened_at, "opened_at") if opened_at is not None else ensure_aware(self._now()),
            expected_end=ensure_aware(expected_end, "expected_end") if expected_end is not None else None,
            status=ShiftStatus.OPEN,
            hourly_rate_snapshot=quantize_cents(rate),
            notes=notes,
        )
        self.db.add(shift)
        try:
            self.db.commit()
        except IntegrityError as exc:
            # Another request opened a shift between our check and insert.
            self.db.rollback()
            logger.warning("Rejected open for worker %s: lost race on the open-shift index", worker_id)
            raise ConflictError("Worker already has an open shift") from exc

        self.db.refresh(shift)
        logger.info(
            "Opened shift %s for worker %s at %s (rate %s)",
            shift.id, worker_id, shift.opened_at.isoformat(), shift.hourly_rate_snapshot,
        )
        return shift

    def close_shift(
        self,
        shift_id: int,
        actor_worker_id: int,
        actor_role: WorkerRole,
        closed_at: datetime | None = None,
        notes: str | None = None,
    ) -> Shift:
        shift = self.get_shift(shift_id)

        if actor_role != WorkerRole.admin and shift.worker_id != actor_worker_id:
            raise ForbiddenError("Cannot close shifts for other workers")

        if shift.status != ShiftStatus.OPEN:
            raise ConflictError("Shift is already closed")

        closed_at = ensure_aware(closed_at, "closed_at") if closed_at is not None else ensure_aware(self._now())
        result = compute_payout(shift.hourly_rate_snapshot, shift.opened_at, closed_at)

        values = {
            Shift.status: ShiftStatus.CLOSED,
            Shift.closed_at: closed_at,
            Shift.minutes_worked: result.minutes_worked,
            Shift.payout: result.payout,
        }
        if notes is not None:
            values[Shift.notes] = notes

        # Conditional transition: only the request that still sees OPEN wins.
        updated = (
            self.db.query(Shift)
            .filter(Shift.id == shift.id)
            .filter(Shift.status == ShiftStatus.OPEN)
            .update(values, synchronize_session=False)
        )
        if updated != 1:
            self.db.rollback()
            raise ConflictError("Shift is already closed")

        self.db.commit()
        self.db.refresh(shift)
        logger.info(
            "Closed shift %s for worker %s: %s min, payout %s",
            shift.id, shift.worker_id, shift.minutes_worked, shift.payout,
        )
        return shift

    def list_shifts_for_worker(self, worker_id: int, limit: int = 20) -> list[Shift]:
        return (
            self.db.query(Shift)
            .filter(Shift.worker_id == worker_id)
            .order_by(Shift.opened_at.desc(), Shift.id.desc())
            .limit(limit)
            .all()
        )

    def list_shifts_in_range(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        worker_id: int | None = None,
    ) -> list[Shift]:
        q = self.db.query(Shift)
        if start is not None:
            q = q.filter(Shift.opened_at >= ensure_aware(start, "start"))
        if end is not None:
            q = q.filter(Shift.opened_at <= ensure_aware(end, "end"))
        if worker_id is not None:
            q = q.filter(Shift.worker_id == worker_id)
        return q.order_by(Shift.opened_at.desc(), Shift.id.desc()).all()
