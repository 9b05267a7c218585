from __future__ import annotations

from decimal import Decimal
from typing import Callable

from sqlalchemy.orm import Session

from shiftpay.models.worker import Worker


# worker_id -> current hourly rate, or None when the worker can't be resolved.
RateLookup = Callable[[int], "Decimal | None"]


def directory_rate_lookup(db: Session) -> RateLookup:
    """Point-in-time reads of the worker directory; nothing is cached between calls."""

    def lookup(worker_id: int) -> Decimal | None:
        row = (
            db.query(Worker.hourly_rate, Worker.is_active)
            .filter(Worker.id == worker_id)
            .first()
        )
        if row is None or not row.is_active:
            return None
        return Decimal(row.hourly_rate)

    return lookup
