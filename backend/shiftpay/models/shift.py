from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Enum, ForeignKey, Index, Integer, Numeric, String, text
from sqlalchemy.orm import Mapped, mapped_column

from shiftpay.core.clock import utcnow
from shiftpay.db.types import UTCDateTime
from shiftpay.models.base import Base


class ShiftStatus(str, enum.Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


_OPEN_ONLY = text("status = 'OPEN'")


class Shift(Base):
    __tablename__ = "shifts"
    __table_args__ = (
        # At most one OPEN shift per worker. This index is authoritative;
        # ShiftLedger's pre-check only saves a round trip.
        Index(
            "ux_shifts_one_open_per_worker",
            "worker_id",
            unique=True,
            sqlite_where=_OPEN_ONLY,
            postgresql_where=_OPEN_ONLY,
        ),
        Index("ix_shifts_status_closed_at", "status", "closed_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    worker_id: Mapped[int] = mapped_column(ForeignKey("workers.id"), index=True)

    opened_at: Mapped[datetime] = mapped_column(UTCDateTime, index=True)
    closed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True, default=None)
    expected_end: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True, default=None)  # informational

    status: Mapped[ShiftStatus] = mapped_column(
        Enum(ShiftStatus, native_enum=False, length=16),
        default=ShiftStatus.OPEN,
    )

    hourly_rate_snapshot: Mapped[Decimal] = mapped_column(Numeric(12, 2))

    # Set once, at close
    minutes_worked: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    payout: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True, default=None)

    notes: Mapped[str | None] = mapped_column(String(280), nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    @property
    def is_open(self) -> bool:
        return self.status == ShiftStatus.OPEN
