from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, Enum, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from shiftpay.core.clock import utcnow
from shiftpay.db.types import UTCDateTime
from shiftpay.models.base import Base


class WorkerRole(str, enum.Enum):
    admin = "admin"
    worker = "worker"


class Worker(Base):
    """Read-only view of the worker directory; the directory service owns these rows."""

    __tablename__ = "workers"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    role: Mapped[WorkerRole] = mapped_column(Enum(WorkerRole, native_enum=False), default=WorkerRole.worker)

    # Live rate; shifts copy it when they open.
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
