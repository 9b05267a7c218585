from __future__ import annotations

from datetime import datetime, timezone

from shiftpay.core.security import create_access_token
from shiftpay.models.worker import Worker


T0 = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, at: datetime):
        self.at = at

    def __call__(self) -> datetime:
        return self.at


def auth_headers(worker: Worker) -> dict:
    token = create_access_token(subject=str(worker.id), role=worker.role.value)
    return {"Authorization": f"Bearer {token}"}
