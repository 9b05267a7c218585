from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from shiftpay.core.security import decode_token
from shiftpay.db.session import get_db
from shiftpay.models.worker import WorkerRole
from shiftpay.services.payment_ledger import PaymentLedger
from shiftpay.services.rates import directory_rate_lookup
from shiftpay.services.shift_ledger import ShiftLedger


# Tokens come from the identity service; this API only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


@dataclass(frozen=True)
class Principal:
    worker_id: int
    role: WorkerRole

    @property
    def is_admin(self) -> bool:
        return self.role == WorkerRole.admin


def get_current_principal(token: str = Depends(oauth2_scheme)) -> Principal:
    try:
        payload = decode_token(token)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    sub = payload.get("sub")
    role = payload.get("role")
    if not sub or not role:
        raise HTTPException(status_code=401, detail="Invalid token")

    try:
        return Principal(worker_id=int(sub), role=WorkerRole(role))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token")


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    return principal


def get_shift_ledger(db: Session = Depends(get_db)) -> ShiftLedger:
    return ShiftLedger(db, directory_rate_lookup(db))


def get_payment_ledger(db: Session = Depends(get_db)) -> PaymentLedger:
    return PaymentLedger(db)
