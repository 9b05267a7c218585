from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from pydantic import AwareDatetime

from shiftpay.api.deps import Principal, get_payment_ledger, require_admin
from shiftpay.schemas.payments import PaymentCreateIn, PaymentOut
from shiftpay.services.payment_ledger import PaymentLedger


router = APIRouter(prefix="/payments")


@router.get("", response_model=list[PaymentOut])
def list_payments(
    start: AwareDatetime | None = Query(None),
    end: AwareDatetime | None = Query(None),
    worker_id: int | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    admin: Principal = Depends(require_admin),
    ledger: PaymentLedger = Depends(get_payment_ledger),
):
    payments = ledger.list_payments(start=start, end=end, worker_id=worker_id, limit=limit)
    return [PaymentOut.model_validate(p) for p in payments]


@router.post("", response_model=PaymentOut, status_code=201)
def record_payment(
    payload: PaymentCreateIn,
    admin: Principal = Depends(require_admin),
    ledger: PaymentLedger = Depends(get_payment_ledger),
):
    record = ledger.record_payment(
        payload.worker_id,
        payload.period_start,
        payload.period_end,
        payload.amount,
        paid_at=payload.paid_at,
        notes=payload.notes,
    )
    return PaymentOut.model_validate(record)


@router.delete("/{payment_id}", status_code=204)
def delete_payment(
    payment_id: int,
    admin: Principal = Depends(require_admin),
    ledger: PaymentLedger = Depends(get_payment_ledger),
):
    ledger.delete_payment(payment_id)
    return Response(status_code=204)
