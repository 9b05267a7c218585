from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import AwareDatetime
from sqlalchemy.orm import Session

from shiftpay.api.deps import Principal, get_current_principal, get_shift_ledger, require_admin
from shiftpay.db.session import get_db
from shiftpay.schemas.shifts import ShiftCloseIn, ShiftOpenIn, ShiftOut
from shiftpay.schemas.summary import WorkerSummaryOut
from shiftpay.services.reconciliation import summarize
from shiftpay.services.shift_ledger import ShiftLedger


router = APIRouter(prefix="/shifts")


@router.get("/mine", response_model=list[ShiftOut])
def list_my_shifts(
    limit: int = Query(20, ge=1, le=200),
    current: Principal = Depends(get_current_principal),
    ledger: ShiftLedger = Depends(get_shift_ledger),
):
    shifts = ledger.list_shifts_for_worker(current.worker_id, limit=limit)
    return [ShiftOut.model_validate(s) for s in shifts]


@router.get("", response_model=list[ShiftOut])
def list_shifts(
    start: AwareDatetime | None = Query(None),
    end: AwareDatetime | None = Query(None),
    worker_id: int | None = Query(None),
    admin: Principal = Depends(require_admin),
    ledger: ShiftLedger = Depends(get_shift_ledger),
):
    shifts = ledger.list_shifts_in_range(start=start, end=end, worker_id=worker_id)
    return [ShiftOut.model_validate(s) for s in shifts]


@router.get("/summary", response_model=list[WorkerSummaryOut])
def get_summary(
    start: AwareDatetime | None = Query(None),
    end: AwareDatetime | None = Query(None),
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return [WorkerSummaryOut.model_validate(s) for s in summarize(db, start, end)]


@router.get("/{shift_id}", response_model=ShiftOut)
def get_shift_detail(
    shift_id: int,
    current: Principal = Depends(get_current_principal),
    ledger: ShiftLedger = Depends(get_shift_ledger),
):
    shift = ledger.get_shift(shift_id)
    if not current.is_admin and shift.worker_id != current.worker_id:
        raise HTTPException(status_code=403, detail="Not allowed")
    return ShiftOut.model_validate(shift)


@router.post("/open", response_model=ShiftOut, status_code=201)
def open_shift(
    payload: ShiftOpenIn,
    current: Principal = Depends(get_current_principal),
    ledger: ShiftLedger = Depends(get_shift_ledger),
):
    worker_id = payload.worker_id if payload.worker_id is not None else current.worker_id
    if worker_id != current.worker_id and not current.is_admin:
        raise HTTPException(status_code=403, detail="Cannot open shifts for other workers")

    shift = ledger.open_shift(
        worker_id,
        opened_at=payload.opened_at,
        expected_end=payload.expected_end,
        notes=payload.notes,
    )
    return ShiftOut.model_validate(shift)


@router.post("/{shift_id}/close", response_model=ShiftOut)
def close_shift(
    shift_id: int,
    payload: ShiftCloseIn,
    current: Principal = Depends(get_current_principal),
    ledger: ShiftLedger = Depends(get_shift_ledger),
):
    shift = ledger.close_shift(
        shift_id,
        actor_worker_id=current.worker_id,
        actor_role=current.role,
        closed_at=payload.closed_at,
        notes=payload.notes,
    )
    return ShiftOut.model_validate(shift)
