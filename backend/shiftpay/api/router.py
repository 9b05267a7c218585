from __future__ import annotations

from fastapi import APIRouter

from shiftpay.api.routes import payments, shifts


api_router = APIRouter(prefix="/api")

api_router.include_router(shifts.router, tags=["shifts"])
api_router.include_router(payments.router, tags=["payments"])
