from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError


logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base class for the terminal, non-retriable outcomes of a ledger operation."""

    status_code: int = 400
    error: str = "LedgerError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message}


class ValidationError(LedgerError):
    status_code = 400
    error = "ValidationError"


class NotFoundError(LedgerError):
    status_code = 404
    error = "NotFound"


class ConflictError(LedgerError):
    status_code = 409
    error = "ConflictError"


class ForbiddenError(LedgerError):
    status_code = 403
    error = "Forbidden"


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    logger.warning("%s on %s %s: %s", exc.error, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"path": ".".join(str(loc) for loc in error["loc"]), "message": error["msg"]}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"error": "ValidationError", "message": "Request validation failed", "details": details},
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    # Ledgers translate their own constraint violations; this only catches stragglers.
    logger.warning("IntegrityError on %s %s: %s", request.method, request.url.path, getattr(exc, "orig", exc))
    return JSONResponse(
        status_code=409,
        content={"error": "ConflictError", "message": "Resource already exists"},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "InternalServerError", "message": "Something went wrong"},
    )


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
