from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import OperationalError

from shiftpay.api.router import api_router
from shiftpay.core.config import get_settings
from shiftpay.core.errors import setup_exception_handlers
from shiftpay.core.logging_config import configure_logging
from shiftpay.db.session import get_engine
import shiftpay.models  # noqa: F401
from shiftpay.models.base import Base


configure_logging()
logger = logging.getLogger(__name__)


def create_tables() -> None:
    # Overlapping startups (uvicorn --reload) can race on DDL; retry transient errors.
    for attempt in range(5):
        try:
            Base.metadata.create_all(bind=get_engine())
            return
        except OperationalError as exc:
            message = str(getattr(exc, "orig", exc))
            is_transient = (
                "already exists" in message
                or "definition is being modified by concurrent DDL" in message
            )
            if is_transient and attempt < 4:
                logger.warning("create_all attempt %s failed transiently: %s", attempt + 1, message)
                time.sleep(0.3 * (attempt + 1))
                continue
            raise


@asynccontextmanager
async def lifespan(_app: FastAPI):
    settings = get_settings()
    logger.info("Starting %s", settings.app_name)
    if settings.auto_create_tables:
        create_tables()
        logger.info("Database tables ensured")
    yield
    logger.info("Shutting down %s", settings.app_name)


app = FastAPI(title=get_settings().app_name, version="0.1.0", lifespan=lifespan)


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)


@app.get("/")
def root():
    return {"message": f"{get_settings().app_name} is running. See /docs or /health."}


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/health")
def api_health():
    return {"status": "ok"}


app.include_router(api_router)
