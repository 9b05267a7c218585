from __future__ import annotations

import os

os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shiftpay.db.session import build_engine, get_db
from shiftpay.main import app
from shiftpay.models.base import Base
from shiftpay.models.worker import Worker, WorkerRole


@pytest.fixture()
def engine():
    engine = build_engine("sqlite+pysqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_worker(db):
    def _make(name: str = "Ana", hourly_rate: str = "5000", role: WorkerRole = WorkerRole.worker, is_active: bool = True):
        worker = Worker(name=name, hourly_rate=Decimal(hourly_rate), role=role, is_active=is_active)
        db.add(worker)
        db.commit()
        db.refresh(worker)
        return worker

    return _make


@pytest.fixture()
def client(session_factory):
    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
