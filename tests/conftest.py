import os
from collections.abc import Callable

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from taskdesk.audit import get_audit_sink
from taskdesk.auth.session_clock import SessionClock, get_session_clock
from taskdesk.config import settings
from taskdesk.db import get_db
from taskdesk.main import create_app
from taskdesk.models import Base

from .fakes import FakeRedis, RecordingAuditSink

def _sqlite_session() -> tuple[Session, Callable[[], None]]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()

    def _close() -> None:
        session.close()
        engine.dispose()

    return session, _close

def _postgres_session(database_url: str) -> tuple[Session, Callable[[], None]]:
    engine = create_engine(database_url, pool_pre_ping=True)

    connection = engine.connect()
    transaction = connection.begin()
    Base.metadata.create_all(connection)

    TestingSessionLocal = sessionmaker(bind=connection, autoflush=False, autocommit=False)
    session: Session = TestingSessionLocal()

    # savepoint
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def _restart_savepoint(sess: Session, trans) -> None:  # type: ignore[no-untyped-def]
        if trans.nested and not trans._parent.nested:
            sess.begin_nested()

    def _close() -> None:
        session.close()
        transaction.rollback()
        connection.close()
        engine.dispose()

    return session, _close

@pytest.fixture()
def db_session() -> Session:
    # in-memory sqlite unless a real database is provided
    database_url = os.environ.get("DATABASE_URL")
    if database_url:
        session, close = _postgres_session(database_url)
    else:
        session, close = _sqlite_session()

    try:
        yield session
    finally:
        close()

@pytest.fixture()
def fake_redis() -> FakeRedis:
    return FakeRedis()

@pytest.fixture()
def session_clock(fake_redis: FakeRedis) -> SessionClock:
    return SessionClock(redis=fake_redis)

@pytest.fixture()
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()

@pytest.fixture()
def app(db_session: Session, session_clock: SessionClock, audit_sink: RecordingAuditSink, monkeypatch) -> FastAPI:
    monkeypatch.setattr(settings, "rate_limit_enabled", False)
    monkeypatch.setattr(settings, "app_env", "dev")

    app = create_app()

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_session_clock] = lambda: session_clock
    app.dependency_overrides[get_audit_sink] = lambda: audit_sink
    return app

@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
