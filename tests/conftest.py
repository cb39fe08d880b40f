"""Pytest configuration and fixtures."""

import os

# Set test database URL BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"

from contextlib import contextmanager
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from app.db import repository
from app.db.session import Base
import app.db.models  # noqa: F401

# Fixed wall clock for every time-dependent test
NOW = datetime(2026, 3, 1, 9, 0, 0)


@pytest.fixture(scope="function")
def sqlite_sessionmaker(tmp_path):
    """Create a SQLite database with schema for testing."""
    db_path = tmp_path / "test.db"
    engine = create_engine(f"sqlite:///{db_path}", echo=False)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield SessionLocal
    engine.dispose()


@pytest.fixture
def db_session(sqlite_sessionmaker):
    session = sqlite_sessionmaker()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def session_scope(sqlite_sessionmaker):
    """get_sync_db equivalent bound to the test database."""

    @contextmanager
    def scope():
        session = sqlite_sessionmaker()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return scope


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def contract(db_session):
    """A committed contract owned by a user with an e-mail address."""
    user = repository.create_user(db_session, email="ana@example.com", display_name="Ana")
    contract = repository.create_contract(
        db_session,
        user_id=user.id,
        contract_type="service agreement",
        contract_text="This agreement ends on 2026-03-11.",
    )
    db_session.commit()
    return contract


@pytest.fixture
def mock_notifier():
    """Notifier that records calls and succeeds."""
    notifier = MagicMock()
    notifier.send_date_alert = MagicMock(return_value=None)
    return notifier


@pytest.fixture
def mock_temporal():
    """Create a mock Temporal client."""
    return AsyncMock()


@pytest.fixture
def api_client(tmp_path, sqlite_sessionmaker, session_scope):
    """TestClient with both DB dependencies bound to the test database.

    Temporal is unreachable during startup; tests assign ``app.state.temporal``.
    """
    from fastapi.testclient import TestClient

    from app.db.session import get_db, get_sync_db_dependency
    from app.main import app

    async_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool
    )
    TestAsyncSession = async_sessionmaker(async_engine, expire_on_commit=False)

    async def override_get_db():
        async with TestAsyncSession() as session:
            yield session

    def override_get_sync_db():
        with session_scope() as db:
            yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sync_db_dependency] = override_get_sync_db
    try:
        with patch(
            "app.main.TemporalClient.connect",
            AsyncMock(side_effect=ConnectionError("temporal offline")),
        ):
            with TestClient(app, raise_server_exceptions=False) as client:
                yield client
    finally:
        app.dependency_overrides.clear()
