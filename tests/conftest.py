"""Test configuration and fixtures for the Student Hub project."""

from __future__ import annotations

import asyncio
import os
import tempfile
import uuid
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from student_hub.shared import database
from student_hub.shared.config import Settings, override_settings
from student_hub.shared.database import Base, create_engine
from student_hub.shared.date_provider import FixedDateProvider, reset_date_provider, set_date_provider


def _temp_database_url() -> tuple[str, str]:
    temp_dir = tempfile.mkdtemp()
    db_path = os.path.join(temp_dir, f"test_db_{uuid.uuid4().hex}.db")
    return f"sqlite+aiosqlite:///{db_path}", db_path


def _remove_database_file(db_path: str) -> None:
    try:
        if os.path.exists(db_path):
            os.remove(db_path)
        os.rmdir(os.path.dirname(db_path))
    except OSError:
        pass  # File might still be locked


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings backed by a throwaway SQLite file."""
    database_url, db_path = _temp_database_url()
    settings = override_settings(
        environment="testing",
        database_url=database_url,
        web_session_secret="test-session-secret",
        admin_password="correct-horse",
        chat_send_timeout=1.0,
        chat_max_message_length=500,
        debug=False,
        log_level="DEBUG",
    )
    yield settings
    _remove_database_file(db_path)


@pytest.fixture
async def test_engine(test_settings) -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine with all tables.

    Built with the application's own ``create_engine`` so SQLite enforces
    foreign keys the same way PostgreSQL does.
    """
    engine = create_engine(test_settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()
        await asyncio.sleep(0.01)


@pytest.fixture
def session_maker(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session = session_maker()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def patched_database(monkeypatch, test_engine, session_maker) -> async_sessionmaker[AsyncSession]:
    """Point the global engine and session maker at the test database."""
    monkeypatch.setattr(database, "_engine", test_engine)
    monkeypatch.setattr(database, "_session_maker", session_maker)
    return session_maker


@pytest.fixture
def mock_date_provider() -> FixedDateProvider:
    """Install a fixed clock for the duration of a test."""
    provider = FixedDateProvider()
    set_date_provider(provider)
    yield provider
    reset_date_provider()
