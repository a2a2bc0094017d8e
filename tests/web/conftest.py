"""Fixtures for tests that drive the full ASGI application."""

from __future__ import annotations

from typing import Generator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.testclient import TestClient

from student_hub.shared import database
from student_hub.shared.database import create_engine, create_tables


@pytest.fixture
def app_client(test_settings, monkeypatch) -> Generator[TestClient, None, None]:
    """Synchronous client for the root application (API, admin and chat).

    The engine is created here and used only from the client's event loop,
    where the tables are created as well.
    """
    from main import create_app

    engine = create_engine(test_settings)
    monkeypatch.setattr(database, "_engine", engine)
    monkeypatch.setattr(
        database,
        "_session_maker",
        async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False),
    )

    app = create_app(test_settings, use_lifespan=False)
    with TestClient(app) as client:
        client.portal.call(create_tables)
        try:
            yield client
        finally:
            client.portal.call(engine.dispose)
