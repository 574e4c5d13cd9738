"""
Pytest configuration and fixtures.
"""

from __future__ import annotations

import os
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tests.test_constants import (
    TEST_AUTH_LOGIN_URL,
    TEST_PARALLEL_API_KEY,
    TEST_PUBLIC_BASE_URL,
    TEST_SECRET_KEY,
    TEST_WEBHOOK_SECRET,
)

# Force an in-memory DB and known secrets when pytest runs; don't inherit from .env
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = TEST_SECRET_KEY
os.environ["PARALLEL_API_KEY"] = TEST_PARALLEL_API_KEY
os.environ["PARALLEL_WEBHOOK_SECRET"] = TEST_WEBHOOK_SECRET
os.environ["PUBLIC_BASE_URL"] = TEST_PUBLIC_BASE_URL
os.environ["AUTH_LOGIN_URL"] = TEST_AUTH_LOGIN_URL
os.environ["ANALYSIS_LIMIT"] = "5"
os.environ.pop("ADMIN_USERNAMES", None)
os.environ.pop("MCP_URL", None)


@pytest.fixture
def client() -> TestClient:
    """FastAPI test client."""
    from app.main import app

    return TestClient(app)


@pytest.fixture
def db() -> Session:
    """Session on a fresh in-memory database with the analyses table created."""
    import app.models  # noqa: F401
    from app.db.session import Base

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def store(db: Session):
    from app.services.analysis_store import AnalysisStore

    return AnalysisStore(db)


@pytest.fixture
def client_with_db(db: Session) -> TestClient:
    """TestClient with get_db overridden to use the test db session."""
    from app.db.session import get_db
    from app.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    c = TestClient(app, follow_redirects=False)
    yield c
    app.dependency_overrides.pop(get_db, None)
    c.cookies.clear()


@pytest.fixture
def provider() -> MagicMock:
    """Research provider double; submissions return sequential run ids."""
    from app.research.provider import ResearchProvider

    mock = MagicMock(spec=ResearchProvider)
    mock.create_task_run = AsyncMock(side_effect=[f"run_{i}" for i in range(1, 50)])
    mock.get_task_run_result = AsyncMock()
    return mock


@pytest.fixture(autouse=True)
def _reset_caches() -> None:
    """Settings and the research provider are cached per process; start each test clean."""
    from app.config import get_settings
    from app.research.router import clear_provider_cache

    get_settings.cache_clear()
    clear_provider_cache()
    yield
    get_settings.cache_clear()
    clear_provider_cache()
