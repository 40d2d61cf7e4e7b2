"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import NullPool, StaticPool

from championpool.auth.passwords import CredentialStore
from championpool.auth.sessions import SessionManager
from championpool.config import PoolConfig
from championpool.database.models import Base
from championpool.services.pool_allocator import PoolAllocator


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with all ChampionPool tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in ``run_db``).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def file_engine(tmp_path) -> Engine:
    """File-backed SQLite engine, one connection per session.

    Separate connections contend on the database lock the same way
    separate API workers would.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'championpool.db'}",
        echo=False,
        connect_args={"check_same_thread": False, "timeout": 10},
        poolclass=NullPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def test_config() -> PoolConfig:
    """Production values with cheap argon2 parameters."""
    return PoolConfig(argon2_time_cost=1, argon2_memory_cost=1024)


@pytest.fixture
def credentials(test_config) -> CredentialStore:
    return CredentialStore(
        time_cost=test_config.argon2_time_cost,
        memory_cost=test_config.argon2_memory_cost,
    )


@pytest.fixture
def sessions(db_engine, test_config) -> SessionManager:
    return SessionManager(db_engine, max_age=test_config.session_max_age)


@pytest.fixture
def allocator(db_engine, test_config) -> PoolAllocator:
    return PoolAllocator.from_config(db_engine, test_config)


@pytest.fixture
def client(db_engine, test_config):
    """FastAPI TestClient wired to the in-memory engine and test config."""
    from fastapi.testclient import TestClient

    from championpool.api.deps import get_config, get_engine
    from championpool.api.main import app
    from championpool.database.seed import ensure_pool_row

    ensure_pool_row(db_engine, capacity=test_config.pool_capacity)
    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: test_config
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
