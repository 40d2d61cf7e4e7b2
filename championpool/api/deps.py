"""
championpool.api.deps — FastAPI dependency injection
=====================================================

Identity is resolved by :func:`get_identity` once per request (FastAPI
caches a dependency's value for the lifetime of the request) and
handed to handlers as an immutable :class:`RequestIdentity`.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy import Engine

from championpool.auth.gate import AuthGate, RequestIdentity
from championpool.auth.passwords import CredentialStore
from championpool.auth.sessions import AuthenticatedUser, SessionManager
from championpool.config import PoolConfig, load_config
from championpool.database.engine import create_db_engine, run_db
from championpool.services.pool_allocator import PoolAllocator


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> PoolConfig:
    return load_config(os.getenv("CHAMPIONPOOL_CONFIG", "config.yaml"))


@lru_cache(maxsize=4)
def _credential_store(time_cost: int, memory_cost: int) -> CredentialStore:
    return CredentialStore(time_cost=time_cost, memory_cost=memory_cost)


def get_credentials(cfg: Annotated[PoolConfig, Depends(get_config)]) -> CredentialStore:
    return _credential_store(cfg.argon2_time_cost, cfg.argon2_memory_cost)


def get_session_manager(
    engine: Annotated[Engine, Depends(get_engine)],
    cfg: Annotated[PoolConfig, Depends(get_config)],
) -> SessionManager:
    return SessionManager(engine, max_age=cfg.session_max_age)


def get_auth_gate(
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    cfg: Annotated[PoolConfig, Depends(get_config)],
) -> AuthGate:
    return AuthGate(sessions, cfg.session_cookie_name)


def get_allocator(
    engine: Annotated[Engine, Depends(get_engine)],
    cfg: Annotated[PoolConfig, Depends(get_config)],
) -> PoolAllocator:
    return PoolAllocator.from_config(engine, cfg)


async def get_identity(
    request: Request,
    gate: Annotated[AuthGate, Depends(get_auth_gate)],
) -> RequestIdentity:
    """Resolve the session cookie.  Anonymous requests are not rejected here."""
    return await run_db(gate.identify, request.headers.getlist("cookie"))


async def require_user(
    identity: Annotated[RequestIdentity, Depends(get_identity)],
) -> AuthenticatedUser:
    """Raises :class:`~championpool.errors.Unauthenticated` (401) when anonymous."""
    return identity.require_user()
