"""
championpool.database.engine — Database Connection, Transactions & Async Helper
================================================================================

**Why this file exists:**
FastAPI handlers run on an ``asyncio`` event loop.  SQLAlchemy + psycopg is
**synchronous** — calling the DB directly from an ``async def`` handler would
block every other request until the query returns.

The bridge is the same one used throughout the service:

    1. A request arrives (async world).
    2. The handler calls ``await run_db(some_function, arg1, arg2)``.
    3. ``run_db`` ships the synchronous function to a **thread pool** via
       ``asyncio.to_thread()``.
    4. The DB work happens on a background thread inside one
       :func:`transaction` — commit on success, rollback on any failure.
    5. The result is awaited back in the handler.

Every state-changing operation (signup, collect, assign, logout) is exactly
one :func:`transaction` at SERIALIZABLE isolation, so concurrent requests are
linearized by the database rather than by an in-process lock.  That keeps
the pool correct across any number of API processes.

Usage::

    from championpool.database.engine import create_db_engine, init_db, run_db

    engine = create_db_engine()          # reads DATABASE_URL from .env
    init_db(engine, pool_capacity=200)   # CREATE TABLE IF NOT EXISTS … + pool row

    # Inside an async handler:
    balance = await run_db(allocator.collect, user_id)
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from championpool.database.models import Base
from championpool.errors import ChampionPoolError, ConsistencyError, InternalError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

# serialization_failure, deadlock_detected, lock_not_available
_CONTENTION_SQLSTATES = frozenset({"40001", "40P01", "55P03"})


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(url: str | None = None) -> Engine:
    """Build a SQLAlchemy :class:`Engine` from ``DATABASE_URL``.

    Every connection runs at ``SERIALIZABLE`` isolation.  Pool sizing:
    * ``pool_size=5`` — five persistent connections.
    * ``max_overflow=10`` — up to 10 extra connections under load.
    * ``pool_timeout=10`` — fail after 10 s if no connection is available.
    * ``pool_recycle=3600`` — recycle connections after 1 hour.

    Raises
    ------
    RuntimeError
        If no URL is given and ``DATABASE_URL`` is not set.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a valid PostgreSQL URL."
        )

    engine = create_engine(
        url,
        echo=False,        # Set True for SQL debugging
        isolation_level="SERIALIZABLE",
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_timeout=10,
        pool_recycle=3600,
    )
    logger.info("Database engine created → %s", engine.url.host)
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine, *, pool_capacity: int) -> None:
    """Create all tables and make sure the singleton pool row exists.

    Safe to call on every startup.  Schema migrations are managed outside
    this service; ``create_all`` only fills in missing tables.
    """
    Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")

    from championpool.database.seed import ensure_pool_row

    ensure_pool_row(engine, capacity=pool_capacity)


# ---------------------------------------------------------------------------
# Session helpers
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """Yield a :class:`Session` that auto-commits on success and rolls back
    on exception.

    Usage::

        with get_session(engine) as session:
            session.add(Team(name="Blue"))
            # commit happens automatically on block exit
    """
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def translate_db_error(exc: DBAPIError) -> ChampionPoolError:
    """Map a driver error onto :class:`ConsistencyError` or :class:`InternalError`."""
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _CONTENTION_SQLSTATES or "database is locked" in str(orig):
        logger.warning("Transaction conflict (sqlstate=%s): %s", sqlstate, orig)
        return ConsistencyError(str(orig))
    logger.error("Storage failure: %s", orig, exc_info=exc)
    return InternalError(str(orig))


@contextmanager
def transaction(engine: Engine) -> Iterator[Session]:
    """One atomic unit of work.

    Commits when the block exits normally.  Any exception, including
    cancellation, rolls the whole unit back so no partial write is ever
    visible.  Driver errors are re-raised as :class:`ConsistencyError`
    (retry immediately) or :class:`InternalError`.
    """
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except DBAPIError as exc:
        session.rollback()
        raise translate_db_error(exc) from exc
    except BaseException:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------
async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a **synchronous** database function on a background thread.

    Every DB call in an ``async`` handler goes through this wrapper::

        result = await run_db(my_sync_db_function, engine, user_id)

    Under the hood it calls :func:`asyncio.to_thread`, which schedules
    *func* on the default ``ThreadPoolExecutor`` so the event loop is never
    blocked.
    """
    return await asyncio.to_thread(func, *args, **kwargs)
