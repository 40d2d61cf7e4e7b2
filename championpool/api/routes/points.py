"""
championpool.api.routes.points — Collect & assign (session-protected)
======================================================================
"""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Depends

from championpool.api.deps import get_allocator, require_user
from championpool.auth.sessions import AuthenticatedUser
from championpool.database.engine import run_db
from championpool.services.pool_allocator import PoolAllocator

router = APIRouter(prefix="/points", tags=["points"])


@router.post("/collect")
async def collect(
    user: AuthenticatedUser = Depends(require_user),
    allocator: PoolAllocator = Depends(get_allocator),
):
    """Take one point from the shared pool.

    Fails 429 while the caller's cooldown runs and 503 while the pool is
    closed; both responses carry ``Retry-After``.
    """
    result = await run_db(allocator.collect, user.id)
    return {
        "points": result.balance,
        "next_collect_at": result.next_collect_at.isoformat(),
    }


@router.post("/assign/{champion_id}")
async def assign(
    champion_id: int,
    user: AuthenticatedUser = Depends(require_user),
    allocator: PoolAllocator = Depends(get_allocator),
):
    """Give one of the caller's points to a champion."""
    champion_points = await run_db(allocator.assign, user.id, champion_id)
    return {"champion_id": champion_id, "points": champion_points}


@router.get("/pool")
async def pool_status(allocator: PoolAllocator = Depends(get_allocator)):
    """Public view of the shared pool."""
    state = await run_db(allocator.pool_state)
    return {
        "points": state.points,
        "open_at": state.open_at.isoformat(),
        "is_open": state.is_open(datetime.now(UTC)),
    }
