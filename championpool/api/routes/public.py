"""
championpool.api.routes.public — Read-only public endpoints
============================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import Engine

from championpool.api.deps import get_engine
from championpool.database.engine import run_db
from championpool.services import roster_service

router = APIRouter(tags=["public"])


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/teams")
async def get_teams(engine: Engine = Depends(get_engine)):
    return await run_db(roster_service.list_teams, engine)


@router.get("/champions")
async def get_champions(
    team_id: int | None = Query(None),
    engine: Engine = Depends(get_engine),
):
    """All champions with their point totals, optionally for one team."""
    return await run_db(roster_service.list_champions, engine, team_id=team_id)
