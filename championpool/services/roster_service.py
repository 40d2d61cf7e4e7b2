"""
championpool.services.roster_service — Teams & Champions
=========================================================

Read-side listings for the public endpoints plus the small set of writes
used by the CLI to manage the roster.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError

from championpool.database.engine import transaction
from championpool.database.models import Champion, Team
from championpool.errors import ValidationError

logger = logging.getLogger(__name__)


def list_teams(engine: Engine) -> list[dict]:
    with transaction(engine) as session:
        rows = session.scalars(select(Team).order_by(Team.id)).all()
        return [{"id": t.id, "name": t.name} for t in rows]


def list_champions(engine: Engine, *, team_id: int | None = None) -> list[dict]:
    """Every champion (optionally one team's), with current point totals."""
    stmt = select(Champion).order_by(Champion.id)
    if team_id is not None:
        stmt = stmt.where(Champion.team_id == team_id)
    with transaction(engine) as session:
        rows = session.scalars(stmt).all()
        return [
            {"id": c.id, "team_id": c.team_id, "name": c.name, "points": c.points}
            for c in rows
        ]


def create_team(engine: Engine, name: str) -> int:
    name = name.strip()
    if not name:
        raise ValidationError("team name must not be empty")
    with transaction(engine) as session:
        team = Team(name=name)
        session.add(team)
        try:
            session.flush()
        except IntegrityError as exc:
            raise ValidationError(f"team {name!r} already exists") from exc
        team_id = team.id
    logger.info("Created team %s (id=%d)", name, team_id)
    return team_id


def create_champion(engine: Engine, team_id: int, name: str) -> int:
    name = name.strip()
    if not name:
        raise ValidationError("champion name must not be empty")
    with transaction(engine) as session:
        if session.get(Team, team_id) is None:
            raise ValidationError(f"team {team_id} does not exist")
        champion = Champion(team_id=team_id, name=name, points=0)
        session.add(champion)
        session.flush()
        champion_id = champion.id
    logger.info("Created champion %s (id=%d) on team %d", name, champion_id, team_id)
    return champion_id
