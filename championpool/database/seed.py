"""
championpool.database.seed — Pool Row & Roster Seeder
======================================================

Baseline data inserted on startup so the service is immediately usable.

Idempotent: the pool row is only inserted when missing (an existing row,
and therefore the live pool balance, is never overwritten) and roster
entries are only added when their names are not present yet.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import Engine, select

from championpool.constants import POOL_ROW_ID
from championpool.database.engine import get_session
from championpool.database.models import Champion, PointsPool, Team

logger = logging.getLogger(__name__)


def ensure_pool_row(engine: Engine, *, capacity: int) -> bool:
    """Insert the singleton ``points_pool`` row, open immediately.

    Returns True when a row was inserted.
    """
    with get_session(engine) as session:
        if session.get(PointsPool, POOL_ROW_ID) is not None:
            return False
        session.add(PointsPool(
            id=POOL_ROW_ID,
            points=capacity,
            open_at=datetime.now(UTC),
        ))
    logger.info("Seeded points pool with %d points", capacity)
    return True


def seed_roster(engine: Engine, roster: dict[str, list[str]]) -> int:
    """Create teams and their champions from ``{team_name: [champion, ...]}``.

    Returns the number of champions inserted.
    """
    inserted = 0
    with get_session(engine) as session:
        for team_name, champion_names in roster.items():
            team = session.scalar(select(Team).where(Team.name == team_name))
            if team is None:
                team = Team(name=team_name)
                session.add(team)
                session.flush()

            existing = set(session.scalars(
                select(Champion.name).where(Champion.team_id == team.id)
            ).all())
            for name in champion_names:
                if name in existing:
                    continue
                session.add(Champion(team_id=team.id, name=name, points=0))
                existing.add(name)
                inserted += 1

    if inserted:
        logger.info("Seeded %d champions across %d teams", inserted, len(roster))
    return inserted
