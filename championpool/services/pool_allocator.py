"""
championpool.services.pool_allocator — Shared Pool Allocation
==============================================================

``collect`` is the only way points enter the economy.  Each call is one
transaction:

  1. Lock the caller's row and check the cooldown      → ``TooSoon``
  2. Take one point from the pool where ``open_at <= now`` → ``PoolClosed``
  3. If that was the last point, refill to capacity and push ``open_at``
     forward by the refill delay (same transaction)
  4. Credit the caller by one and advance their cooldown; the credit is
     conditional on the cooldown still being elapsed, so a duplicate request
     that slipped past step 1 fails ``TooSoon`` here
  5. Commit, or roll everything back on any failure

Step 2 is a single conditional ``UPDATE``.  The database serializes
concurrent writers on the pool row, so two collectors racing for the last
point cannot both succeed: the loser either sees the refilled, closed pool
(``PoolClosed``) or is rejected by the database (``ConsistencyError``).

``assign`` never touches the pool; it moves one point from the caller to a
champion through :func:`championpool.services.ledger.transfer`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy import Engine, select, update
from sqlalchemy.orm import Session

from championpool.config import PoolConfig
from championpool.constants import POOL_ROW_ID
from championpool.database.engine import transaction
from championpool.database.models import PointsPool
from championpool.engine.pool import (
    PoolState,
    as_utc,
    cooldown_ready,
    next_collect_time,
    refilled,
    should_refill,
)
from championpool.errors import PoolClosed, TooSoon
from championpool.services import ledger

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CollectResult:
    """Outcome of a successful collect."""

    balance: int
    next_collect_at: datetime
    pool_points: int
    refilled: bool = False


class PoolAllocator:
    """Grants points from the shared pool and routes assignments."""

    def __init__(
        self,
        engine: Engine,
        *,
        capacity: int,
        refill_delay: timedelta,
        cooldown: timedelta,
    ) -> None:
        self._engine = engine
        self.capacity = capacity
        self.refill_delay = refill_delay
        self.cooldown = cooldown

    @classmethod
    def from_config(cls, engine: Engine, cfg: PoolConfig) -> PoolAllocator:
        return cls(
            engine,
            capacity=cfg.pool_capacity,
            refill_delay=cfg.refill_delay,
            cooldown=cfg.collect_cooldown,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def pool_state(self) -> PoolState:
        """Current snapshot of the pool row."""
        with transaction(self._engine) as session:
            row = session.get(PointsPool, POOL_ROW_ID)
            if row is None:
                raise PoolClosed()
            return PoolState(points=row.points, open_at=as_utc(row.open_at))

    # ------------------------------------------------------------------
    # Collect
    # ------------------------------------------------------------------
    def _take_point(self, session: Session, now: datetime) -> tuple[int, bool]:
        """Decrement the pool by one.  Returns (points left, refilled)."""
        result = session.execute(
            update(PointsPool)
            .where(
                PointsPool.id == POOL_ROW_ID,
                PointsPool.open_at <= now,
                PointsPool.points > 0,
            )
            .values(points=PointsPool.points - 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            open_at = session.scalar(
                select(PointsPool.open_at).where(PointsPool.id == POOL_ROW_ID)
            )
            reopens = as_utc(open_at) if open_at is not None else None
            raise PoolClosed(reopens if reopens and reopens > now else None)

        remaining = session.scalar(
            select(PointsPool.points).where(PointsPool.id == POOL_ROW_ID)
        )
        if not should_refill(remaining):
            return remaining, False

        nxt = refilled(now, capacity=self.capacity, refill_delay=self.refill_delay)
        session.execute(
            update(PointsPool)
            .where(PointsPool.id == POOL_ROW_ID)
            .values(points=nxt.points, open_at=nxt.open_at)
            .execution_options(synchronize_session=False)
        )
        logger.info(
            "Pool drained: refilled to %d points, reopens at %s",
            nxt.points, nxt.open_at.isoformat(),
        )
        return nxt.points, True

    def collect(self, user_id: int, *, now: datetime | None = None) -> CollectResult:
        """Grant one point from the pool to *user_id*.

        Raises
        ------
        TooSoon
            The user's cooldown has not elapsed.  Nothing is written.
        PoolClosed
            The pool is waiting for its refill delay.  Nothing is written.
        ConsistencyError
            The database rejected a concurrent update; retry immediately.
        """
        now = now or datetime.now(UTC)
        with transaction(self._engine) as session:
            ready_at = ledger.get_cooldown(session, user_id, for_update=True)
            if not cooldown_ready(ready_at, now):
                raise TooSoon(ready_at)

            pool_points, was_refilled = self._take_point(session, now)
            balance = ledger.credit(
                session, user_id, 1, now=now, cooldown=self.cooldown, require_ready=True
            )

        logger.debug("User %d collected a point (balance %d)", user_id, balance)
        return CollectResult(
            balance=balance,
            next_collect_at=next_collect_time(now, self.cooldown),
            pool_points=pool_points,
            refilled=was_refilled,
        )

    # ------------------------------------------------------------------
    # Assign
    # ------------------------------------------------------------------
    def assign(self, from_user_id: int, champion_id: int) -> int:
        """Move one point from the user to a champion.  Returns the champion total."""
        return ledger.transfer(self._engine, from_user_id, champion_id, 1)
