"""
championpool.engine.pool — Pool & Cooldown State Machine
=========================================================

Pure calculation helpers.  No DB I/O inside the engine; the allocator in
:mod:`championpool.services.pool_allocator` applies these rules inside one
transaction.

Pool phases::

    OPEN    points > 0 and now >= open_at   → a collect takes one point
    CLOSED  now < open_at                   → every collect fails PoolClosed

The collect that takes the last point (remaining <= 0) refills the pool to
capacity in the same transaction but moves ``open_at`` forward by the refill
delay, so the new points only become collectable once the delay has passed.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta


class PoolPhase(enum.StrEnum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class PoolState:
    """Snapshot of the ``points_pool`` row."""

    points: int
    open_at: datetime

    def phase(self, now: datetime) -> PoolPhase:
        if self.points > 0 and now >= self.open_at:
            return PoolPhase.OPEN
        return PoolPhase.CLOSED

    def is_open(self, now: datetime) -> bool:
        return self.phase(now) is PoolPhase.OPEN


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def should_refill(remaining: int) -> bool:
    """True when a decrement left the pool drained."""
    return remaining <= 0


def refilled(now: datetime, *, capacity: int, refill_delay: timedelta) -> PoolState:
    """State written by the collect that drains the pool."""
    return PoolState(points=capacity, open_at=now + refill_delay)


def cooldown_ready(can_get_points_time: datetime, now: datetime) -> bool:
    return now >= as_utc(can_get_points_time)


def next_collect_time(now: datetime, cooldown: timedelta) -> datetime:
    return now + cooldown
