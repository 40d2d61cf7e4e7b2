"""
championpool.services.ledger — Per-User Points Ledger
======================================================

Balance and cooldown live on the ``users`` row.  Every function here takes
an open :class:`Session` and runs inside the caller's transaction, so a
credit can be committed (or rolled back) together with the pool debit it
is paired with.  :func:`transfer` is the one helper that opens its own
transaction.

All balance changes are single conditional ``UPDATE`` statements rather
than read-modify-write, so concurrent writers cannot lose updates and a
balance can never go negative.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import Engine, select, update
from sqlalchemy.orm import Session

from championpool.database.engine import transaction
from championpool.database.models import Champion, User
from championpool.engine.pool import as_utc, next_collect_time
from championpool.errors import (
    ChampionNotFound,
    InsufficientFunds,
    TooSoon,
    UserDoesNotExist,
)

logger = logging.getLogger(__name__)


def _require_positive(delta: int) -> None:
    if delta <= 0:
        raise ValueError(f"delta must be positive, got {delta}")


def get_balance(session: Session, user_id: int) -> int:
    balance = session.scalar(select(User.points).where(User.id == user_id))
    if balance is None:
        raise UserDoesNotExist(f"user {user_id} not found")
    return balance


def get_cooldown(session: Session, user_id: int, *, for_update: bool = False) -> datetime:
    """Earliest instant *user_id* may collect again.

    ``for_update`` locks the user row until the transaction ends, which
    serializes duplicate collect requests from the same user.
    """
    stmt = select(User.can_get_points_time).where(User.id == user_id)
    if for_update:
        stmt = stmt.with_for_update()
    ready_at = session.scalar(stmt)
    if ready_at is None:
        raise UserDoesNotExist(f"user {user_id} not found")
    return as_utc(ready_at)


def credit(
    session: Session,
    user_id: int,
    delta: int,
    *,
    now: datetime,
    cooldown: timedelta,
    require_ready: bool = False,
) -> int:
    """Add *delta* points and push the user's cooldown to ``now + cooldown``.

    With ``require_ready`` the write only applies when the current cooldown
    has elapsed at *now*; otherwise :class:`TooSoon` is raised.  The check
    and the write are one statement, so duplicate requests cannot both pass.

    Returns the new balance.
    """
    _require_positive(delta)
    stmt = update(User).where(User.id == user_id)
    if require_ready:
        stmt = stmt.where(User.can_get_points_time <= now)
    result = session.execute(
        stmt.values(
            points=User.points + delta,
            can_get_points_time=next_collect_time(now, cooldown),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise TooSoon(get_cooldown(session, user_id))
    return get_balance(session, user_id)


def debit(session: Session, user_id: int, delta: int) -> int:
    """Remove *delta* points.  Raises :class:`InsufficientFunds` untouched
    when the balance would go negative.  Returns the new balance.
    """
    _require_positive(delta)
    result = session.execute(
        update(User)
        .where(User.id == user_id, User.points >= delta)
        .values(points=User.points - delta)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        balance = get_balance(session, user_id)
        raise InsufficientFunds(f"user {user_id} has {balance}, needs {delta}")
    return get_balance(session, user_id)


def credit_champion(session: Session, champion_id: int, delta: int) -> int:
    """Add *delta* points to a champion.  Returns the champion's new total."""
    _require_positive(delta)
    result = session.execute(
        update(Champion)
        .where(Champion.id == champion_id)
        .values(points=Champion.points + delta)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ChampionNotFound(f"champion {champion_id} not found")
    return session.scalar(select(Champion.points).where(Champion.id == champion_id))


def transfer(engine: Engine, from_user_id: int, to_champion_id: int, delta: int) -> int:
    """Move *delta* points from a user to a champion, all or nothing.

    Returns the champion's new total.
    """
    with transaction(engine) as session:
        balance = debit(session, from_user_id, delta)
        champion_points = credit_champion(session, to_champion_id, delta)
    logger.info(
        "User %d assigned %d point(s) to champion %d (user balance %d, champion %d)",
        from_user_id, delta, to_champion_id, balance, champion_points,
    )
    return champion_points
