"""
tests/test_pool_allocator.py — Collect & Assign
================================================

Single-threaded behaviour runs on the in-memory engine; the race tests use
a file-backed SQLite database so every worker has its own connection.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest
from factories import (
    NOW,
    champion_points,
    make_champion,
    make_user,
    pool_row,
    set_pool,
    user_row,
)

from championpool.errors import (
    ChampionNotFound,
    ConsistencyError,
    InsufficientFunds,
    PoolClosed,
    TooSoon,
    UserDoesNotExist,
)
from championpool.services.pool_allocator import CollectResult, PoolAllocator

CAPACITY = 200
REFILL = timedelta(hours=2)
COOLDOWN = timedelta(seconds=12)


def _allocator(engine) -> PoolAllocator:
    return PoolAllocator(engine, capacity=CAPACITY, refill_delay=REFILL, cooldown=COOLDOWN)


# ---------------------------------------------------------------------------
# Collect
# ---------------------------------------------------------------------------
class TestCollect:
    def test_collect_moves_one_point(self, db_engine):
        user_id = make_user(db_engine)
        set_pool(db_engine, points=10, open_at=NOW - timedelta(hours=1))

        result = _allocator(db_engine).collect(user_id, now=NOW)

        assert result == CollectResult(
            balance=1, next_collect_at=NOW + COOLDOWN, pool_points=9, refilled=False
        )
        assert user_row(db_engine, user_id) == (1, NOW + COOLDOWN)
        assert pool_row(db_engine)[0] == 9

    def test_second_collect_within_cooldown(self, db_engine):
        user_id = make_user(db_engine)
        set_pool(db_engine, points=10, open_at=NOW - timedelta(hours=1))
        allocator = _allocator(db_engine)
        allocator.collect(user_id, now=NOW)

        with pytest.raises(TooSoon) as exc_info:
            allocator.collect(user_id, now=NOW + timedelta(seconds=11))

        assert exc_info.value.next_eligible == NOW + COOLDOWN
        assert user_row(db_engine, user_id)[0] == 1
        assert pool_row(db_engine)[0] == 9

    def test_collect_again_after_cooldown(self, db_engine):
        user_id = make_user(db_engine)
        set_pool(db_engine, points=10, open_at=NOW - timedelta(hours=1))
        allocator = _allocator(db_engine)
        allocator.collect(user_id, now=NOW)
        result = allocator.collect(user_id, now=NOW + COOLDOWN)
        assert result.balance == 2
        assert pool_row(db_engine)[0] == 8

    def test_pool_not_open_yet(self, db_engine):
        user_id = make_user(db_engine)
        open_at = NOW + timedelta(minutes=30)
        set_pool(db_engine, points=CAPACITY, open_at=open_at)

        with pytest.raises(PoolClosed) as exc_info:
            _allocator(db_engine).collect(user_id, now=NOW)

        assert exc_info.value.open_at == open_at
        assert exc_info.value.retry_at == open_at
        assert user_row(db_engine, user_id)[0] == 0
        assert pool_row(db_engine) == (CAPACITY, open_at)

    def test_missing_pool_row(self, db_engine):
        user_id = make_user(db_engine)
        with pytest.raises(PoolClosed) as exc_info:
            _allocator(db_engine).collect(user_id, now=NOW)
        assert exc_info.value.open_at is None

    def test_unknown_user(self, db_engine):
        set_pool(db_engine, points=10, open_at=NOW - timedelta(hours=1))
        with pytest.raises(UserDoesNotExist):
            _allocator(db_engine).collect(999, now=NOW)
        assert pool_row(db_engine)[0] == 10

    def test_last_point_refills_and_closes(self, db_engine):
        user_id = make_user(db_engine)
        other_id = make_user(db_engine, "bob")
        set_pool(db_engine, points=1, open_at=NOW - timedelta(hours=1))
        allocator = _allocator(db_engine)

        result = allocator.collect(user_id, now=NOW)

        assert result.refilled is True
        assert result.pool_points == CAPACITY
        assert result.balance == 1
        assert pool_row(db_engine) == (CAPACITY, NOW + REFILL)

        with pytest.raises(PoolClosed):
            allocator.collect(other_id, now=NOW + timedelta(minutes=1))
        assert allocator.collect(other_id, now=NOW + REFILL).balance == 1

    def test_pool_state(self, db_engine):
        set_pool(db_engine, points=7, open_at=NOW)
        state = _allocator(db_engine).pool_state()
        assert state.points == 7
        assert state.open_at == NOW
        assert state.is_open(NOW)

    def test_from_config(self, db_engine, test_config):
        allocator = PoolAllocator.from_config(db_engine, test_config)
        assert allocator.capacity == test_config.pool_capacity
        assert allocator.refill_delay == test_config.refill_delay
        assert allocator.cooldown == test_config.collect_cooldown


# ---------------------------------------------------------------------------
# Assign
# ---------------------------------------------------------------------------
class TestAssign:
    def test_assign_one_point(self, db_engine):
        user_id = make_user(db_engine, points=2)
        champion_id = make_champion(db_engine)
        assert _allocator(db_engine).assign(user_id, champion_id) == 1
        assert user_row(db_engine, user_id)[0] == 1

    def test_assign_without_points(self, db_engine):
        user_id = make_user(db_engine)
        champion_id = make_champion(db_engine)
        with pytest.raises(InsufficientFunds):
            _allocator(db_engine).assign(user_id, champion_id)
        assert champion_points(db_engine, champion_id) == 0

    def test_assign_unknown_champion(self, db_engine):
        user_id = make_user(db_engine, points=1)
        with pytest.raises(ChampionNotFound):
            _allocator(db_engine).assign(user_id, 12345)
        assert user_row(db_engine, user_id)[0] == 1

    def test_assign_does_not_touch_pool(self, db_engine):
        user_id = make_user(db_engine, points=1)
        champion_id = make_champion(db_engine)
        set_pool(db_engine, points=5, open_at=NOW)
        _allocator(db_engine).assign(user_id, champion_id)
        assert pool_row(db_engine)[0] == 5


# ---------------------------------------------------------------------------
# Races
# ---------------------------------------------------------------------------
def _race(calls):
    """Run *calls* at the same instant; return (results, errors)."""
    barrier = threading.Barrier(len(calls))

    def run(call):
        barrier.wait()
        try:
            return call(), None
        except Exception as exc:  # collected for assertions
            return None, exc

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        outcomes = list(pool.map(run, calls))
    results = [r for r, _ in outcomes if r is not None]
    errors = [e for _, e in outcomes if e is not None]
    return results, errors


class TestRaces:
    def test_two_users_race_for_last_point(self, file_engine):
        alice = make_user(file_engine, "alice")
        bob = make_user(file_engine, "bob")
        set_pool(file_engine, points=1, open_at=NOW - timedelta(hours=1))
        allocator = _allocator(file_engine)

        results, errors = _race([
            lambda: allocator.collect(alice, now=NOW),
            lambda: allocator.collect(bob, now=NOW),
        ])

        assert len(results) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], (PoolClosed, ConsistencyError))
        assert results[0].refilled is True
        assert pool_row(file_engine) == (CAPACITY, NOW + REFILL)
        balances = sorted(user_row(file_engine, uid)[0] for uid in (alice, bob))
        assert balances == [0, 1]

    def test_duplicate_collect_from_one_user(self, file_engine):
        alice = make_user(file_engine, "alice")
        set_pool(file_engine, points=50, open_at=NOW - timedelta(hours=1))
        allocator = _allocator(file_engine)

        results, errors = _race([lambda: allocator.collect(alice, now=NOW)] * 2)

        assert len(results) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], (TooSoon, ConsistencyError))
        assert user_row(file_engine, alice)[0] == 1
        assert pool_row(file_engine)[0] == 49

    def test_many_users_never_overdraw(self, file_engine):
        users = [make_user(file_engine, f"user-{i}") for i in range(6)]
        set_pool(file_engine, points=3, open_at=NOW - timedelta(hours=1))
        allocator = _allocator(file_engine)

        results, errors = _race([
            (lambda uid=uid: allocator.collect(uid, now=NOW)) for uid in users
        ])

        assert len(results) <= 3
        assert all(isinstance(e, (PoolClosed, ConsistencyError)) for e in errors)
        granted = sum(user_row(file_engine, uid)[0] for uid in users)
        assert granted == len(results)
        points, open_at = pool_row(file_engine)
        if len(results) == 3:
            assert (points, open_at) == (CAPACITY, NOW + REFILL)
        else:
            assert points == 3 - len(results)

    def test_concurrent_assigns_to_one_champion(self, file_engine):
        users = [make_user(file_engine, f"fan-{i}", points=3) for i in range(8)]
        champion_id = make_champion(file_engine)
        allocator = _allocator(file_engine)

        results, errors = _race([
            (lambda uid=uid: allocator.assign(uid, champion_id)) for uid in users
        ])

        assert all(isinstance(e, ConsistencyError) for e in errors)
        debited = sum(3 - user_row(file_engine, uid)[0] for uid in users)
        assert debited == champion_points(file_engine, champion_id) == len(results)
        assert all(user_row(file_engine, uid)[0] >= 2 for uid in users)
