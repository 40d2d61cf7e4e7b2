"""
championpool.database.models — SQLAlchemy 2.0 Data Models
==========================================================

Tables:
- users        — Accounts with password hash, point balance and cooldown
- sessions     — Opaque session tokens (raw 16 bytes) → user id
- teams        — Champion groupings
- champions    — Non-user entities that receive assigned points
- points_pool  — Singleton row: shared pool balance + reopen instant
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from championpool.constants import SESSION_TOKEN_BYTES, USERNAME_MAX_LENGTH


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all ChampionPool ORM models."""


# ---------------------------------------------------------------------------
# Users: one row per account, also the per-user ledger
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(
        String(USERNAME_MAX_LENGTH), nullable=False, unique=True
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    can_get_points_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    sessions: Mapped[list[UserSession]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_users_points_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} name={self.name!r} points={self.points}>"


# ---------------------------------------------------------------------------
# Sessions: opaque token → user
# ---------------------------------------------------------------------------
class UserSession(Base):
    __tablename__ = "sessions"

    session_token: Mapped[bytes] = mapped_column(
        LargeBinary(SESSION_TOKEN_BYTES), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    user: Mapped[User] = relationship(back_populates="sessions")

    __table_args__ = (
        Index("ix_sessions_user_id", "user_id"),
        Index("ix_sessions_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<UserSession user={self.user_id} expires={self.expires_at}>"


# ---------------------------------------------------------------------------
# Teams & champions
# ---------------------------------------------------------------------------
class Team(Base):
    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    champions: Mapped[list[Champion]] = relationship(back_populates="team")

    def __repr__(self) -> str:
        return f"<Team id={self.id} name={self.name!r}>"


class Champion(Base):
    __tablename__ = "champions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    team_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    team: Mapped[Team] = relationship(back_populates="champions")

    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_champions_points_non_negative"),
        Index("ix_champions_team_id", "team_id"),
    )

    def __repr__(self) -> str:
        return f"<Champion id={self.id} name={self.name!r} points={self.points}>"


# ---------------------------------------------------------------------------
# PointsPool: shared, time-gated pool (single row, id = 1)
# ---------------------------------------------------------------------------
class PointsPool(Base):
    """The single source of points granted by collect.

    ``points`` only decreases through collect and only increases through the
    refill written by the collect that drains it.  ``open_at`` is the
    earliest instant the pool may be drawn from.
    """
    __tablename__ = "points_pool"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    open_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_points_pool_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<PointsPool points={self.points} open_at={self.open_at}>"
