"""
championpool.services.account_service — Signup, Login & Logout
===============================================================

Input validation happens before any storage access.  Password hashing and
verification are CPU-bound and run outside the database transaction so no
connection is held while argon2 works.

Login failures keep their internal reason (:class:`UserDoesNotExist` vs
:class:`WrongPassword`) for logging; both render the same public
"Invalid credentials" message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError

from championpool.auth.gate import RequestIdentity
from championpool.auth.passwords import CredentialStore
from championpool.auth.sessions import AuthenticatedUser, SessionManager, SessionToken
from championpool.constants import PASSWORD_MAX_LENGTH, is_valid_username
from championpool.database.engine import transaction
from championpool.database.models import User
from championpool.engine.pool import as_utc
from championpool.errors import (
    InvalidName,
    InvalidPassword,
    NameExists,
    UserDoesNotExist,
    WrongPassword,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AccountSummary:
    id: int
    name: str
    points: int
    can_get_points_time: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "points": self.points,
            "can_get_points_time": self.can_get_points_time.isoformat(),
        }


def validate_signup(name: str, password: str) -> None:
    if not is_valid_username(name):
        raise InvalidName(f"invalid user name {name!r}")
    if not password or len(password) > PASSWORD_MAX_LENGTH:
        raise InvalidPassword("password must be 1-%d characters" % PASSWORD_MAX_LENGTH)


def signup(
    engine: Engine,
    credentials: CredentialStore,
    sessions: SessionManager,
    name: str,
    password: str,
    *,
    now: datetime | None = None,
) -> tuple[AuthenticatedUser, SessionToken]:
    """Create an account and open its first session."""
    validate_signup(name, password)
    now = now or datetime.now(UTC)
    password_hash = credentials.hash(password)

    with transaction(engine) as session:
        user = User(
            name=name,
            password_hash=password_hash,
            points=0,
            can_get_points_time=now,
        )
        session.add(user)
        try:
            session.flush()
        except IntegrityError as exc:
            raise NameExists(f"user name {name!r} is taken") from exc
        token = sessions.issue_in(session, user.id, now=now)
        identity = AuthenticatedUser(id=user.id, name=user.name)

    logger.info("New user signed up: %s (id=%d)", identity.name, identity.id)
    return identity, token


def login(
    engine: Engine,
    credentials: CredentialStore,
    sessions: SessionManager,
    name: str,
    password: str,
    *,
    now: datetime | None = None,
) -> tuple[AuthenticatedUser, SessionToken]:
    """Verify a password and open a new session."""
    if not is_valid_username(name):
        logger.info("Login failed for %r: user does not exist", name)
        raise UserDoesNotExist(name)

    with transaction(engine) as session:
        row = session.execute(
            select(User.id, User.name, User.password_hash).where(User.name == name)
        ).first()
    if row is None:
        logger.info("Login failed for %r: user does not exist", name)
        raise UserDoesNotExist(name)

    if not credentials.verify(password, row.password_hash):
        logger.info("Login failed for %r: wrong password", name)
        raise WrongPassword(name)

    new_hash = credentials.hash(password) if credentials.needs_rehash(row.password_hash) else None

    with transaction(engine) as session:
        if new_hash is not None:
            user = session.get(User, row.id)
            if user is not None:
                user.password_hash = new_hash
                logger.info("Upgraded password hash for user %d", row.id)
        token = sessions.issue_in(session, row.id, now=now)

    logger.info("User %s (id=%d) logged in", row.name, row.id)
    return AuthenticatedUser(id=row.id, name=row.name), token


def logout(sessions: SessionManager, identity: RequestIdentity) -> None:
    """Revoke the request's session, if it has one.  Always succeeds."""
    if identity.token is not None:
        sessions.revoke(identity.token)


def get_account(engine: Engine, user_id: int) -> AccountSummary:
    with transaction(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            raise UserDoesNotExist(f"user {user_id} not found")
        return AccountSummary(
            id=user.id,
            name=user.name,
            points=user.points,
            can_get_points_time=as_utc(user.can_get_points_time),
        )
