"""
championpool.auth.sessions — Session Tokens & SessionManager
=============================================================

A session token is 128 random bits.  Server-side it is stored as 16 raw
bytes (little-endian) keyed to a user id; client-side it travels as the
decimal string of the same unsigned integer inside the session cookie.

Expiry policy: absolute.  Each session row carries ``expires_at`` set at
issue time to ``now + session_max_age``, the same lifetime the cookie's
``Max-Age`` advertises.  :meth:`SessionManager.resolve` ignores expired rows
and never writes; :meth:`SessionManager.purge_expired` removes them.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from sqlalchemy import Engine, delete, select
from sqlalchemy.orm import Session

from championpool.constants import SESSION_TOKEN_BYTES
from championpool.database.engine import transaction
from championpool.database.models import User, UserSession

logger = logging.getLogger(__name__)

_TOKEN_LIMIT = 1 << (8 * SESSION_TOKEN_BYTES)
_MAX_COOKIE_DIGITS = len(str(_TOKEN_LIMIT))

TokenSource = Callable[[int], bytes]


# ---------------------------------------------------------------------------
# SessionToken
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class SessionToken:
    """Opaque 128-bit session identifier."""

    value: int = field(repr=False)

    def __post_init__(self) -> None:
        if not 0 <= self.value < _TOKEN_LIMIT:
            raise ValueError("session token out of range")

    @classmethod
    def generate(cls, token_bytes: TokenSource = secrets.token_bytes) -> SessionToken:
        raw = token_bytes(SESSION_TOKEN_BYTES)
        if len(raw) != SESSION_TOKEN_BYTES:
            raise ValueError(f"token source returned {len(raw)} bytes")
        return cls.from_bytes(raw)

    @classmethod
    def from_bytes(cls, raw: bytes) -> SessionToken:
        return cls(int.from_bytes(raw, "little"))

    def to_bytes(self) -> bytes:
        return self.value.to_bytes(SESSION_TOKEN_BYTES, "little")

    def to_cookie_value(self) -> str:
        return str(self.value)

    @classmethod
    def parse(cls, text: str) -> SessionToken:
        """Inverse of :meth:`to_cookie_value`.  Raises ``ValueError``."""
        if (
            not text
            or len(text) > _MAX_COOKIE_DIGITS
            or not text.isascii()
            or not text.isdigit()
        ):
            raise ValueError("malformed session token")
        return cls(int(text))


@dataclass(frozen=True, slots=True)
class AuthenticatedUser:
    """Identity resolved from a session.  Never carries the password hash."""

    id: int
    name: str


# ---------------------------------------------------------------------------
# SessionManager
# ---------------------------------------------------------------------------
class SessionManager:
    """Issue, resolve and revoke session tokens.

    *token_bytes* is the random source; it defaults to the OS CSPRNG.
    Pass a seeded source (``random.Random(seed).randbytes``) to make token
    sequences reproducible in tests.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        max_age: timedelta,
        token_bytes: TokenSource = secrets.token_bytes,
    ) -> None:
        self._engine = engine
        self.max_age = max_age
        self._token_bytes = token_bytes

    def issue_in(
        self, session: Session, user_id: int, *, now: datetime | None = None
    ) -> SessionToken:
        """Persist a new token inside the caller's transaction."""
        now = now or datetime.now(UTC)
        token = SessionToken.generate(self._token_bytes)
        session.add(UserSession(
            session_token=token.to_bytes(),
            user_id=user_id,
            created_at=now,
            expires_at=now + self.max_age,
        ))
        session.flush()
        return token

    def issue(self, user_id: int, *, now: datetime | None = None) -> SessionToken:
        with transaction(self._engine) as session:
            return self.issue_in(session, user_id, now=now)

    def resolve(
        self, token: SessionToken, *, now: datetime | None = None
    ) -> AuthenticatedUser | None:
        """Return the user behind *token*, or None if unknown or expired."""
        now = now or datetime.now(UTC)
        with transaction(self._engine) as session:
            row = session.execute(
                select(User.id, User.name)
                .join(UserSession, UserSession.user_id == User.id)
                .where(
                    UserSession.session_token == token.to_bytes(),
                    UserSession.expires_at > now,
                )
            ).first()
        if row is None:
            return None
        return AuthenticatedUser(id=row.id, name=row.name)

    def revoke(self, token: SessionToken) -> bool:
        """Delete the session.  Revoking an unknown token is not an error.

        Returns True when a row was removed.
        """
        with transaction(self._engine) as session:
            result = session.execute(
                delete(UserSession).where(
                    UserSession.session_token == token.to_bytes()
                )
            )
        removed = bool(result.rowcount)
        if removed:
            logger.info("Session revoked")
        return removed

    def purge_expired(self, *, now: datetime | None = None) -> int:
        """Delete every expired session.  Returns the number removed."""
        now = now or datetime.now(UTC)
        with transaction(self._engine) as session:
            result = session.execute(
                delete(UserSession).where(UserSession.expires_at <= now)
            )
        count = result.rowcount or 0
        logger.info("Purged %d expired sessions", count)
        return count
