"""
championpool.auth.gate — AuthGate
==================================

Turns the ``Cookie`` headers of an incoming request into an immutable
:class:`RequestIdentity`.  The gate resolves the session once, when the
request enters, and handlers receive the result explicitly.

The gate never rejects a request.  A missing or malformed cookie, or a
token that no longer maps to a user, simply yields an anonymous identity;
handlers that need a user call :meth:`RequestIdentity.require_user`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from championpool.auth.sessions import AuthenticatedUser, SessionManager, SessionToken
from championpool.errors import Unauthenticated

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RequestIdentity:
    """Who is making the request, resolved once per request."""

    token: SessionToken | None = field(default=None, repr=False)
    user: AuthenticatedUser | None = None

    def current_user(self) -> AuthenticatedUser | None:
        return self.user

    def require_user(self) -> AuthenticatedUser:
        """Return the user or raise :class:`Unauthenticated`."""
        if self.user is None:
            raise Unauthenticated()
        return self.user


ANONYMOUS = RequestIdentity()


def find_cookie(cookie_headers: Iterable[str], cookie_name: str) -> str | None:
    """Value of the first cookie called *cookie_name* across all headers.

    ``request.cookies`` keeps the last duplicate, so the raw headers are
    walked in order instead.
    """
    for header in cookie_headers:
        for pair in header.split(";"):
            name, sep, value = pair.strip().partition("=")
            if sep and name.strip() == cookie_name:
                return value.strip().strip('"')
    return None


class AuthGate:
    """Resolve session cookies against a :class:`SessionManager`."""

    def __init__(self, sessions: SessionManager, cookie_name: str) -> None:
        self._sessions = sessions
        self.cookie_name = cookie_name

    def extract_token(self, cookie_headers: Iterable[str]) -> SessionToken | None:
        raw = find_cookie(cookie_headers, self.cookie_name)
        if raw is None:
            return None
        try:
            return SessionToken.parse(raw)
        except ValueError:
            logger.debug("Ignoring malformed %s cookie", self.cookie_name)
            return None

    def identify(
        self, cookie_headers: Iterable[str], *, now: datetime | None = None
    ) -> RequestIdentity:
        """Build the request's identity.  Hits storage at most once."""
        token = self.extract_token(cookie_headers)
        if token is None:
            return ANONYMOUS
        return RequestIdentity(token=token, user=self._sessions.resolve(token, now=now))
