"""
championpool.errors — Error Taxonomy
=====================================

Every failure path in the service raises one of the classes below.  Each
class carries the HTTP status and machine-readable ``code`` the API uses
when rendering it, so services never import FastAPI.

Families:
  * ``ValidationError``     — bad input, rejected before any state access
  * ``AuthenticationError`` — no/invalid session or credentials
  * ``ResourceError``       — business-rule rejection, retry later
  * ``ConsistencyError``    — transaction conflict, retry immediately
  * ``InternalError``       — storage failure, never retried by the core
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any


class ChampionPoolError(Exception):
    """Base class for every error raised by the service."""

    status_code: int = 500
    code: str = "error"
    public_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)

    @property
    def retry_at(self) -> datetime | None:
        """Earliest instant a retry can succeed, when known."""
        return None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.code, "message": self.public_message}
        if self.retry_at is not None:
            body["retry_at"] = self.retry_at.isoformat()
        return body

    def retry_after_seconds(self, now: datetime | None = None) -> int | None:
        """Whole seconds until :attr:`retry_at` (at least 1), for ``Retry-After``."""
        if self.retry_at is None:
            return None
        now = now or datetime.now(UTC)
        remaining = (self.retry_at - now).total_seconds()
        return max(1, int(remaining) + 1)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
class ValidationError(ChampionPoolError):
    status_code = 400
    code = "validation_error"
    public_message = "Invalid request"


class InvalidName(ValidationError):
    code = "invalid_name"
    public_message = "Invalid user name"


class InvalidPassword(ValidationError):
    code = "invalid_password"
    public_message = "Invalid password"


class NameExists(ValidationError):
    status_code = 409
    code = "name_exists"
    public_message = "User name already exists"


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------
class AuthenticationError(ChampionPoolError):
    status_code = 401
    code = "invalid_credentials"
    public_message = "Invalid credentials"


class Unauthenticated(AuthenticationError):
    code = "unauthenticated"
    public_message = "You must be logged in."


class UserDoesNotExist(AuthenticationError):
    pass


class WrongPassword(AuthenticationError):
    pass


# ---------------------------------------------------------------------------
# Business rules
# ---------------------------------------------------------------------------
class ResourceError(ChampionPoolError):
    status_code = 409
    code = "resource_error"
    public_message = "Request rejected"


class TooSoon(ResourceError):
    status_code = 429
    code = "too_soon"
    public_message = "You're not ready to collect yet."

    def __init__(self, next_eligible: datetime) -> None:
        self.next_eligible = next_eligible
        super().__init__(f"Next collect allowed at {next_eligible.isoformat()}")

    @property
    def retry_at(self) -> datetime:
        return self.next_eligible


class PoolClosed(ResourceError):
    status_code = 503
    code = "pool_closed"
    public_message = "No points left in the pool, or the pool is not open."

    def __init__(self, open_at: datetime | None = None) -> None:
        self.open_at = open_at
        detail = f" until {open_at.isoformat()}" if open_at else ""
        super().__init__(f"Pool closed{detail}")

    @property
    def retry_at(self) -> datetime | None:
        return self.open_at


class InsufficientFunds(ResourceError):
    code = "insufficient_funds"
    public_message = "Not enough points."


class ChampionNotFound(ResourceError):
    status_code = 404
    code = "champion_not_found"
    public_message = "Champion not found."


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------
class ConsistencyError(ChampionPoolError):
    status_code = 409
    code = "conflict"
    public_message = "Concurrent update conflict, please retry."


class InternalError(ChampionPoolError):
    status_code = 500
    code = "internal_error"
    public_message = "Internal error"
