"""
championpool.constants — Shared Constants & Helpers
====================================================

Single source of truth for identity rules and fixed storage layout.
Import from here instead of duplicating in services and routes.
"""

from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Usernames
# ---------------------------------------------------------------------------
USERNAME_MAX_LENGTH = 19
_USERNAME_REGEX = re.compile(r"[A-Za-z0-9-]{1,%d}" % USERNAME_MAX_LENGTH)


def is_valid_username(name: str) -> bool:
    """1–19 characters, ASCII letters, digits and ``-`` only."""
    return bool(_USERNAME_REGEX.fullmatch(name))


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------
PASSWORD_MAX_LENGTH = 1024


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------
SESSION_TOKEN_BYTES = 16  # 128 bits of entropy


# ---------------------------------------------------------------------------
# Points pool
# ---------------------------------------------------------------------------
POOL_ROW_ID = 1  # points_pool is a single-row table
