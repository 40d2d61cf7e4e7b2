"""
championpool.config — YAML Configuration Loader
================================================

**Why this file exists:**
This module reads ``config.yaml`` for the service's tuning values (pool
capacity, refill delay, collect cooldown, session cookie settings and the
password hashing cost).  Secrets such as ``DATABASE_URL`` stay in the
environment / ``.env``.

Usage::

    from championpool.config import load_config

    cfg = load_config()            # reads ./config.yaml by default
    print(cfg.pool_capacity)       # 200
    print(cfg.refill_delay)        # datetime.timedelta(seconds=7200)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PoolConfig:
    """Immutable configuration loaded from ``config.yaml``.

    Every field has a default so a partial YAML file is valid.
    """

    # Shared pool
    pool_capacity: int = 200
    refill_delay_seconds: int = 2 * 60 * 60

    # Per-user ledger
    collect_cooldown_seconds: int = 12

    # Sessions
    session_cookie_name: str = "user_token"
    session_max_age_seconds: int = 9_999_999
    secure_cookies: bool = False

    # Password hashing (argon2id)
    argon2_time_cost: int = 3
    argon2_memory_cost: int = 65_536

    @property
    def refill_delay(self) -> timedelta:
        return timedelta(seconds=self.refill_delay_seconds)

    @property
    def collect_cooldown(self) -> timedelta:
        return timedelta(seconds=self.collect_cooldown_seconds)

    @property
    def session_max_age(self) -> timedelta:
        return timedelta(seconds=self.session_max_age_seconds)


_POSITIVE_INT_KEYS = (
    "pool_capacity",
    "refill_delay_seconds",
    "collect_cooldown_seconds",
    "session_max_age_seconds",
    "argon2_time_cost",
    "argon2_memory_cost",
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> PoolConfig:
    """Read *path* and return a :class:`PoolConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If a numeric setting is not a positive integer, or
        ``secure_cookies`` is not a boolean.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    defaults = PoolConfig()
    values: dict[str, object] = {}
    for key in _POSITIVE_INT_KEYS:
        value = raw.get(key, getattr(defaults, key))
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValueError(f"{key} must be a positive integer, got {value!r}")
        values[key] = value

    secure_cookies = raw.get("secure_cookies", defaults.secure_cookies)
    if not isinstance(secure_cookies, bool):
        raise ValueError(f"secure_cookies must be true or false, got {secure_cookies!r}")

    return PoolConfig(
        session_cookie_name=str(
            raw.get("session_cookie_name", defaults.session_cookie_name)
        ),
        secure_cookies=secure_cookies,
        **values,
    )
