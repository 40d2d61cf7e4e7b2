"""
ChampionPool — Session-Authenticated Points Allocation Service
===============================================================
Users sign up and log in with a password, receive an opaque session
cookie, collect points from a shared pool that refills on a delay once
drained, and assign those points to champions.

Package layout::

    championpool/
    ├── config.py          # YAML → typed Python config
    ├── errors.py          # Error taxonomy + HTTP mapping
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine, transactions, async helper
    │   ├── models.py      # ORM models (users, sessions, teams, champions, pool)
    │   └── seed.py        # Pool row + roster seeding
    ├── auth/
    │   ├── passwords.py   # CredentialStore (argon2)
    │   ├── sessions.py    # SessionToken + SessionManager
    │   └── gate.py        # AuthGate → RequestIdentity
    ├── engine/
    │   └── pool.py        # Pure pool / cooldown state machine
    ├── services/
    │   ├── account_service.py  # signup / login / logout
    │   ├── ledger.py           # Per-user balance + cooldown
    │   ├── pool_allocator.py   # collect + assign
    │   └── roster_service.py   # Teams and champions
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Dependency providers
        └── routes/        # users, points, public
"""

__version__ = "0.1.0"
