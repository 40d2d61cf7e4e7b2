"""
championpool.auth.passwords — CredentialStore
==============================================

Password hashing with argon2id.  Hashes are PHC strings
(``$argon2id$v=19$m=...,t=...,p=...$salt$hash``) so the parameters and the
per-hash random salt travel with the hash.  Plaintext is never stored.
"""

from __future__ import annotations

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError


class CredentialStore:
    """Hash and verify passwords.

    ``time_cost`` / ``memory_cost`` tune how slow each hash is.  Tests pass
    small values; production keeps the argon2 defaults from ``config.yaml``.
    """

    def __init__(self, *, time_cost: int = 3, memory_cost: int = 65_536) -> None:
        self._hasher = PasswordHasher(time_cost=time_cost, memory_cost=memory_cost)

    def hash(self, password: str) -> str:
        """Salted one-way hash.  Two calls with the same input never match."""
        return self._hasher.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """Constant-time check of *password* against *password_hash*.

        A malformed hash counts as a mismatch rather than an error.
        """
        if not password_hash:
            return False
        try:
            return self._hasher.verify(password_hash, password)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        """True when *password_hash* was made with weaker parameters."""
        try:
            return self._hasher.check_needs_rehash(password_hash)
        except InvalidHashError:
            return True
