"""
tests/test_passwords.py — CredentialStore
==========================================
"""

from __future__ import annotations

from championpool.auth.passwords import CredentialStore


class TestCredentialStore:
    def test_hash_is_argon2id_phc_string(self, credentials):
        hashed = credentials.hash("hunter2")
        assert hashed.startswith("$argon2id$")
        assert "hunter2" not in hashed

    def test_hashes_are_salted(self, credentials):
        assert credentials.hash("same") != credentials.hash("same")

    def test_verify_roundtrip(self, credentials):
        hashed = credentials.hash("correct horse")
        assert credentials.verify("correct horse", hashed)
        assert not credentials.verify("wrong horse", hashed)

    def test_verify_malformed_hash_is_false(self, credentials):
        assert not credentials.verify("anything", "not-a-real-hash")
        assert not credentials.verify("anything", "")

    def test_needs_rehash_after_cost_change(self, credentials):
        weak = credentials.hash("pw")
        assert not credentials.needs_rehash(weak)
        stronger = CredentialStore(time_cost=2, memory_cost=2048)
        assert stronger.needs_rehash(weak)
        assert stronger.verify("pw", weak)

    def test_needs_rehash_on_garbage(self, credentials):
        assert credentials.needs_rehash("plaintext")
