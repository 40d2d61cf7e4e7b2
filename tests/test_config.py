"""
tests/test_config.py — YAML Configuration Loader
=================================================
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from championpool.config import PoolConfig, load_config


class TestDefaults:
    def test_defaults(self):
        cfg = PoolConfig()
        assert cfg.pool_capacity == 200
        assert cfg.refill_delay == timedelta(hours=2)
        assert cfg.collect_cooldown == timedelta(seconds=12)
        assert cfg.session_cookie_name == "user_token"
        assert cfg.session_max_age_seconds == 9_999_999


class TestLoadConfig:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="config.yaml.example"):
            load_config(tmp_path / "nope.yaml")

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == PoolConfig()

    def test_partial_override(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "pool_capacity: 5\n"
            "collect_cooldown_seconds: 1\n"
            "session_cookie_name: sid\n"
            "secure_cookies: true\n",
            encoding="utf-8",
        )
        cfg = load_config(path)
        assert cfg.pool_capacity == 5
        assert cfg.collect_cooldown == timedelta(seconds=1)
        assert cfg.session_cookie_name == "sid"
        assert cfg.secure_cookies is True
        assert cfg.refill_delay_seconds == 7200

    @pytest.mark.parametrize("key", ["pool_capacity", "refill_delay_seconds", "argon2_time_cost"])
    def test_non_positive_rejected(self, tmp_path, key):
        path = tmp_path / "config.yaml"
        path.write_text(f"{key}: 0\n", encoding="utf-8")
        with pytest.raises(ValueError, match=key):
            load_config(path)

    @pytest.mark.parametrize("raw", ["1.5", "'200'", "true"])
    def test_non_integer_rejected(self, tmp_path, raw):
        path = tmp_path / "config.yaml"
        path.write_text(f"pool_capacity: {raw}\n", encoding="utf-8")
        with pytest.raises(ValueError, match="pool_capacity"):
            load_config(path)

    @pytest.mark.parametrize("raw", ['"false"', "'true'", "1", "yes-please"])
    def test_secure_cookies_must_be_boolean(self, tmp_path, raw):
        path = tmp_path / "config.yaml"
        path.write_text(f"secure_cookies: {raw}\n", encoding="utf-8")
        with pytest.raises(ValueError, match="secure_cookies"):
            load_config(path)

    def test_secure_cookies_false(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("secure_cookies: false\n", encoding="utf-8")
        assert load_config(path).secure_cookies is False
