"""Tests for ticketgen.config and ticketgen.logging_config."""

from __future__ import annotations

import pytest

from ticketgen.config import Settings, load_settings
from ticketgen.errors import ConfigError


class TestDefaults:

    def test_defaults(self):
        s = load_settings(environ={})
        assert s.ai_enabled is True
        assert s.cache_ttl_seconds == 7200
        assert s.degraded_cache_ttl_seconds == 300
        assert s.memory_cache_capacity == 500
        assert s.default_platform == "jira"
        assert s.redis_url is None
        assert s.template_dir is None
        assert "http://localhost:3000" in s.cors_origins

    def test_settings_are_frozen(self):
        s = Settings()
        with pytest.raises(Exception):
            s.ai_enabled = False  # type: ignore[misc]

    def test_invalid_ranges(self):
        with pytest.raises(ConfigError):
            Settings(cache_ttl_seconds=0)
        with pytest.raises(ConfigError):
            Settings(ai_temperature=1.5)
        with pytest.raises(ConfigError):
            Settings(ai_max_retries=-1)


class TestEnvironment:

    def test_env_values(self):
        s = load_settings(environ={
            "AI_ENABLED": "false",
            "CACHE_TTL_SECONDS": "60",
            "AI_TEMPERATURE": "0.5",
            "REDIS_URL": "redis://localhost:6379/1",
            "CORS_ORIGINS": "http://a.test, http://b.test",
            "TEMPLATE_DIR": "/srv/templates",
        })
        assert s.ai_enabled is False
        assert s.cache_ttl_seconds == 60
        assert s.ai_temperature == 0.5
        assert s.redis_url == "redis://localhost:6379/1"
        assert s.cors_origins == ["http://a.test", "http://b.test"]
        assert s.template_dir == "/srv/templates"

    def test_empty_env_value_ignored(self):
        assert load_settings(environ={"CACHE_TTL_SECONDS": ""}).cache_ttl_seconds == 7200

    def test_bad_env_value(self):
        with pytest.raises(ConfigError, match="CACHE_TTL_SECONDS"):
            load_settings(environ={"CACHE_TTL_SECONDS": "soon"})


class TestPrecedence:

    def test_file_overrides_env_and_overrides_win(self, tmp_path):
        path = tmp_path / "ticketgen.yaml"
        path.write_text(
            "cache-ttl-seconds: 900\n"
            "memory_cache_capacity: 10\n"
            "ai_enabled: false\n",
            encoding="utf-8",
        )
        s = load_settings(
            config_path=path,
            environ={"CACHE_TTL_SECONDS": "60", "MEMORY_CACHE_CAPACITY": "20", "AI_MAX_TOKENS": "512"},
            overrides={"memory_cache_capacity": 5},
        )
        assert s.cache_ttl_seconds == 900      # file beats env
        assert s.memory_cache_capacity == 5    # override beats file
        assert s.ai_max_tokens == 512          # env beats default
        assert s.ai_enabled is False

    def test_config_path_from_env(self, tmp_path):
        path = tmp_path / "cfg.yaml"
        path.write_text("tier_timeout_seconds: 5\n", encoding="utf-8")
        s = load_settings(environ={"TICKETGEN_CONFIG": str(path)})
        assert s.tier_timeout_seconds == 5.0

    def test_unknown_file_key_ignored(self, tmp_path):
        path = tmp_path / "cfg.yaml"
        path.write_text("no_such_setting: 1\n", encoding="utf-8")
        assert load_settings(config_path=path, environ={}).cache_ttl_seconds == 7200

    def test_unknown_override_rejected(self):
        with pytest.raises(ConfigError, match="unknown setting"):
            load_settings(environ={}, overrides={"no_such_setting": 1})

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "cfg.yaml"
        path.write_text("a: [1, 2\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="invalid YAML"):
            load_settings(config_path=path, environ={})

    def test_non_mapping_yaml(self, tmp_path):
        path = tmp_path / "cfg.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(config_path=path, environ={})

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="cannot read"):
            load_settings(config_path=tmp_path / "missing.yaml", environ={})

    def test_null_for_optional(self):
        assert load_settings(environ={}, overrides={"redis_url": None}).redis_url is None

    def test_null_for_required_rejected(self):
        with pytest.raises(ConfigError):
            load_settings(environ={}, overrides={"cache_ttl_seconds": None})


class TestLogging:

    def test_setup_logger_is_idempotent(self, tmp_path):
        from ticketgen.logging_config import setup_logger

        first = setup_logger("ticketgen.test.idempotent", "test.log", str(tmp_path))
        second = setup_logger("ticketgen.test.idempotent", "test.log", str(tmp_path))
        assert first is second
        assert len(first.handlers) == 2
        assert first.propagate is False

    def test_log_file_written(self, tmp_path):
        from ticketgen.logging_config import setup_logger

        log = setup_logger("ticketgen.test.file", "file.log", str(tmp_path / "logs"))
        log.info("cache warmed: %d entries", 3)
        for handler in log.handlers:
            handler.flush()
        assert "cache warmed: 3 entries" in (tmp_path / "logs" / "file.log").read_text(encoding="utf-8")
