"""
Unit tests for configuration and the CORS policy.
"""

import pytest
from pydantic import ValidationError

from service_advisory.app.domain.cors import CORSPolicy
from shared.config import get_config


class TestConfig:
    """Test cases for ServiceConfig."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ("OPENAI_API_KEY", "MODEL", "ALLOWED_ORIGINS",
                     "ADVISORY_OPENAI_API_KEY", "ADVISORY_MODEL", "ADVISORY_ALLOWED_ORIGINS",
                     "ADVISORY_MAX_ATTEMPTS", "ADVISORY_REDIS_URL"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.chdir("/")

    def test_defaults(self):
        config = get_config("advisory", 8000)

        assert config.model == "gpt-4o-mini"
        assert config.openai_api_key == ""
        assert config.advisory_max_attempts == 3
        assert (config.backoff_base_ms, config.backoff_increment_ms, config.backoff_jitter_ms) == (400, 500, 200)
        assert config.cache_long_ttl_seconds == 86400
        assert config.cache_short_ttl_seconds == 300
        assert config.max_identifier_length == 50
        assert config.allowed_origins == []

    def test_unprefixed_environment_names(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        monkeypatch.setenv("MODEL", "gpt-4.1-mini")
        monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example, ,https://b.example")

        config = get_config("advisory", 8000)

        assert config.openai_api_key == "sk-env"
        assert config.model == "gpt-4.1-mini"
        assert config.allowed_origins == ["https://a.example", "https://b.example"]

    def test_prefixed_environment_names(self, monkeypatch):
        monkeypatch.setenv("ADVISORY_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("ADVISORY_REDIS_URL", "redis://cache:6379/2")

        config = get_config("advisory", 8000)

        assert config.advisory_max_attempts == 5
        assert config.redis_url == "redis://cache:6379/2"

    def test_config_is_frozen(self):
        config = get_config("advisory", 8000)

        with pytest.raises(ValidationError):
            config.model = "other"


class TestCORSPolicy:
    """Test cases for CORSPolicy."""

    def test_listed_origin_reflected_with_vary(self):
        policy = CORSPolicy(["https://app.example"])

        headers = policy.headers("https://app.example")

        assert headers["Access-Control-Allow-Origin"] == "https://app.example"
        assert headers["Vary"] == "Origin"

    @pytest.mark.parametrize("origin", [None, "", "https://evil.example"])
    def test_other_origins_get_wildcard(self, origin):
        headers = CORSPolicy(["https://app.example"]).headers(origin)

        assert headers["Access-Control-Allow-Origin"] == "*"
        assert "Vary" not in headers

    def test_preflight_adds_max_age(self):
        headers = CORSPolicy([], max_age=600).preflight_headers("https://app.example")

        assert headers["Access-Control-Max-Age"] == "600"
        assert headers["Access-Control-Allow-Methods"] == "GET, OPTIONS"
        assert headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"
