"""Tests for configuration loading."""

from datetime import timedelta

import pytest

from slashclaw_auth import AuthConfig, AuthServices
from slashclaw_auth.core.config import parse_duration
from slashclaw_auth.core.errors import ConfigurationError


@pytest.mark.parametrize(
    "value, expected",
    [
        ("5m", timedelta(minutes=5)),
        ("24h", timedelta(hours=24)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("90s", timedelta(seconds=90)),
        ("1.5h", timedelta(minutes=90)),
        ("250ms", timedelta(milliseconds=250)),
        ("300", timedelta(seconds=300)),
        (60, timedelta(seconds=60)),
        (timedelta(days=1), timedelta(days=1)),
    ],
)
def test_parse_duration(value, expected):
    assert parse_duration(value) == expected


@pytest.mark.parametrize("value", ["", "5 minutes", "m5", "5m junk", "1d", None, True])
def test_parse_duration_invalid(value):
    with pytest.raises(ValueError):
        parse_duration(value)


def test_defaults():
    config = AuthConfig()

    assert config.challenge_ttl == timedelta(minutes=5)
    assert config.token_ttl == timedelta(hours=24)
    assert config.database_path == "slashclaw.db"
    assert config.admin_secret is None


def test_from_env():
    config = AuthConfig.from_env(
        {
            "CHALLENGE_TTL": "2m",
            "TOKEN_TTL": "1h",
            "DATABASE_PATH": "/tmp/auth.db",
            "ADMIN_SECRET": "hunter2",
            "UNRELATED": "ignored",
        }
    )

    assert config.challenge_ttl == timedelta(minutes=2)
    assert config.token_ttl == timedelta(hours=1)
    assert config.database_path == "/tmp/auth.db"
    assert config.admin_secret == "hunter2"


def test_from_env_empty_values_keep_defaults():
    config = AuthConfig.from_env({"CHALLENGE_TTL": "", "ADMIN_SECRET": ""})

    assert config.challenge_ttl == timedelta(minutes=5)
    assert config.admin_secret is None


def test_from_env_reads_process_environment(monkeypatch):
    monkeypatch.setenv("TOKEN_TTL", "30m")
    monkeypatch.delenv("CHALLENGE_TTL", raising=False)

    config = AuthConfig.from_env()

    assert config.token_ttl == timedelta(minutes=30)
    assert config.challenge_ttl == timedelta(minutes=5)


@pytest.mark.parametrize("env", [{"TOKEN_TTL": "soon"}, {"CHALLENGE_TTL": "0s"}])
def test_from_env_invalid(env):
    with pytest.raises(ConfigurationError):
        AuthConfig.from_env(env)


def test_from_config_yaml(tmp_path):
    path = tmp_path / "auth.yaml"
    path.write_text(
        "challenge_ttl: 1m\n"
        "token_ttl: 12h\n"
        "database_path: auth.db\n"
        "admin_secret: yaml-secret\n"
    )

    config = AuthConfig.from_config(path)

    assert config.challenge_ttl == timedelta(minutes=1)
    assert config.token_ttl == timedelta(hours=12)
    assert config.database_path == "auth.db"
    assert config.admin_secret == "yaml-secret"


def test_from_config_errors(tmp_path):
    with pytest.raises(ConfigurationError):
        AuthConfig.from_config(tmp_path / "missing.yaml")

    broken = tmp_path / "broken.yaml"
    broken.write_text("challenge_ttl: [unclosed\n")
    with pytest.raises(ConfigurationError):
        AuthConfig.from_config(broken)

    listing = tmp_path / "list.yaml"
    listing.write_text("- a\n- b\n")
    with pytest.raises(ConfigurationError):
        AuthConfig.from_config(listing)


def test_services_from_config(tmp_path):
    config = AuthConfig(database_path=str(tmp_path / "auth.db"), token_ttl="1h")
    services = AuthServices.from_config(config)
    try:
        assert services.tokens.token_ttl == timedelta(hours=1)
        assert services.challenges.challenge_ttl == timedelta(minutes=5)
        assert (tmp_path / "auth.db").exists()
    finally:
        services.close()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
