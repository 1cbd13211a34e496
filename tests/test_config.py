"""Unit tests for core/config.py -- duration parsing and Settings validation."""

from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import ValidationError

from core.config import Settings, parse_duration


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("24h", timedelta(hours=24)),
        ("90m", timedelta(minutes=90)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("45s", timedelta(seconds=45)),
        ("250ms", timedelta(milliseconds=250)),
        ("1.5h", timedelta(hours=1, minutes=30)),
        ("12", timedelta(hours=12)),
        (" 2h ", timedelta(hours=2)),
        ("1000ns", timedelta(microseconds=1)),
        ("1500us", timedelta(microseconds=1500)),
        ("1s500ns500ns", timedelta(seconds=1, microseconds=1)),
    ],
)
def test_parse_duration(raw, expected):
    assert parse_duration(raw) == expected


@pytest.mark.parametrize("raw", ["", "abc", "10x", "h", "-5m", "5m garbage"])
def test_parse_duration_rejects_malformed(raw):
    with pytest.raises(ValueError):
        parse_duration(raw)


def test_settings_defaults(monkeypatch):
    for name in ("SESSION_TTL", "JWT_EXPIRES_IN", "SESSION_SWEEP_INTERVAL", "ACCEPT_BEARER_PREFIX"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None)
    assert settings.session_ttl == timedelta(hours=24)
    assert settings.session_sweep_interval == timedelta(hours=1)
    assert settings.accept_bearer_prefix is False


def test_session_ttl_from_env(monkeypatch):
    monkeypatch.setenv("SESSION_TTL", "30m")
    assert Settings(_env_file=None).session_ttl == timedelta(minutes=30)


def test_legacy_jwt_expires_in_alias(monkeypatch):
    monkeypatch.delenv("SESSION_TTL", raising=False)
    monkeypatch.setenv("JWT_EXPIRES_IN", "48")
    assert Settings(_env_file=None).session_ttl == timedelta(hours=48)


def test_zero_ttl_is_rejected(monkeypatch):
    monkeypatch.setenv("SESSION_TTL", "0s")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_log_level_normalized(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "WARN")
    assert Settings(_env_file=None).log_level == "warning"
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    assert Settings(_env_file=None).log_level == "info"
