"""Tests for environment-driven settings."""

import pytest

from superxo.config import Settings


def test_defaults_without_environment():
    settings = Settings.from_env({})
    assert settings == Settings()
    assert settings.port == 8000
    assert settings.reconnect is True
    assert settings.grace_seconds == 300


def test_environment_overrides():
    settings = Settings.from_env(
        {
            "SUPERXO_PORT": "3000",
            "SUPERXO_VARIANT": "Classic",
            "SUPERXO_CODE_STYLE": "numeric",
            "SUPERXO_RECONNECT": "off",
            "SUPERXO_GRACE_SECONDS": "12.5",
            "SUPERXO_LOG_LEVEL": "debug",
        }
    )
    assert settings.port == 3000
    assert settings.variant == "classic"
    assert settings.code_style == "numeric"
    assert settings.reconnect is False
    assert settings.grace_seconds == 12.5
    assert settings.log_level == "DEBUG"


def test_rejects_unsupported_variant():
    with pytest.raises(ValueError):
        Settings(variant="hexagonal")


def test_rejects_unsupported_code_style():
    with pytest.raises(ValueError):
        Settings.from_env({"SUPERXO_CODE_STYLE": "emoji"})
