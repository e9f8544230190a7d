"""Tests for environment and config validation."""

import logging
from types import SimpleNamespace

import pytest

from engagement_dashboard.core.config import validate_config
from engagement_dashboard.core.validation import validate_env, EnvValidationError


def make_settings(**overrides):
    defaults = dict(
        ENV="development",
        API_BASE_URL="http://localhost:8000",
        CORS_ORIGINS="http://localhost:3000",
        MAX_UPLOAD_BYTES=1024,
        MOCK_BATCH_SIZE=50,
        DEFAULT_RESULT_LIMIT=10,
        REQUEST_TIMEOUT_SECONDS=10.0,
        CONFIG_STRICT=False,
    )
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def test_valid_development_config_passes():
    assert validate_env(settings_obj=make_settings())


def test_valid_production_config_passes():
    settings = make_settings(
        ENV="production",
        API_BASE_URL="https://dashboard.example.com",
        CORS_ORIGINS="https://dashboard.example.com",
    )
    assert validate_env(settings_obj=settings)


def test_invalid_api_base_url_fails():
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=make_settings(API_BASE_URL="not-a-url"))


def test_non_positive_upload_limit_fails():
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=make_settings(MAX_UPLOAD_BYTES=0))


def test_wildcard_cors_forbidden_in_prod():
    settings = make_settings(
        ENV="production",
        API_BASE_URL="https://dashboard.example.com",
        CORS_ORIGINS="https://dashboard.example.com,*",
    )
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=settings)


def test_plain_http_forbidden_in_prod():
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=make_settings(ENV="production"))


def test_skip_env_validation_bypass(monkeypatch):
    monkeypatch.setenv("SKIP_ENV_VALIDATION", "1")
    settings = make_settings(ENV="production", API_BASE_URL="nope")
    assert validate_env(settings_obj=settings)


def test_validate_config_warns_in_lenient_mode(caplog):
    settings = make_settings(MOCK_BATCH_SIZE=0)
    with caplog.at_level(logging.WARNING, logger="engagement_dashboard"):
        assert validate_config(settings_obj=settings)
    assert "MOCK_BATCH_SIZE" in caplog.text


def test_validate_config_raises_in_strict_mode():
    with pytest.raises(RuntimeError):
        validate_config(strict=True, settings_obj=make_settings(REQUEST_TIMEOUT_SECONDS=0))
