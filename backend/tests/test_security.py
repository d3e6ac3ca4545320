"""
Tests for connector authentication and startup guardrails.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from api.deps import get_current_user
from api.main import app
from core import config as config_module
from core.security import create_access_token, decode_access_token

CONNECTOR_TOKEN = "erp-connector-token-0001"


@pytest.fixture
def api_tokens(monkeypatch):
    settings = config_module.get_settings()
    monkeypatch.setattr(settings, "api_tokens", ["short-lived-old-token", CONNECTOR_TOKEN])
    return settings.api_tokens


class TestDecodeAccessToken:
    def test_static_api_token(self, api_tokens):
        assert decode_access_token(CONNECTOR_TOKEN) == {"sub": "api-token-1", "auth": "api_token"}

    def test_jwt(self, api_tokens):
        token = create_access_token({"sub": "pos-bridge"})
        payload = decode_access_token(token)
        assert payload["sub"] == "pos-bridge"
        assert payload["auth"] == "jwt"

    def test_expired_jwt(self):
        token = create_access_token({"sub": "pos-bridge"}, expires_delta=timedelta(seconds=-1))
        assert decode_access_token(token) is None

    def test_garbage_token(self, api_tokens):
        assert decode_access_token("not-a-token") is None

    def test_jwt_signed_with_other_secret(self, monkeypatch):
        token = create_access_token({"sub": "pos-bridge"})
        monkeypatch.setattr(config_module.get_settings(), "jwt_secret", "rotated-secret-value")
        assert decode_access_token(token) is None


@pytest.mark.asyncio
class TestBearerAuth:
    async def test_invalid_token_is_401(self, client: AsyncClient):
        app.dependency_overrides.pop(get_current_user)

        resp = await client.get("/api/v1/stores/STORE-1", headers={"Authorization": "Bearer nope"})

        assert resp.status_code == 401

    async def test_valid_token_reaches_the_route(self, client: AsyncClient, api_tokens):
        app.dependency_overrides.pop(get_current_user)

        resp = await client.get("/api/v1/stores/STORE-1", headers={"Authorization": f"Bearer {CONNECTOR_TOKEN}"})

        assert resp.status_code == 404

    async def test_health_is_public(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"


def _reset_settings_cache():
    config_module.get_settings.cache_clear()


@pytest.fixture
def restore_settings():
    yield
    _reset_settings_cache()


def test_non_local_debug_mode_is_blocked(monkeypatch, restore_settings):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("JWT_SECRET", "real-secret")
    _reset_settings_cache()

    with pytest.raises(ValueError, match="debug=true"):
        config_module.get_settings()


def test_non_local_default_secret_is_blocked(monkeypatch, restore_settings):
    monkeypatch.setenv("APP_ENV", "staging")
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.setenv("JWT_SECRET", config_module.DEFAULT_JWT_SECRET)
    _reset_settings_cache()

    with pytest.raises(ValueError, match="default JWT secret"):
        config_module.get_settings()


def test_non_local_short_api_token_is_blocked(monkeypatch, restore_settings):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.setenv("JWT_SECRET", "real-secret")
    monkeypatch.setenv("API_TOKENS", '["tiny"]')
    _reset_settings_cache()

    with pytest.raises(ValueError, match="shorter than 16"):
        config_module.get_settings()


def test_local_allows_dev_defaults(monkeypatch, restore_settings):
    monkeypatch.setenv("APP_ENV", "local")
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.setenv("JWT_SECRET", config_module.DEFAULT_JWT_SECRET)
    _reset_settings_cache()

    settings = config_module.get_settings()
    assert settings.app_env == "local"
    assert settings.fuzzy_match_threshold == pytest.approx(0.45)
    assert settings.size_tolerance == pytest.approx(10.0)
