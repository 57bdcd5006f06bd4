"""
Unit tests for api/deps.py dependency providers.

These tests verify that the dependency providers are properly wired and
return the correct types. Uses mocks for external dependencies.
"""

import asyncio
import pytest
from unittest.mock import Mock, patch
from fastapi import HTTPException

from backend.settings import Settings

# All tests in this module are pure logic tests with mocks - mark as unit
pytestmark = pytest.mark.unit

JWT_SECRET = "test-jwt-secret-for-unit-tests-0123456789"


def _settings(**kwargs) -> Settings:
    return Settings(_env_file=None, environment="test", **kwargs)


# =============================================================================
# Import Tests
# =============================================================================


class TestDepsImports:
    """Test that all dependency providers can be imported."""

    def test_import_from_api_package(self):
        """All providers should be importable from the api package."""
        from api import (
            get_settings,
            get_supabase_client,
            get_supabase_client_required,
            get_metrics_repo,
            get_metrics_config,
            get_metrics_service,
            get_metrics_facade,
            get_current_user,
        )
        assert all([
            get_settings,
            get_supabase_client,
            get_supabase_client_required,
            get_metrics_repo,
            get_metrics_config,
            get_metrics_service,
            get_metrics_facade,
            get_current_user,
        ])


# =============================================================================
# Supabase Client
# =============================================================================


class TestSupabaseClient:
    """Tests for the Supabase client providers."""

    def test_required_client_raises_503_when_unconfigured(self):
        """Missing credentials surface as 503."""
        from api.deps import get_supabase_client_required

        with patch("api.deps.get_supabase_client", return_value=None):
            with pytest.raises(HTTPException) as exc:
                get_supabase_client_required()
        assert exc.value.status_code == 503

    def test_required_client_passes_through(self):
        """A configured client is returned unchanged."""
        from api.deps import get_supabase_client_required

        client = Mock()
        with patch("api.deps.get_supabase_client", return_value=client):
            assert get_supabase_client_required() is client


# =============================================================================
# Repository and Services
# =============================================================================


class TestProviders:
    """Tests for repository and service providers."""

    def test_metrics_repo_is_supabase_backed(self):
        """get_metrics_repo wraps the client in SupabaseMetricsRepository."""
        from api.deps import get_metrics_repo
        from infrastructure.db.metrics_repository import SupabaseMetricsRepository

        client = Mock()
        repo = get_metrics_repo(client=client, settings=_settings(metrics_mock_fallback_enabled=True))

        assert isinstance(repo, SupabaseMetricsRepository)
        assert repo._client is client
        assert repo._mock_fallback is True

    def test_metrics_config_follows_settings(self):
        """Engine config is derived from settings."""
        from api.deps import get_metrics_config

        config = get_metrics_config(settings=_settings(metrics_target_rest_sec=120))
        assert config.target_rest_sec == 120

    def test_metrics_service_uses_config(self):
        """The service is bound to the given repository and config."""
        from api.deps import get_metrics_config, get_metrics_service
        from backend.services.metrics_service import MetricsService

        config = get_metrics_config(settings=_settings())
        service = get_metrics_service(repository=Mock(), config=config)

        assert isinstance(service, MetricsService)
        assert service.config is config

    def test_metrics_facade_mode_from_flags(self):
        """The facade mode follows the feature flags."""
        from api.deps import get_metrics_facade
        from backend.services.metrics_facade import MODE_SHADOW, MODE_V2
        from backend.services.metrics_service import MetricsService

        service = MetricsService(Mock())
        shadow = get_metrics_facade(service=service, settings=_settings(metrics_shadow_enabled=True))
        v2 = get_metrics_facade(service=service, settings=_settings(metrics_v2_enabled=True))

        assert shadow.mode == MODE_SHADOW
        assert v2.mode == MODE_V2


# =============================================================================
# Authentication
# =============================================================================


class TestAuthentication:
    """Tests for the authentication providers."""

    def _user(self, settings, **headers):
        from api.deps import get_current_user

        with patch("backend.auth.get_settings", return_value=settings):
            return asyncio.run(get_current_user(**headers))

    def test_missing_credentials(self):
        """No header at all is a 401."""
        with pytest.raises(HTTPException) as exc:
            self._user(_settings(), authorization=None, x_api_key=None)
        assert exc.value.status_code == 401

    def test_api_key_with_user(self):
        """A "key:user" API key authenticates as that user."""
        user = self._user(_settings(api_keys="k1,k2"), authorization=None, x_api_key="k2:user-9")
        assert user == "user-9"

    def test_plain_api_key_is_admin(self):
        """A bare API key authenticates as admin."""
        user = self._user(_settings(api_keys="k1"), authorization=None, x_api_key="k1")
        assert user == "admin"

    def test_invalid_api_key(self):
        """Unknown keys are rejected."""
        with pytest.raises(HTTPException) as exc:
            self._user(_settings(api_keys="k1"), authorization=None, x_api_key="nope")
        assert exc.value.status_code == 401

    def test_valid_jwt(self):
        """An HS256 token signed with the shared secret yields its subject."""
        import jwt

        settings = _settings(jwt_secret=JWT_SECRET)
        token = jwt.encode({"sub": "user-1"}, JWT_SECRET, algorithm="HS256")
        user = self._user(settings, authorization=f"Bearer {token}", x_api_key=None)
        assert user == "user-1"

    def test_jwt_with_wrong_secret(self):
        """Tokens signed with another secret are rejected."""
        import jwt

        token = jwt.encode({"sub": "user-1"}, "another-jwt-secret-for-unit-tests-987654", algorithm="HS256")
        with pytest.raises(HTTPException) as exc:
            self._user(_settings(jwt_secret=JWT_SECRET), authorization=f"Bearer {token}", x_api_key=None)
        assert exc.value.status_code == 401

    def test_jwt_without_subject(self):
        """Tokens without a subject are rejected."""
        import jwt

        token = jwt.encode({"role": "x"}, JWT_SECRET, algorithm="HS256")
        with pytest.raises(HTTPException) as exc:
            self._user(_settings(jwt_secret=JWT_SECRET), authorization=f"Bearer {token}", x_api_key=None)
        assert "user ID" in exc.value.detail

    def test_malformed_authorization_header(self):
        """Only Bearer tokens are accepted."""
        with pytest.raises(HTTPException) as exc:
            self._user(_settings(), authorization="Basic abc", x_api_key=None)
        assert exc.value.status_code == 401
