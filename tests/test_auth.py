"""
Authentication Tests

Tests for Supabase JWT validation and principal resolution.
"""

from datetime import datetime, timedelta
from types import SimpleNamespace

import jwt
import pytest
from fastapi.security import HTTPAuthorizationCredentials

from auditflow.auth import (
    AuthConfig,
    Principal,
    get_current_principal,
    principal_from_token,
    verify_supabase_token,
)
from auditflow.errors import AuthError


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def valid_jwt_payload():
    return {
        "sub": "user-1",
        "email": "owner@example.com",
        "role": "authenticated",
        "aud": "authenticated",
        "exp": int((datetime.utcnow() + timedelta(hours=1)).timestamp()),
        "iat": int(datetime.utcnow().timestamp()),
    }


@pytest.fixture
def create_test_token(auth_config):
    """Factory to create test JWT tokens."""
    def _create(payload: dict, secret: str = None) -> str:
        return jwt.encode(
            payload,
            secret or auth_config.supabase_jwt_secret,
            algorithm=auth_config.jwt_algorithm,
        )
    return _create


def fake_request(config: AuthConfig):
    container = SimpleNamespace(auth_config=config)
    return SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(container=container)))


# =============================================================================
# JWT VALIDATION TESTS
# =============================================================================

class TestJWTValidation:

    def test_valid_token(self, auth_config, valid_jwt_payload, create_test_token):
        payload = verify_supabase_token(create_test_token(valid_jwt_payload), auth_config)

        assert payload["sub"] == "user-1"
        assert payload["email"] == "owner@example.com"

    def test_expired_token(self, auth_config, valid_jwt_payload, create_test_token):
        valid_jwt_payload["exp"] = int((datetime.utcnow() - timedelta(hours=1)).timestamp())

        with pytest.raises(AuthError, match="expired"):
            verify_supabase_token(create_test_token(valid_jwt_payload), auth_config)

    def test_invalid_signature(self, auth_config, valid_jwt_payload, create_test_token):
        token = create_test_token(valid_jwt_payload, secret="wrong-secret-that-is-long-enough-for-hs256")

        with pytest.raises(AuthError, match="signature"):
            verify_supabase_token(token, auth_config)

    def test_missing_sub_claim(self, auth_config, valid_jwt_payload, create_test_token):
        del valid_jwt_payload["sub"]

        with pytest.raises(AuthError, match="sub"):
            verify_supabase_token(create_test_token(valid_jwt_payload), auth_config)

    def test_invalid_audience(self, auth_config, valid_jwt_payload, create_test_token):
        valid_jwt_payload["aud"] = "wrong-audience"

        with pytest.raises(AuthError, match="audience"):
            verify_supabase_token(create_test_token(valid_jwt_payload), auth_config)

    def test_garbage_token(self, auth_config):
        with pytest.raises(AuthError):
            verify_supabase_token("not-a-jwt", auth_config)

    def test_no_jwt_secret_configured(self):
        with pytest.raises(AuthError, match="not configured"):
            verify_supabase_token("any-token", AuthConfig(supabase_jwt_secret=""))

    def test_auth_errors_are_401(self, auth_config):
        with pytest.raises(AuthError) as exc_info:
            verify_supabase_token("not-a-jwt", auth_config)
        assert exc_info.value.status_code == 401


class TestPrincipal:

    def test_from_claims(self, valid_jwt_payload):
        principal = Principal.from_claims(valid_jwt_payload)

        assert principal == Principal(user_id="user-1", email="owner@example.com", role="authenticated")

    def test_minimal_claims(self):
        principal = Principal.from_claims({"sub": 42})

        assert principal.user_id == "42"
        assert principal.email is None
        assert principal.role == "authenticated"

    def test_principal_from_token(self, auth_config, valid_jwt_payload, create_test_token):
        principal = principal_from_token(create_test_token(valid_jwt_payload), auth_config)
        assert principal.user_id == "user-1"


class TestGetCurrentPrincipal:

    @pytest.mark.asyncio
    async def test_bearer_token(self, auth_config, valid_jwt_payload, create_test_token):
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=create_test_token(valid_jwt_payload))

        principal = await get_current_principal(fake_request(auth_config), credentials)

        assert principal.user_id == "user-1"

    @pytest.mark.asyncio
    async def test_missing_credentials(self, auth_config):
        with pytest.raises(AuthError, match="Not authenticated"):
            await get_current_principal(fake_request(auth_config), None)

    @pytest.mark.asyncio
    async def test_auth_disabled_uses_dev_user(self):
        config = AuthConfig(auth_enabled=False, dev_user_id="dev-1", dev_user_email="dev@example.com")

        principal = await get_current_principal(fake_request(config), None)

        assert principal == Principal(user_id="dev-1", email="dev@example.com")


class TestAuthConfig:

    def test_jwks_url_from_project_url(self):
        config = AuthConfig(supabase_url="https://abcdefg.supabase.co")
        assert config.supabase_project_ref == "abcdefg"
        assert config.jwks_url == "https://abcdefg.supabase.co/auth/v1/.well-known/jwks.json"

    def test_asymmetric_algorithm_needs_project_url(self):
        config = AuthConfig(jwt_algorithm="ES256", supabase_url="")
        with pytest.raises(AuthError, match="SUPABASE_URL"):
            verify_supabase_token("any-token", config)
