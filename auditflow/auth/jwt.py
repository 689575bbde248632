"""
Bearer Token Verification

The identity provider signs session tokens either with a shared secret
(HS256) or with a key published in its JWKS document. Any verification
failure becomes an AuthError, so the API answers 401.
"""

import logging
from typing import Dict, Any
from functools import lru_cache

import jwt
from jwt import PyJWTError, PyJWKClient

from auditflow.errors import AuthError
from .config import AuthConfig
from .principal import Principal

logger = logging.getLogger(__name__)

# Verified with the provider's published keys instead of the shared secret
ASYMMETRIC_ALGORITHMS = {"RS256", "RS384", "RS512", "ES256", "ES384", "ES512", "PS256", "PS384", "PS512"}


@lru_cache(maxsize=1)
def get_jwks_client(jwks_url: str) -> PyJWKClient:
    """One JWKS client per URL; keys are cached for an hour."""
    return PyJWKClient(jwks_url, cache_keys=True, lifespan=3600)


def get_verification_key(token: str, config: AuthConfig) -> Any:
    """Shared secret for HMAC algorithms, the signing key from JWKS otherwise."""
    if config.jwt_algorithm not in ASYMMETRIC_ALGORITHMS:
        if not config.supabase_jwt_secret:
            raise AuthError("SUPABASE_JWT_SECRET not configured")
        return config.supabase_jwt_secret

    jwks_url = config.jwks_url
    if not jwks_url:
        raise AuthError(f"SUPABASE_URL required for {config.jwt_algorithm} algorithm")

    try:
        return get_jwks_client(jwks_url).get_signing_key_from_jwt(token).key
    except PyJWTError as e:
        logger.error(f"Failed to fetch JWKS from {jwks_url}: {e}")
        raise AuthError(f"Failed to fetch public key from identity provider: {e}")


def verify_supabase_token(token: str, config: AuthConfig) -> Dict[str, Any]:
    """
    Check signature, expiry and audience and return the claims.

    Returns:
        Decoded token payload

    Raises:
        AuthError: If token is invalid, expired, or malformed
    """
    verification_key = get_verification_key(token, config)

    try:
        payload = jwt.decode(
            token,
            verification_key,
            algorithms=[config.jwt_algorithm],
            audience=config.jwt_audience,
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthError("Token has expired")
    except jwt.InvalidAudienceError:
        raise AuthError("Invalid token audience")
    except jwt.InvalidSignatureError:
        raise AuthError("Invalid token signature")
    except jwt.exceptions.InvalidAlgorithmError:
        raise AuthError(f"JWT algorithm mismatch, server expects '{config.jwt_algorithm}'")
    except jwt.MissingRequiredClaimError as e:
        raise AuthError(f"Token missing '{e.claim}' claim")
    except jwt.DecodeError as e:
        raise AuthError(f"Token decode error: {e}")
    except PyJWTError as e:
        raise AuthError(f"Token validation error: {e}")

    return payload


def principal_from_token(token: str, config: AuthConfig) -> Principal:
    """Verify a bearer token and return the caller it identifies."""
    return Principal.from_claims(verify_supabase_token(token, config))
