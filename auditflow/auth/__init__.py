"""
Auditflow Authentication

Supabase-issued JWTs identify the caller; services enforce row ownership.

Usage:
    from auditflow.auth import get_current_principal, Principal

    @router.get("/audits")
    async def list_audits(principal: Principal = Depends(get_current_principal)):
        ...
"""

from .config import AuthConfig, get_auth_config
from .principal import Principal
from .jwt import verify_supabase_token, principal_from_token
from .dependencies import get_current_principal, security

__all__ = [
    "AuthConfig",
    "get_auth_config",
    "Principal",
    "verify_supabase_token",
    "principal_from_token",
    "get_current_principal",
    "security",
]
