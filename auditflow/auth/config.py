"""
Authentication Configuration

Which identity provider issues the bearer tokens and how they are checked.
"""

from typing import Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


class AuthConfig(BaseSettings):
    """Supabase JWT settings, loaded from the environment."""

    supabase_url: str = ""
    supabase_jwt_secret: str = ""

    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"

    # Local development without an identity provider: every caller is the dev user
    auth_enabled: bool = True
    dev_user_id: str = "00000000-0000-0000-0000-000000000001"
    dev_user_email: str = "dev@auditflow.local"

    class Config:
        env_file = ".env"
        extra = "ignore"
        case_sensitive = False

    @property
    def supabase_project_ref(self) -> Optional[str]:
        # https://abcdefg.supabase.co -> abcdefg
        if not self.supabase_url:
            return None
        return self.supabase_url.split("://", 1)[-1].split(".")[0] or None

    @property
    def jwks_url(self) -> Optional[str]:
        ref = self.supabase_project_ref
        return f"https://{ref}.supabase.co/auth/v1/.well-known/jwks.json" if ref else None

    @property
    def is_configured(self) -> bool:
        """A secret or a provider URL to verify tokens against."""
        return bool(self.supabase_jwt_secret or self.supabase_url)


@lru_cache()
def get_auth_config() -> AuthConfig:
    return AuthConfig()
