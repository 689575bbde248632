"""
FastAPI Authentication Dependencies

Resolve the calling Principal from the bearer token. Ownership of projects
and their rows is enforced by the services, which treat rows the caller
does not own exactly like missing rows.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from auditflow.errors import AuthError
from .config import AuthConfig, get_auth_config
from .jwt import principal_from_token
from .principal import Principal

logger = logging.getLogger(__name__)

# HTTP Bearer token extraction
security = HTTPBearer(auto_error=False)


def _config_for(request: Request) -> AuthConfig:
    container = getattr(request.app.state, "container", None)
    if container is not None and getattr(container, "auth_config", None) is not None:
        return container.auth_config
    return get_auth_config()


async def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Principal:
    """
    Get the current authenticated caller.

    Raises:
        AuthError 401: If not authenticated or the token is invalid
    """
    config = _config_for(request)

    # If auth is disabled (local dev), everyone is the dev user
    if not config.auth_enabled:
        return Principal(user_id=config.dev_user_id, email=config.dev_user_email)

    if not credentials:
        raise AuthError("Not authenticated")

    try:
        return principal_from_token(credentials.credentials, config)
    except AuthError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise
