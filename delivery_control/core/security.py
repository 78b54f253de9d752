"""
Security utilities:
  - Static bearer-token authentication for inbound API requests
"""
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from delivery_control.core.config import Settings, get_settings

# Missing credentials arrive as None; verify_bearer_token raises the 401
security_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def verify_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    settings: Settings = Depends(get_settings),
) -> None:
    """FastAPI dependency: reject requests without the configured bearer token."""
    if credentials is None:
        raise _unauthorized("Authorization header with a Bearer token is required")

    token = credentials.credentials
    if not token:
        raise _unauthorized("Token not provided")

    expected = settings.BEARER_TOKEN
    if not expected or not secrets.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        raise _unauthorized("Invalid token")
