"""
Authentication module for API access control.

Two independent concerns:
1. Access gate - when AUTH_API_KEY is set, every API request must carry it
   in the X-API-Key header. Unset means local development: all allowed.
2. Caller identity - the opaque user identity is taken from the X-User-Id
   header. Identity is established upstream; this service only scopes
   bookmarks and conversations by it.
"""

import secrets
from typing import Annotated

from fastapi import Header, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from .config import config

# Header name for the API key
API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)

# Maximum accepted length of a user identity
MAX_USER_ID_LENGTH = 128


def verify_api_key(api_key: str | None = Security(API_KEY_HEADER)) -> str:
    """
    Verify the API key from request headers.

    If AUTH_API_KEY is not configured in the environment, authentication
    is disabled and all requests are allowed (for local development).

    Raises:
        HTTPException: If authentication is enabled and the key is missing or invalid
    """
    configured_key = config.AUTH_API_KEY

    # If no auth key is configured, skip authentication (local dev mode)
    if not configured_key:
        return ""

    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Provide X-API-Key header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    # Use constant-time comparison to prevent timing attacks
    if not secrets.compare_digest(api_key, configured_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return api_key


def get_current_user(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """
    Resolve the caller's user identity from the X-User-Id header.

    Raises:
        HTTPException: 401 if the header is missing, 400 if it is malformed
    """
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing user identity. Provide X-User-Id header.",
        )
    user_id = x_user_id.strip()
    if len(user_id) > MAX_USER_ID_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"User identity longer than {MAX_USER_ID_LENGTH} characters",
        )
    return user_id


def get_optional_user(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str | None:
    """Like get_current_user, but anonymous callers get None."""
    if x_user_id is None or not x_user_id.strip():
        return None
    return get_current_user(x_user_id)


def generate_api_key() -> str:
    """Generate a secure random API key."""
    return secrets.token_urlsafe(32)
