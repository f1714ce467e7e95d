"""
Authentication for the FastAPI API.

Users authenticate with a bearer token. Read endpoints also accept
anonymous requests; mutating endpoints require a user or an admin.
"""

import secrets
from typing import Optional

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.dependencies import get_database
from catalog.database import CatalogDatabase
from catalog.models import User

logger = structlog.get_logger(__name__)

# Security scheme; a missing header means anonymous access
security = HTTPBearer(auto_error=False)


def generate_api_token() -> str:
    """Generate a new user API token."""
    return f"lc_{secrets.token_urlsafe(32)}"


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    database: CatalogDatabase = Depends(get_database)
) -> Optional[User]:
    """
    Resolve the authenticated user of the request.

    Returns:
        The user owning the bearer token, or None for anonymous requests

    Raises:
        HTTPException: If a token is given but matches no user
    """
    if credentials is None:
        return None

    user = await database.get_user_by_token(credentials.credentials)
    if user is None:
        logger.warning("Invalid API token attempted", token=credentials.credentials[:10] + "...")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def require_user(current_user: Optional[User] = Depends(get_current_user)) -> User:
    """Require an authenticated user."""
    if current_user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return current_user


async def require_admin(current_user: User = Depends(require_user)) -> User:
    """Require an authenticated user holding the ADMIN role."""
    if not current_user.is_admin():
        logger.warning("Admin access denied", user_id=current_user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user
