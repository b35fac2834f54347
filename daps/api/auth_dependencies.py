"""
Authentication dependencies for FastAPI routes.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from daps.services import auth_service, user_service
from daps.database.db import get_db_session

security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    session: AsyncSession = Depends(get_db_session),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """
    Dependency to get the current authenticated user from JWT token.

    Args:
        session: Database session
        credentials: HTTP Bearer token credentials

    Returns:
        User dictionary (id, email, first_name, last_name, ...)

    Raises:
        HTTPException: If token is missing/invalid or user not found
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    payload = auth_service.verify_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Invalid authentication token")

    user_id = payload.get("user_id")
    if user_id is None:
        raise _unauthorized("Invalid token payload")

    user = await user_service.get_user_by_id(session, user_id)
    if user is None:
        raise _unauthorized("User not found")

    return user


async def require_user(user: dict = Depends(get_current_user)) -> dict:
    """Require a signed-in user."""
    return user


async def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> bool:
    """
    Require the admin shared secret as the bearer credential.

    Raises:
        HTTPException: 401 if missing or wrong
    """
    if credentials is None or not auth_service.is_admin(credentials.credentials):
        raise _unauthorized("Admin credentials required")
    return True
