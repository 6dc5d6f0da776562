"""FastAPI authentication dependencies for route protection."""

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from renthub.auth.jwt import ACCESS_TOKEN, decode_token
from renthub.database import get_db
from renthub.models.user import User

# Strict bearer: rejects requests without a token
_bearer_scheme = HTTPBearer()

# Optional bearer: returns None if no token provided
_bearer_scheme_optional = HTTPBearer(auto_error=False)


async def _user_from_token(token: str, db: AsyncSession) -> User | None:
    """Resolve an access token to an active user, or None."""
    try:
        payload = decode_token(token, expected_type=ACCESS_TOKEN)
        user_id = uuid.UUID(payload.get("sub") or "")
    except (JWTError, ValueError):
        return None

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        return None
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Return the user behind the Bearer token.

    Raises:
        HTTPException 401: If the token is invalid, expired, the wrong type,
            or the user is missing or inactive.
    """
    user = await _user_from_token(credentials.credentials, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_active_user(
    user: User = Depends(get_current_user),
) -> User:
    """Return the current user only if their account is active."""
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )
    return user


async def get_current_admin(
    user: User = Depends(get_current_active_user),
) -> User:
    """Require the ``admin`` role (product moderation)."""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return user


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme_optional),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """Optionally authenticate a user from a Bearer token.

    Public product listings use this to hide the caller's own products.
    """
    if credentials is None:
        return None
    return await _user_from_token(credentials.credentials, db)
