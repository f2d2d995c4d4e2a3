"""
Authentication dependencies.

Provides FastAPI dependencies for:
- Getting the current authenticated user
- Optionally resolving a user on public endpoints (leaderboard)
"""
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from core.database import get_db
from core.exceptions import ForbiddenError, UnauthorizedError
from core.security import decode_access_token
from models import User

# Use auto_error=False to handle missing credentials manually and return 401 (not 403)
security = HTTPBearer(auto_error=False)


def _resolve_user(token: str, db: Session) -> Optional[User]:
    payload = decode_access_token(token)
    if not payload:
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None

    try:
        user_id_uuid = UUID(user_id)
    except ValueError:
        return None

    return db.query(User).filter(User.id == user_id_uuid).first()


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Get the current authenticated user from JWT token.

    Raises UnauthorizedError (401) for a missing or unusable token and
    ForbiddenError (403) for a blocked account.
    """
    # Check if credentials are missing (return 401, not 403)
    if not credentials:
        raise UnauthorizedError("Not authenticated")

    user = _resolve_user(credentials.credentials, db)
    if not user:
        raise UnauthorizedError("Invalid authentication credentials")

    if user.is_blocked:
        raise ForbiddenError("Account is blocked")

    return user


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Resolve the caller if a valid token was sent; anonymous otherwise."""
    if not credentials:
        return None
    user = _resolve_user(credentials.credentials, db)
    if user is None or user.is_blocked:
        return None
    return user
