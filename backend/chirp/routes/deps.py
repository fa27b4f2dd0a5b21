"""
Chirp Backend — Route Dependencies
====================================

What:  FastAPI dependencies resolving the session identity set by
       SessionMiddleware into a User row.
Who:   Every protected route declares Depends(get_current_user).
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from chirp.database import get_db_session
from chirp.exceptions import UnauthorizedError
from chirp.models.user import User
from chirp.services.auth_service import auth_service


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """
    Raises:
        UnauthorizedError: No cookie, invalid/expired token, or the user
                           behind the token no longer exists (401).
    """
    user_id = getattr(request.state, "user_id", None)
    if user_id is None:
        error = getattr(request.state, "session_error", None)
        raise error or UnauthorizedError(message="Unauthorized: No token provided")
    return await auth_service.get_user_by_id(db, user_id)

