"""
Chirp Backend — Auth Routes
=============================

What:  POST /auth/signup, POST /auth/login, POST /auth/logout, GET /auth/me.
How:   Signup and login set the HTTP-only session cookie on the response;
       logout deletes it. The JSON body never contains the token.
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from chirp.database import get_db_session
from chirp.models.user import User
from chirp.routes import API_PREFIX
from chirp.routes.deps import get_current_user
from chirp.schemas.common import ErrorResponse, MessageResponse
from chirp.schemas.user import AuthResponse, LoginRequest, SignupRequest, UserResponse
from chirp.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_PREFIX}/auth", tags=["Auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        value=token,
        max_age=auth_service.config.token_max_age_seconds,
        **auth_service.cookie_params(),
    )


@router.post(
    "/signup",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid input", "model": ErrorResponse},
        409: {"description": "Username or email taken", "model": ErrorResponse},
    },
    summary="Create an account and start a session",
)
async def signup(
    body: SignupRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    user, token = await auth_service.signup(db, body)
    _set_session_cookie(response, token)
    return AuthResponse(user=UserResponse.model_validate(user))


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"description": "Invalid username or password", "model": ErrorResponse}},
    summary="Log in and start a session",
)
async def login(
    body: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    user, token = await auth_service.login(db, body.username, body.password)
    _set_session_cookie(response, token)
    return AuthResponse(user=UserResponse.model_validate(user))


@router.post("/logout", response_model=MessageResponse, summary="End the session")
async def logout(response: Response) -> MessageResponse:
    """Clears the cookie. The token itself stays valid until it expires."""
    params = auth_service.logout()
    response.delete_cookie(**params)
    return MessageResponse(message="Logged out successfully")


@router.get(
    "/me",
    response_model=UserResponse,
    responses={401: {"description": "No valid session", "model": ErrorResponse}},
    summary="The session user",
)
async def me(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)
