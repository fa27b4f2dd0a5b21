"""
Chirp Backend — User Routes
=============================

What:  Profiles, follow graph and profile updates under /api/v1/users.
Who:   Profile page, "who to follow" panel and settings form of the client.

Route order matters: /profile/{username} and /suggested are declared before
/{username}/followers so the literal segments win.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from chirp.database import get_db_session
from chirp.models.user import User
from chirp.routes import API_PREFIX
from chirp.routes.deps import get_current_user
from chirp.schemas.common import ErrorResponse
from chirp.schemas.user import FollowResponse, UpdateProfileRequest, UserResponse, UserSummary
from chirp.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix=f"{API_PREFIX}/users",
    tags=["Users"],
    responses={401: {"description": "No valid session", "model": ErrorResponse}},
)


@router.get(
    "/profile/{username}",
    response_model=UserResponse,
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Public profile by username",
)
async def get_profile(
    username: str,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await user_service.get_profile(db, username)


@router.get("/suggested", response_model=List[UserSummary], summary="Users to follow")
async def get_suggested(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[UserSummary]:
    return await user_service.get_suggested(db, user.id)


@router.get("/{username}/followers", response_model=List[UserSummary], summary="Followers of a user")
async def get_followers(
    username: str,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[UserSummary]:
    return await user_service.get_followers(db, username)


@router.get("/{username}/following", response_model=List[UserSummary], summary="Users a user follows")
async def get_following(
    username: str,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[UserSummary]:
    return await user_service.get_following(db, username)


@router.post(
    "/follow/{user_id}",
    response_model=FollowResponse,
    responses={
        400: {"description": "Malformed ID or self-follow", "model": ErrorResponse},
        404: {"description": "User not found", "model": ErrorResponse},
    },
    summary="Follow or unfollow a user",
)
async def follow_or_unfollow(
    user_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FollowResponse:
    """Toggle: follows when not following yet, unfollows otherwise."""
    return await user_service.follow_or_unfollow(db, user.id, user_id)


@router.put(
    "/update",
    response_model=UserResponse,
    responses={
        400: {"description": "Invalid input or password change", "model": ErrorResponse},
        409: {"description": "Username or email taken", "model": ErrorResponse},
    },
    summary="Update the caller's profile",
)
async def update_profile(
    body: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await user_service.update_profile(db, user.id, body)
