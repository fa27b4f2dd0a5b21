"""
Chirp Backend — Post Routes
=============================

What:  Feeds, post creation, likes, comments and deletion under /api/v1/posts.
How:   GET /all is public; everything else needs a session.

Caching:
    Feeds change with every like or comment, so responses carry
    Cache-Control: no-store.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from chirp.database import get_db_session
from chirp.models.user import User
from chirp.routes import API_PREFIX
from chirp.routes.deps import get_current_user
from chirp.schemas.common import ErrorResponse, MessageResponse
from chirp.schemas.post import (
    CommentRequest,
    CommentResponse,
    CreatePostRequest,
    LikesResponse,
    PostResponse,
)
from chirp.services.post_service import post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_PREFIX}/posts", tags=["Posts"])

NOT_FOUND = {404: {"description": "Post not found", "model": ErrorResponse}}
BAD_ID = {400: {"description": "Malformed ID", "model": ErrorResponse}}


@router.get("/all", response_model=List[PostResponse], summary="Every post, newest first")
async def get_all(
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> List[PostResponse]:
    response.headers["Cache-Control"] = "no-store"
    return await post_service.get_all(db)


@router.get(
    "/likes/{user_id}",
    response_model=List[PostResponse],
    responses={**BAD_ID, 404: {"description": "User not found", "model": ErrorResponse}},
    summary="Posts liked by a user",
)
async def get_liked(
    user_id: str,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[PostResponse]:
    return await post_service.get_liked(db, user_id)


@router.get("/following", response_model=List[PostResponse], summary="Posts by followed users")
async def get_following_feed(
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[PostResponse]:
    response.headers["Cache-Control"] = "no-store"
    return await post_service.get_following_feed(db, user.id)


@router.get(
    "/user/{username}",
    response_model=List[PostResponse],
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Posts by one user",
)
async def get_by_username(
    username: str,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[PostResponse]:
    return await post_service.get_by_username(db, username)


@router.post(
    "/create",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Empty post or invalid image", "model": ErrorResponse},
        500: {"description": "Image upload failed", "model": ErrorResponse},
        503: {"description": "Image service unavailable", "model": ErrorResponse},
    },
    summary="Create a post",
)
async def create_post(
    body: CreatePostRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    return await post_service.create(db, user.id, body)


@router.put(
    "/like/{post_id}",
    response_model=LikesResponse,
    responses={**BAD_ID, **NOT_FOUND},
    summary="Like or unlike a post",
)
async def like_or_unlike(
    post_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> LikesResponse:
    return await post_service.like_or_unlike(db, post_id, user.id)


@router.patch(
    "/comment/{post_id}",
    response_model=List[CommentResponse],
    responses={**BAD_ID, **NOT_FOUND},
    summary="Comment on a post",
)
async def comment(
    post_id: str,
    body: CommentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[CommentResponse]:
    """Returns the post's full comment list, including the new comment."""
    return await post_service.comment(db, post_id, user.id, body.text)


@router.delete(
    "/{post_id}",
    response_model=MessageResponse,
    responses={
        **BAD_ID,
        **NOT_FOUND,
        403: {"description": "Not the owner", "model": ErrorResponse},
    },
    summary="Delete one of the caller's posts",
)
async def delete_post(
    post_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await post_service.delete_by_id(db, post_id, user.id)
    return MessageResponse(message="Post deleted successfully")
