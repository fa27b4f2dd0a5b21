"""
Chirp Backend — Notification Routes
=====================================

What:  The caller's inbox under /api/v1/notifications.
How:   Listing marks everything read after the response list is built, so
       the client still sees which items were new.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from chirp.database import get_db_session
from chirp.models.user import User
from chirp.routes import API_PREFIX
from chirp.routes.deps import get_current_user
from chirp.schemas.common import ErrorResponse, MessageResponse
from chirp.schemas.notification import NotificationResponse
from chirp.services.notification_service import notification_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix=f"{API_PREFIX}/notifications",
    tags=["Notifications"],
    responses={401: {"description": "No valid session", "model": ErrorResponse}},
)


@router.get("", response_model=List[NotificationResponse], summary="List and mark read")
async def list_notifications(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[NotificationResponse]:
    notifications = await notification_service.list_for_user(db, user.id)
    await notification_service.mark_all_read(db, user.id)
    return notifications


@router.delete("", response_model=MessageResponse, summary="Delete every notification")
async def delete_all(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await notification_service.delete_all_for_user(db, user.id)
    return MessageResponse(message="Notifications deleted successfully")


@router.delete(
    "/{notification_id}",
    response_model=MessageResponse,
    responses={
        400: {"description": "Malformed ID", "model": ErrorResponse},
        403: {"description": "Not the recipient", "model": ErrorResponse},
        404: {"description": "Notification not found", "model": ErrorResponse},
    },
    summary="Delete one notification",
)
async def delete_one(
    notification_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await notification_service.delete_by_id(db, notification_id, user.id)
    return MessageResponse(message="Notification deleted successfully")
