"""
Chirp Backend — Notification Service
======================================

What:  Inbox operations for follow / like / comment notifications.
How:   Plain inserts from the follow, like and comment flows; reads resolve
       the sender with one batched user lookup.
Who:   UserService.follow_or_unfollow, PostService.like_or_unlike /
       comment / delete_by_id, and the /notifications routes.

Lifecycle:
    created  → by a follow, like or comment action (never by the API directly)
    read     → set in bulk by mark_all_read() each time the inbox is listed
    deleted  → one at a time or all at once by the recipient, or together
               with the post they point at
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy import delete, desc, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chirp.exceptions import ChirpError, DatabaseError, ForbiddenError, NotFoundError
from chirp.models.notification import Notification
from chirp.schemas.notification import NotificationCreate, NotificationResponse
from chirp.services.ids import IdLike, parse_id
from chirp.services.lookups import load_summaries

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Data access for the notifications table.

    Every method takes the request's AsyncSession and only flushes; the
    commit belongs to get_db_session, so a notification written by a
    follow or like is committed together with the follow or like itself.
    """

    async def create(self, db: AsyncSession, data: NotificationCreate) -> Notification:
        notification = Notification(
            from_user_id=data.from_user_id,
            to_user_id=data.to_user_id,
            type=data.type,
            post_id=data.post_id,
        )
        try:
            db.add(notification)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to create %s notification: %s", data.type, str(e))
            raise DatabaseError(context={"operation": "create_notification"})

        logger.info(
            "Notification %s: %s → %s (post=%s)",
            data.type, data.from_user_id, data.to_user_id, data.post_id,
        )
        return notification

    async def list_for_user(self, db: AsyncSession, user_id: UUID) -> List[NotificationResponse]:
        """Inbox for user_id, newest first, with the sender resolved."""
        try:
            result = await db.execute(
                select(Notification)
                .where(Notification.to_user_id == user_id)
                .order_by(desc(Notification.created_at))
            )
            notifications = list(result.scalars())
            senders = await load_summaries(db, (n.from_user_id for n in notifications))
        except SQLAlchemyError as e:
            logger.error("Failed to list notifications for %s: %s", user_id, str(e))
            raise DatabaseError(context={"operation": "list_notifications"})

        return [
            NotificationResponse(
                id=n.id,
                type=n.type,
                from_user=senders.get(n.from_user_id),
                to_user_id=n.to_user_id,
                post_id=n.post_id,
                read=n.read,
                created_at=n.created_at,
            )
            for n in notifications
        ]

    async def mark_all_read(self, db: AsyncSession, user_id: UUID) -> int:
        """Bulk read=true for the recipient's unread notifications; returns the count."""
        try:
            result = await db.execute(
                update(Notification)
                .where(Notification.to_user_id == user_id, Notification.read.is_(False))
                .values(read=True)
                .execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            logger.error("Failed to mark notifications read for %s: %s", user_id, str(e))
            raise DatabaseError(context={"operation": "mark_all_read"})
        return result.rowcount or 0

    async def delete_by_id(self, db: AsyncSession, notification_id: IdLike, user_id: UUID) -> None:
        """
        Raises:
            ValidationError: Malformed notification ID (400)
            NotFoundError: No such notification (404)
            ForbiddenError: The requester is not the recipient (403)
        """
        nid = parse_id(notification_id, "notification")
        try:
            notification = await db.get(Notification, nid)
            if notification is None:
                raise NotFoundError(resource="notification", resource_id=str(nid))
            if notification.to_user_id != user_id:
                raise ForbiddenError(message="You are not allowed to delete this notification")
            await db.delete(notification)
            await db.flush()
        except ChirpError:
            raise
        except SQLAlchemyError as e:
            logger.error("Failed to delete notification %s: %s", nid, str(e))
            raise DatabaseError(context={"operation": "delete_notification"})

        logger.info("Notification %s deleted by recipient %s", nid, user_id)

    async def delete_all_for_user(self, db: AsyncSession, user_id: UUID) -> int:
        try:
            result = await db.execute(
                delete(Notification)
                .where(Notification.to_user_id == user_id)
                .execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            logger.error("Failed to clear notifications for %s: %s", user_id, str(e))
            raise DatabaseError(context={"operation": "delete_all_notifications"})
        count = result.rowcount or 0
        logger.info("Cleared %d notifications for %s", count, user_id)
        return count

    async def delete_for_post(self, db: AsyncSession, post_id: UUID) -> int:
        """Removes the like/comment notifications pointing at a deleted post."""
        try:
            result = await db.execute(
                delete(Notification)
                .where(Notification.post_id == post_id)
                .execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            logger.error("Failed to delete notifications for post %s: %s", post_id, str(e))
            raise DatabaseError(context={"operation": "delete_post_notifications"})
        return result.rowcount or 0


notification_service = NotificationService()
