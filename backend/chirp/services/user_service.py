"""
Chirp Backend — User / Follow Service
=======================================

What:  Profiles, the follow graph, profile updates and user suggestions.
How:   Follow edges are stored twice, as the target's followers list and
       the actor's following list. Both sides change with set-add /
       set-remove inside the request's single transaction.
Who:   /users routes; seed.py.

Follow toggle (follow_or_unfollow):
    actor already follows target?
        yes → remove actor from target.followers, target from actor.following
              (no notification)
        no  → add both references + one "follow" notification to target
    Applying the toggle twice restores both users' lists.

Profile update field policy:
    None / absent → unchanged
    ""            → clears bio, link, profile_img, cover_img
    new image     → upload first; the previous hosted image is deleted
                    only after the update is flushed
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chirp.config import settings
from chirp.exceptions import (
    ChirpError,
    ConflictError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from chirp.models.user import User
from chirp.schemas.notification import NotificationCreate
from chirp.schemas.user import FollowResponse, UpdateProfileRequest, UserResponse, UserSummary
from chirp.services.auth_service import AuthService, auth_service
from chirp.services.ids import IdLike, as_uuids, id_in, parse_id, with_id, without_id
from chirp.services.media import media_host
from chirp.services.media_base import MediaHost
from chirp.services.notification_service import NotificationService, notification_service

logger = logging.getLogger(__name__)

IMAGE_FIELDS = ("profile_img", "cover_img")
TEXT_FIELDS = ("full_name", "username", "email", "bio", "link")


class UserService:
    """
    Business logic for users.

    Collaborators are attributes so tests can swap the media host:
        patch.object(user_service, "media", fake_media)
    """

    def __init__(
        self,
        media: MediaHost,
        notifications: NotificationService,
        auth: AuthService,
        suggested_limit: int = settings.suggested_users_limit,
    ):
        self.media = media
        self.notifications = notifications
        self.auth = auth
        self.suggested_limit = suggested_limit

    # ── Lookups ───────────────────────────────────────────────────────────

    async def get_by_username(self, db: AsyncSession, username: str) -> User:
        try:
            result = await db.execute(select(User).where(User.username == username.lower()))
            user = result.scalars().first()
        except SQLAlchemyError as e:
            logger.error("User lookup failed for %s: %s", username, str(e))
            raise DatabaseError(context={"operation": "get_by_username"})
        if user is None:
            raise NotFoundError(resource="user", resource_id=username)
        return user

    async def get_profile(self, db: AsyncSession, username: str) -> UserResponse:
        """
        Raises:
            NotFoundError: No such username (404)
        """
        user = await self.get_by_username(db, username)
        return UserResponse.model_validate(user)

    async def _summaries(self, db: AsyncSession, ids: List[str]) -> List[UserSummary]:
        wanted = as_uuids(ids)
        if not wanted:
            return []
        result = await db.execute(select(User).where(User.id.in_(wanted)))
        by_id = {user.id: user for user in result.scalars()}
        return [UserSummary.model_validate(by_id[uid]) for uid in wanted if uid in by_id]

    async def get_followers(self, db: AsyncSession, username: str) -> List[UserSummary]:
        user = await self.get_by_username(db, username)
        return await self._summaries(db, user.followers)

    async def get_following(self, db: AsyncSession, username: str) -> List[UserSummary]:
        user = await self.get_by_username(db, username)
        return await self._summaries(db, user.following)

    async def get_suggested(self, db: AsyncSession, user_id: UUID) -> List[UserSummary]:
        """
        A random sample of users the caller does not follow yet.

        Exploratory, not ranked: ORDER BY random() over everyone except the
        caller and their followees.
        """
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))

        excluded = [user_id, *as_uuids(user.following)]
        try:
            result = await db.execute(
                select(User)
                .where(User.id.not_in(excluded))
                .order_by(func.random())
                .limit(self.suggested_limit)
            )
        except SQLAlchemyError as e:
            logger.error("Suggested users query failed: %s", str(e))
            raise DatabaseError(context={"operation": "get_suggested"})
        return [UserSummary.model_validate(u) for u in result.scalars()]

    # ── Follow graph ──────────────────────────────────────────────────────

    async def follow_or_unfollow(
        self, db: AsyncSession, actor_id: UUID, target_id: IdLike
    ) -> FollowResponse:
        """
        Toggle the actor → target follow edge.

        Raises:
            ValidationError: Malformed target ID, or actor == target (400)
            NotFoundError: Either user is missing (404)
        """
        tid = parse_id(target_id, "user")
        if tid == actor_id:
            raise ValidationError(message="You can't follow/unfollow yourself", field="user_id")

        try:
            actor = await db.get(User, actor_id)
            target = await db.get(User, tid)
            if actor is None or target is None:
                raise NotFoundError(resource="user", resource_id=str(tid))

            if id_in(actor.following, target.id):
                target.followers = without_id(target.followers, actor.id)
                actor.following = without_id(actor.following, target.id)
                await db.flush()
                logger.info("%s unfollowed %s", actor.username, target.username)
                return FollowResponse(
                    message="User unfollowed successfully",
                    user_id=target.id,
                    following=False,
                )

            target.followers = with_id(target.followers, actor.id)
            actor.following = with_id(actor.following, target.id)
            await db.flush()
            await self.notifications.create(
                db,
                NotificationCreate(from_user_id=actor.id, to_user_id=target.id, type="follow"),
            )
        except ChirpError:
            raise
        except SQLAlchemyError as e:
            logger.error("Follow toggle failed %s → %s: %s", actor_id, tid, str(e))
            raise DatabaseError(context={"operation": "follow_or_unfollow"})

        logger.info("%s followed %s", actor.username, target.username)
        return FollowResponse(
            message="User followed successfully",
            user_id=target.id,
            following=True,
        )

    # ── Profile update ────────────────────────────────────────────────────

    async def _apply_password_change(self, user: User, data: UpdateProfileRequest) -> None:
        current, new = data.current_password, data.new_password
        if not current and not new:
            return
        if not current or not new:
            raise ValidationError(
                message="Please provide both current password and new password",
                field="current_password" if not current else "new_password",
            )
        if not await self.auth.verify_password(current, user.password_hash):
            raise ValidationError(message="Current password is incorrect", field="current_password")
        minimum = self.auth.config.min_password_length
        if len(new) < minimum:
            raise ValidationError(
                message=f"Password must be at least {minimum} characters long",
                field="new_password",
            )
        user.password_hash = await self.auth.hash_password(new)
        logger.info("Password changed for %s", user.username)

    async def _ensure_available(self, db: AsyncSession, user: User, data: UpdateProfileRequest) -> None:
        for field in ("username", "email"):
            value = getattr(data, field)
            if value is None or value == getattr(user, field):
                continue
            result = await db.execute(
                select(User.id).where(getattr(User, field) == value, User.id != user.id)
            )
            if result.first() is not None:
                raise ConflictError(message=f"{field.capitalize()} is already taken", field=field)

    async def _stage_image(
        self, user: User, field: str, source: str, uploaded: List[str], replaced: List[str]
    ) -> None:
        previous: str = getattr(user, field) or ""
        if source == previous:
            return
        new_url = ""
        if source:
            new_url = await self.media.upload(source)
            uploaded.append(new_url)
        setattr(user, field, new_url)
        if previous:
            replaced.append(previous)

    async def _discard_images(self, urls: List[str], owner: str) -> None:
        for url in urls:
            try:
                await self.media.delete(url)
            except ChirpError as e:
                # Left behind as an orphan on the media host
                logger.warning("Could not delete image %s for %s: %s", url, owner, e.message)

    async def update_profile(
        self, db: AsyncSession, user_id: UUID, data: UpdateProfileRequest
    ) -> UserResponse:
        """
        Partial update of the caller's own profile.

        Images uploaded by this call are deleted again if the update fails;
        the images they replace are only deleted once the flush succeeds.

        Raises:
            ValidationError: Password change rules (400)
            ConflictError: New username/email already taken (409)
            MediaHostError / CircuitBreakerOpenError: Image upload failed
        """
        uploaded: List[str] = []
        replaced: List[str] = []
        try:
            user = await db.get(User, user_id)
            if user is None:
                raise NotFoundError(resource="user", resource_id=str(user_id))

            await self._apply_password_change(user, data)
            await self._ensure_available(db, user, data)

            for field in TEXT_FIELDS:
                value: Optional[str] = getattr(data, field)
                if value is not None:
                    setattr(user, field, value)

            for field in IMAGE_FIELDS:
                source: Optional[str] = getattr(data, field)
                if source is not None:
                    await self._stage_image(user, field, source, uploaded, replaced)

            await db.flush()
            await db.refresh(user)
        except ChirpError:
            await self._discard_images(uploaded, str(user_id))
            raise
        except IntegrityError:
            await self._discard_images(uploaded, str(user_id))
            raise ConflictError()
        except SQLAlchemyError as e:
            logger.error("Profile update failed for %s: %s", user_id, str(e))
            await self._discard_images(uploaded, str(user_id))
            raise DatabaseError(context={"operation": "update_profile"})

        await self._discard_images(replaced, user.username)
        logger.info("Profile updated: %s", user.username)
        return UserResponse.model_validate(user)


user_service = UserService(media_host, notification_service, auth_service)
