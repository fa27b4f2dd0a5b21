"""
Chirp Backend — Post / Feed Service
=====================================

What:  Posts, likes, comments and the feeds built from them.
How:   Likes and comments live on the post row as JSON lists; every like is
       mirrored into the liker's users.liked_posts. Feeds are one SELECT
       for posts plus one batched SELECT for every referenced user.
Who:   /posts routes; seed.py.

Like toggle (like_or_unlike):
    caller in post.likes?
        yes → set-remove from post.likes and user.liked_posts
        no  → set-add to both, plus a "like" notification to the owner
              unless the owner liked their own post
    Applying the toggle twice restores the original liker set.

Delete (delete_by_id):
    1. Owner check
    2. Hosted image deleted (exactly one media host call)
    3. Post id scrubbed from every liker's liked_posts
    4. like/comment notifications pointing at the post removed
    5. Post row removed
    All database steps share the request transaction.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List
from uuid import UUID

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chirp.exceptions import ChirpError, DatabaseError, ForbiddenError, NotFoundError
from chirp.models.post import Post
from chirp.models.user import User
from chirp.schemas.notification import NotificationCreate
from chirp.schemas.post import CommentResponse, CreatePostRequest, LikesResponse, PostResponse
from chirp.services.ids import IdLike, as_uuids, id_in, parse_id, with_id, without_id
from chirp.services.lookups import load_summaries
from chirp.services.media import media_host
from chirp.services.media_base import MediaHost
from chirp.services.notification_service import NotificationService, notification_service

logger = logging.getLogger(__name__)


class PostService:
    """
    Business logic for posts.

    Error Handling Strategy:
        Typed ChirpErrors (not found, forbidden, media host failures) pass
        through untouched. SQLAlchemy errors are logged and wrapped in
        DatabaseError so internals never reach the client.
    """

    def __init__(self, media: MediaHost, notifications: NotificationService):
        self.media = media
        self.notifications = notifications

    # ── Response building ─────────────────────────────────────────────────

    def _comment_author_ids(self, posts: Iterable[Post]) -> List[UUID]:
        ids = []
        for post in posts:
            ids.extend(as_uuids([c.get("user_id") for c in post.comments or []]))
        return ids

    def _comments(self, comments: List[Dict[str, Any]], users) -> List[CommentResponse]:
        result = []
        for comment in comments or []:
            author_id = UUID(str(comment["user_id"]))
            result.append(
                CommentResponse(
                    id=comment["id"],
                    text=comment["text"],
                    user_id=author_id,
                    user=users.get(author_id),
                    created_at=comment["created_at"],
                )
            )
        return result

    async def to_responses(self, db: AsyncSession, posts: List[Post]) -> List[PostResponse]:
        """Resolve authors and comment authors for a page of posts in one query."""
        author_ids = [p.user_id for p in posts] + self._comment_author_ids(posts)
        users = await load_summaries(db, author_ids)
        return [
            PostResponse(
                id=post.id,
                user_id=post.user_id,
                user=users.get(post.user_id),
                text=post.text,
                img=post.img,
                likes=post.likes or [],
                comments=self._comments(post.comments, users),
                created_at=post.created_at,
                updated_at=post.updated_at,
            )
            for post in posts
        ]

    async def _get_post(self, db: AsyncSession, post_id: IdLike) -> Post:
        pid = parse_id(post_id, "post")
        post = await db.get(Post, pid)
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(pid))
        return post

    async def _get_user(self, db: AsyncSession, user_id: UUID) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return user

    async def _list(self, db: AsyncSession, *criteria) -> List[PostResponse]:
        query = select(Post).order_by(desc(Post.created_at))
        if criteria:
            query = query.where(*criteria)
        try:
            result = await db.execute(query)
            return await self.to_responses(db, list(result.scalars()))
        except SQLAlchemyError as e:
            logger.error("Feed query failed: %s", str(e))
            raise DatabaseError(context={"operation": "list_posts"})

    # ── Writes ────────────────────────────────────────────────────────────

    async def create(self, db: AsyncSession, user_id: UUID, data: CreatePostRequest) -> PostResponse:
        """
        Raises:
            NotFoundError: The author no longer exists
            MediaHostError / CircuitBreakerOpenError: Image upload failed
        """
        try:
            await self._get_user(db, user_id)
            img = await self.media.upload(data.img) if data.img else ""

            post = Post(user_id=user_id, text=data.text, img=img)
            db.add(post)
            await db.flush()
            await db.refresh(post)
        except ChirpError:
            raise
        except SQLAlchemyError as e:
            logger.error("Failed to create post for %s: %s", user_id, str(e))
            raise DatabaseError(context={"operation": "create_post"})

        logger.info("Post %s created by %s (image=%s)", post.id, user_id, bool(img))
        return (await self.to_responses(db, [post]))[0]

    async def delete_by_id(self, db: AsyncSession, post_id: IdLike, user_id: UUID) -> None:
        """
        Raises:
            ValidationError: Malformed post ID (400)
            NotFoundError: No such post (404)
            ForbiddenError: The requester does not own the post (403)
        """
        try:
            post = await self._get_post(db, post_id)
            if post.user_id != user_id:
                raise ForbiddenError(message="You are not authorized to delete this post")

            if post.img:
                await self.media.delete(post.img)

            likers = as_uuids(post.likes)
            if likers:
                result = await db.execute(select(User).where(User.id.in_(likers)))
                for liker in result.scalars():
                    liker.liked_posts = without_id(liker.liked_posts, post.id)

            await self.notifications.delete_for_post(db, post.id)
            await db.delete(post)
            await db.flush()
        except ChirpError:
            raise
        except SQLAlchemyError as e:
            logger.error("Failed to delete post %s: %s", post_id, str(e))
            raise DatabaseError(context={"operation": "delete_post"})

        logger.info("Post %s deleted by owner %s", post.id, user_id)

    async def comment(
        self, db: AsyncSession, post_id: IdLike, user_id: UUID, text: str
    ) -> List[CommentResponse]:
        """
        Append a comment and return the post's whole comment list.

        Raises:
            ValidationError: Malformed post ID (400)
            NotFoundError: No such post (404)
        """
        try:
            post = await self._get_post(db, post_id)
            comment = {
                "id": str(uuid.uuid4()),
                "text": text,
                "user_id": str(user_id),
                "created_at": datetime.now(timezone.utc).isoformat(),
            }
            post.comments = [*(post.comments or []), comment]
            await db.flush()

            if post.user_id != user_id:
                await self.notifications.create(
                    db,
                    NotificationCreate(
                        from_user_id=user_id,
                        to_user_id=post.user_id,
                        type="comment",
                        post_id=post.id,
                    ),
                )
            users = await load_summaries(db, self._comment_author_ids([post]))
        except ChirpError:
            raise
        except SQLAlchemyError as e:
            logger.error("Failed to comment on post %s: %s", post_id, str(e))
            raise DatabaseError(context={"operation": "comment"})

        logger.info("Comment added to post %s by %s", post.id, user_id)
        return self._comments(post.comments, users)

    async def like_or_unlike(self, db: AsyncSession, post_id: IdLike, user_id: UUID) -> LikesResponse:
        """
        Toggle the caller's like on a post.

        Raises:
            ValidationError: Malformed post ID (400)
            NotFoundError: No such post (404)
        """
        try:
            post = await self._get_post(db, post_id)
            user = await self._get_user(db, user_id)

            if id_in(post.likes, user.id):
                post.likes = without_id(post.likes, user.id)
                user.liked_posts = without_id(user.liked_posts, post.id)
                liked = False
            else:
                post.likes = with_id(post.likes, user.id)
                user.liked_posts = with_id(user.liked_posts, post.id)
                liked = True
            await db.flush()

            if liked and post.user_id != user.id:
                await self.notifications.create(
                    db,
                    NotificationCreate(
                        from_user_id=user.id,
                        to_user_id=post.user_id,
                        type="like",
                        post_id=post.id,
                    ),
                )
        except ChirpError:
            raise
        except SQLAlchemyError as e:
            logger.error("Like toggle failed on post %s: %s", post_id, str(e))
            raise DatabaseError(context={"operation": "like_or_unlike"})

        logger.info("%s %s post %s", user.username, "liked" if liked else "unliked", post.id)
        return LikesResponse(liked=liked, likes=post.likes)

    # ── Feeds ─────────────────────────────────────────────────────────────

    async def get_all(self, db: AsyncSession) -> List[PostResponse]:
        return await self._list(db)

    async def get_liked(self, db: AsyncSession, user_id: IdLike) -> List[PostResponse]:
        """Posts whose IDs are in the user's liked_posts, newest first."""
        user = await self._get_user(db, parse_id(user_id, "user"))
        liked = as_uuids(user.liked_posts)
        if not liked:
            return []
        return await self._list(db, Post.id.in_(liked))

    async def get_following_feed(self, db: AsyncSession, user_id: UUID) -> List[PostResponse]:
        """Posts authored by the caller's followees, newest first."""
        user = await self._get_user(db, user_id)
        following = as_uuids(user.following)
        if not following:
            return []
        return await self._list(db, Post.user_id.in_(following))

    async def get_by_username(self, db: AsyncSession, username: str) -> List[PostResponse]:
        """
        Raises:
            NotFoundError: No such username (404)
        """
        result = await db.execute(select(User).where(User.username == username.lower()))
        user = result.scalars().first()
        if user is None:
            raise NotFoundError(resource="user", resource_id=username)
        return await self._list(db, Post.user_id == user.id)


post_service = PostService(media_host, notification_service)
