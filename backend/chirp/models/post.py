"""
Chirp Backend — Post SQLAlchemy Model
=======================================

What:  ORM model representing the `posts` collection.
How:   Owner reference plus text/image content; likes and comments are
       embedded JSON lists, like sub-documents.

Embedded shapes:
    likes:    ["<user uuid>", ...]                   ordered, no duplicates
    comments: [{"id": "<uuid>", "text": "...",
                "user_id": "<uuid>",
                "created_at": "<ISO 8601>"}, ...]   append only

    Every post has text, an image, or both (checked by CreatePostRequest
    before the row is built).
"""

import uuid
from typing import Any, Dict, List

from sqlalchemy import ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from chirp.database import Base, JSONDocument, TimestampMixin


class Post(TimestampMixin, Base):
    """
    A post authored by one user.

    Query Patterns:
        - Global feed: ORDER BY created_at DESC        → idx_posts_created_at
        - Following feed: WHERE user_id IN (:following) → idx_posts_user_id
        - Liked posts: WHERE id IN (:liked_posts)       → primary key
    """

    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    text: Mapped[str] = mapped_column(String(280), nullable=False, default="")
    img: Mapped[str] = mapped_column(Text, nullable=False, default="")

    likes: Mapped[List[str]] = mapped_column(JSONDocument, nullable=False, default=list)
    comments: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONDocument, nullable=False, default=list
    )

    __table_args__ = (
        Index("idx_posts_user_id", "user_id"),
        Index("idx_posts_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, user_id={self.user_id}, likes={len(self.likes or [])})>"
