"""
Chirp Backend — User SQLAlchemy Model
=======================================

What:  ORM model representing the `users` collection.
How:   Document-style row: scalar profile fields plus denormalized ID lists
       (followers, following, liked_posts) kept in JSON columns.
Who:   Used by the auth, user and post services; read by Alembic.

Follow graph:
    The relation is stored on both sides. If A follows B then
    str(B.id) is in A.following and str(A.id) is in B.followers.
    Services only ever add/remove with set semantics, so repeating an
    operation never produces duplicates.

Case policy:
    username and email are stored lowercase; the unique indexes therefore
    enforce case-insensitive uniqueness.
"""

import uuid
from typing import List

from sqlalchemy import Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from chirp.database import Base, JSONDocument, TimestampMixin


class User(TimestampMixin, Base):
    """
    A registered account.

    Query Patterns:
        - Login / profile: WHERE username = :username  → uq_users_username
        - Signup conflict: WHERE username = :u OR email = :e
        - Suggestions: WHERE id != :me AND id NOT IN (:following) ORDER BY random()
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    username: Mapped[str] = mapped_column(String(30), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)

    # bcrypt output; never leaves the service layer
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    full_name: Mapped[str] = mapped_column(String(50), nullable=False)
    bio: Mapped[str] = mapped_column(String(250), nullable=False, default="")
    link: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # Media host URLs ("" when unset)
    profile_img: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cover_img: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # ── Denormalized references (lists of str(UUID)) ──────────────────────
    followers: Mapped[List[str]] = mapped_column(JSONDocument, nullable=False, default=list)
    following: Mapped[List[str]] = mapped_column(JSONDocument, nullable=False, default=list)
    liked_posts: Mapped[List[str]] = mapped_column(JSONDocument, nullable=False, default=list)

    __table_args__ = (
        Index("uq_users_username", "username", unique=True),
        Index("uq_users_email", "email", unique=True),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
