"""
Chirp Backend — Notification SQLAlchemy Model
===============================================

What:  ORM model representing the `notifications` collection.

Lifecycle:
    1. Created as a side effect of a follow, like, or comment
    2. read flips to True in bulk when the recipient lists notifications
    3. Deleted one by one or all at once by the recipient, or when the
       post they point at is deleted
"""

import uuid
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from chirp.database import Base, TimestampMixin

NOTIFICATION_TYPES = ("follow", "like", "comment")


class Notification(TimestampMixin, Base):
    """
    One event addressed to one recipient.

    post_id is required for like/comment and must be NULL for follow;
    the check constraint enforces that at the store level.
    """

    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    from_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    to_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    type: Mapped[str] = mapped_column(String(16), nullable=False)

    post_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, default=None)

    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint(
            "type IN ('follow', 'like', 'comment')",
            name="ck_notifications_type",
        ),
        CheckConstraint(
            "(type = 'follow' AND post_id IS NULL) OR (type != 'follow' AND post_id IS NOT NULL)",
            name="ck_notifications_post_ref",
        ),
        Index("idx_notifications_to_user_id", "to_user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Notification(id={self.id}, type='{self.type}', "
            f"to={self.to_user_id}, read={self.read})>"
        )
