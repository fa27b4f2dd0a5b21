"""
Chirp Backend — Notification Schemas
======================================
"""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, model_validator

from chirp.schemas.user import UserSummary

NotificationType = Literal["follow", "like", "comment"]


class NotificationCreate(BaseModel):
    """
    Internal input for NotificationService.create().

    Follow notifications carry no post; like/comment notifications must.
    """
    from_user_id: uuid.UUID
    to_user_id: uuid.UUID
    type: NotificationType
    post_id: Optional[uuid.UUID] = None

    @model_validator(mode="after")
    def check_post_reference(self) -> "NotificationCreate":
        if self.type == "follow" and self.post_id is not None:
            raise ValueError("Follow notifications cannot reference a post")
        if self.type != "follow" and self.post_id is None:
            raise ValueError(f"A '{self.type}' notification must reference a post")
        return self


class NotificationResponse(BaseModel):
    """One entry of GET /api/v1/notifications, sender resolved."""

    id: uuid.UUID
    type: NotificationType
    from_user: Optional[UserSummary] = None
    to_user_id: uuid.UUID
    post_id: Optional[uuid.UUID] = None
    read: bool
    created_at: datetime
