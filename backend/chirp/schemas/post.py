"""
Chirp Backend — Post Schemas
==============================

What:  Request bodies for creating posts and comments, and the response
       shapes for feeds, likes and comment lists.
Who:   Posts routes (input validation) and PostService (response building).
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from chirp.schemas.user import UserSummary

POST_REQUIRES_CONTENT = "A post must have either text or an image"


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class CreatePostRequest(BaseModel):
    """
    Body of POST /api/v1/posts/create.

    img is whatever the media host accepts as a source: a data URI
    (data:image/png;base64,...) or an http(s) URL.
    """

    text: str = Field(default="", max_length=280)
    img: Optional[str] = None

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> str:
        return (v or "").strip()

    @field_validator("img")
    @classmethod
    def blank_img_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def require_text_or_image(self) -> "CreatePostRequest":
        if not self.text and not self.img:
            raise ValueError(POST_REQUIRES_CONTENT)
        return self


class CommentRequest(BaseModel):
    """Body of PATCH /api/v1/posts/comment/{id}."""

    text: str = Field(min_length=1, max_length=280)

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment text is required")
        return v


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class CommentResponse(BaseModel):
    """
    One embedded comment with its author resolved.

    user is None when the author row no longer exists.
    """
    id: uuid.UUID
    text: str
    user_id: uuid.UUID
    user: Optional[UserSummary] = None
    created_at: datetime


class PostResponse(BaseModel):
    """A post as it appears in every feed."""

    id: uuid.UUID
    user_id: uuid.UUID
    user: Optional[UserSummary] = None
    text: str = ""
    img: str = ""
    likes: List[uuid.UUID] = Field(default_factory=list)
    comments: List[CommentResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class LikesResponse(BaseModel):
    """Returned by PUT /api/v1/posts/like/{id}."""
    liked: bool = Field(description="True if the caller now likes the post")
    likes: List[uuid.UUID]
