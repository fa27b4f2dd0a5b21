"""
Chirp Backend — User & Auth Schemas
=====================================

What:  Pydantic models for signup/login/profile-update input and for every
       user-shaped response.
How:   Request models do all field-shape checks (length, charset, email
       format) once, before any service runs. Response models are built
       from ORM rows with from_attributes; none of them has a password field.

Normalization:
    username and email are lowercased here, so uniqueness checks and
    lookups in the services are case-insensitive.
"""

import re
import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

# One lowercase, one uppercase, one digit, one special character
_PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&#])[A-Za-z\d@$!%*?&#]+$")
_PASSWORD_RULE = (
    "Password must be at least 6 characters long, include one uppercase letter, "
    "one number, and one special character"
)


def _check_username(value: str) -> str:
    value = value.strip()
    if len(value) < 3:
        raise ValueError("Username must be at least 3 characters")
    if not value.isascii() or not value.isalnum():
        raise ValueError("Username must only contain letters and numbers")
    return value.lower()


def _check_url(value: str) -> str:
    value = value.strip()
    if value and not value.startswith(("http://", "https://")):
        raise ValueError("Link must be a valid http(s) URL")
    return value


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class SignupRequest(BaseModel):
    """Body of POST /api/v1/auth/signup."""

    full_name: str = Field(min_length=3, max_length=50)
    username: str = Field(min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)

    @field_validator("full_name")
    @classmethod
    def strip_full_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Full name must be at least 3 characters")
        return v

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return _check_username(v)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not _PASSWORD_RE.match(v):
            raise ValueError(_PASSWORD_RULE)
        return v


class LoginRequest(BaseModel):
    """Body of POST /api/v1/auth/login. Only presence is checked here."""

    username: str = Field(min_length=1, max_length=30)
    password: str = Field(min_length=1, max_length=72)

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str) -> str:
        return v.strip().lower()


class UpdateProfileRequest(BaseModel):
    """
    Body of PUT /api/v1/users/update. Every field is optional.

    Field semantics:
        None (absent)  → keep the stored value
        ""             → clear bio / link / profile_img / cover_img
        full_name, username, email can be changed but never blanked

    The password policy (both passwords present, current one matches,
    minimum length) is enforced by UserService, not here.
    """

    full_name: Optional[str] = Field(default=None, min_length=3, max_length=50)
    username: Optional[str] = Field(default=None, min_length=3, max_length=30)
    email: Optional[EmailStr] = None
    current_password: Optional[str] = Field(default=None, max_length=72)
    new_password: Optional[str] = Field(default=None, max_length=72)
    bio: Optional[str] = Field(default=None, max_length=250)
    link: Optional[str] = Field(default=None, max_length=255)
    profile_img: Optional[str] = None
    cover_img: Optional[str] = None

    @field_validator("full_name")
    @classmethod
    def strip_full_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Full name must be at least 3 characters")
        return v

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: Optional[str]) -> Optional[str]:
        return _check_username(v) if v is not None else v

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v is not None else v

    @field_validator("bio")
    @classmethod
    def strip_bio(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v

    @field_validator("link")
    @classmethod
    def validate_link(cls, v: Optional[str]) -> Optional[str]:
        return _check_url(v) if v is not None else v


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserSummary(BaseModel):
    """
    Compact user reference embedded in posts, comments and notifications.
    """
    id: uuid.UUID
    username: str
    full_name: str
    profile_img: str = ""

    model_config = {"from_attributes": True}


class UserResponse(BaseModel):
    """Full public profile. There is deliberately no password field."""

    id: uuid.UUID
    username: str
    email: str
    full_name: str
    bio: str = ""
    link: str = ""
    profile_img: str = ""
    cover_img: str = ""
    followers: List[uuid.UUID] = Field(default_factory=list)
    following: List[uuid.UUID] = Field(default_factory=list)
    liked_posts: List[uuid.UUID] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Returned by signup and login; the token itself travels in the cookie."""
    user: UserResponse


class FollowResponse(BaseModel):
    message: str
    user_id: uuid.UUID
    following: bool = Field(description="True after a follow, False after an unfollow")

