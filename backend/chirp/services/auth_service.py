"""
Chirp Backend — Auth / Session Service
========================================

What:  Account creation, credential checks and session tokens.
How:   bcrypt password hashes (run in a worker thread so the event loop
       keeps serving), PyJWT HS256 tokens carrying the user id.
Who:   /auth routes, SessionMiddleware (validate_token) and the
       get_current_user dependency (get_user_by_id).

Session model:
    Stateless. A token embeds {user_id, iat, exp} and travels in an
    HTTP-only cookie. Logging out clears the cookie only; a copied token
    stays valid until exp, there is no revocation list.

Cookie policy (cookie_params):
    development → SameSite=Strict
    production  → SameSite=None; Secure (the client is served cross-site)
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Tuple
from uuid import UUID

import bcrypt
import jwt
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chirp.config import Settings, settings as default_settings
from chirp.exceptions import ChirpError, ConflictError, DatabaseError, UnauthorizedError
from chirp.models.user import User
from chirp.schemas.user import SignupRequest

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid username or password"


class AuthService:
    """Signup, login and token handling, configured by one Settings instance."""

    def __init__(self, config: Settings = default_settings):
        self.config = config

    # ── Passwords ─────────────────────────────────────────────────────────

    async def hash_password(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.config.bcrypt_rounds)
        hashed = await asyncio.to_thread(bcrypt.hashpw, password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    async def verify_password(self, password: str, password_hash: str) -> bool:
        if not password_hash:
            return False
        try:
            return await asyncio.to_thread(
                bcrypt.checkpw, password.encode("utf-8"), password_hash.encode("utf-8")
            )
        except ValueError:
            # Stored hash is not a bcrypt hash
            logger.warning("Malformed password hash encountered")
            return False

    # ── Tokens ────────────────────────────────────────────────────────────

    def create_token(self, user_id: UUID) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "user_id": str(user_id),
            "iat": now,
            "exp": now + timedelta(days=self.config.jwt_expires_days),
        }
        return jwt.encode(claims, self.config.jwt_secret, algorithm=self.config.jwt_algorithm)

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Verify signature and expiry; return the claims.

        Raises:
            UnauthorizedError: Expired, badly signed or malformed token, or
                               one without a usable user_id claim.
        """
        if not token:
            raise UnauthorizedError(message="Unauthorized: No token provided")
        try:
            claims = jwt.decode(
                token,
                self.config.jwt_secret,
                algorithms=[self.config.jwt_algorithm],
                options={"require": ["exp", "user_id"]},
            )
        except jwt.ExpiredSignatureError:
            raise UnauthorizedError(message="Unauthorized: Token expired")
        except jwt.InvalidTokenError:
            raise UnauthorizedError(message="Unauthorized: Invalid token")

        try:
            claims["user_id"] = UUID(str(claims["user_id"]))
        except ValueError:
            raise UnauthorizedError(message="Unauthorized: Invalid token")
        return claims

    def cookie_params(self) -> Dict[str, Any]:
        """Keyword arguments for Response.set_cookie / delete_cookie."""
        params: Dict[str, Any] = {
            "key": self.config.cookie_name,
            "httponly": True,
            "path": "/",
        }
        if self.config.is_production:
            params["samesite"] = "none"
            params["secure"] = True
        else:
            params["samesite"] = "strict"
            params["secure"] = False
        if self.config.cookie_domain:
            params["domain"] = self.config.cookie_domain
        return params

    # ── Accounts ──────────────────────────────────────────────────────────

    async def signup(self, db: AsyncSession, data: SignupRequest) -> Tuple[User, str]:
        """
        Create an account and issue its first token.

        Raises:
            ConflictError: Username or email already taken (409)
            DatabaseError: Insert failed for another reason
        """
        try:
            result = await db.execute(
                select(User).where(or_(User.username == data.username, User.email == data.email))
            )
            existing = result.scalars().first()
            if existing is not None:
                field = "username" if existing.username == data.username else "email"
                raise ConflictError(
                    message=f"{field.capitalize()} is already taken",
                    field=field,
                )

            user = User(
                full_name=data.full_name,
                username=data.username,
                email=data.email,
                password_hash=await self.hash_password(data.password),
            )
            db.add(user)
            await db.flush()
            await db.refresh(user)
        except ChirpError:
            raise
        except IntegrityError:
            # Lost a race against a concurrent signup; the unique index fired
            raise ConflictError()
        except SQLAlchemyError as e:
            logger.error("Signup failed for %s: %s", data.username, str(e))
            raise DatabaseError(context={"operation": "signup"})

        logger.info("User signed up: %s (%s)", user.username, user.id)
        return user, self.create_token(user.id)

    async def login(self, db: AsyncSession, username: str, password: str) -> Tuple[User, str]:
        """
        Raises:
            UnauthorizedError: "Invalid username or password" for an unknown
                               user and for a wrong password alike.
        """
        try:
            result = await db.execute(select(User).where(User.username == username.lower()))
            user = result.scalars().first()
        except SQLAlchemyError as e:
            logger.error("Login lookup failed: %s", str(e))
            raise DatabaseError(context={"operation": "login"})

        if user is None or not await self.verify_password(password, user.password_hash):
            logger.info("Failed login attempt for username=%s", username)
            raise UnauthorizedError(message=INVALID_CREDENTIALS)

        logger.info("User logged in: %s", user.username)
        return user, self.create_token(user.id)

    def logout(self) -> Dict[str, Any]:
        """Nothing to do server-side; returns the cookie attributes to clear."""
        return self.cookie_params()

    async def get_user_by_id(self, db: AsyncSession, user_id: UUID) -> User:
        """
        Resolve a session identity to its user row.

        Raises:
            UnauthorizedError: The token outlived its user.
        """
        try:
            user = await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Session user lookup failed: %s", str(e))
            raise DatabaseError(context={"operation": "get_user_by_id"})
        if user is None:
            raise UnauthorizedError(message="Unauthorized: User not found")
        return user


auth_service = AuthService()
