"""
Chirp Backend — Auth Service Tests
====================================

What we test:
    ✅ Signup persists a user with a bcrypt hash and returns a valid token
    ✅ Duplicate username/email (any case) is a ConflictError
    ✅ Login succeeds with the signup credentials
    ✅ Unknown user and wrong password fail with the same message
    ✅ Token validation rejects tampered, expired and claim-less tokens
    ✅ Cookie attributes follow the environment
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import jwt
import pytest

from chirp.config import Settings
from chirp.exceptions import ConflictError, UnauthorizedError
from chirp.schemas.user import SignupRequest, UserResponse
from chirp.services.auth_service import INVALID_CREDENTIALS, AuthService, auth_service

TEST_PASSWORD = "Secret#123"


def _signup(username="alice", email="alice@chirp.dev", password=TEST_PASSWORD):
    return SignupRequest(
        full_name="Alice Liddell",
        username=username,
        email=email,
        password=password,
    )


class TestSignup:

    @pytest.mark.asyncio
    async def test_signup_creates_user_and_token(self, db_session):
        user, token = await auth_service.signup(db_session, _signup())

        assert user.id is not None
        assert user.username == "alice"
        assert user.password_hash != TEST_PASSWORD
        assert user.password_hash.startswith("$2")
        assert auth_service.validate_token(token)["user_id"] == user.id

    @pytest.mark.asyncio
    async def test_response_never_contains_password(self, db_session):
        user, _ = await auth_service.signup(db_session, _signup())
        body = UserResponse.model_validate(user).model_dump()

        assert "password" not in body
        assert "password_hash" not in body

    @pytest.mark.asyncio
    async def test_duplicate_username_conflicts(self, db_session):
        await auth_service.signup(db_session, _signup())

        with pytest.raises(ConflictError) as exc_info:
            await auth_service.signup(db_session, _signup(email="other@chirp.dev"))
        assert exc_info.value.field == "username"

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts_case_insensitively(self, db_session):
        await auth_service.signup(db_session, _signup())

        with pytest.raises(ConflictError) as exc_info:
            await auth_service.signup(db_session, _signup(username="alice2", email="ALICE@Chirp.dev"))
        assert exc_info.value.field == "email"

    @pytest.mark.asyncio
    async def test_username_is_stored_lowercase(self, db_session):
        user, _ = await auth_service.signup(db_session, _signup(username="AliceL"))
        assert user.username == "alicel"


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_after_signup(self, db_session):
        created, _ = await auth_service.signup(db_session, _signup())

        user, token = await auth_service.login(db_session, "alice", TEST_PASSWORD)

        assert user.id == created.id
        assert auth_service.validate_token(token)["user_id"] == created.id

    @pytest.mark.asyncio
    async def test_login_is_case_insensitive_on_username(self, db_session):
        await auth_service.signup(db_session, _signup())
        user, _ = await auth_service.login(db_session, "ALICE", TEST_PASSWORD)
        assert user.username == "alice"

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_user_look_the_same(self, db_session):
        await auth_service.signup(db_session, _signup())

        with pytest.raises(UnauthorizedError) as wrong_password:
            await auth_service.login(db_session, "alice", "Wrong#123")
        with pytest.raises(UnauthorizedError) as unknown_user:
            await auth_service.login(db_session, "nobody", TEST_PASSWORD)

        assert wrong_password.value.message == INVALID_CREDENTIALS
        assert unknown_user.value.message == INVALID_CREDENTIALS

    @pytest.mark.asyncio
    async def test_get_user_by_id_for_deleted_user(self, db_session):
        with pytest.raises(UnauthorizedError):
            await auth_service.get_user_by_id(db_session, uuid4())


class TestTokens:

    def test_round_trip_claims(self):
        user_id = uuid4()
        claims = auth_service.validate_token(auth_service.create_token(user_id))

        assert claims["user_id"] == user_id
        lifetime = claims["exp"] - claims["iat"]
        assert lifetime == timedelta(days=auth_service.config.jwt_expires_days).total_seconds()

    def test_tampered_token_rejected(self):
        token = auth_service.create_token(uuid4())
        forged = jwt.encode(
            jwt.decode(token, options={"verify_signature": False}),
            "some-other-secret-of-sufficient-length",
            algorithm="HS256",
        )
        with pytest.raises(UnauthorizedError, match="Invalid token"):
            auth_service.validate_token(forged)

    def test_expired_token_rejected(self):
        past = datetime.now(timezone.utc) - timedelta(days=30)
        token = jwt.encode(
            {"user_id": str(uuid4()), "iat": past, "exp": past + timedelta(days=15)},
            auth_service.config.jwt_secret,
            algorithm="HS256",
        )
        with pytest.raises(UnauthorizedError, match="expired"):
            auth_service.validate_token(token)

    def test_token_without_user_id_rejected(self):
        token = jwt.encode(
            {"exp": datetime.now(timezone.utc) + timedelta(days=1)},
            auth_service.config.jwt_secret,
            algorithm="HS256",
        )
        with pytest.raises(UnauthorizedError):
            auth_service.validate_token(token)

    def test_garbage_token_rejected(self):
        with pytest.raises(UnauthorizedError):
            auth_service.validate_token("not-a-jwt")


class TestCookiePolicy:

    def test_development_cookie_is_strict(self):
        params = AuthService(Settings(environment="development")).cookie_params()
        assert params["httponly"] is True
        assert params["samesite"] == "strict"
        assert params["secure"] is False
        assert "domain" not in params

    def test_production_cookie_is_cross_site_secure(self):
        config = Settings(environment="production", cookie_domain="chirp.dev")
        params = AuthService(config).cookie_params()
        assert params["samesite"] == "none"
        assert params["secure"] is True
        assert params["domain"] == "chirp.dev"

    @pytest.mark.asyncio
    async def test_password_hash_verifies(self):
        hashed = await auth_service.hash_password(TEST_PASSWORD)
        assert await auth_service.verify_password(TEST_PASSWORD, hashed)
        assert not await auth_service.verify_password("Other#123", hashed)
        assert not await auth_service.verify_password(TEST_PASSWORD, "not-a-hash")
