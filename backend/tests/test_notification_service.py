"""
Chirp Backend — Notification Service Tests
============================================

What we test:
    ✅ Listing is newest first, recipient-only, with the sender resolved
    ✅ mark_all_read flips only the recipient's unread notifications
    ✅ Single delete checks ownership and existence
    ✅ Delete-all removes only the caller's inbox
    ✅ follow notifications carry no post; like/comment must carry one
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from pydantic import ValidationError as PydanticValidationError

from chirp.exceptions import ForbiddenError, NotFoundError, ValidationError
from chirp.schemas.notification import NotificationCreate
from chirp.services.notification_service import notification_service


async def _notify(db, sender, recipient, type_="follow", post_id=None, minutes_ago=0):
    notification = await notification_service.create(
        db,
        NotificationCreate(
            from_user_id=sender.id,
            to_user_id=recipient.id,
            type=type_,
            post_id=post_id,
        ),
    )
    notification.created_at = datetime.now(timezone.utc) - timedelta(minutes=minutes_ago)
    await db.flush()
    return notification


class TestListing:

    @pytest.mark.asyncio
    async def test_newest_first_with_sender(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        carol = await make_user("carol")
        post_id = uuid4()
        await _notify(db_session, alice, bob, "follow", minutes_ago=20)
        await _notify(db_session, carol, bob, "like", post_id=post_id, minutes_ago=5)
        await _notify(db_session, alice, carol, "follow", minutes_ago=1)

        inbox = await notification_service.list_for_user(db_session, bob.id)

        assert [n.type for n in inbox] == ["like", "follow"]
        assert inbox[0].from_user.username == "carol"
        assert inbox[0].post_id == post_id
        assert inbox[1].from_user.username == "alice"
        assert all(n.to_user_id == bob.id for n in inbox)

    @pytest.mark.asyncio
    async def test_empty_inbox(self, db_session, make_user):
        alice = await make_user("alice")
        assert await notification_service.list_for_user(db_session, alice.id) == []


class TestMarkRead:

    @pytest.mark.asyncio
    async def test_marks_only_recipients_unread(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        await _notify(db_session, alice, bob)
        await _notify(db_session, alice, bob, "comment", post_id=uuid4())
        other = await _notify(db_session, bob, alice)

        assert await notification_service.mark_all_read(db_session, bob.id) == 2
        assert await notification_service.mark_all_read(db_session, bob.id) == 0

        inbox = await notification_service.list_for_user(db_session, bob.id)
        assert all(n.read for n in inbox)
        assert other.read is False


class TestDelete:

    @pytest.mark.asyncio
    async def test_recipient_deletes_one(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        first = await _notify(db_session, alice, bob, minutes_ago=2)
        await _notify(db_session, alice, bob, "like", post_id=uuid4())

        await notification_service.delete_by_id(db_session, str(first.id), bob.id)

        inbox = await notification_service.list_for_user(db_session, bob.id)
        assert [n.type for n in inbox] == ["like"]

    @pytest.mark.asyncio
    async def test_sender_cannot_delete(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        notification = await _notify(db_session, alice, bob)

        with pytest.raises(ForbiddenError):
            await notification_service.delete_by_id(db_session, notification.id, alice.id)

    @pytest.mark.asyncio
    async def test_unknown_and_malformed_ids(self, db_session, make_user):
        bob = await make_user("bob")
        with pytest.raises(NotFoundError, match="Notification not found"):
            await notification_service.delete_by_id(db_session, uuid4(), bob.id)
        with pytest.raises(ValidationError, match="Invalid notification ID"):
            await notification_service.delete_by_id(db_session, "42", bob.id)

    @pytest.mark.asyncio
    async def test_delete_all_only_touches_own_inbox(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        await _notify(db_session, alice, bob)
        await _notify(db_session, alice, bob, "like", post_id=uuid4())
        await _notify(db_session, bob, alice)

        assert await notification_service.delete_all_for_user(db_session, bob.id) == 2

        assert await notification_service.list_for_user(db_session, bob.id) == []
        assert len(await notification_service.list_for_user(db_session, alice.id)) == 1


class TestCreateValidation:

    def test_follow_with_post_rejected(self):
        with pytest.raises(PydanticValidationError):
            NotificationCreate(from_user_id=uuid4(), to_user_id=uuid4(), type="follow", post_id=uuid4())

    def test_like_without_post_rejected(self):
        with pytest.raises(PydanticValidationError):
            NotificationCreate(from_user_id=uuid4(), to_user_id=uuid4(), type="like")

    def test_unknown_type_rejected(self):
        with pytest.raises(PydanticValidationError):
            NotificationCreate(from_user_id=uuid4(), to_user_id=uuid4(), type="mention")
