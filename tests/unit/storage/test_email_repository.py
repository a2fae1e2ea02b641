"""
Unit tests for the email metadata repository.
"""

from datetime import datetime, timedelta, timezone

import pytest

from inbox_actions.email_processing.models import EmailMetadata, EmailProvider, EmailStatus
from inbox_actions.storage.email_repository import EmailMetadataRepository
from inbox_actions.storage.user_repository import UserRepository

RECEIVED_AT = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


def metadata(message_id, received_at=RECEIVED_AT, **overrides):
    fields = dict(
        message_id=message_id,
        provider=EmailProvider.GMAIL,
        sender="paul@example.com",
        subject="Point projet",
        received_at=received_at,
        snippet="Peux-tu m'envoyer...",
        thread_id="thread-1",
        labels=["INBOX", "UNREAD"],
        web_url=f"https://mail.google.com/mail/u/0/#all/{message_id}",
    )
    fields.update(overrides)
    return EmailMetadata(**fields)


@pytest.mark.usefixtures("database")
class TestEmailMetadataRepository:
    """Test suite for EmailMetadataRepository."""

    @pytest.mark.asyncio
    async def test_add_and_exists(self):
        user = await UserRepository.create_user("owner@example.com")

        assert await EmailMetadataRepository.add(user["id"], metadata("m1")) is True
        assert await EmailMetadataRepository.add(user["id"], metadata("m1")) is False
        assert await EmailMetadataRepository.exists(user["id"], "m1")
        assert not await EmailMetadataRepository.exists(user["id"], "m2")

    @pytest.mark.asyncio
    async def test_same_message_id_for_two_users(self):
        first = await UserRepository.create_user("first@example.com")
        second = await UserRepository.create_user("second@example.com")

        assert await EmailMetadataRepository.add(first["id"], metadata("m1"))
        assert await EmailMetadataRepository.add(second["id"], metadata("m1"))

    @pytest.mark.asyncio
    async def test_get_extracted_newest_first(self):
        user = await UserRepository.create_user("owner@example.com")
        await EmailMetadataRepository.add(user["id"], metadata("old", RECEIVED_AT - timedelta(days=1)))
        await EmailMetadataRepository.add(user["id"], metadata("new"))
        await EmailMetadataRepository.add(user["id"], metadata("done", status=EmailStatus.ANALYZED))

        pending = await EmailMetadataRepository.get_extracted(user["id"])
        assert [m.message_id for m in pending] == ["new", "old"]
        assert [m.message_id for m in await EmailMetadataRepository.get_extracted(user["id"], limit=1)] == ["new"]
        assert await EmailMetadataRepository.count_extracted(user["id"]) == 2

    @pytest.mark.asyncio
    async def test_metadata_is_restored(self):
        user = await UserRepository.create_user("owner@example.com")
        await EmailMetadataRepository.add(user["id"], metadata("m1"))

        stored = (await EmailMetadataRepository.get_extracted(user["id"]))[0]
        assert stored.provider == EmailProvider.GMAIL
        assert stored.received_at == RECEIVED_AT
        assert stored.labels == ["INBOX", "UNREAD"]
        assert stored.web_url.endswith("#all/m1")
        assert stored.status == EmailStatus.EXTRACTED

    @pytest.mark.asyncio
    async def test_imap_uid_as_message_id(self):
        user = await UserRepository.create_user("owner@example.com")
        await EmailMetadataRepository.add(
            user["id"], metadata(42, provider=EmailProvider.IMAP, imap_uid=42, web_url=None),
        )
        assert await EmailMetadataRepository.exists(user["id"], "42")

    @pytest.mark.asyncio
    async def test_mark_analyzed(self):
        user = await UserRepository.create_user("owner@example.com")
        await EmailMetadataRepository.add(user["id"], metadata("m1"))

        assert await EmailMetadataRepository.mark_analyzed(user["id"], "m1") is True
        assert await EmailMetadataRepository.count_extracted(user["id"]) == 0
        assert await EmailMetadataRepository.mark_analyzed(user["id"], "unknown") is False

    @pytest.mark.asyncio
    async def test_delete_all(self):
        first = await UserRepository.create_user("first@example.com")
        second = await UserRepository.create_user("second@example.com")
        await EmailMetadataRepository.add(first["id"], metadata("m1"))
        await EmailMetadataRepository.add(second["id"], metadata("m2"))

        assert await EmailMetadataRepository.delete_all(first["id"]) == 1
        assert await EmailMetadataRepository.delete_all() == 1
