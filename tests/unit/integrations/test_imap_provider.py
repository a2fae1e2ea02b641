"""
Unit tests for the IMAP provider, with a mocked ``imaplib`` connection.
"""

import imaplib
import time
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from inbox_actions.email_processing.models import EmailProvider
from inbox_actions.exceptions import ProviderAuthError, ProviderError
from inbox_actions.integrations.imap.provider import IMAPProvider, create_imap_provider, imap_date

LAST_SYNC = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)

HEADERS = (
    b"From: Paul <paul@example.com>\r\n"
    b"Subject: =?utf-8?q?R=C3=A9union_budget?=\r\n"
    b"Date: Mon, 15 Jan 2024 11:00:00 +0100\r\n"
    b"\r\n"
)

RAW_MESSAGE = (
    b"From: Paul <paul@example.com>\r\n"
    b"Subject: Devis\r\n"
    b"MIME-Version: 1.0\r\n"
    b'Content-Type: multipart/alternative; boundary="b1"\r\n'
    b"\r\n"
    b"--b1\r\n"
    b"Content-Type: text/html; charset=utf-8\r\n"
    b"\r\n"
    b"<p>HTML</p>\r\n"
    b"--b1\r\n"
    b"Content-Type: text/plain; charset=utf-8\r\n"
    b"Content-Transfer-Encoding: 8bit\r\n"
    b"\r\n"
    b"Peux-tu m\xe2\x80\x99envoyer le devis ?\r\n"
    b"--b1--\r\n"
)


def server(search_result=b"11 12", fetch=None):
    """Mocked connection answering UID SEARCH and UID FETCH."""
    connection = MagicMock()
    connection.select.return_value = ("OK", [b"12"])

    def uid(command, *args):
        if command == "SEARCH":
            return "OK", [search_result]
        message_uid = args[0]
        if fetch is not None:
            return fetch(message_uid)
        envelope = f'{message_uid} (UID {message_uid} INTERNALDATE "15-Jan-2024 10:00:00 +0000" BODY[HEADER] {{120}}'
        return "OK", [(envelope.encode("ascii"), HEADERS), b")"]

    connection.uid.side_effect = uid
    return connection


@pytest.fixture
def repository():
    repo = MagicMock()
    repo.exists = AsyncMock(return_value=False)
    repo.add = AsyncMock(return_value=True)
    return repo


@pytest.fixture
def user_repository():
    repo = MagicMock()
    repo.get_last_sync = AsyncMock(return_value=LAST_SYNC)
    repo.mark_synced = AsyncMock(return_value=True)
    repo.update_imap_state = AsyncMock(return_value=True)
    return repo


def make_provider(connection, repository, user_repository, last_uid=10):
    return IMAPProvider(
        "user-1",
        host="imap.example.com",
        port=993,
        username="paul@example.com",
        password="secret",
        last_uid=last_uid,
        connection_factory=lambda: connection,
        repository=repository,
        user_repository=user_repository,
    )


class TestImapDate:

    def test_english_month_names(self):
        assert imap_date(datetime(2024, 8, 5)) == "05-Aug-2024"


class TestFetchNewEmails:

    @pytest.mark.asyncio
    async def test_incremental_sync(self, repository, user_repository):
        connection = server()
        provider = make_provider(connection, repository, user_repository)

        recorded = await provider.fetch_new_emails()

        connection.login.assert_called_once_with("paul@example.com", "secret")
        connection.select.assert_called_once_with("INBOX", readonly=True)
        connection.uid.assert_any_call("SEARCH", None, "UID 11:*")
        assert [m.message_id for m in recorded] == ["11", "12"]

        metadata = recorded[0]
        assert metadata.provider == EmailProvider.IMAP
        assert metadata.imap_uid == 11
        assert metadata.sender == "Paul <paul@example.com>"
        assert metadata.subject == "Réunion budget"
        assert metadata.received_at == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)

        assert provider.last_uid == 12
        user_repository.update_imap_state.assert_awaited_with("user-1", last_uid=12, connected=True)
        user_repository.mark_synced.assert_awaited_once_with("user-1")

    @pytest.mark.asyncio
    async def test_first_sync_searches_since_lookback(self, repository, user_repository):
        connection = server(search_result=b"")
        provider = make_provider(connection, repository, user_repository, last_uid=None)

        assert await provider.fetch_new_emails() == []
        connection.uid.assert_called_once_with("SEARCH", None, "SINCE", "15-Jan-2024")
        assert provider.last_uid is None

    @pytest.mark.asyncio
    async def test_star_range_does_not_refetch_last_message(self, repository, user_repository):
        connection = server(search_result=b"12")
        provider = make_provider(connection, repository, user_repository, last_uid=12)

        assert await provider.fetch_new_emails() == []
        assert provider.last_uid == 12

    @pytest.mark.asyncio
    async def test_keeps_newest_messages(self, repository, user_repository):
        connection = server(search_result=b"11 12 13 14 15")
        provider = make_provider(connection, repository, user_repository)

        recorded = await provider.fetch_new_emails(max_results=2)

        assert [m.imap_uid for m in recorded] == [14, 15]

    @pytest.mark.asyncio
    async def test_known_messages_are_skipped(self, repository, user_repository):
        repository.exists.side_effect = lambda user_id, message_id: message_id == "11"
        provider = make_provider(server(), repository, user_repository)

        recorded = await provider.fetch_new_emails()

        assert [m.message_id for m in recorded] == ["12"]
        assert provider.last_uid == 12

    @pytest.mark.asyncio
    async def test_date_header_fallback(self, repository, user_repository):
        fetch = lambda uid: ("OK", [(b"11 (UID 11 BODY[HEADER] {120}", HEADERS), b")"])
        provider = make_provider(server(search_result=b"11", fetch=fetch), repository, user_repository)

        recorded = await provider.fetch_new_emails()

        assert recorded[0].received_at == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


class TestConnectionErrors:

    @pytest.mark.asyncio
    async def test_login_rejected(self, repository, user_repository):
        connection = server()
        connection.login.side_effect = imaplib.IMAP4.error("AUTHENTICATIONFAILED")
        provider = make_provider(connection, repository, user_repository)

        with pytest.raises(ProviderAuthError):
            await provider.fetch_new_emails()

        kwargs = user_repository.update_imap_state.call_args.kwargs
        assert kwargs["connected"] is False
        assert "AUTHENTICATIONFAILED" in kwargs["last_error"]
        assert (await provider.get_status()).is_connected is False

    @pytest.mark.asyncio
    async def test_server_unreachable(self, repository, user_repository):
        def refuse():
            raise ConnectionRefusedError("refused")

        provider = IMAPProvider(
            "user-1", "imap.example.com", 993, "paul", "secret",
            connection_factory=refuse, repository=repository, user_repository=user_repository,
        )

        with pytest.raises(ProviderError):
            await provider.count_new_emails()

    @pytest.mark.asyncio
    async def test_folder_not_selectable(self, repository, user_repository):
        connection = server()
        connection.select.return_value = ("NO", [b"Mailbox doesn't exist"])
        provider = make_provider(connection, repository, user_repository)

        with pytest.raises(ProviderError):
            await provider.fetch_new_emails(folder="Archives")


class TestBodyAndLifecycle:

    @pytest.mark.asyncio
    async def test_body_prefers_plain_text(self, repository, user_repository):
        fetch = lambda uid: ("OK", [(b"12 (UID 12 BODY[] {400}", RAW_MESSAGE), b")"])
        provider = make_provider(server(fetch=fetch), repository, user_repository)

        assert await provider.get_email_body_for_analysis("12") == "Peux-tu m'envoyer le devis ?"

    @pytest.mark.asyncio
    async def test_missing_message(self, repository, user_repository):
        fetch = lambda uid: ("OK", [None])
        provider = make_provider(server(fetch=fetch), repository, user_repository)

        assert await provider.get_email_body_for_analysis("99") is None

    @pytest.mark.asyncio
    async def test_count_new_emails(self, repository, user_repository):
        provider = make_provider(server(search_result=b"11 12 13"), repository, user_repository)
        assert await provider.count_new_emails() == 3

    @pytest.mark.asyncio
    async def test_connection_reused_then_closed(self, repository, user_repository):
        connection = server()
        provider = make_provider(connection, repository, user_repository)

        await provider.count_new_emails()
        await provider.count_new_emails()
        connection.login.assert_called_once()

        await provider.disconnect()
        connection.logout.assert_called_once()
        await provider.disconnect()
        connection.logout.assert_called_once()

    @pytest.mark.asyncio
    async def test_status(self, repository, user_repository):
        provider = make_provider(server(), repository, user_repository)
        status = await provider.get_status()

        assert status.provider == EmailProvider.IMAP
        assert status.is_connected is True
        assert status.email == "paul@example.com"


class TestCreateImapProvider:

    @pytest.mark.asyncio
    async def test_without_settings(self, monkeypatch):
        from inbox_actions.integrations.imap import provider as imap_module
        monkeypatch.setattr(imap_module.UserRepository, "get_imap_settings", AsyncMock(return_value=None))

        assert await create_imap_provider("user-1") is None

    @pytest.mark.asyncio
    async def test_with_settings(self, monkeypatch):
        from inbox_actions.integrations.imap import provider as imap_module
        monkeypatch.setattr(imap_module.UserRepository, "get_imap_settings", AsyncMock(return_value={
            "host": "imap.example.com", "port": None, "username": "paul", "password": "secret",
            "use_tls": True, "folder": "INBOX", "last_uid": 42, "connected": True, "last_error": None,
        }))

        provider = await create_imap_provider("user-1")

        assert provider.port == 993
        assert provider.last_uid == 42


class TestEventLoop:

    @pytest.mark.asyncio
    async def test_slow_server_does_not_block_loop(self, repository, user_repository, count_loop_ticks):
        connection = server()
        answer = connection.uid.side_effect

        def slow_uid(*args):
            time.sleep(0.05)
            return answer(*args)

        connection.uid.side_effect = slow_uid
        provider = make_provider(connection, repository, user_repository)

        recorded, ticks = await count_loop_ticks(provider.fetch_new_emails())

        assert [m.message_id for m in recorded] == ["11", "12"]
        assert ticks >= 5
