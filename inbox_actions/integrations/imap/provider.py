"""
IMAP Provider Implementation

Generic IMAP mailbox access with ``imaplib``. Messages are addressed by UID;
the highest UID seen is remembered per user so later syncs only ask the
server for newer messages. Bodies are parsed with the ``email`` package.
"""

import asyncio
import email
import imaplib
import logging
import re
from datetime import datetime
from email import policy
from email.message import EmailMessage
from typing import Callable, List, Optional

from inbox_actions.config.sync_config import DEFAULT_FOLDER, FIRST_SYNC_LOOKBACK_HOURS, MAX_EMAILS_TO_SYNC
from inbox_actions.email_processing.handlers.content import normalize_email_body
from inbox_actions.email_processing.handlers.date_service import EmailDateService
from inbox_actions.email_processing.models import EmailMetadata, EmailProvider
from inbox_actions.exceptions import ProviderAuthError, ProviderError
from inbox_actions.integrations.base import BaseEmailProvider, ConnectionStatus
from inbox_actions.storage.email_repository import EmailMetadataRepository
from inbox_actions.storage.user_repository import UserRepository

logger = logging.getLogger(__name__)

# IMAP dates use English month names whatever the locale
_IMAP_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
                "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

HEADER_FETCH = "(INTERNALDATE BODY.PEEK[HEADER.FIELDS (FROM SUBJECT DATE MESSAGE-ID)])"
BODY_FETCH = "(BODY.PEEK[])"

_INTERNALDATE = re.compile(rb'INTERNALDATE "([^"]+)"')


def imap_date(value: datetime) -> str:
    """``DD-Mon-YYYY`` as used by the SEARCH SINCE criterion."""
    return f"{value.day:02d}-{_IMAP_MONTHS[value.month - 1]}-{value.year}"


def _fetched_parts(data) -> List[tuple]:
    return [item for item in data or [] if isinstance(item, tuple) and len(item) == 2]


class IMAPProvider(BaseEmailProvider):
    """
    IMAP mailbox of one user.

    Attributes:
        host, port, username: Server account
        use_tls: Connect with IMAP4_SSL when True
        folder: Mailbox selected for sync
        last_uid: Highest UID already recorded, None before the first sync
    """

    provider_type = EmailProvider.IMAP

    def __init__(
        self,
        user_id: str,
        host: str,
        port: int,
        username: str,
        password: str,
        use_tls: bool = True,
        folder: str = DEFAULT_FOLDER,
        last_uid: Optional[int] = None,
        connection_factory: Optional[Callable[[], imaplib.IMAP4]] = None,
        repository=EmailMetadataRepository,
        user_repository=UserRepository,
    ):
        super().__init__(user_id, repository)
        self.host = host
        self.port = port
        self.username = username
        self._password = password
        self.use_tls = use_tls
        self.folder = folder or DEFAULT_FOLDER
        self.last_uid = last_uid
        self.user_repository = user_repository
        self._connection_factory = connection_factory
        self._connection: Optional[imaplib.IMAP4] = None
        self.last_error: Optional[str] = None

    def _open(self) -> imaplib.IMAP4:
        if self._connection_factory:
            return self._connection_factory()
        if self.use_tls:
            return imaplib.IMAP4_SSL(self.host, self.port)
        return imaplib.IMAP4(self.host, self.port)

    def _login(self) -> imaplib.IMAP4:
        connection = self._open()
        connection.login(self.username, self._password)
        return connection

    async def _connect(self) -> imaplib.IMAP4:
        """
        Open and authenticate the connection, reused until ``disconnect``.

        Every imaplib call runs on a worker thread.

        Raises:
            ProviderAuthError: Login rejected
            ProviderError: Server unreachable
        """
        if self._connection is not None:
            return self._connection
        try:
            connection = await asyncio.to_thread(self._login)
        except imaplib.IMAP4.error as e:
            await self._fail(f"IMAP login failed: {e}")
            raise ProviderAuthError("IMAP", str(e))
        except OSError as e:
            await self._fail(f"IMAP connection failed: {e}")
            raise ProviderError("IMAP", str(e))
        self._connection = connection
        return connection

    async def _fail(self, message: str) -> None:
        logger.error(f"{message} (user {self.user_id}, host {self.host})")
        self.last_error = message
        await self.user_repository.update_imap_state(self.user_id, connected=False, last_error=message)

    async def _select(self, folder: str) -> imaplib.IMAP4:
        connection = await self._connect()
        status, data = await asyncio.to_thread(connection.select, folder, readonly=True)
        if status != "OK":
            raise ProviderError("IMAP", f"Cannot select folder {folder}: {data}")
        return connection

    async def _search_uids(self, connection: imaplib.IMAP4) -> List[int]:
        if self.last_uid:
            status, data = await asyncio.to_thread(connection.uid, "SEARCH", None, f"UID {self.last_uid + 1}:*")
        else:
            last_sync = await self.user_repository.get_last_sync(self.user_id)
            since = EmailDateService.lookback_start(last_sync, FIRST_SYNC_LOOKBACK_HOURS)
            status, data = await asyncio.to_thread(connection.uid, "SEARCH", None, "SINCE", imap_date(since))
        if status != "OK":
            raise ProviderError("IMAP", f"UID SEARCH failed: {data}")

        uids = sorted(int(uid) for uid in (data[0] or b"").split())
        # "N:*" always matches the newest message, even below N
        if self.last_uid:
            uids = [uid for uid in uids if uid > self.last_uid]
        return uids

    def _to_metadata(self, uid: int, raw_headers: bytes, envelope: bytes) -> EmailMetadata:
        headers = email.message_from_bytes(raw_headers, policy=policy.default)
        received_at = None
        internal = _INTERNALDATE.search(envelope or b"")
        if internal:
            received_at, _ = EmailDateService.parse_email_date(internal.group(1).decode("ascii", "replace"))
        if received_at is None:
            received_at = EmailDateService.parse_or_now(headers.get("Date"))
        return EmailMetadata(
            message_id=str(uid),
            provider=EmailProvider.IMAP,
            sender=str(headers.get("From", "")),
            subject=str(headers.get("Subject")) if headers.get("Subject") else None,
            received_at=received_at,
            imap_uid=uid,
            labels=[self.folder],
        )

    async def fetch_new_emails(
        self,
        max_results: int = MAX_EMAILS_TO_SYNC,
        folder: Optional[str] = None,
    ) -> List[EmailMetadata]:
        """
        Record metadata of messages newer than ``last_uid``.

        The first sync searches messages since ``FIRST_SYNC_LOOKBACK_HOURS``
        ago. The newest ``max_results`` messages are kept.
        """
        folder = folder or self.folder
        connection = await self._select(folder)
        uids = (await self._search_uids(connection))[-max_results:]
        logger.info(f"IMAP found {len(uids)} new messages for user {self.user_id}")

        recorded: List[EmailMetadata] = []
        for uid in uids:
            if await self.repository.exists(self.user_id, str(uid)):
                continue
            status, data = await asyncio.to_thread(connection.uid, "FETCH", str(uid), HEADER_FETCH)
            parts = _fetched_parts(data)
            if status != "OK" or not parts:
                logger.warning(f"IMAP FETCH of UID {uid} returned nothing")
                continue
            envelope, raw_headers = parts[0]
            metadata = self._to_metadata(uid, raw_headers, envelope)
            if await self._record(metadata):
                recorded.append(metadata)

        if uids:
            self.last_uid = max(uids)
        self.last_error = None
        await self.user_repository.update_imap_state(self.user_id, last_uid=self.last_uid, connected=True)
        await self.user_repository.mark_synced(self.user_id)
        return recorded

    async def get_email_body_for_analysis(self, message_id: str) -> Optional[str]:
        connection = await self._select(self.folder)
        status, data = await asyncio.to_thread(connection.uid, "FETCH", str(message_id), BODY_FETCH)
        parts = _fetched_parts(data)
        if status != "OK" or not parts:
            logger.warning(f"IMAP message {message_id} not found on server")
            return None

        message: EmailMessage = email.message_from_bytes(parts[0][1], policy=policy.default)
        part = message.get_body(preferencelist=("plain", "html"))
        if part is None:
            return None
        try:
            content = part.get_content()
        except (LookupError, UnicodeError) as e:
            logger.warning(f"Cannot decode body of IMAP message {message_id}: {e}")
            content = part.get_payload(decode=True).decode("utf-8", errors="replace")
        text = normalize_email_body(content, part.get_content_type())
        return text or None

    async def count_new_emails(self) -> int:
        connection = await self._select(self.folder)
        return len(await self._search_uids(connection))

    async def get_status(self) -> ConnectionStatus:
        return ConnectionStatus(
            provider=self.provider_type,
            is_connected=self.last_error is None,
            last_sync=await self.user_repository.get_last_sync(self.user_id),
            last_error=self.last_error,
            email=self.username,
        )

    async def disconnect(self) -> None:
        if self._connection is None:
            return
        try:
            await asyncio.to_thread(self._connection.logout)
        except (imaplib.IMAP4.error, OSError) as e:
            logger.debug(f"IMAP logout failed: {e}")
        finally:
            self._connection = None


async def create_imap_provider(user_id: str) -> Optional[IMAPProvider]:
    """Provider for a user with stored IMAP settings, or None."""
    settings = await UserRepository.get_imap_settings(user_id)
    if not settings:
        logger.warning(f"User {user_id} has no IMAP settings")
        return None
    return IMAPProvider(
        user_id,
        host=settings["host"],
        port=settings["port"] or 993,
        username=settings["username"],
        password=settings["password"],
        use_tls=settings["use_tls"],
        folder=settings["folder"],
        last_uid=settings["last_uid"],
    )
