"""
Gmail Provider Implementation

Reads a user's Gmail mailbox through the Gmail API with the OAuth tokens
stored for that user. Listing only requests metadata; the full message is
fetched when the sync job asks for a body to analyze.

Design Considerations:
- Read-only scope (gmail.readonly)
- Expired access tokens are refreshed once per call, then persisted
- Bodies are normalized to plain text and never stored
"""

import asyncio
import base64
import binascii
import logging
from datetime import timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from inbox_actions.config.sync_config import (
    DEFAULT_FOLDER,
    FIRST_SYNC_LOOKBACK_HOURS,
    GMAIL_SCOPES,
    GOOGLE_CLIENT_CONFIG,
    MAX_EMAILS_TO_SYNC,
)
from inbox_actions.email_processing.handlers.content import normalize_email_body
from inbox_actions.email_processing.handlers.date_service import EmailDateService
from inbox_actions.email_processing.models import EmailMetadata, EmailProvider
from inbox_actions.exceptions import ProviderAuthError, ProviderError
from inbox_actions.integrations.base import BaseEmailProvider, ConnectionStatus
from inbox_actions.storage.email_repository import EmailMetadataRepository
from inbox_actions.storage.user_repository import UserRepository

logger = logging.getLogger(__name__)

METADATA_HEADERS = ["From", "Subject", "Date"]
WEB_URL_TEMPLATE = "https://mail.google.com/mail/u/0/#all/{message_id}"
PAGE_SIZE = 100


def build_credentials(tokens: Dict[str, Any]) -> Credentials:
    """OAuth credentials from the decrypted tokens of ``UserRepository``."""
    expiry = tokens.get("expires_at")
    if expiry is not None and expiry.tzinfo is not None:
        # google-auth compares expiry against a naive UTC clock
        expiry = expiry.astimezone(timezone.utc).replace(tzinfo=None)
    return Credentials(
        token=tokens.get("access_token"),
        refresh_token=tokens.get("refresh_token"),
        token_uri=GOOGLE_CLIENT_CONFIG["token_uri"],
        client_id=GOOGLE_CLIENT_CONFIG["client_id"],
        client_secret=GOOGLE_CLIENT_CONFIG["client_secret"],
        scopes=tokens.get("scopes") or GMAIL_SCOPES,
        expiry=expiry,
    )


def get_header(headers: List[Dict], name: str, default: str = "") -> str:
    """Header value by case-insensitive name."""
    wanted = name.lower()
    return next((h.get("value", default) for h in headers if h.get("name", "").lower() == wanted), default)


def decode_body(encoded_data: Optional[str]) -> str:
    """Decode Gmail's URL-safe base64 payload data."""
    if not encoded_data:
        return ""
    try:
        padded = encoded_data + "=" * (-len(encoded_data) % 4)
        return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError) as e:
        logger.error(f"Error decoding content: {str(e)}")
        return ""


def extract_text_part(payload: Dict) -> Tuple[str, Optional[str]]:
    """
    Walk a MIME payload and return ``(content, mime_type)``.

    ``text/plain`` wins over ``text/html``; nested multiparts are searched
    depth first.
    """
    plain, html = _collect_parts(payload)
    if plain:
        return plain, "text/plain"
    if html:
        return html, "text/html"
    return "", None


def _collect_parts(part: Dict) -> Tuple[str, str]:
    mime_type = part.get("mimeType", "")
    if mime_type == "text/plain" and not part.get("filename"):
        return decode_body(part.get("body", {}).get("data")), ""
    if mime_type == "text/html" and not part.get("filename"):
        return "", decode_body(part.get("body", {}).get("data"))

    plain, html = "", ""
    for child in part.get("parts", []) or []:
        child_plain, child_html = _collect_parts(child)
        plain = plain or child_plain
        html = html or child_html
        if plain:
            break
    return plain, html


class GmailProvider(BaseEmailProvider):
    """
    Gmail mailbox of one user.

    Attributes:
        user_id: Owner of the mailbox
        credentials: OAuth credentials built from the stored tokens
        service: Gmail API service (injectable for tests)
    """

    provider_type = EmailProvider.GMAIL

    def __init__(
        self,
        user_id: str,
        credentials: Credentials,
        service: Optional[Any] = None,
        repository=EmailMetadataRepository,
        user_repository=UserRepository,
    ):
        super().__init__(user_id, repository)
        self.credentials = credentials
        self.user_repository = user_repository
        self.last_error: Optional[str] = None
        self.service = service or self._build_service()

    def _build_service(self) -> Any:
        return build("gmail", "v1", credentials=self.credentials, cache_discovery=False)

    async def refresh_service(self) -> bool:
        """
        Refresh the access token and rebuild the service.

        Returns:
            bool: True if refresh successful, False otherwise
        """
        try:
            logger.info(f"Refreshing Gmail credentials for user {self.user_id}")
            await asyncio.to_thread(self.credentials.refresh, Request())
            self.service = self._build_service()
        except RefreshError as e:
            logger.error(f"Gmail credential refresh failed for user {self.user_id}: {str(e)}")
            return False

        expiry = self.credentials.expiry
        await self.user_repository.update_gmail_access_token(
            self.user_id,
            self.credentials.token,
            EmailDateService.ensure_aware(expiry) if expiry else None,
        )
        return True

    @staticmethod
    def _run(request: Callable[[], Any]) -> Dict:
        return request().execute()

    async def _execute(self, request: Callable[[], Any]) -> Dict:
        """
        Run a Gmail API request built by ``request`` on a worker thread.

        On ``RefreshError`` the credentials are refreshed and the request is
        rebuilt and retried once.

        Raises:
            ProviderAuthError: Credentials rejected or not refreshable
            ProviderError: Any other API failure
        """
        try:
            try:
                return await asyncio.to_thread(self._run, request)
            except RefreshError:
                logger.warning("Authentication refresh required")
                if not await self.refresh_service():
                    raise ProviderAuthError("GMAIL", "Gmail authorization expired, reconnect the account")
                return await asyncio.to_thread(self._run, request)
        except RefreshError as e:
            self.last_error = str(e)
            raise ProviderAuthError("GMAIL", str(e))
        except HttpError as e:
            self.last_error = str(e)
            status = getattr(e.resp, "status", None)
            if status in (401, 403):
                raise ProviderAuthError("GMAIL", str(e))
            raise ProviderError("GMAIL", str(e))

    async def _list_message_ids(self, query: str, label: str, max_results: int) -> List[str]:
        ids: List[str] = []
        page_token = None
        while len(ids) < max_results:
            response = await self._execute(lambda: self.service.users().messages().list(
                userId="me",
                q=query,
                labelIds=[label],
                maxResults=min(PAGE_SIZE, max_results - len(ids)),
                pageToken=page_token,
            ))
            ids.extend(message["id"] for message in response.get("messages", []))
            page_token = response.get("nextPageToken")
            if not page_token:
                break
        return ids[:max_results]

    async def _sync_query(self) -> str:
        last_sync = await self.user_repository.get_last_sync(self.user_id)
        since = EmailDateService.lookback_start(last_sync, FIRST_SYNC_LOOKBACK_HOURS)
        return f"after:{int(since.timestamp())}"

    def _to_metadata(self, message: Dict) -> EmailMetadata:
        headers = message.get("payload", {}).get("headers", [])
        received_at = EmailDateService.from_epoch_millis(message.get("internalDate"))
        if received_at is None:
            received_at = EmailDateService.parse_or_now(get_header(headers, "Date"))
        return EmailMetadata(
            message_id=message["id"],
            provider=EmailProvider.GMAIL,
            sender=get_header(headers, "From"),
            subject=get_header(headers, "Subject") or None,
            received_at=received_at,
            snippet=message.get("snippet", ""),
            thread_id=message.get("threadId"),
            labels=message.get("labelIds", []),
            web_url=WEB_URL_TEMPLATE.format(message_id=message["id"]),
        )

    async def fetch_new_emails(
        self,
        max_results: int = MAX_EMAILS_TO_SYNC,
        folder: str = DEFAULT_FOLDER,
    ) -> List[EmailMetadata]:
        """
        Record metadata of messages received since the last sync.

        The first sync looks back ``FIRST_SYNC_LOOKBACK_HOURS``. Messages
        already recorded are skipped.
        """
        query = await self._sync_query()
        message_ids = await self._list_message_ids(query, folder.upper(), max_results)
        logger.info(f"Gmail listed {len(message_ids)} messages for user {self.user_id} ({query})")

        recorded: List[EmailMetadata] = []
        for message_id in message_ids:
            if await self.repository.exists(self.user_id, message_id):
                continue
            message = await self._execute(lambda: self.service.users().messages().get(
                userId="me",
                id=message_id,
                format="metadata",
                metadataHeaders=METADATA_HEADERS,
            ))
            metadata = self._to_metadata(message)
            if await self._record(metadata):
                recorded.append(metadata)

        await self.user_repository.mark_synced(self.user_id)
        self.last_error = None
        return recorded

    async def get_email_body_for_analysis(self, message_id: str) -> Optional[str]:
        message = await self._execute(lambda: self.service.users().messages().get(
            userId="me",
            id=message_id,
            format="full",
        ))
        content, mime_type = extract_text_part(message.get("payload", {}))
        text = normalize_email_body(content, mime_type)
        return text or None

    async def count_new_emails(self) -> int:
        query = await self._sync_query()
        message_ids = await self._list_message_ids(query, DEFAULT_FOLDER, MAX_EMAILS_TO_SYNC)
        pending = 0
        for message_id in message_ids:
            if not await self.repository.exists(self.user_id, message_id):
                pending += 1
        return pending

    async def get_status(self) -> ConnectionStatus:
        return ConnectionStatus(
            provider=self.provider_type,
            is_connected=self.service is not None and self.last_error is None,
            last_sync=await self.user_repository.get_last_sync(self.user_id),
            last_error=self.last_error,
        )

    async def disconnect(self) -> None:
        self.service = None


async def create_gmail_provider(user_id: str) -> Optional[GmailProvider]:
    """Provider for a user with stored Gmail tokens, or None."""
    tokens = await UserRepository.get_gmail_tokens(user_id)
    if not tokens or not tokens.get("access_token"):
        logger.warning(f"User {user_id} has no Gmail tokens")
        return None
    return GmailProvider(user_id, build_credentials(tokens))
