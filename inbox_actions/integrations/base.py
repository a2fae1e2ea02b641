"""
Mailbox provider interface.

Every mailbox source (Gmail, IMAP) exposes the same capability to the sync
job: record metadata of new messages, hand out the ones not analyzed yet,
fetch a body on demand and flag a message as analyzed. Bodies are never
persisted.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from inbox_actions.config.sync_config import DEFAULT_FOLDER, MAX_EMAILS_TO_ANALYZE, MAX_EMAILS_TO_SYNC
from inbox_actions.email_processing.models import EmailMetadata, EmailProvider
from inbox_actions.storage.email_repository import EmailMetadataRepository

logger = logging.getLogger(__name__)


@dataclass
class ConnectionStatus:
    """Connection state reported to the API."""
    provider: EmailProvider
    is_connected: bool
    last_sync: Optional[datetime] = None
    last_error: Optional[str] = None
    email: Optional[str] = None

    def to_dict(self):
        return {
            "provider": self.provider.value,
            "is_connected": self.is_connected,
            "last_sync": self.last_sync.isoformat() if self.last_sync else None,
            "last_error": self.last_error,
            "email": self.email,
        }


class BaseEmailProvider(ABC):
    """
    Common base for mailbox providers.

    Metadata bookkeeping is shared and backed by ``EmailMetadataRepository``;
    subclasses implement the provider-specific network calls.
    """

    provider_type: EmailProvider

    def __init__(self, user_id: str, repository=EmailMetadataRepository):
        self.user_id = user_id
        self.repository = repository

    @abstractmethod
    async def fetch_new_emails(
        self,
        max_results: int = MAX_EMAILS_TO_SYNC,
        folder: str = DEFAULT_FOLDER,
    ) -> List[EmailMetadata]:
        """Fetch new messages and record their metadata as EXTRACTED."""

    @abstractmethod
    async def get_email_body_for_analysis(self, message_id: str) -> Optional[str]:
        """Plain-text body of a message, or None when it has none."""

    @abstractmethod
    async def count_new_emails(self) -> int:
        """Number of messages waiting on the server since the last sync."""

    @abstractmethod
    async def get_status(self) -> ConnectionStatus:
        """Current connection state."""

    async def get_extracted_emails(self, limit: Optional[int] = MAX_EMAILS_TO_ANALYZE) -> List[EmailMetadata]:
        return await self.repository.get_extracted(self.user_id, limit)

    async def mark_email_as_analyzed(self, message_id: str) -> bool:
        return await self.repository.mark_analyzed(self.user_id, message_id)

    async def _record(self, metadata: EmailMetadata) -> bool:
        stored = await self.repository.add(self.user_id, metadata)
        if not stored:
            logger.debug(f"Message {metadata.message_id} already recorded for user {self.user_id}")
        return stored

    async def disconnect(self) -> None:
        """Release network resources. Nothing to do by default."""
