"""
Email Metadata Repository

Tracks which emails were synced for a user and whether they were analyzed.
Only metadata lives here; bodies are fetched from the provider on demand.
"""

import json
import logging
from datetime import timezone
from typing import List, Optional

from inbox_actions.email_processing.models import EmailMetadata, EmailProvider, EmailStatus
from inbox_actions.storage.database import get_db_session
from inbox_actions.storage.models import EmailMetadataRecord, to_storage_datetime, utcnow

logger = logging.getLogger(__name__)


def _to_metadata(record: EmailMetadataRecord) -> EmailMetadata:
    # Stored as naive UTC
    received_at = record.received_at.replace(tzinfo=timezone.utc) if record.received_at else None
    return EmailMetadata(
        message_id=record.message_id,
        provider=EmailProvider(record.provider),
        sender=record.sender,
        subject=record.subject,
        received_at=received_at,
        snippet=record.snippet or "",
        thread_id=record.thread_id,
        imap_uid=record.imap_uid,
        labels=record.label_list(),
        web_url=record.web_url,
        status=EmailStatus(record.status),
    )


class EmailMetadataRepository:
    """
    Repository for synced email metadata.

    Returns ``EmailMetadata`` dataclasses, detached from any session.
    """

    @staticmethod
    async def exists(user_id: str, message_id: str) -> bool:
        with get_db_session() as session:
            return session.query(EmailMetadataRecord.id).filter(
                EmailMetadataRecord.user_id == user_id,
                EmailMetadataRecord.message_id == str(message_id),
            ).first() is not None

    @staticmethod
    async def add(user_id: str, metadata: EmailMetadata) -> bool:
        """
        Record a synced email.

        Returns:
            True when stored, False when it was already known
        """
        with get_db_session() as session:
            known = session.query(EmailMetadataRecord.id).filter(
                EmailMetadataRecord.user_id == user_id,
                EmailMetadataRecord.message_id == str(metadata.message_id),
            ).first()
            if known:
                return False

            session.add(EmailMetadataRecord(
                user_id=user_id,
                provider=EmailProvider(metadata.provider).value,
                message_id=str(metadata.message_id),
                thread_id=metadata.thread_id,
                imap_uid=metadata.imap_uid,
                sender=metadata.sender or "",
                subject=metadata.subject,
                snippet=metadata.snippet,
                received_at=to_storage_datetime(metadata.received_at) or utcnow(),
                labels=json.dumps(list(metadata.labels or [])),
                web_url=metadata.web_url,
                status=EmailStatus(metadata.status).value,
            ))
            return True

    @staticmethod
    async def get_extracted(user_id: str, limit: Optional[int] = None) -> List[EmailMetadata]:
        """Emails synced but not analyzed yet, newest first."""
        with get_db_session() as session:
            query = session.query(EmailMetadataRecord).filter(
                EmailMetadataRecord.user_id == user_id,
                EmailMetadataRecord.status == EmailStatus.EXTRACTED.value,
            ).order_by(EmailMetadataRecord.received_at.desc())
            if limit:
                query = query.limit(limit)
            return [_to_metadata(record) for record in query.all()]

    @staticmethod
    async def count_extracted(user_id: str) -> int:
        with get_db_session() as session:
            return session.query(EmailMetadataRecord).filter(
                EmailMetadataRecord.user_id == user_id,
                EmailMetadataRecord.status == EmailStatus.EXTRACTED.value,
            ).count()

    @staticmethod
    async def mark_analyzed(user_id: str, message_id: str) -> bool:
        with get_db_session() as session:
            updated = session.query(EmailMetadataRecord).filter(
                EmailMetadataRecord.user_id == user_id,
                EmailMetadataRecord.message_id == str(message_id),
            ).update({EmailMetadataRecord.status: EmailStatus.ANALYZED.value}, synchronize_session=False)
            if not updated:
                logger.warning(f"No metadata to mark analyzed for message {message_id}")
            return updated > 0

    @staticmethod
    async def delete_all(user_id: Optional[str] = None) -> int:
        """
        Delete all metadata records, or those of one user.

        Returns:
            Number of records deleted
        """
        with get_db_session() as session:
            query = session.query(EmailMetadataRecord)
            if user_id:
                query = query.filter(EmailMetadataRecord.user_id == user_id)
            return query.delete(synchronize_session=False)
