"""
Email Analysis Pipeline

Turns the emails a provider has recorded as EXTRACTED into persisted
actions: fetch body, run the extraction engine, save the actions, flag the
email as ANALYZED. Bodies only live in memory for the duration of one email.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from inbox_actions.config.sync_config import MAX_EMAILS_TO_ANALYZE
from inbox_actions.email_processing.extraction import extract_actions_from_email
from inbox_actions.email_processing.models import EmailContext, EmailMetadata
from inbox_actions.storage.action_repository import ActionRepository

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Counters of one ``process_email_batch`` run."""
    analyzed: int = 0
    actions_created: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)


class EmailProcessor:
    """
    Analyzes pending emails of one user's mailbox.

    Attributes:
        provider: Mailbox provider of the user (``BaseEmailProvider``)
        user_id: Owner of the mailbox and of the created actions
        action_repository: Persistence of extracted actions
    """

    def __init__(self, provider, user_id: str, action_repository=ActionRepository):
        self.provider = provider
        self.user_id = user_id
        self.action_repository = action_repository

    async def _process_single_email(self, metadata: EmailMetadata) -> Tuple[bool, Optional[str], int]:
        """
        Analyze one email.

        Returns:
            Tuple containing (success_flag, error_message, actions_created).
            An email without a body counts as a success with no action.
        """
        message_id = metadata.message_id
        try:
            body = await self.provider.get_email_body_for_analysis(message_id)
            if not body or not body.strip():
                logger.info(f"Email {message_id} has no body, marking analyzed")
                await self.provider.mark_email_as_analyzed(message_id)
                return True, None, 0

            context = EmailContext(
                sender=metadata.sender or "",
                subject=metadata.subject or "",
                body=body,
                received_at=metadata.received_at,
                message_id=message_id,
            )
            actions = extract_actions_from_email(context)
            created = 0
            if actions:
                created = await self.action_repository.save_extracted_actions(
                    self.user_id, actions, email_web_url=metadata.web_url
                )

            await self.provider.mark_email_as_analyzed(message_id)
            logger.info(f"Email {message_id}: {len(actions)} actions detected, {created} new")
            return True, None, created

        except Exception as e:
            error_msg = f"Error analyzing email {message_id}: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return False, error_msg, 0

    async def process_email_batch(self, batch_size: int = MAX_EMAILS_TO_ANALYZE) -> BatchResult:
        """
        Analyze up to ``batch_size`` pending emails, newest first.

        A failing email stays EXTRACTED and is retried by the next run.
        """
        result = BatchResult()
        pending = await self.provider.get_extracted_emails(batch_size)
        logger.info(f"Found {len(pending)} emails to analyze for user {self.user_id}")

        for metadata in pending:
            success, error, created = await self._process_single_email(metadata)
            if not success:
                result.errors.append(error)
                continue
            result.analyzed += 1
            result.actions_created += created

        logger.info(
            f"Completed analysis for user {self.user_id}: {result.analyzed} analyzed, "
            f"{result.actions_created} actions, {result.error_count} errors"
        )
        return result
