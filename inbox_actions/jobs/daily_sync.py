"""
Daily mailbox sync job.

For every user with sync enabled: fetch new email metadata from their
provider, analyze the pending emails and persist the extracted actions.
Failures are contained per email and per user; the run always completes
and reports what happened.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from inbox_actions.config.sync_config import DEFAULT_FOLDER, MAX_EMAILS_TO_ANALYZE, MAX_EMAILS_TO_SYNC
from inbox_actions.email_processing.processor import EmailProcessor
from inbox_actions.integrations.factory import create_email_provider
from inbox_actions.notifications.digest import send_action_digest
from inbox_actions.storage.user_repository import UserRepository
from inbox_actions.utils.logging_setup import mask_email

logger = logging.getLogger(__name__)

# Digest tasks run detached from the job; keep them referenced until done
_background_tasks: Set[asyncio.Task] = set()


@dataclass
class JobResult:
    """Outcome of a job run, returned to the cron endpoint."""
    success: bool
    stats: Dict[str, Any] = field(default_factory=dict)
    duration_ms: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"success": self.success, "stats": self.stats, "duration": self.duration_ms}
        if self.error:
            data["error"] = self.error
        return data


def _new_stats(total_users: int) -> Dict[str, Any]:
    return {
        "total_users": total_users,
        "success_users": 0,
        "failed_users": 0,
        "total_emails_synced": 0,
        "total_actions_extracted": 0,
        "errors": [],
    }


def schedule_digest(user_id: str) -> None:
    """Send the action digest without waiting for it."""
    task = asyncio.create_task(send_action_digest(user_id))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)


async def sync_user(user: Dict[str, Any]) -> Dict[str, int]:
    """
    Sync and analyze one user's mailbox.

    Returns:
        ``emails_synced``, ``emails_analyzed``, ``actions_extracted`` and
        ``email_errors``

    Raises:
        RuntimeError: If no provider can be built for the user
        ProviderError: If the mailbox cannot be read at all
    """
    provider = await create_email_provider(user)
    if provider is None:
        raise RuntimeError("Email service unavailable (token expired or credentials invalid?)")

    try:
        new_emails = await provider.fetch_new_emails(max_results=MAX_EMAILS_TO_SYNC, folder=DEFAULT_FOLDER)
        logger.info(f"Synced {len(new_emails)} emails for {mask_email(user.get('email'))}")

        processor = EmailProcessor(provider, user["id"])
        batch = await processor.process_email_batch(MAX_EMAILS_TO_ANALYZE)
    finally:
        await provider.disconnect()

    for error in batch.errors:
        logger.warning(f"User {user['id']}: {error}")

    return {
        "emails_synced": len(new_emails),
        "emails_analyzed": batch.analyzed,
        "actions_extracted": batch.actions_created,
        "email_errors": batch.error_count,
    }


async def run_daily_sync_job(notify: bool = True) -> JobResult:
    """
    Sync every user with sync enabled and a provider configured.

    Args:
        notify: Schedule the action digest for users who got new emails
            or new actions

    Returns:
        JobResult with per-run counters; ``success`` is False only when the
        run could not start (e.g. the user list could not be loaded)
    """
    start_time = time.monotonic()
    logger.info("Daily sync job starting")

    try:
        users = await UserRepository.list_sync_enabled_users()
    except Exception as e:
        logger.error(f"Daily sync job failed: {str(e)}", exc_info=True)
        return JobResult(
            success=False,
            duration_ms=int((time.monotonic() - start_time) * 1000),
            error=str(e),
        )

    stats = _new_stats(len(users))
    logger.info(f"Found {len(users)} users with sync enabled")

    for user in users:
        label = mask_email(user.get("email")) if user.get("email") else user["id"]
        try:
            result = await sync_user(user)
        except Exception as e:
            logger.error(f"Sync failed for {label}: {str(e)}")
            stats["failed_users"] += 1
            stats["errors"].append(f"{label}: {str(e)}")
            continue

        stats["success_users"] += 1
        stats["total_emails_synced"] += result["emails_synced"]
        stats["total_actions_extracted"] += result["actions_extracted"]

        if notify and (result["emails_synced"] > 0 or result["actions_extracted"] > 0):
            schedule_digest(user["id"])

    duration_ms = int((time.monotonic() - start_time) * 1000)
    logger.info(
        f"Daily sync job finished in {duration_ms}ms: {stats['success_users']}/{stats['total_users']} users, "
        f"{stats['total_emails_synced']} emails, {stats['total_actions_extracted']} actions"
    )
    return JobResult(success=True, stats=stats, duration_ms=duration_ms)
