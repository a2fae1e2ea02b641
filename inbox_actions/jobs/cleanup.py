"""
Cleanup jobs.

Email metadata is only a work queue for the sync job and is wiped
entirely; completed actions are pruned once older than the retention
window. ``run_cleanup_actions_job`` wipes every action and backs the
manual ``/cron/cleanup-actions`` endpoint.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

from inbox_actions.config.sync_config import ACTION_RETENTION_DAYS
from inbox_actions.jobs.daily_sync import JobResult
from inbox_actions.storage.action_repository import ActionRepository
from inbox_actions.storage.email_repository import EmailMetadataRepository

logger = logging.getLogger(__name__)


def _elapsed_ms(start_time: float) -> int:
    return int((time.monotonic() - start_time) * 1000)


async def run_cleanup_job(retention_days: int = ACTION_RETENTION_DAYS, now: Optional[datetime] = None) -> JobResult:
    """Delete all email metadata and DONE/IGNORED actions past retention."""
    start_time = time.monotonic()
    now = now or datetime.now(timezone.utc)
    try:
        deleted_emails = await EmailMetadataRepository.delete_all()
        cutoff = now - timedelta(days=retention_days)
        deleted_actions = await ActionRepository.delete_completed_before(cutoff)
    except Exception as e:
        logger.error(f"Cleanup job failed: {str(e)}", exc_info=True)
        return JobResult(success=False, duration_ms=_elapsed_ms(start_time), error=str(e))

    logger.info(f"Cleanup job deleted {deleted_emails} email records and {deleted_actions} old actions")
    return JobResult(
        success=True,
        stats={"deleted_emails": deleted_emails, "deleted_actions": deleted_actions},
        duration_ms=_elapsed_ms(start_time),
    )


async def run_cleanup_actions_job() -> JobResult:
    """Delete every action of every user."""
    start_time = time.monotonic()
    try:
        deleted = await ActionRepository.delete_all()
    except Exception as e:
        logger.error(f"Action cleanup failed: {str(e)}", exc_info=True)
        return JobResult(success=False, duration_ms=_elapsed_ms(start_time), error=str(e))

    logger.warning(f"Deleted all actions ({deleted})")
    return JobResult(success=True, stats={"deleted_actions": deleted}, duration_ms=_elapsed_ms(start_time))
