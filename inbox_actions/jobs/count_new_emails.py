"""
Pending email counter.

Asks each provider how many messages arrived since the last sync, without
recording anything. Only runs when ``FEATURE_EMAIL_COUNT`` is enabled.
"""

import logging
import time

from inbox_actions.config import sync_config
from inbox_actions.integrations.factory import create_email_provider
from inbox_actions.jobs.daily_sync import JobResult
from inbox_actions.storage.user_repository import UserRepository

logger = logging.getLogger(__name__)


async def run_count_new_emails_job() -> JobResult:
    start_time = time.monotonic()
    if not sync_config.FEATURE_EMAIL_COUNT:
        logger.info("Email count feature disabled")
        return JobResult(success=True, stats={"skipped": True})

    counts = {}
    errors = []
    for user in await UserRepository.list_sync_enabled_users():
        provider = await create_email_provider(user)
        if provider is None:
            continue
        try:
            counts[user["id"]] = await provider.count_new_emails()
        except Exception as e:
            logger.error(f"Count failed for user {user['id']}: {str(e)}")
            errors.append(f"{user['id']}: {str(e)}")
        finally:
            await provider.disconnect()

    return JobResult(
        success=True,
        stats={"counts": counts, "total_new_emails": sum(counts.values()), "errors": errors},
        duration_ms=int((time.monotonic() - start_time) * 1000),
    )
