"""
Mailbox API Routes

Manual sync of the current user's mailbox and connection status.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from api.auth.service import get_current_user
from api.models.user import ProviderStatusResponse, SyncResponse
from inbox_actions.integrations.factory import create_email_provider
from inbox_actions.jobs.daily_sync import schedule_digest, sync_user
from inbox_actions.storage.email_repository import EmailMetadataRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/email", tags=["Email"])


@router.post("/sync", response_model=SyncResponse, summary="Sync and analyze the current user's mailbox")
async def sync_mailbox(user: Dict[str, Any] = Depends(get_current_user)):
    """
    Provider errors propagate and are mapped by the exception handlers;
    a missing provider configuration is reported in the body.
    """
    try:
        result = await sync_user(user)
    except RuntimeError as e:
        logger.warning(f"Manual sync unavailable for user {user['id']}: {str(e)}")
        return SyncResponse(success=False, error=str(e))

    if result["emails_synced"] > 0 or result["actions_extracted"] > 0:
        schedule_digest(user["id"])
    return SyncResponse(success=True, **result)


@router.get("/status", response_model=ProviderStatusResponse)
async def mailbox_status(user: Dict[str, Any] = Depends(get_current_user)):
    pending = await EmailMetadataRepository.count_extracted(user["id"])
    provider = await create_email_provider(user)
    if provider is None:
        return ProviderStatusResponse(provider=user.get("email_provider"), pending_emails=pending)

    connection = await provider.get_status()
    return ProviderStatusResponse(
        provider=connection.provider.value,
        is_connected=connection.is_connected,
        last_sync=connection.last_sync,
        last_error=connection.last_error,
        pending_emails=pending,
    )
