"""
Provider selection.

Builds the mailbox provider matching a user's ``email_provider`` setting.
"""

import logging
from typing import Any, Dict, Optional

from inbox_actions.email_processing.models import EmailProvider
from inbox_actions.integrations.base import BaseEmailProvider
from inbox_actions.integrations.gmail.provider import create_gmail_provider
from inbox_actions.integrations.imap.provider import create_imap_provider

logger = logging.getLogger(__name__)


async def create_email_provider(user: Dict[str, Any]) -> Optional[BaseEmailProvider]:
    """
    Provider for ``user`` (a ``UserRepository`` dictionary).

    Returns None when no provider is configured, when its credentials are
    missing, or for Microsoft Graph which is not implemented.
    """
    value = user.get("email_provider")
    if not value:
        return None
    try:
        provider = EmailProvider(value)
    except ValueError:
        logger.warning(f"Unknown email provider {value!r} for user {user.get('id')}")
        return None

    if provider is EmailProvider.GMAIL:
        return await create_gmail_provider(user["id"])
    if provider is EmailProvider.IMAP:
        return await create_imap_provider(user["id"])

    logger.warning(f"Provider {provider.value} is not supported yet (user {user.get('id')})")
    return None
