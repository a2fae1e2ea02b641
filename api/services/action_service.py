"""
Action Service Implementation

Business logic behind the /actions endpoints: ownership checks on top of
``ActionRepository`` and the dry-run extraction.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from inbox_actions.email_processing.extraction import extract_actions_from_email
from inbox_actions.email_processing.models import ActionStatus, EmailContext, ExtractedAction
from inbox_actions.exceptions import ActionAccessError, ActionNotFoundError
from inbox_actions.storage.action_repository import ActionRepository

logger = logging.getLogger(__name__)

MANUAL_SOURCE = "Action ajoutée manuellement"


class ActionService:
    """
    Per-user access to actions.

    Every method taking an ``action_id`` raises ``ActionNotFoundError`` when
    it does not exist and ``ActionAccessError`` when another user owns it.
    """

    def __init__(self, repository=ActionRepository):
        self.repository = repository

    async def _owned_action(self, user_id: str, action_id: str) -> Dict[str, Any]:
        action = await self.repository.get_action(action_id)
        if action is None:
            raise ActionNotFoundError(action_id)
        if action["user_id"] != user_id:
            logger.warning(f"User {user_id} tried to access action {action_id}")
            raise ActionAccessError(action_id)
        return action

    async def list_actions(
        self,
        user_id: str,
        status: Optional[ActionStatus] = None,
        action_type=None,
    ) -> Dict[str, Any]:
        actions = await self.repository.list_actions(user_id, status=status, action_type=action_type)
        counts = await self.repository.count_by_status(user_id)
        return {"actions": actions, "total": len(actions), "counts": counts}

    async def get_action(self, user_id: str, action_id: str) -> Dict[str, Any]:
        return await self._owned_action(user_id, action_id)

    async def create_action(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.repository.create_action(
            user_id=user_id,
            title=data["title"],
            action_type=data["type"],
            source_sentence=data["source_sentence"],
            email_from=data["email_from"],
            email_received_at=data["email_received_at"],
            message_id=data.get("message_id"),
            email_web_url=data.get("email_web_url"),
            due_date=data.get("due_date"),
        )

    async def create_manual_action(self, user: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
        """Action not tied to an email; the user is recorded as its source."""
        return await self.repository.create_action(
            user_id=user["id"],
            title=data["title"],
            action_type=data["type"],
            source_sentence=data.get("note") or MANUAL_SOURCE,
            email_from=user["email"],
            email_received_at=datetime.now(timezone.utc),
            due_date=data.get("due_date"),
        )

    async def set_status(self, user_id: str, action_id: str, status: ActionStatus) -> Dict[str, Any]:
        await self._owned_action(user_id, action_id)
        updated = await self.repository.update_status(action_id, status)
        if updated is None:
            raise ActionNotFoundError(action_id)
        return updated

    async def delete_action(self, user_id: str, action_id: str) -> None:
        await self._owned_action(user_id, action_id)
        await self.repository.delete_action(action_id)

    @staticmethod
    def preview_extraction(
        sender: str,
        subject: str,
        body: str,
        received_at: Optional[datetime] = None,
    ) -> List[ExtractedAction]:
        """Run the engine on a submitted email without storing anything."""
        context = EmailContext(
            sender=sender,
            subject=subject,
            body=body,
            received_at=received_at or datetime.now(timezone.utc),
        )
        return extract_actions_from_email(context)


def get_action_service() -> ActionService:
    """Provide action service instance for dependency injection."""
    return ActionService()
