"""
Action Repository Implementation

Database operations for extracted and manual actions.

Design Considerations:
- Repository pattern for data access abstraction
- Dictionaries returned, never ORM objects (no detached-instance surprises)
- Dedup-on-persist by (user, message, title), so re-analysing an email is harmless
- Ownership checks live in the service layer, not here
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import case

from inbox_actions.email_processing.models import ActionStatus, ActionType, ExtractedAction
from inbox_actions.storage.database import get_db_session
from inbox_actions.storage.models import Action, to_storage_datetime, utcnow

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 255

# TODO first, then DONE, then IGNORED
_STATUS_ORDER = case(
    {ActionStatus.TODO.value: 0, ActionStatus.DONE.value: 1, ActionStatus.IGNORED.value: 2},
    value=Action.status,
    else_=3,
)


def _validate_type(action_type: Any) -> str:
    try:
        return ActionType(action_type).value
    except ValueError:
        raise ValueError(f"Invalid action type: {action_type}")


def _validate_status(status: Any) -> str:
    try:
        return ActionStatus(status).value
    except ValueError:
        raise ValueError(f"Invalid action status: {status}")


class ActionRepository:
    """
    Repository for action database operations.

    All methods return dictionaries rather than ORM objects to prevent
    session-related issues when objects are accessed after the session closes.
    """

    @staticmethod
    async def create_action(
        user_id: str,
        title: str,
        action_type: Any,
        source_sentence: str = "",
        email_from: str = "",
        email_received_at: Optional[datetime] = None,
        message_id: Optional[str] = None,
        email_web_url: Optional[str] = None,
        due_date: Optional[datetime] = None,
        status: Any = ActionStatus.TODO,
    ) -> Dict[str, Any]:
        """
        Create one action.

        Returns:
            Dictionary containing the action

        Raises:
            ValueError: If the title is empty or the type/status is unknown
            RuntimeError: If the database operation fails
        """
        if not user_id:
            raise ValueError("user_id is required")
        if not title or not title.strip():
            raise ValueError("Action title cannot be empty")

        action = Action(
            user_id=user_id,
            title=title.strip()[:MAX_TITLE_LENGTH],
            type=_validate_type(action_type),
            status=_validate_status(status),
            source_sentence=source_sentence or "",
            email_from=email_from or "",
            email_received_at=to_storage_datetime(email_received_at) or utcnow(),
            message_id=message_id,
            email_web_url=email_web_url,
            due_date=to_storage_datetime(due_date),
        )

        try:
            with get_db_session() as session:
                session.add(action)
                session.flush()
                result = action.to_dict()
        except Exception as e:
            logger.error(f"Failed to create action for user {user_id}: {str(e)}")
            raise RuntimeError(f"Failed to create action: {str(e)}")

        logger.info(f"Created {result['type']} action {result['id']} for user {user_id}")
        return result

    @staticmethod
    async def save_extracted_actions(
        user_id: str,
        actions: Iterable[ExtractedAction],
        email_web_url: Optional[str] = None,
    ) -> int:
        """
        Persist engine output, skipping actions already stored.

        An action is a duplicate when the same user already has one with the
        same message id and title.

        Args:
            user_id: Owner of the actions
            actions: Actions returned by the extraction engine
            email_web_url: Link to the email in the webmail, if any

        Returns:
            Number of actions created

        Raises:
            RuntimeError: If the database operation fails
        """
        created = 0
        try:
            with get_db_session() as session:
                for extracted in actions:
                    title = extracted.title[:MAX_TITLE_LENGTH]
                    exists = session.query(Action.id).filter(
                        Action.user_id == user_id,
                        Action.message_id == extracted.message_id,
                        Action.title == title,
                    ).first()
                    if exists:
                        logger.debug(f"Skipping duplicate action '{title}' for message {extracted.message_id}")
                        continue

                    session.add(Action(
                        user_id=user_id,
                        title=title,
                        type=ActionType(extracted.type).value,
                        status=ActionStatus.TODO.value,
                        source_sentence=extracted.source_sentence,
                        email_from=extracted.email_from,
                        email_received_at=to_storage_datetime(extracted.email_received_at) or utcnow(),
                        message_id=extracted.message_id,
                        email_web_url=email_web_url,
                        due_date=to_storage_datetime(extracted.due_date),
                    ))
                    # Flush per action so a repeated title inside one batch is seen by the next query
                    session.flush()
                    created += 1
        except Exception as e:
            logger.error(f"Failed to save extracted actions for user {user_id}: {str(e)}")
            raise RuntimeError(f"Failed to save actions: {str(e)}")

        return created

    @staticmethod
    async def get_action(action_id: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve an action by id.

        Returns:
            Dictionary containing the action if found, None otherwise
        """
        with get_db_session() as session:
            action = session.query(Action).filter(Action.id == action_id).first()
            return action.to_dict() if action else None

    @staticmethod
    async def list_actions(
        user_id: str,
        status: Optional[Any] = None,
        action_type: Optional[Any] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        List a user's actions.

        Ordered by status (TODO first), then due date (undated last), then
        newest first.

        Raises:
            ValueError: If a filter value is unknown
        """
        with get_db_session() as session:
            query = session.query(Action).filter(Action.user_id == user_id)

            if status is not None:
                query = query.filter(Action.status == _validate_status(status))
            if action_type is not None:
                query = query.filter(Action.type == _validate_type(action_type))

            query = query.order_by(
                _STATUS_ORDER,
                Action.due_date.is_(None),
                Action.due_date.asc(),
                Action.created_at.desc(),
            )
            if limit:
                query = query.limit(limit)

            return [action.to_dict() for action in query.all()]

    @staticmethod
    async def update_status(action_id: str, status: Any) -> Optional[Dict[str, Any]]:
        """
        Change the status of an action.

        Returns:
            Updated action, or None when it does not exist

        Raises:
            ValueError: If the status is unknown
        """
        new_status = _validate_status(status)
        with get_db_session() as session:
            action = session.query(Action).filter(Action.id == action_id).first()
            if not action:
                logger.warning(f"Attempted to update non-existent action: {action_id}")
                return None

            action.status = new_status
            action.updated_at = utcnow()
            session.flush()
            logger.info(f"Action {action_id} marked {new_status}")
            return action.to_dict()

    @staticmethod
    async def delete_action(action_id: str) -> bool:
        with get_db_session() as session:
            deleted = session.query(Action).filter(Action.id == action_id).delete(synchronize_session=False)
            return deleted > 0

    @staticmethod
    async def count_by_status(user_id: str) -> Dict[str, int]:
        """Count a user's actions per status. Every status is present."""
        counts = {status.value: 0 for status in ActionStatus}
        with get_db_session() as session:
            for status in counts:
                counts[status] = session.query(Action).filter(
                    Action.user_id == user_id,
                    Action.status == status,
                ).count()
        return counts

    @staticmethod
    async def get_digest_stats(user_id: str, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Figures for the notification digest.

        Returns:
            ``total_todo``, ``urgent_count`` (due within 24h) and
            ``overdue_count`` (due date passed), all over TODO actions
        """
        now = to_storage_datetime(now) or utcnow()
        tomorrow = now + timedelta(hours=24)

        with get_db_session() as session:
            todo = session.query(Action).filter(
                Action.user_id == user_id,
                Action.status == ActionStatus.TODO.value,
            )
            return {
                "total_todo": todo.count(),
                "overdue_count": todo.filter(Action.due_date < now).count(),
                "urgent_count": todo.filter(Action.due_date >= now, Action.due_date <= tomorrow).count(),
            }

    @staticmethod
    async def delete_completed_before(cutoff: datetime) -> int:
        """
        Delete DONE and IGNORED actions last updated before ``cutoff``.

        Returns:
            Number of actions deleted
        """
        cutoff = to_storage_datetime(cutoff)
        with get_db_session() as session:
            return session.query(Action).filter(
                Action.status.in_([ActionStatus.DONE.value, ActionStatus.IGNORED.value]),
                Action.updated_at < cutoff,
            ).delete(synchronize_session=False)

    @staticmethod
    async def delete_all(user_id: Optional[str] = None) -> int:
        """
        Delete every action, or every action of one user.

        Returns:
            Number of actions deleted
        """
        with get_db_session() as session:
            query = session.query(Action)
            if user_id:
                query = query.filter(Action.user_id == user_id)
            return query.delete(synchronize_session=False)
