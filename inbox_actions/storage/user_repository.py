"""
User Repository Implementation

Database operations for users, their preferences and their mailbox
connection (Gmail OAuth tokens or IMAP settings).

Design Considerations:
- Repository pattern for data access abstraction
- Dictionaries returned, never ORM objects
- Secrets encrypted on write and only decrypted by the dedicated getters
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from inbox_actions.email_processing.models import EmailProvider
from inbox_actions.storage.database import get_db_session
from inbox_actions.storage.encryption import decrypt_value, encrypt_value
from inbox_actions.storage.models import OAuthToken, User, to_storage_datetime, utcnow
from inbox_actions.utils.logging_setup import mask_email

logger = logging.getLogger(__name__)

GOOGLE_PROVIDER = "google"


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    return value.replace(tzinfo=timezone.utc) if value else None


class UserRepository:
    """
    Repository for user management database operations.

    All methods return dictionaries rather than ORM objects to prevent
    session-related issues when objects are accessed after the session closes.
    """

    @staticmethod
    async def create_user(
        email: str,
        name: Optional[str] = None,
        email_provider: Optional[Any] = None,
        sync_enabled: bool = True,
        email_notifications: bool = True,
    ) -> Dict[str, Any]:
        """
        Create a new user.

        Raises:
            ValueError: If the email is empty or already registered
            RuntimeError: If database operation fails
        """
        if not email or "@" not in email:
            raise ValueError("A valid email address is required")
        provider = EmailProvider(email_provider).value if email_provider else None

        with get_db_session() as session:
            if session.query(User.id).filter(User.email == email).first():
                logger.warning(f"Attempted to create duplicate user: {mask_email(email)}")
                raise ValueError("User with this email already exists")

            user = User(
                email=email,
                name=name,
                email_provider=provider,
                sync_enabled=sync_enabled,
                email_notifications=email_notifications,
            )
            try:
                session.add(user)
                session.flush()
                user_dict = user.to_dict()
            except Exception as e:
                logger.error(f"Failed to create user {mask_email(email)}: {str(e)}")
                raise RuntimeError(f"Failed to create user: {str(e)}")

        logger.info(f"Created new user {user_dict['id']} ({mask_email(email)})")
        return user_dict

    @staticmethod
    async def get_user(user_id: str) -> Optional[Dict[str, Any]]:
        with get_db_session() as session:
            user = session.query(User).filter(User.id == user_id).first()
            return user.to_dict() if user else None

    @staticmethod
    async def get_by_email(email: str) -> Optional[Dict[str, Any]]:
        with get_db_session() as session:
            user = session.query(User).filter(User.email == email).first()
            return user.to_dict() if user else None

    @staticmethod
    async def list_sync_enabled_users() -> List[Dict[str, Any]]:
        """Users with sync enabled and a mailbox provider configured."""
        with get_db_session() as session:
            users = session.query(User).filter(
                User.sync_enabled.is_(True),
                User.email_provider.isnot(None),
            ).order_by(User.created_at).all()
            return [user.to_dict() for user in users]

    @staticmethod
    async def update_preferences(
        user_id: str,
        sync_enabled: Optional[bool] = None,
        email_notifications: Optional[bool] = None,
        email_provider: Optional[Any] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Update the fields that were given, leave the others untouched.

        Returns:
            Updated user, or None when the user does not exist
        """
        with get_db_session() as session:
            user = session.query(User).filter(User.id == user_id).first()
            if not user:
                logger.warning(f"Attempted to update preferences of non-existent user: {user_id}")
                return None

            if sync_enabled is not None:
                user.sync_enabled = sync_enabled
            if email_notifications is not None:
                user.email_notifications = email_notifications
            if email_provider is not None:
                user.email_provider = EmailProvider(email_provider).value
            user.updated_at = utcnow()
            session.flush()
            return user.to_dict()

    @staticmethod
    async def mark_synced(user_id: str, when: Optional[datetime] = None) -> bool:
        with get_db_session() as session:
            user = session.query(User).filter(User.id == user_id).first()
            if not user:
                return False
            user.last_sync = to_storage_datetime(when) or utcnow()
            return True

    @staticmethod
    async def get_last_sync(user_id: str) -> Optional[datetime]:
        with get_db_session() as session:
            user = session.query(User).filter(User.id == user_id).first()
            return _aware(user.last_sync) if user else None

    @staticmethod
    async def get_notification_state(user_id: str) -> Optional[Dict[str, Any]]:
        """Email address, opt-in flag and last send time, for the digest."""
        with get_db_session() as session:
            user = session.query(User).filter(User.id == user_id).first()
            if not user:
                return None
            return {
                "email": user.email,
                "name": user.name,
                "email_notifications": user.email_notifications,
                "last_notification_sent": _aware(user.last_notification_sent),
            }

    @staticmethod
    async def mark_notified(user_id: str, when: Optional[datetime] = None) -> bool:
        with get_db_session() as session:
            user = session.query(User).filter(User.id == user_id).first()
            if not user:
                return False
            user.last_notification_sent = to_storage_datetime(when) or utcnow()
            return True

    @staticmethod
    async def save_gmail_tokens(
        user_id: str,
        access_token: str,
        refresh_token: Optional[str],
        expires_at: Optional[datetime],
        scopes: List[str],
    ) -> bool:
        """
        Store (or replace) the Gmail OAuth tokens of a user and select Gmail
        as their provider.

        Raises:
            ValueError: If user does not exist
        """
        with get_db_session() as session:
            user = session.query(User).filter(User.id == user_id).first()
            if not user:
                raise ValueError("User does not exist")

            token = session.query(OAuthToken).filter(
                OAuthToken.user_id == user_id,
                OAuthToken.provider == GOOGLE_PROVIDER,
            ).first()
            if token is None:
                token = OAuthToken(user_id=user_id, provider=GOOGLE_PROVIDER)
                session.add(token)

            token.access_token = encrypt_value(access_token)
            if refresh_token:
                token.refresh_token = encrypt_value(refresh_token)
            token.expires_at = to_storage_datetime(expires_at)
            token.scopes = ",".join(scopes or [])
            token.updated_at = utcnow()

            user.email_provider = EmailProvider.GMAIL.value
            logger.info(f"Saved Gmail tokens for user {user_id}")
            return True

    @staticmethod
    async def get_gmail_tokens(user_id: str) -> Optional[Dict[str, Any]]:
        """Decrypted Gmail tokens, or None when Gmail is not connected."""
        with get_db_session() as session:
            token = session.query(OAuthToken).filter(
                OAuthToken.user_id == user_id,
                OAuthToken.provider == GOOGLE_PROVIDER,
            ).first()
            if not token:
                return None
            return {
                "access_token": decrypt_value(token.access_token),
                "refresh_token": decrypt_value(token.refresh_token) if token.refresh_token else None,
                "expires_at": _aware(token.expires_at),
                "scopes": token.scopes.split(",") if token.scopes else [],
            }

    @staticmethod
    async def update_gmail_access_token(user_id: str, access_token: str, expires_at: Optional[datetime]) -> bool:
        """Persist a refreshed access token."""
        with get_db_session() as session:
            token = session.query(OAuthToken).filter(
                OAuthToken.user_id == user_id,
                OAuthToken.provider == GOOGLE_PROVIDER,
            ).first()
            if not token:
                return False
            token.access_token = encrypt_value(access_token)
            token.expires_at = to_storage_datetime(expires_at)
            token.updated_at = utcnow()
            return True

    @staticmethod
    async def save_imap_settings(
        user_id: str,
        host: str,
        port: int,
        username: str,
        password: str,
        use_tls: bool = True,
        folder: str = "INBOX",
    ) -> bool:
        """
        Store IMAP settings (password encrypted) and select IMAP as provider.

        Raises:
            ValueError: If user does not exist or a field is missing
        """
        if not host or not username or not password:
            raise ValueError("IMAP host, username and password are required")

        with get_db_session() as session:
            user = session.query(User).filter(User.id == user_id).first()
            if not user:
                raise ValueError("User does not exist")

            user.imap_host = host
            user.imap_port = port
            user.imap_username = username
            user.imap_password = encrypt_value(password)
            user.imap_use_tls = use_tls
            user.imap_folder = folder or "INBOX"
            user.imap_last_uid = None
            user.imap_connected = True
            user.imap_last_error = None
            user.email_provider = EmailProvider.IMAP.value
            logger.info(f"Saved IMAP settings for user {user_id} ({host})")
            return True

    @staticmethod
    async def get_imap_settings(user_id: str) -> Optional[Dict[str, Any]]:
        """Decrypted IMAP settings, or None when IMAP is not configured."""
        with get_db_session() as session:
            user = session.query(User).filter(User.id == user_id).first()
            if not user or not user.imap_host or not user.imap_password:
                return None
            return {
                "host": user.imap_host,
                "port": user.imap_port,
                "username": user.imap_username,
                "password": decrypt_value(user.imap_password),
                "use_tls": user.imap_use_tls,
                "folder": user.imap_folder,
                "last_uid": user.imap_last_uid,
                "connected": user.imap_connected,
                "last_error": user.imap_last_error,
            }

    @staticmethod
    async def update_imap_state(
        user_id: str,
        last_uid: Optional[int] = None,
        connected: Optional[bool] = None,
        last_error: Optional[str] = None,
    ) -> bool:
        with get_db_session() as session:
            user = session.query(User).filter(User.id == user_id).first()
            if not user:
                return False
            if last_uid is not None:
                user.imap_last_uid = last_uid
            if connected is not None:
                user.imap_connected = connected
            user.imap_last_error = last_error
            return True

    @staticmethod
    async def disconnect_provider(user_id: str) -> bool:
        """Forget the mailbox connection and its secrets."""
        with get_db_session() as session:
            user = session.query(User).filter(User.id == user_id).first()
            if not user:
                return False
            session.query(OAuthToken).filter(OAuthToken.user_id == user_id).delete(synchronize_session=False)
            user.email_provider = None
            user.imap_password = None
            user.imap_connected = False
            user.imap_last_uid = None
            logger.info(f"Disconnected mailbox of user {user_id}")
            return True
