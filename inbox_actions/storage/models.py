"""
Database Models for Inbox Actions

Defines the persisted entities: users with their mailbox connection, the
minimal metadata of synced emails, and the actions extracted from them.

Design Considerations:
- Email bodies are never stored, only the metadata needed to fetch them again
- Provider secrets (OAuth tokens, IMAP password) are stored encrypted
- Uniqueness constraints back the dedup-on-persist guarantees
- Timestamps are naive UTC, as written by ``utcnow()``
"""

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from inbox_actions.email_processing.models import ActionStatus, EmailStatus

Base = declarative_base()


def utcnow() -> datetime:
    """Current time as naive UTC, the storage convention."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_storage_datetime(value: datetime) -> datetime:
    """Convert any datetime to naive UTC for storage."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _iso(value: datetime) -> str:
    return value.replace(tzinfo=timezone.utc).isoformat() if value else None


class User(Base):
    """
    Application user and the mailbox they connected.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)

    # Mailbox connection
    email_provider = Column(String(32), nullable=True)  # EmailProvider value
    sync_enabled = Column(Boolean, default=True, nullable=False)
    last_sync = Column(DateTime, nullable=True)

    # Notifications
    email_notifications = Column(Boolean, default=True, nullable=False)
    last_notification_sent = Column(DateTime, nullable=True)

    # IMAP settings (password encrypted)
    imap_host = Column(String(255), nullable=True)
    imap_port = Column(Integer, nullable=True)
    imap_username = Column(String(255), nullable=True)
    imap_password = Column(Text, nullable=True)
    imap_use_tls = Column(Boolean, default=True, nullable=False)
    imap_folder = Column(String(255), default="INBOX", nullable=False)
    imap_last_uid = Column(BigInteger, nullable=True)
    imap_connected = Column(Boolean, default=False, nullable=False)
    imap_last_error = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    oauth_tokens = relationship("OAuthToken", back_populates="user", cascade="all, delete-orphan")
    actions = relationship("Action", back_populates="user", cascade="all, delete-orphan")

    def to_dict(self) -> Dict[str, Any]:
        """Public representation, secrets excluded."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "email_provider": self.email_provider,
            "sync_enabled": self.sync_enabled,
            "email_notifications": self.email_notifications,
            "last_sync": _iso(self.last_sync),
            "last_notification_sent": _iso(self.last_notification_sent),
            "imap_host": self.imap_host,
            "imap_port": self.imap_port,
            "imap_username": self.imap_username,
            "imap_folder": self.imap_folder,
            "imap_connected": self.imap_connected,
            "created_at": _iso(self.created_at),
        }


class OAuthToken(Base):
    """
    OAuth credentials of a mail provider (Gmail), tokens encrypted.
    """
    __tablename__ = "oauth_tokens"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    provider = Column(String(50), nullable=False, index=True)  # 'google'

    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    scopes = Column(Text, nullable=False, default="")

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="oauth_tokens")

    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_oauth_user_provider"),
    )


class EmailMetadataRecord(Base):
    """
    Minimal metadata of a synced email. No body is ever stored.

    ``message_id`` is the Gmail message id or the IMAP UID as a string.
    """
    __tablename__ = "email_metadata"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    provider = Column(String(32), nullable=False)
    message_id = Column(String(255), nullable=False)
    thread_id = Column(String(255), nullable=True)
    imap_uid = Column(BigInteger, nullable=True)

    sender = Column(String(500), nullable=False, default="")
    subject = Column(Text, nullable=True)
    snippet = Column(Text, nullable=True)
    received_at = Column(DateTime, nullable=False)
    labels = Column(Text, nullable=False, default="[]")  # JSON list
    web_url = Column(String(1000), nullable=True)

    status = Column(String(16), nullable=False, default=EmailStatus.EXTRACTED.value)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "message_id", name="uq_email_metadata_user_message"),
        Index("ix_email_metadata_user_status", "user_id", "status"),
    )

    def label_list(self) -> List[str]:
        try:
            return json.loads(self.labels or "[]")
        except ValueError:
            return []


class Action(Base):
    """
    An action extracted from an email (or created manually).
    """
    __tablename__ = "actions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    type = Column(String(16), nullable=False)  # ActionType value
    status = Column(String(16), nullable=False, default=ActionStatus.TODO.value)
    source_sentence = Column(Text, nullable=False, default="")

    email_from = Column(String(500), nullable=False, default="")
    email_received_at = Column(DateTime, nullable=False)
    message_id = Column(String(255), nullable=True)
    email_web_url = Column(String(1000), nullable=True)
    due_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="actions")

    __table_args__ = (
        UniqueConstraint("user_id", "message_id", "title", name="uq_action_user_message_title"),
        Index("ix_actions_user_status", "user_id", "status"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "type": self.type,
            "status": self.status,
            "source_sentence": self.source_sentence,
            "email_from": self.email_from,
            "email_received_at": _iso(self.email_received_at),
            "message_id": self.message_id,
            "email_web_url": self.email_web_url,
            "due_date": _iso(self.due_date),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
