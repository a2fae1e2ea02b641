"""
Shared data models for action extraction.

Defines the closed set of action types, the lifecycle statuses used by the
persistence layer, and the immutable input/output records exchanged with the
extraction engine.
"""

from dataclasses import dataclass, asdict, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ActionType(str, Enum):
    """Categories of requested actions inferred from phrasing."""
    SEND = "SEND"
    CALL = "CALL"
    FOLLOW_UP = "FOLLOW_UP"
    PAY = "PAY"
    VALIDATE = "VALIDATE"


class ActionStatus(str, Enum):
    """Lifecycle of a persisted action. Never set by the extraction engine."""
    TODO = "TODO"
    DONE = "DONE"
    IGNORED = "IGNORED"


class EmailProvider(str, Enum):
    """Supported mailbox providers."""
    GMAIL = "GMAIL"
    IMAP = "IMAP"
    MICROSOFT_GRAPH = "MICROSOFT_GRAPH"


class EmailStatus(str, Enum):
    """Processing state of synced email metadata."""
    EXTRACTED = "EXTRACTED"
    ANALYZED = "ANALYZED"


@dataclass(frozen=True)
class EmailContext:
    """
    Normalized representation of one email passed to the extraction engine.

    Attributes:
        sender: Sender address (the ``From`` header)
        subject: Subject line, may be empty
        body: Plain-text body (or text extracted from HTML)
        received_at: Timestamp of receipt
        message_id: Provider message identifier, carried through for provenance
    """
    sender: str
    subject: str
    body: str
    received_at: datetime
    message_id: Optional[str] = None


@dataclass(frozen=True)
class ExtractedAction:
    """
    One action detected in an email sentence.

    ``source_sentence`` is always a literal substring of the originating body.
    """
    title: str
    type: ActionType
    source_sentence: str
    email_from: str
    email_received_at: datetime
    message_id: Optional[str] = None
    due_date: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        data["email_received_at"] = (
            self.email_received_at.isoformat() if self.email_received_at else None
        )
        data["due_date"] = self.due_date.isoformat() if self.due_date else None
        return data


@dataclass
class EmailMetadata:
    """
    Provider-agnostic metadata of one synced email. Carries no body.

    ``message_id`` is the Gmail message id, or the IMAP UID as a string.
    """
    message_id: str
    provider: EmailProvider
    sender: str
    subject: Optional[str]
    received_at: datetime
    snippet: str = ""
    thread_id: Optional[str] = None
    imap_uid: Optional[int] = None
    labels: List[str] = field(default_factory=list)
    web_url: Optional[str] = None
    status: EmailStatus = EmailStatus.EXTRACTED
