"""
Action Data Models

Request and response models of the /actions endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from inbox_actions.email_processing.models import ActionStatus, ActionType


class ActionResponse(BaseModel):
    """A persisted action as returned to the client."""
    id: str
    title: str
    type: ActionType
    status: ActionStatus
    source_sentence: str = Field(..., description="Sentence of the email the action was found in")
    email_from: str
    email_received_at: Optional[datetime] = None
    message_id: Optional[str] = None
    email_web_url: Optional[str] = None
    due_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ActionListResponse(BaseModel):
    actions: List[ActionResponse]
    total: int
    counts: dict = Field(default_factory=dict, description="Number of actions per status")


class ActionCreateRequest(BaseModel):
    """Action created from an email by the client."""
    title: str = Field(..., min_length=1, max_length=255)
    type: ActionType
    source_sentence: str = Field(..., min_length=1)
    email_from: str = Field(..., min_length=1)
    email_received_at: datetime
    message_id: Optional[str] = None
    email_web_url: Optional[str] = None
    due_date: Optional[datetime] = None

    @field_validator("title", "source_sentence", "email_from")
    @classmethod
    def strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Must not be blank")
        return value


class ManualActionRequest(BaseModel):
    """Action typed by the user, not linked to an email."""
    title: str = Field(..., min_length=1, max_length=255)
    type: ActionType
    due_date: Optional[datetime] = None
    note: Optional[str] = Field(default=None, max_length=500, description="Stored as the source sentence")

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title must not be blank")
        return value


class ExtractRequest(BaseModel):
    """An email submitted for a dry-run extraction."""
    sender: str = Field(default="", alias="from")
    subject: str = ""
    body: str = ""
    received_at: Optional[datetime] = None

    model_config = {"populate_by_name": True}


class ExtractedActionResponse(BaseModel):
    title: str
    type: ActionType
    source_sentence: str
    due_date: Optional[datetime] = None


class ExtractResponse(BaseModel):
    actions: List[ExtractedActionResponse]
    count: int
