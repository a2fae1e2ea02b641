"""
User Data Models
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class UserPreferences(BaseModel):
    sync_enabled: bool
    email_notifications: bool
    email_provider: Optional[str] = None
    last_sync: Optional[datetime] = None


class UserPreferencesUpdate(BaseModel):
    """Fields left out are not changed."""
    sync_enabled: Optional[bool] = None
    email_notifications: Optional[bool] = None


class SyncResponse(BaseModel):
    """Outcome of a manual sync of the current user's mailbox."""
    success: bool
    emails_synced: int = 0
    emails_analyzed: int = 0
    actions_extracted: int = 0
    email_errors: int = 0
    error: Optional[str] = None


class JobResponse(BaseModel):
    """Outcome of a cron job."""
    success: bool
    stats: Dict[str, Any] = Field(default_factory=dict)
    duration: int = Field(default=0, description="Duration in milliseconds")
    error: Optional[str] = None


class ProviderStatusResponse(BaseModel):
    provider: Optional[str] = None
    is_connected: bool = False
    last_sync: Optional[datetime] = None
    last_error: Optional[str] = None
    pending_emails: int = Field(default=0, description="Synced emails not analyzed yet")
