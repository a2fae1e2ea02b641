"""
Email processing package initialization.
"""

from .models import (
    ActionStatus,
    ActionType,
    EmailContext,
    EmailMetadata,
    EmailProvider,
    EmailStatus,
    ExtractedAction,
)
from .extraction import extract_actions_from_email

__all__ = [
    'ActionStatus',
    'ActionType',
    'EmailContext',
    'EmailMetadata',
    'EmailProvider',
    'EmailStatus',
    'ExtractedAction',
    'extract_actions_from_email'
]
