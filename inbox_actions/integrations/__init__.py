"""
Mailbox providers.
"""

from .base import BaseEmailProvider, ConnectionStatus
from .factory import create_email_provider
from .gmail.provider import GmailProvider
from .imap.provider import IMAPProvider

__all__ = [
    'BaseEmailProvider',
    'ConnectionStatus',
    'GmailProvider',
    'IMAPProvider',
    'create_email_provider',
]
