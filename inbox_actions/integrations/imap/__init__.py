"""
IMAP integration package.
"""

from .provider import IMAPProvider, create_imap_provider

__all__ = ["IMAPProvider", "create_imap_provider"]
