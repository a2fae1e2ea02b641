"""
Gmail integration package.

Read-only access to a user's Gmail mailbox with their stored OAuth tokens.
"""

from .provider import GmailProvider, build_credentials, create_gmail_provider

__all__ = ["GmailProvider", "build_credentials", "create_gmail_provider"]
