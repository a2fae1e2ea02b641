"""
Domain exceptions.

The API maps these to HTTP responses; jobs catch them per email or per
user and record the message in their result.
"""


class InboxActionsError(Exception):
    """Base class for every error raised by this package."""


class ProviderError(InboxActionsError):
    """A mailbox provider call failed (network, protocol, quota)."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class ProviderAuthError(ProviderError):
    """Credentials were rejected or could not be refreshed."""


class ActionNotFoundError(InboxActionsError):
    """No action with this id."""

    def __init__(self, action_id: str):
        self.action_id = action_id
        super().__init__(f"Action {action_id} not found")


class ActionAccessError(InboxActionsError):
    """The action belongs to another user."""

    def __init__(self, action_id: str):
        self.action_id = action_id
        super().__init__(f"Access to action {action_id} denied")


class NotificationError(InboxActionsError):
    """A notification email could not be sent."""
