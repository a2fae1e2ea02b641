"""
User notifications.
"""

from .digest import DigestContent, render_digest, send_action_digest

__all__ = ["DigestContent", "render_digest", "send_action_digest"]
