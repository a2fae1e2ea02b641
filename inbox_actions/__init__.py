"""
Inbox Actions: turns French emails into a to-do list of concrete actions.
"""

from . import email_processing
from . import integrations
from . import storage
from . import utils

__all__ = [
    'email_processing',
    'integrations',
    'storage',
    'utils'
]
