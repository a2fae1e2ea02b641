"""
Shared utilities.
"""

from .logging_setup import SafeFormatter, mask_email, setup_logging

__all__ = [
    'SafeFormatter',
    'mask_email',
    'setup_logging'
]
