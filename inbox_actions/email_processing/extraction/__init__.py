"""
Rule-based French action extraction engine.
"""

from .extractor import extract_actions_from_email, is_excluded_email
from .deadlines import parse_due_date
from .patterns import ACTION_RULES, ActionRule
from .segmenter import Sentence, split_sentences, normalize_typography

__all__ = [
    'extract_actions_from_email',
    'is_excluded_email',
    'parse_due_date',
    'ACTION_RULES',
    'ActionRule',
    'Sentence',
    'split_sentences',
    'normalize_typography'
]
