"""
Rule-based action extraction from French business emails.

Pipeline for one email:

1. Whole-email exclusions (automated senders, newsletters, unsubscribe footers)
2. Sentence segmentation (spans into the original body)
3. Per-sentence gating: length window, weak conditionals
4. First accepted rule of the ordered rule table
5. Title assembly, deadline resolution and deduplication

Design Considerations:
- Pure and deterministic: same email in, same actions out, no I/O
- Total: never raises, an internal failure is logged and yields no actions
- Precision over recall: an ambiguous sentence produces nothing
"""

import logging
import re
from datetime import datetime
from typing import List, Optional, Set, Tuple

from inbox_actions.email_processing.models import ActionType, EmailContext, ExtractedAction
from inbox_actions.email_processing.extraction.deadlines import has_deadline, parse_due_date
from inbox_actions.email_processing.extraction.patterns import (
    ACTION_RULES,
    BODY_EXCLUSIONS,
    SENDER_EXCLUSIONS,
    STRONG_MARKERS,
    SUBJECT_EXCLUSIONS,
    TITLE_TEMPLATES,
    WEAK_CONDITIONALS,
    ActionRule,
)
from inbox_actions.email_processing.extraction.segmenter import normalize_typography, split_sentences
from inbox_actions.utils.logging_setup import mask_email

logger = logging.getLogger(__name__)

MIN_SENTENCE_LENGTH = 10
MAX_SENTENCE_LENGTH = 500
MAX_TITLE_LENGTH = 100
MAX_SOURCE_LENGTH = 200

_STRIP_CHARS = " \t\r\n,;:.!?\"'-"
_FILLER = re.compile(
    r"^(?:(?:aussi|également|egalement|encore|stp|svp|bien)\s+)+"
    r"|\s+(?:stp|svp|s'il\s+(?:te|vous)\s+pla[iî]t|merci)$",
    re.IGNORECASE,
)
_WHITESPACE = re.compile(r"\s+")


def _text(value) -> str:
    return value if isinstance(value, str) else ""


def is_excluded_email(sender: str, subject: str, body: str) -> bool:
    """True for automated or bulk emails that never carry personal requests."""
    sender = normalize_typography(sender)
    subject = normalize_typography(subject)
    body = normalize_typography(body)
    return (
        any(p.search(sender) for p in SENDER_EXCLUSIONS)
        or any(p.search(subject) for p in SUBJECT_EXCLUSIONS)
        or any(p.search(body) for p in BODY_EXCLUSIONS)
    )


def _clean_object(raw: Optional[str]) -> str:
    if not raw:
        return ""
    cleaned = raw.strip(_STRIP_CHARS)
    # Filler words can sit on either side: strip until stable
    previous = None
    while cleaned != previous:
        previous = cleaned
        cleaned = _FILLER.sub("", cleaned).strip(_STRIP_CHARS)
    return _WHITESPACE.sub(" ", cleaned)


def _has_strong_marker(action_type: ActionType, sentence: str) -> bool:
    return any(p.search(sentence) for p in STRONG_MARKERS.get(action_type, ()))


def match_sentence(sentence: str, deadline: bool = False) -> Optional[Tuple[ActionRule, str]]:
    """
    Find the first accepted rule for a normalized sentence.

    A match with an empty object is only accepted when the sentence has a
    deadline or a strong marker for the rule's type; otherwise the next rule
    is tried.

    Returns:
        (rule, cleaned object) or None
    """
    for rule in ACTION_RULES:
        match = rule.search(sentence)
        if not match:
            continue
        obj = _clean_object(match.group("object"))
        if obj or deadline or _has_strong_marker(rule.action_type, sentence):
            return rule, obj
    return None


def build_title(action_type: ActionType, obj: str) -> str:
    with_object, without_object = TITLE_TEMPLATES[action_type]
    title = with_object.format(obj) if obj else without_object
    if len(title) > MAX_TITLE_LENGTH:
        title = title[:MAX_TITLE_LENGTH - 3] + "..."
    return title


def _dedup_key(action_type: ActionType, title: str) -> Tuple[ActionType, str]:
    return action_type, _WHITESPACE.sub(" ", title.casefold()).strip()


def _extract(context: EmailContext) -> List[ExtractedAction]:
    sender = _text(getattr(context, "sender", None))
    subject = _text(getattr(context, "subject", None))
    body = _text(getattr(context, "body", None))
    received_at = getattr(context, "received_at", None)
    message_id = getattr(context, "message_id", None)

    if not body.strip():
        return []

    if is_excluded_email(sender, subject, body):
        logger.debug(f"Skipping automated email from {mask_email(sender)}")
        return []

    actions: List[ExtractedAction] = []
    seen: Set[Tuple[ActionType, str]] = set()

    for sentence in split_sentences(body):
        text = normalize_typography(sentence.text)
        if not MIN_SENTENCE_LENGTH <= len(text) <= MAX_SENTENCE_LENGTH:
            continue

        deadline = has_deadline(text)
        if not deadline and any(p.search(text) for p in WEAK_CONDITIONALS):
            continue

        matched = match_sentence(text, deadline)
        if matched is None:
            continue
        rule, obj = matched

        title = build_title(rule.action_type, obj)
        key = _dedup_key(rule.action_type, title)
        if key in seen:
            continue
        seen.add(key)

        due_date = parse_due_date(text, received_at) if isinstance(received_at, datetime) else None
        actions.append(ExtractedAction(
            title=title,
            type=rule.action_type,
            source_sentence=sentence.text[:MAX_SOURCE_LENGTH],
            email_from=sender,
            email_received_at=received_at,
            message_id=message_id,
            due_date=due_date,
        ))
        logger.debug(f"Rule '{rule.name}' matched: {title}")

    return actions


def extract_actions_from_email(context: EmailContext) -> List[ExtractedAction]:
    """
    Extract the actions requested in one email.

    Args:
        context: Normalized email (sender, subject, plain-text body, receipt time)

    Returns:
        Actions in body order, at most one per sentence, deduplicated by
        type and title. Empty for excluded emails or on internal failure.
    """
    try:
        actions = _extract(context)
    except Exception as e:
        logger.error(f"Action extraction failed: {str(e)}", exc_info=True)
        return []

    if actions:
        logger.info(
            f"Extracted {len(actions)} action(s) from email "
            f"{getattr(context, 'message_id', None) or '<no id>'}"
        )
    return actions
