"""
French deadline recognition for extracted actions.

Turns phrases such as "avant vendredi", "dans 3 jours" or "fin du mois" into
a concrete due date, relative to when the email was received. The first
recognised phrase wins; unrecognised sentences have no due date.
"""

import calendar
import logging
import re
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_HOUR = 18

MONTHS = {
    "janvier": 1, "février": 2, "fevrier": 2, "mars": 3, "avril": 4,
    "mai": 5, "juin": 6, "juillet": 7, "août": 8, "aout": 8,
    "septembre": 9, "octobre": 10, "novembre": 11, "décembre": 12, "decembre": 12,
}

WEEKDAYS = {
    "lundi": 0, "mardi": 1, "mercredi": 2, "jeudi": 3,
    "vendredi": 4, "samedi": 5, "dimanche": 6,
}

_FLAGS = re.IGNORECASE | re.UNICODE


def _at(day: datetime, hour: int) -> datetime:
    return day.replace(hour=hour, minute=0, second=0, microsecond=0)


def _absolute(match: "re.Match", received_at: datetime) -> Optional[datetime]:
    day = int(match.group(1))
    month = MONTHS[match.group(2).lower()]
    try:
        due = _at(received_at.replace(month=month, day=day), DEFAULT_HOUR)
    except ValueError:
        # "31 février" and friends
        return None
    if due.date() < received_at.date():
        try:
            due = due.replace(year=due.year + 1)
        except ValueError:
            return None
    return due


def _weekday(match: "re.Match", received_at: datetime) -> datetime:
    target = WEEKDAYS[match.group(1).lower()]
    days_ahead = target - received_at.weekday()
    if days_ahead <= 0:
        days_ahead += 7
    return _at(received_at + timedelta(days=days_ahead), DEFAULT_HOUR)


def _in_days(match: "re.Match", received_at: datetime) -> datetime:
    return _at(received_at + timedelta(days=int(match.group(1))), DEFAULT_HOUR)


def _in_weeks(match: "re.Match", received_at: datetime) -> datetime:
    return _at(received_at + timedelta(weeks=int(match.group(1))), DEFAULT_HOUR)


def _today_at(hour: int) -> Callable[["re.Match", datetime], datetime]:
    return lambda match, received_at: _at(received_at, hour)


def _tomorrow(match: "re.Match", received_at: datetime) -> datetime:
    return _at(received_at + timedelta(days=1), DEFAULT_HOUR)


def _end_of_week(match: "re.Match", received_at: datetime) -> datetime:
    # Friday of the current week, next Friday on weekends
    days_ahead = 4 - received_at.weekday()
    if days_ahead < 0:
        days_ahead += 7
    return _at(received_at + timedelta(days=days_ahead), DEFAULT_HOUR)


def _next_week(match: "re.Match", received_at: datetime) -> datetime:
    # Monday of next week
    days_ahead = 7 - received_at.weekday()
    return _at(received_at + timedelta(days=days_ahead), DEFAULT_HOUR)


def _end_of_month(match: "re.Match", received_at: datetime) -> datetime:
    last_day = calendar.monthrange(received_at.year, received_at.month)[1]
    return _at(received_at.replace(day=last_day), DEFAULT_HOUR)


_MONTH_NAMES = "|".join(sorted(MONTHS, key=len, reverse=True))
_WEEKDAY_NAMES = "|".join(WEEKDAYS)

# Order matters: specific phrases before the generic ones they contain.
DEADLINE_PATTERNS: List[Tuple[str, "re.Pattern", Callable[["re.Match", datetime], Optional[datetime]]]] = [
    ("absolute_date",
     re.compile(r"\b(?:avant|pour|d'ici)\s+(?:le\s+)?(\d{1,2})(?:er)?\s+(%s)\b" % _MONTH_NAMES, _FLAGS),
     _absolute),
    ("weekday",
     re.compile(r"\b(?:avant|pour|d'ici)\s+(?:ce\s+|le\s+)?(%s)\b" % _WEEKDAY_NAMES, _FLAGS),
     _weekday),
    ("in_days", re.compile(r"\b(?:dans|d'ici)\s+(\d{1,3})\s+jours?\b", _FLAGS), _in_days),
    ("in_weeks", re.compile(r"\b(?:dans|d'ici)\s+(\d{1,2})\s+semaines?\b", _FLAGS), _in_weeks),
    ("before_noon", re.compile(r"\b(?:avant|pour)\s+midi\b", _FLAGS), _today_at(12)),
    ("this_morning", re.compile(r"\bce\s+matin\b", _FLAGS), _today_at(12)),
    ("this_afternoon", re.compile(r"\bcet\s+après-midi\b", _FLAGS), _today_at(18)),
    ("this_evening", re.compile(r"\bce\s+soir\b", _FLAGS), _today_at(20)),
    ("end_of_day", re.compile(r"\b(?:en\s+)?fin\s+de\s+(?:la\s+)?journée\b", _FLAGS), _today_at(18)),
    ("today", re.compile(r"\b(?:aujourd'hui|ce\s+jour)\b", _FLAGS), _today_at(18)),
    ("tomorrow", re.compile(r"\bdemain\b", _FLAGS), _tomorrow),
    ("this_week", re.compile(r"\bcette\s+semaine\b", _FLAGS), _end_of_week),
    ("next_week", re.compile(r"\bla\s+semaine\s+prochaine\b", _FLAGS), _next_week),
    ("end_of_week", re.compile(r"\b(?:en\s+)?fin\s+de\s+(?:la\s+)?semaine\b", _FLAGS), _end_of_week),
    ("end_of_month", re.compile(r"\b(?:ce\s+mois|(?:en\s+)?fin\s+d[eu]\s+mois)\b", _FLAGS), _end_of_month),
]


def parse_due_date(sentence: Optional[str], received_at: Optional[datetime]) -> Optional[datetime]:
    """
    Resolve the first deadline phrase of a sentence to a datetime.

    Dates keep the timezone of ``received_at``. Absolute dates already past
    roll to next year; weekdays always resolve to a future day.

    Args:
        sentence: Typography-normalized sentence text
        received_at: When the email was received

    Returns:
        Due date, or None when no phrase is recognised or the date is invalid
    """
    if not isinstance(sentence, str) or not isinstance(received_at, datetime):
        return None

    for name, pattern, resolve in DEADLINE_PATTERNS:
        match = pattern.search(sentence)
        if not match:
            continue
        try:
            return resolve(match, received_at)
        except (ValueError, OverflowError, KeyError) as e:
            logger.debug(f"Could not resolve deadline '{name}': {str(e)}")
            return None
    return None


def has_deadline(sentence: Optional[str]) -> bool:
    """True when the sentence contains any recognised deadline phrase."""
    if not isinstance(sentence, str):
        return False
    return any(pattern.search(sentence) for _, pattern, _ in DEADLINE_PATTERNS)
