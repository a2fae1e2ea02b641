"""
Date handling for synced email metadata.

Mail providers hand us dates in several shapes: RFC 2822 ``Date`` headers,
Gmail's ``internalDate`` (epoch milliseconds), IMAP ``INTERNALDATE`` and ISO
strings from our own storage. Everything is turned into timezone-aware
datetimes here so the extraction engine can resolve relative deadlines.

Design Considerations:
- Multi-stage parsing: RFC 2822, then ISO 8601, then fixed formats
- Always timezone-aware (naive values are assumed UTC)
- Never raises on bad input, the caller decides on a fallback
"""

import email.utils
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)


class EmailDateService:
    """
    Parses and formats the dates attached to emails.
    """

    DATE_FORMATS = [
        "%a, %d %b %Y %H:%M:%S %z",  # RFC 2822
        "%d %b %Y %H:%M:%S %z",      # RFC 2822 without weekday
        "%d-%b-%Y %H:%M:%S %z",      # IMAP INTERNALDATE
        "%Y-%m-%dT%H:%M:%S%z",       # ISO format
        "%Y-%m-%d %H:%M:%S%z",       # Common variant
        "%Y-%m-%d %H:%M:%S",         # Simple format
    ]

    # Trailing comments some servers append: "+0100 (CET)"
    _ZONE_COMMENT = re.compile(r"\s*\([^)]*\)\s*$")

    @classmethod
    def parse_email_date(cls, date_str: Optional[str], default_timezone: str = "UTC") -> Tuple[Optional[datetime], bool]:
        """
        Parse an email date string.

        Args:
            date_str: Date string to parse
            default_timezone: Timezone applied to naive results

        Returns:
            Tuple of (parsed datetime or None, success flag)
        """
        if not date_str or not isinstance(date_str, str):
            logger.debug("Empty date string provided")
            return None, False

        value = cls._ZONE_COMMENT.sub("", date_str.strip())

        try:
            parsed = email.utils.parsedate_tz(value)
            if parsed:
                timestamp = email.utils.mktime_tz(parsed)
                return datetime.fromtimestamp(timestamp, timezone.utc), True
        except (TypeError, ValueError, OverflowError) as e:
            logger.debug(f"RFC 2822 parsing failed for '{date_str}': {str(e)}")

        try:
            return cls.ensure_aware(datetime.fromisoformat(value.replace("Z", "+00:00")), default_timezone), True
        except ValueError:
            pass

        for fmt in cls.DATE_FORMATS:
            try:
                return cls.ensure_aware(datetime.strptime(value, fmt), default_timezone), True
            except ValueError:
                continue

        logger.warning(f"Unrecognised email date: '{date_str}'")
        return None, False

    @classmethod
    def parse_or_now(cls, date_str: Optional[str]) -> datetime:
        """Parse a date header, falling back to the current time."""
        parsed, success = cls.parse_email_date(date_str)
        return parsed if success else datetime.now(timezone.utc)

    @staticmethod
    def from_epoch_millis(value: Union[str, int, None]) -> Optional[datetime]:
        """Convert Gmail's ``internalDate`` (epoch milliseconds) to UTC."""
        try:
            return datetime.fromtimestamp(int(value) / 1000, timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError):
            return None

    @staticmethod
    def ensure_aware(dt: datetime, default_timezone: str = "UTC") -> datetime:
        if dt.tzinfo is None:
            return dt.replace(tzinfo=ZoneInfo(default_timezone))
        return dt

    @classmethod
    def format_iso(cls, dt: datetime) -> str:
        """Format datetime as ISO 8601, assuming UTC for naive values."""
        return cls.ensure_aware(dt).isoformat()

    @staticmethod
    def lookback_start(last_sync: Optional[datetime], lookback_hours: int) -> datetime:
        """
        Lower bound of a sync window.

        The last successful sync when known, otherwise ``lookback_hours`` ago.
        """
        if last_sync is not None:
            return EmailDateService.ensure_aware(last_sync)
        return datetime.now(timezone.utc) - timedelta(hours=lookback_hours)
