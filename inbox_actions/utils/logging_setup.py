"""
Encoding-Safe Logging Setup

Configures process-wide logging for the API and the background jobs:
console output plus an optional rotating log file, with a formatter that
degrades French accents and typographic symbols to ASCII on consoles that
cannot render them.

Design Considerations:
- Module code only ever calls ``logging.getLogger(__name__)``
- Handlers are installed once, on the root logger, by ``setup_logging()``
- Email addresses never appear in clear text in logs (``mask_email``)
"""

import logging
import os
import platform
import sys
import unicodedata
from logging.handlers import RotatingFileHandler
from typing import Optional

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class SafeFormatter(logging.Formatter):
    """
    Log formatter that falls back to ASCII when the console encoding is limited.

    Accented letters are decomposed ("é" -> "e"), typographic punctuation is
    mapped to its ASCII form, anything else unencodable becomes "?".
    """

    SYMBOL_MAP = {
        "\u2019": "'",
        "\u2018": "'",
        "\u00ab": '"',
        "\u00bb": '"',
        "\u201c": '"',
        "\u201d": '"',
        "\u2026": "...",
        "\u2192": "->",
        "\u2022": "*",
        "\u00a0": " ",
    }

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None,
                 ascii_only: Optional[bool] = None):
        super().__init__(fmt or DEFAULT_FORMAT, datefmt)
        if ascii_only is None:
            forced = os.environ.get("FORCE_ASCII_LOGGING", "0").lower() in ("1", "true", "yes")
            ascii_only = forced or self._has_limited_encoding()
        self.limited_encoding = ascii_only

    @staticmethod
    def _has_limited_encoding() -> bool:
        """Detect consoles that cannot print UTF-8."""
        if os.environ.get("PYTHONIOENCODING", "").lower().replace("-", "") == "utf8":
            return False
        if platform.system() == "Windows" and "WT_SESSION" not in os.environ:
            return True
        encoding = (getattr(sys.stderr, "encoding", None) or "").lower().replace("-", "")
        return bool(encoding) and encoding != "utf8"

    @classmethod
    def to_ascii(cls, message: str) -> str:
        for symbol, replacement in cls.SYMBOL_MAP.items():
            message = message.replace(symbol, replacement)
        decomposed = unicodedata.normalize("NFKD", message)
        stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
        return stripped.encode("ascii", "replace").decode("ascii")

    def format(self, record: logging.LogRecord) -> str:
        formatted_message = super().format(record)
        if self.limited_encoding:
            formatted_message = self.to_ascii(formatted_message)
        return formatted_message


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_str: Optional[str] = None,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> logging.Logger:
    """
    Configure the root logger with encoding-safe handlers.

    Args:
        level: Level name (DEBUG, INFO, WARNING...)
        log_file: Optional path of a rotating log file
        format_str: Custom format string for log messages
        max_bytes: Rotation threshold of the log file
        backup_count: Number of rotated files kept

    Returns:
        logging.Logger: The configured root logger
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    # Avoid duplicated output when called twice (reload, tests)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(SafeFormatter(format_str))
    root.addHandler(console_handler)

    if log_file:
        try:
            directory = os.path.dirname(log_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
            )
            # Files are always UTF-8
            file_handler.setFormatter(SafeFormatter(format_str, ascii_only=False))
            root.addHandler(file_handler)
        except OSError as e:
            root.warning(f"Failed to create log file handler: {str(e)}")

    return root


def mask_email(email: Optional[str]) -> str:
    """
    Mask an email address for logging: ``jean.dupont@acme.fr`` -> ``j*********t@a***.fr``.

    Returns:
        Masked address, or the input unchanged when it is not an address
    """
    if not email or "@" not in email:
        return email or ""

    username, domain = email.rsplit("@", 1)
    if len(username) <= 2:
        masked_username = "*" * len(username)
    else:
        masked_username = username[0] + "*" * (len(username) - 2) + username[-1]

    domain_parts = domain.split(".")
    head = domain_parts[0]
    masked_head = (head[0] + "*" * (len(head) - 1)) if head else ""
    if len(domain_parts) == 1:
        return f"{masked_username}@{masked_head}"
    return f"{masked_username}@{masked_head}.{'.'.join(domain_parts[1:])}"
