# config/sync_config.py
"""
Sync, cleanup and notification settings shared by the jobs and the API.

Values come from the environment (``.env`` supported) with the defaults
below.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Emails fetched per sync run (fetch_new_emails)
MAX_EMAILS_TO_SYNC = _int_env("MAX_EMAILS_TO_SYNC", 100)

# Emails analyzed per sync run (get_extracted_emails + extraction)
MAX_EMAILS_TO_ANALYZE = _int_env("MAX_EMAILS_TO_ANALYZE", 50)

# Window of the very first sync of a mailbox
FIRST_SYNC_LOOKBACK_HOURS = _int_env("FIRST_SYNC_LOOKBACK_HOURS", 24)

DEFAULT_FOLDER = os.getenv("SYNC_DEFAULT_FOLDER", "INBOX")

# DONE / IGNORED actions older than this are pruned by the cleanup job
ACTION_RETENTION_DAYS = _int_env("ACTION_RETENTION_DAYS", 30)

# Optional job counting pending emails per user
FEATURE_EMAIL_COUNT = _bool_env("FEATURE_EMAIL_COUNT", False)

NOTIFICATION_COOLDOWN_MINUTES = _int_env("NOTIFICATION_COOLDOWN_MINUTES", 30)

SMTP_CONFIG = {
    "host": os.getenv("SMTP_HOST", "localhost"),
    "port": _int_env("SMTP_PORT", 587),
    "username": os.getenv("SMTP_USERNAME"),
    "password": os.getenv("SMTP_PASSWORD"),
    "use_tls": _bool_env("SMTP_USE_TLS", True),
    "timeout": _int_env("SMTP_TIMEOUT", 30),
    "from_address": os.getenv("EMAIL_FROM", "Inbox Actions <no-reply@inbox-actions.local>"),
}

APP_URL = os.getenv("APP_URL", "http://localhost:3000")

# Gmail OAuth client used to refresh user tokens
GOOGLE_CLIENT_CONFIG = {
    "client_id": os.getenv("GOOGLE_CLIENT_ID"),
    "client_secret": os.getenv("GOOGLE_CLIENT_SECRET"),
    "token_uri": "https://oauth2.googleapis.com/token",
}

GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]
