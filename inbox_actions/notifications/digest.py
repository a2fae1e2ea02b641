"""
Action digest email.

After a sync brings new work, the user gets a short recap of their pending
actions (total, overdue, urgent) by email. A cooldown keeps back-to-back
syncs from sending several digests.
"""

import asyncio
import html
import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from email.message import EmailMessage
from typing import Any, Dict, Optional

from inbox_actions.config.sync_config import APP_URL, NOTIFICATION_COOLDOWN_MINUTES, SMTP_CONFIG
from inbox_actions.exceptions import NotificationError
from inbox_actions.storage.action_repository import ActionRepository
from inbox_actions.storage.user_repository import UserRepository
from inbox_actions.utils.logging_setup import mask_email

logger = logging.getLogger(__name__)

DEFAULT_USER_NAME = "Utilisateur"


@dataclass(frozen=True)
class DigestContent:
    subject: str
    text: str
    html: str


def _plural(count: int, word: str) -> str:
    return f"{word}s" if count > 1 else word


def render_digest(name: Optional[str], stats: Dict[str, int], app_url: str = APP_URL) -> DigestContent:
    """Subject, plain text and HTML bodies of the digest."""
    total = stats.get("total_todo", 0)
    overdue = stats.get("overdue_count", 0)
    urgent = stats.get("urgent_count", 0)
    name = name or DEFAULT_USER_NAME
    dashboard_url = f"{app_url.rstrip('/')}/dashboard"
    settings_url = f"{app_url.rstrip('/')}/settings"

    headline = f"{total} {_plural(total, 'action')} en attente"
    details = []
    if overdue:
        details.append(f"{overdue} en retard")
    if urgent:
        details.append(f"{urgent} {_plural(urgent, 'urgente')}")

    text_lines = [f"Bonjour {name},", "", headline]
    text_lines.extend(f"- {line}" for line in details)
    text_lines += ["", f"Voir mes actions : {dashboard_url}", f"Gérer mes préférences : {settings_url}"]

    detail_html = "".join(f"<p style=\"margin:8px 0\">{html.escape(line)}</p>" for line in details)
    body_html = (
        "<html><body style=\"font-family:sans-serif;background:#f6f9fc\">"
        "<div style=\"max-width:560px;margin:0 auto;padding:20px 0 48px\">"
        "<h1 style=\"text-align:center\">Récapitulatif de vos actions</h1>"
        f"<p>Bonjour {html.escape(name)},</p>"
        f"<p style=\"font-size:32px;font-weight:bold;text-align:center\">{html.escape(headline)}</p>"
        f"{detail_html}"
        f"<p style=\"text-align:center\"><a href=\"{html.escape(dashboard_url)}\">Voir mes actions</a></p>"
        "<hr>"
        f"<p style=\"font-size:12px;text-align:center\"><a href=\"{html.escape(settings_url)}\">"
        "Gérer mes préférences</a></p>"
        "</div></body></html>"
    )
    return DigestContent(subject=headline, text="\n".join(text_lines), html=body_html)


def send_email(to_address: str, content: DigestContent, smtp_config: Optional[Dict[str, Any]] = None) -> None:
    """
    Deliver one message over SMTP. Blocking; async callers run it on a
    worker thread.

    Raises:
        NotificationError: If the SMTP exchange fails
    """
    config = smtp_config or SMTP_CONFIG
    message = EmailMessage()
    message["From"] = config["from_address"]
    message["To"] = to_address
    message["Subject"] = content.subject
    message.set_content(content.text)
    message.add_alternative(content.html, subtype="html")

    try:
        with smtplib.SMTP(config["host"], config["port"], timeout=config.get("timeout", 30)) as smtp:
            if config.get("use_tls"):
                smtp.starttls()
            if config.get("username"):
                smtp.login(config["username"], config.get("password") or "")
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        raise NotificationError(f"SMTP delivery to {mask_email(to_address)} failed: {e}")


def _in_cooldown(last_sent: Optional[datetime], now: datetime) -> bool:
    if last_sent is None:
        return False
    return now - last_sent < timedelta(minutes=NOTIFICATION_COOLDOWN_MINUTES)


async def send_action_digest(user_id: str, now: Optional[datetime] = None) -> bool:
    """
    Send the pending-actions digest to a user.

    Skipped when the user has no email address, opted out, was notified
    less than ``NOTIFICATION_COOLDOWN_MINUTES`` ago, or has nothing to do.
    Never raises.

    Returns:
        True when a digest was sent
    """
    now = now or datetime.now(timezone.utc)
    try:
        state = await UserRepository.get_notification_state(user_id)
        if not state or not state.get("email"):
            logger.info(f"No email address for user {user_id}, digest skipped")
            return False
        if not state.get("email_notifications"):
            logger.info(f"Notifications disabled for user {user_id}")
            return False
        if _in_cooldown(state.get("last_notification_sent"), now):
            logger.info(f"Digest for user {user_id} skipped (cooldown)")
            return False

        stats = await ActionRepository.get_digest_stats(user_id, now)
        if stats["total_todo"] == 0:
            logger.info(f"No pending action for user {user_id}, digest skipped")
            return False

        content = render_digest(state.get("name"), stats)
        await asyncio.to_thread(send_email, state["email"], content)
        await UserRepository.mark_notified(user_id, now)
        logger.info(f"Digest sent to {mask_email(state['email'])}: {content.subject}")
        return True

    except Exception as e:
        logger.error(f"Failed to send digest to user {user_id}: {str(e)}")
        return False
