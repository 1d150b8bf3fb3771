import logging
import smtplib
from email.message import EmailMessage
from typing import Iterable

from config import Settings

logger = logging.getLogger(__name__)


def send_email(
    settings: Settings,
    to_email: str,
    subject: str,
    body: str,
    cc_emails: Iterable[str] = (),
    reply_to: str = "",
) -> None:
    """
    Send a plain-text email through the configured SMTP server.
    Raises RuntimeError when SMTP settings are incomplete; smtplib errors propagate.
    """
    host = settings.smtp_host
    sender = settings.smtp_sender
    if not host or not sender:
        raise RuntimeError("SMTP settings are incomplete (SMTP_HOST / SMTP_SENDER)")
    if not to_email:
        raise RuntimeError("No recipient email address")

    cc = [c for c in cc_emails if c and c != to_email]

    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = to_email
    if cc:
        msg["Cc"] = ", ".join(cc)
    if reply_to:
        msg["Reply-To"] = reply_to
    msg["Subject"] = subject
    msg.set_content(body)

    with smtplib.SMTP(host, settings.smtp_port, timeout=30) as server:
        if settings.smtp_use_tls:
            server.starttls()
        if settings.smtp_username and settings.smtp_password:
            server.login(settings.smtp_username, settings.smtp_password)
        server.send_message(msg)

    logger.info("Email sent to=%s cc=%s subject=%r", to_email, cc, subject)
