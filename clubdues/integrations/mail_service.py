import logging
import smtplib
from email.message import EmailMessage

from clubdues.config import Settings

logger = logging.getLogger(__name__)


def send_email(settings: Settings, to: str, subject: str, body: str) -> bool:
    """
    Send a plain-text email through the configured SMTP server.
    Returns False without sending when SMTP is not configured.
    """
    if not settings.smtp_configured:
        return False

    msg = EmailMessage()
    msg["From"] = settings.smtp_from or settings.smtp_user
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(body)

    if settings.smtp_port == 465:
        server = smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, timeout=10)
    else:
        server = smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10)
    with server:
        if settings.smtp_port != 465:
            server.starttls()
        server.login(settings.smtp_user, settings.smtp_pass)
        server.send_message(msg)
    logger.info("Sent '%s' email to %s", subject, to)
    return True
