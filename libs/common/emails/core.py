"""
Core email sending over SMTP.
"""

import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


def _deliver(sender: str, to_email: str, message: str) -> None:
    settings = get_settings()
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
        server.starttls()
        server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.sendmail(sender, to_email, message)


async def send_email(
    to_email: str,
    subject: str,
    body: str,
    html_body: Optional[str] = None,
    from_email: Optional[str] = None,
    from_name: Optional[str] = None,
) -> bool:
    """
    Send an email, returning True when the SMTP server accepted it.

    Without SMTP credentials the message is logged and skipped. Delivery
    failures are logged and reported as False; callers never see exceptions.
    """
    settings = get_settings()

    if not settings.SMTP_USERNAME or not settings.SMTP_PASSWORD:
        logger.info(
            "SMTP not configured; skipping email",
            extra={"extra_fields": {"to": to_email, "subject": subject}},
        )
        return False

    sender_email = from_email or settings.DEFAULT_FROM_EMAIL
    sender_name = from_name or settings.DEFAULT_FROM_NAME

    if html_body:
        msg = MIMEMultipart("alternative")
        msg.attach(MIMEText(body, "plain"))
        msg.attach(MIMEText(html_body, "html"))
    else:
        msg = MIMEText(body, "plain")

    msg["Subject"] = subject
    msg["From"] = f"{sender_name} <{sender_email}>"
    msg["To"] = to_email

    try:
        await asyncio.to_thread(_deliver, sender_email, to_email, msg.as_string())
    except smtplib.SMTPAuthenticationError as e:
        logger.error(f"SMTP authentication failed: {e}")
        return False
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email to {to_email}: {type(e).__name__}: {e}")
        return False

    logger.info(f"Email sent to {to_email}: {subject}")
    return True
