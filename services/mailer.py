# services/mailer.py
import logging
import os
import smtplib
from email.message import EmailMessage

from services.errors import DependencyError

logger = logging.getLogger(__name__)


def send_email(to: str, subject: str, text: str) -> None:
    """
    SMTP_HOST が設定されていれば SMTP で送信、無ければログに出すだけ（開発用）
    失敗時は DependencyError
    """
    host = os.getenv("SMTP_HOST")
    if not host:
        logger.info("SMTP_HOST not set, email to %s not sent: %s", to, subject)
        return

    msg = EmailMessage()
    msg["From"] = os.getenv("EMAIL_FROM", "noreply@buddyremind.local")
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(text)

    try:
        with smtplib.SMTP(host, int(os.getenv("SMTP_PORT", "587")), timeout=10) as smtp:
            smtp.starttls()
            user = os.getenv("SMTP_USER")
            if user:
                smtp.login(user, os.getenv("SMTP_PASSWORD", ""))
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("email to %s failed: %s", to, e)
        raise DependencyError("Email could not be sent")

    logger.info("email sent to %s: %s", to, subject)
