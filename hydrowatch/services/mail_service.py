"""
Mail Service - outbound email over SMTP with STARTTLS.

With MAIL_ENABLED=false messages are logged instead of sent, which keeps
local development and tests free of network access.
"""

import logging
import smtplib
from email.mime.text import MIMEText
from typing import List, Optional

from hydrowatch.core.settings import settings

logger = logging.getLogger(__name__)


class MailService:

    def __init__(self):
        # Messages handled while MAIL_ENABLED is off, newest last
        self.outbox: List[dict] = []

    def send(self, to: str, subject: str, html: str) -> None:
        """
        Send an HTML email.

        Raises:
            smtplib.SMTPException / OSError: delivery failed
        """
        if not settings.MAIL_ENABLED:
            logger.info(f"MAIL_ENABLED=false, not sending '{subject}' to {to}")
            self.outbox.append({"to": to, "subject": subject, "html": html})
            return

        sender = settings.EMAIL_USER
        msg = MIMEText(html, "html")
        msg["Subject"] = subject
        msg["From"] = sender
        msg["To"] = to

        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
            server.starttls()
            server.login(sender, settings.EMAIL_PASSWORD)
            server.sendmail(sender, [to], msg.as_string())
        logger.info(f"Mail '{subject}' sent to {to}")

    def send_password_reset(self, to: str, reset_token: str, expires_minutes: int) -> str:
        """Mail a password reset link and return the link."""
        reset_url = f"{settings.FRONTEND_URL.rstrip('/')}/reset-password/{reset_token}"
        html = (
            "<h1>Password Reset Request</h1>"
            "<p>You requested a password reset. Click the link below to reset your password:</p>"
            f'<a href="{reset_url}">Reset Password</a>'
            f"<p>This link will expire in {expires_minutes} minutes.</p>"
        )
        self.send(to, "Password Reset Request", html)
        return reset_url

    def last_message(self) -> Optional[dict]:
        return self.outbox[-1] if self.outbox else None


_mail_service = None


def get_mail_service() -> MailService:
    global _mail_service
    if _mail_service is None:
        _mail_service = MailService()
    return _mail_service
