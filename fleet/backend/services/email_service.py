# fleet/backend/services/email_service.py

"""
email_service.py

Outgoing mail for the dashboard (welcome and password-reset messages).

  AuthService  --->  EmailSender.send_email(to, subject, html_body)  --->  SMTP

When SMTP credentials are not configured the message is written to the log
instead of being sent, so a development setup works without a mail server.
"""

from __future__ import annotations

import html
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Protocol

from fleet.backend.config import Settings

from .errors import EmailDeliveryError

logger = logging.getLogger(__name__)

PRODUCT_NAME = "Machine Control System"


class EmailSender(Protocol):
    def send_email(self, to: str, subject: str, html_body: str) -> None:
        ...


class SmtpEmailService:
    """
    EmailSender over SMTP with STARTTLS.
    Any delivery failure is logged and re-raised as EmailDeliveryError.
    """

    def __init__(self, settings: Settings, timeout: float = 30.0) -> None:
        self._settings = settings
        self._timeout = timeout

    def send_email(self, to: str, subject: str, html_body: str) -> None:
        s = self._settings

        if not s.smtp_configured:
            logger.warning("SMTP not configured. Email would be sent to %s with subject: %s", to, subject)
            logger.info("Email body: %s", html_body)
            return

        from_email = s.smtp_from_email or s.smtp_username or "noreply@rigaku.com"

        msg = EmailMessage()
        msg["From"] = formataddr((s.smtp_from_name, from_email))
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(html_body, subtype="html")

        try:
            with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=self._timeout) as client:
                client.starttls()
                client.login(s.smtp_username, s.smtp_password)
                client.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", to, e)
            raise EmailDeliveryError("Failed to send email. Please try again later.") from e

        logger.info("Email sent successfully to %s", to)


# ---------- message bodies ----------

def _layout(title: str, inner_html: str) -> str:
    return f"""
<html>
<body style='font-family: Arial, sans-serif; line-height: 1.6; color: #333;'>
  <div style='max-width: 600px; margin: 0 auto; padding: 20px;'>
    <div style='background: #2596be; padding: 30px; text-align: center; border-radius: 10px 10px 0 0;'>
      <h1 style='color: white; margin: 0;'>{PRODUCT_NAME}</h1>
    </div>
    <div style='background: #f9f9f9; padding: 30px; border-radius: 0 0 10px 10px;'>
      <h2 style='color: #2596be;'>{html.escape(title)}</h2>
      {inner_html}
      <hr style='border: none; border-top: 1px solid #ddd; margin: 30px 0;'>
      <p style='color: #666; font-size: 12px;'>This is an automated message from the {PRODUCT_NAME}. Please do not reply to this email.</p>
    </div>
  </div>
</body>
</html>"""


def render_welcome_email(username: str) -> tuple[str, str]:
    """
    Returns (subject, html_body).
    """
    body = _layout(
        "Welcome",
        f"<p>Hello {html.escape(username)},</p>"
        "<p>Your account has been created. You can now sign in to the dashboard "
        "to monitor machine status, locations and tube configuration.</p>",
    )
    return f"Welcome to the {PRODUCT_NAME}", body


def render_password_reset_email(username: str, temporary_password: str) -> tuple[str, str]:
    """
    Returns (subject, html_body) carrying the temporary password.
    """
    body = _layout(
        "Password Reset",
        f"<p>Hello {html.escape(username)},</p>"
        "<p>You have requested to reset your password. Your temporary password is:</p>"
        "<div style='background: white; padding: 15px; border-left: 4px solid #2596be; margin: 20px 0; "
        "font-family: monospace; font-size: 18px; font-weight: bold;'>"
        f"{html.escape(temporary_password)}</div>"
        "<p><strong>Important:</strong> Log in with this temporary password. "
        "You will be asked to choose a new password right away.</p>"
        "<p>If you didn't request this password reset, please contact your system administrator immediately.</p>",
    )
    return f"Password Reset - {PRODUCT_NAME}", body
