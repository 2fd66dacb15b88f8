"""
Email adapter for account notifications.

The default implementation uses SMTP with credentials taken from the
application config at construction time.
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Mapping

logger = logging.getLogger(__name__)

VERIFY_SUBJECT = "Verify your email"


@dataclass
class Mailer:
    """Sends transactional email over SMTP."""

    host: str
    port: int
    user: str
    password: str
    sender: str
    public_base_url: str
    timeout: float = 10.0

    @classmethod
    def from_config(cls, config: Mapping) -> "Mailer":
        return cls(
            host=config.get("SMTP_HOST", ""),
            port=int(config.get("SMTP_PORT", 465)),
            user=config.get("SMTP_USER", ""),
            password=config.get("SMTP_PASSWORD", ""),
            sender=config.get("SMTP_FROM", "") or config.get("SMTP_USER", ""),
            public_base_url=config.get("PUBLIC_BASE_URL", "").rstrip("/"),
            timeout=float(config.get("MAIL_TIMEOUT", 10)),
        )

    @property
    def configured(self) -> bool:
        return bool(self.host and self.user and self.password and self.sender and self.port)

    def verification_link(self, token: str) -> str:
        return f"{self.public_base_url}/users/verify/{token}"

    def send(self, subject: str, to_email: str, html_body: str, text_body: str | None = None) -> bool:
        """
        Send one message. Returns False instead of raising when the transport
        is not configured or the delivery fails.
        """
        if not self.configured:
            logger.warning("SMTP is not configured; skipping mail to %s", to_email)
            return False
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to_email
        msg.attach(MIMEText(text_body or html_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        try:
            if self.port == 465:
                context = ssl.create_default_context()
                with smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=self.timeout) as server:
                    server.login(self.user, self.password)
                    server.sendmail(self.sender, [to_email], msg.as_string())
            else:
                with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                    server.ehlo()
                    server.starttls(context=ssl.create_default_context())
                    server.login(self.user, self.password)
                    server.sendmail(self.sender, [to_email], msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send mail to %s: %s", to_email, exc)
            return False
        logger.info("Sent %r to %s", subject, to_email)
        return True

    def send_verification(self, to_email: str, token: str) -> bool:
        link = self.verification_link(token)
        html = (
            "<p>Confirm your email address to activate your account.</p>"
            f'<p><a target="_blank" href="{link}">Verify email</a></p>'
        )
        return self.send(VERIFY_SUBJECT, to_email, html, f"Verify your email: {link}")
