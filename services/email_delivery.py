# services/email_delivery.py

"""
E-mail senders.

Two providers share one interface, `send(to_email, to_name, subject, html)`:
- Brevo transactional API over HTTP (requests)
- plain SMTP with STARTTLS (smtplib)

`build_email_sender(settings)` returns None when the selected provider
has no credentials, which disables e-mail without failing the app.
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Dict, Optional

import requests

from config import Settings

logger = logging.getLogger(__name__)

BREVO_URL = "https://api.brevo.com/v3/smtp/email"
REQUEST_TIMEOUT_SECONDS = 10


class EmailDeliveryError(Exception):
    pass


class BrevoEmailSender:
    provider = "brevo"

    def __init__(self, api_key: str, from_email: str, from_name: str):
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name

    def send(self, to_email: str, to_name: Optional[str], subject: str, html: str) -> Dict[str, Any]:
        body = {
            "sender": {"email": self.from_email, "name": self.from_name},
            "to": [{"email": to_email, "name": to_name or to_email}],
            "subject": subject,
            "htmlContent": html,
        }

        try:
            res = requests.post(
                BREVO_URL,
                json=body,
                headers={"api-key": self.api_key, "Content-Type": "application/json"},
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            raise EmailDeliveryError(f"Brevo request failed: {e}") from e

        try:
            data = res.json()
        except ValueError:
            data = {}

        if not res.ok:
            msg = (data or {}).get("message") or res.reason
            raise EmailDeliveryError(f"Brevo error {res.status_code}: {msg}")

        return data


class SmtpEmailSender:
    provider = "smtp"

    def __init__(self, host: str, port: int, username: str, password: str, from_email: str, from_name: str):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.from_name = from_name

    def send(self, to_email: str, to_name: Optional[str], subject: str, html: str) -> Dict[str, Any]:
        msg = EmailMessage()
        msg["From"] = f"{self.from_name} <{self.from_email}>" if self.from_name else self.from_email
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.set_content("Este e-mail requer um cliente com suporte a HTML.")
        msg.add_alternative(html or "", subtype="html")

        try:
            with smtplib.SMTP(self.host, self.port, timeout=REQUEST_TIMEOUT_SECONDS) as server:
                server.starttls()
                server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(f"SMTP delivery failed: {e}") from e

        return {"provider": self.provider}


def build_email_sender(settings: Settings):
    provider = settings.EMAIL_PROVIDER

    if provider == "brevo":
        if not settings.BREVO_API_KEY:
            logger.warning("BREVO_API_KEY is not set; e-mail notifications disabled")
            return None
        return BrevoEmailSender(settings.BREVO_API_KEY, settings.EMAIL_FROM, settings.EMAIL_SENDER_NAME)

    if provider == "smtp":
        if not settings.SMTP_HOST or not settings.SMTP_USERNAME or not settings.SMTP_PASSWORD:
            logger.warning("Missing SMTP configuration env vars; e-mail notifications disabled")
            return None
        return SmtpEmailSender(
            settings.SMTP_HOST,
            settings.SMTP_PORT,
            settings.SMTP_USERNAME,
            settings.SMTP_PASSWORD,
            settings.EMAIL_FROM or settings.SMTP_USERNAME,
            settings.EMAIL_SENDER_NAME,
        )

    logger.warning(f"Unknown EMAIL_PROVIDER '{provider}'; e-mail notifications disabled")
    return None
