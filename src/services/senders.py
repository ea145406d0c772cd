"""
E-mail (SMTP) and SMS (Twilio) senders.

Both raise ``ConfigurationError`` when their credentials are missing and
``NotificationError`` when delivery fails.  Callers in the notification layer
log and swallow both.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

import httpx

from src.config import Settings, settings as app_settings
from src.domain.errors import ConfigurationError, NotificationError

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


class EmailSender:
    def __init__(self, config: Optional[Settings] = None):
        self.config = config or app_settings

    def _check_config(self) -> None:
        missing = [
            name
            for name, value in (
                ("SMTP_USER", self.config.smtp_user),
                ("SMTP_PASSWORD", self.config.smtp_password),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"E-mail is not configured: set {', '.join(missing)}")

    def build_message(
        self, to: str, subject: str, html: str, text: Optional[str] = None
    ) -> EmailMessage:
        if not to:
            raise NotificationError("Email recipient is required")
        message = EmailMessage()
        message["From"] = self.config.email_from or self.config.smtp_user
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text or subject)
        message.add_alternative(html, subtype="html")
        return message

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=30) as smtp:
            if self.config.smtp_use_tls:
                smtp.starttls()
            smtp.login(self.config.smtp_user, self.config.smtp_password)
            smtp.send_message(message)

    async def send(
        self, to: str, subject: str, html: str, text: Optional[str] = None
    ) -> None:
        if not self.config.email_enabled:
            logger.info("E-mail disabled; skipping %r to %s", subject, to)
            return
        self._check_config()
        message = self.build_message(to, subject, html, text)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"Failed to send e-mail to {to}: {exc}") from exc
        logger.info("E-mail %r sent to %s", subject, to)


class SmsSender:
    def __init__(
        self,
        config: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or app_settings
        self._client = client

    def _credentials(self) -> tuple[str, str, str]:
        values = (
            ("TWILIO_ACCOUNT_SID", self.config.twilio_account_sid),
            ("TWILIO_AUTH_TOKEN", self.config.twilio_auth_token),
            ("TWILIO_PHONE_NUMBER", self.config.twilio_phone_number),
        )
        missing = [name for name, value in values if not value]
        if missing:
            raise ConfigurationError(f"Twilio is not configured: set {', '.join(missing)}")
        return tuple(value for _, value in values)  # type: ignore[return-value]

    async def _post(self, url: str, **kwargs) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(url, **kwargs)
        async with httpx.AsyncClient(timeout=15.0) as client:
            return await client.post(url, **kwargs)

    async def send(self, to: str, message: str) -> Optional[str]:
        """Send *message* and return the Twilio message SID."""
        if not self.config.sms_enabled:
            logger.info("SMS disabled; skipping message to %s", to)
            return None
        if not to or not message:
            raise NotificationError("SMS recipient and message are required")
        account_sid, auth_token, from_number = self._credentials()

        try:
            response = await self._post(
                TWILIO_MESSAGES_URL.format(sid=account_sid),
                auth=(account_sid, auth_token),
                data={"To": to, "From": from_number, "Body": message},
            )
        except httpx.HTTPError as exc:
            raise NotificationError(f"Failed to send SMS to {to}: {exc}") from exc

        if response.status_code >= 400:
            detail = response.json().get("message", response.text) if response.content else ""
            raise NotificationError(f"Failed to send SMS to {to}: {detail}")

        sid = response.json().get("sid")
        logger.info("SMS sent to %s (sid=%s)", to, sid)
        return sid
