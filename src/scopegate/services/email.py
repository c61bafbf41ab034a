"""Email delivery for admin passcodes."""

import logging
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib
import httpx

from scopegate.config import settings
from scopegate.services.errors import ConfigurationError

logger = logging.getLogger(__name__)

SEND_TIMEOUT_SECONDS = 15.0


class EmailBackend(ABC):
    """Delivers one message; returns False rather than raising on delivery failure."""

    @abstractmethod
    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool: ...


class ConsoleEmailBackend(EmailBackend):
    """Writes messages to the log. Refused in production."""

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        logger.info(f"Console email to {to} ({subject!r}, not sent):\n{text or html}")
        return True


class SMTPEmailBackend(EmailBackend):
    """Delivers over SMTP with STARTTLS."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        use_tls: bool = True,
        from_address: str = "",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        message = MIMEMultipart("alternative")
        message["From"] = self.from_address
        message["To"] = to
        message["Subject"] = subject
        if text:
            message.attach(MIMEText(text, "plain"))
        message.attach(MIMEText(html, "html"))

        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.use_tls,
                timeout=SEND_TIMEOUT_SECONDS,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email via SMTP to {to}: {e!r}")
            return False

        logger.info(f"Email sent via SMTP to {to}")
        return True


class ResendEmailBackend(EmailBackend):
    """Delivers through the Resend HTTP API."""

    def __init__(self, api_key: str, from_address: str):
        self.api_key = api_key
        self.from_address = from_address

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        async with httpx.AsyncClient(timeout=SEND_TIMEOUT_SECONDS) as client:
            try:
                response = await client.post(
                    "https://api.resend.com/emails",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "from": self.from_address,
                        "to": [to],
                        "subject": subject,
                        "html": html,
                        "text": text,
                    },
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(f"Resend API error: {e.response.status_code} - {e.response.text}")
                return False
            except httpx.HTTPError as e:
                logger.error(f"Failed to send email via Resend to {to}: {e!r}")
                return False

        logger.info(f"Email sent via Resend to {to}")
        return True


def get_email_backend() -> EmailBackend:
    """Get the configured email backend.

    Raises:
        ConfigurationError: production is still on the console backend, which
            would only write passcodes to the log
    """
    if settings.email_backend == "console":
        if settings.is_production:
            raise ConfigurationError("Email provider not configured.")
        return ConsoleEmailBackend()
    elif settings.email_backend == "smtp":
        return SMTPEmailBackend(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            from_address=settings.email_from,
        )
    elif settings.email_backend == "resend":
        return ResendEmailBackend(
            api_key=settings.resend_api_key,
            from_address=settings.email_from,
        )
    else:
        raise ValueError(f"Unknown email backend: {settings.email_backend}")


class EmailService:
    """Sends admin sign-in emails."""

    def __init__(self, backend: EmailBackend | None = None):
        self._backend = backend

    @property
    def backend(self) -> EmailBackend:
        if self._backend is None:
            self._backend = get_email_backend()
        return self._backend

    async def send_admin_passcode(
        self,
        to: str,
        code: str,
        expires_minutes: int,
        scope_label: str,
    ) -> bool:
        """Send a one-time admin passcode.

        Returns:
            True if the backend accepted the message
        """
        subject = f"Your {scope_label} sign-in passcode"

        html = f"""
<div style="font-family: system-ui, -apple-system, 'Segoe UI', Roboto, Arial, sans-serif; font-size: 14px; color: #111; line-height: 1.5;">
    <p style="margin: 0 0 12px;"><strong>{scope_label.capitalize()} sign-in</strong></p>
    <p style="margin: 0 0 12px;">Use this passcode to finish signing in:</p>
    <p style="margin: 0 0 12px; font-size: 20px; letter-spacing: 0.2em;"><strong>{code}</strong></p>
    <p style="margin: 0 0 12px;">This code expires in {expires_minutes} minutes and can be used once.</p>
    <p style="margin: 0; color: #666; font-size: 12px;">If you did not request this code, you can ignore this email.</p>
</div>
"""

        text = "\n".join(
            [
                "Use this passcode to finish signing in:",
                code,
                "",
                f"This code expires in {expires_minutes} minutes and can be used once.",
                "If you did not request this code, you can ignore this email.",
            ]
        )

        return await self.backend.send(to=to, subject=subject, html=html, text=text)


email_service = EmailService()
