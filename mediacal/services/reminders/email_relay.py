"""
SMTP email relay used by the reminder scheduler.
smtplib is blocking, so each send runs in a worker thread.
"""

import asyncio
import smtplib
import ssl
from email.message import EmailMessage

from mediacal.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SMTP_TIMEOUT = 30  # seconds


class EmailRelayError(Exception):
    """Sending through the SMTP relay failed."""


class EmailRelay:
    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        sender: str,
        secure: bool = False,
        timeout: float = SMTP_TIMEOUT,
    ):
        self.host = host
        self.port = port
        self.username = username
        self._password = password
        self.sender = sender
        self.secure = secure
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "EmailRelay | None":
        """None when the relay is not fully configured."""
        if not settings.smtp_configured():
            return None
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASS,
            sender=settings.sender_address(),
            secure=settings.SMTP_SECURE,
        )

    def build_message(self, recipient: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)
        return message

    def _send_sync(self, message: EmailMessage) -> None:
        context = ssl.create_default_context()
        if self.secure:
            with smtplib.SMTP_SSL(
                self.host, self.port, timeout=self.timeout, context=context
            ) as smtp:
                smtp.login(self.username, self._password)
                smtp.send_message(message)
            return

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.ehlo()
            if smtp.has_extn("starttls"):
                smtp.starttls(context=context)
                smtp.ehlo()
            smtp.login(self.username, self._password)
            smtp.send_message(message)

    async def send(self, recipient: str, subject: str, body: str) -> None:
        """
        Deliver one message.

        Raises:
            EmailRelayError: On any SMTP or socket failure
        """
        message = self.build_message(recipient, subject, body)
        try:
            await asyncio.to_thread(self._send_sync, message)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailRelayError(f"Failed to send email to {recipient}: {e}") from e

        logger.info("Email sent", recipient=recipient, subject=subject)
