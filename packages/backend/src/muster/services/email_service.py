"""Outbound account email.

EmailDispatcher composes the four account messages (welcome + verify link,
forgot-password link, password-reset confirmation, password-changed
notice) and hands them to a mail transport:

- ConsoleMailer: logs the message through structlog (development)
- HttpMailer: POSTs JSON to a transactional-mail HTTP API with httpx

Sending is best effort. A transport failure is logged and swallowed so it
can never turn a successful account operation into an error.
"""

from dataclasses import dataclass
from typing import Protocol

import httpx
import structlog

from muster.config import Settings

logger = structlog.get_logger()


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    text: str
    to_name: str = ""


class Mailer(Protocol):
    async def deliver(self, message: EmailMessage) -> None:
        ...


class ConsoleMailer:
    """Logs emails instead of sending them."""

    async def deliver(self, message: EmailMessage) -> None:
        logger.info(
            "email.console",
            to=message.to,
            subject=message.subject,
            text=message.text,
        )


class HttpMailer:
    """Delivers through a JSON mail API (Bearer-authenticated POST)."""

    def __init__(self, url: str, api_key: str, sender: str, timeout: float = 10.0):
        self.url = url
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout

    async def deliver(self, message: EmailMessage) -> None:
        payload = {
            "from": self.sender,
            "to": [{"email": message.to, "name": message.to_name}],
            "subject": message.subject,
            "text": message.text,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(self.url, json=payload, headers=headers)
            response.raise_for_status()


def build_mailer(settings: Settings) -> Mailer:
    if settings.mail_backend == "http":
        return HttpMailer(settings.mail_api_url, settings.mail_api_key, settings.mail_sender)
    return ConsoleMailer()


class EmailDispatcher:
    """Account notifications. Every send_* is fire-and-forget."""

    def __init__(self, mailer: Mailer, app_url: str):
        self.mailer = mailer
        self.app_url = app_url.rstrip("/")

    async def send_welcome(self, name: str, email: str, verify_id: str) -> None:
        link = f"{self.app_url}/verify-account/{verify_id}"
        await self._send(
            EmailMessage(
                to=email,
                to_name=name,
                subject="Welcome! Please verify your account",
                text=(
                    f"Hi {name},\n\n"
                    "Thanks for enlisting. Confirm your email address by "
                    f"visiting:\n\n{link}\n"
                ),
            ),
            kind="welcome",
        )

    async def send_forgot_password(self, name: str, email: str, reset_id: str) -> None:
        link = f"{self.app_url}/reset-password/{reset_id}"
        await self._send(
            EmailMessage(
                to=email,
                to_name=name,
                subject="Reset your password",
                text=(
                    f"Hi {name},\n\n"
                    "Someone asked to reset the password for this account. "
                    f"If that was you, follow this link:\n\n{link}\n\n"
                    "If not, you can ignore this email.\n"
                ),
            ),
            kind="forgot_password",
        )

    async def send_password_reset(self, name: str, email: str) -> None:
        await self._send(
            EmailMessage(
                to=email,
                to_name=name,
                subject="Your password was reset",
                text=f"Hi {name},\n\nYour password has been reset.\n",
            ),
            kind="password_reset",
        )

    async def send_password_update(self, name: str, email: str) -> None:
        await self._send(
            EmailMessage(
                to=email,
                to_name=name,
                subject="Your password was changed",
                text=f"Hi {name},\n\nYour password was just changed.\n",
            ),
            kind="password_update",
        )

    async def _send(self, message: EmailMessage, kind: str) -> None:
        try:
            await self.mailer.deliver(message)
        except Exception:
            logger.exception("email.send_failed", kind=kind, to=message.to)
        else:
            logger.info("email.sent", kind=kind, to=message.to)
