"""
EventHub Backend — Notification Channel
=========================================

What:  Abstract contract for outbound user notifications plus the two
       concrete channels: SMTP email and a log-only fallback.
Why:   The booking and registration workflows need to tell users things
       (booking confirmed, please confirm your email) without depending on
       how the message travels. Tests swap in a recording notifier.
How:   Workflows call the async methods below and treat any exception as
       non-fatal: they log it and carry on. Notifiers raise
       NotificationError on delivery failure; they never retry.
Who:   Built once by eventhub.dependencies.get_notifier and injected into
       CredentialService and BookingService.

Channel selection:
    SMTP_HOST set   → SmtpNotifier (stdlib smtplib, run in a worker thread so
                      the event loop never blocks on the SMTP conversation)
    SMTP_HOST empty → LogNotifier (development: the message lands in the log,
                      including the confirmation link)
"""

import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Optional

from eventhub.config import Settings, settings as default_settings
from eventhub.exceptions import NotificationError

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """
    Contract for user-facing notifications.

    Both methods are awaited by the caller; a failure is reported by raising
    (preferably NotificationError). Callers decide whether a failure matters.
    """

    @abstractmethod
    async def send_email_confirmation(self, *, email: str, name: str, confirm_url: str) -> None:
        """Send the link a newly registered user must open to activate the account."""
        ...

    @abstractmethod
    async def send_booking_confirmation(
        self,
        *,
        email: str,
        name: str,
        service_name: str,
        booking_id: int,
        date_label: str,
        price: int,
    ) -> None:
        """Tell a user their booking is confirmed."""
        ...


def _booking_confirmation_body(name: str, service_name: str, booking_id: int, date_label: str, price: int) -> str:
    return (
        f"Hi {name},\n\n"
        f"Your booking #{booking_id} for {service_name} on {date_label} is confirmed.\n"
        f"Price: {price}\n\n"
        "Thank you for booking with EventHub."
    )


def _email_confirmation_body(name: str, confirm_url: str) -> str:
    return (
        f"Hi {name},\n\n"
        "Thanks for signing up. Please confirm your email address by opening the link below:\n\n"
        f"{confirm_url}\n\n"
        "You will be able to log in once your address is confirmed."
    )


class LogNotifier(Notifier):
    """Writes notifications to the application log instead of sending them."""

    async def send_email_confirmation(self, *, email: str, name: str, confirm_url: str) -> None:
        logger.info("Email confirmation for %s: %s", email, confirm_url)

    async def send_booking_confirmation(
        self,
        *,
        email: str,
        name: str,
        service_name: str,
        booking_id: int,
        date_label: str,
        price: int,
    ) -> None:
        logger.info(
            "Booking confirmation for %s: booking %d (%s on %s, price %d)",
            email,
            booking_id,
            service_name,
            date_label,
            price,
        )


class SmtpNotifier(Notifier):
    """
    Sends plain-text email through an SMTP relay.

    The connection is opened per message (no shared socket), so the
    notifier itself holds no mutable state between sends.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    def _build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.config.mail_from
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        return message

    def _deliver(self, message: EmailMessage) -> None:
        cfg = self.config
        with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=cfg.smtp_timeout) as client:
            if cfg.smtp_use_tls:
                client.starttls()
            if cfg.smtp_username:
                client.login(cfg.smtp_username, cfg.smtp_password)
            client.send_message(message)

    async def _send(self, to: str, subject: str, body: str) -> None:
        message = self._build_message(to, subject, body)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(
                message="Email delivery failed",
                context={"to": to, "subject": subject, "error": str(e)},
            ) from e
        logger.info("Email sent to %s: %s", to, subject)

    async def send_email_confirmation(self, *, email: str, name: str, confirm_url: str) -> None:
        await self._send(email, "Confirm your EventHub account", _email_confirmation_body(name, confirm_url))

    async def send_booking_confirmation(
        self,
        *,
        email: str,
        name: str,
        service_name: str,
        booking_id: int,
        date_label: str,
        price: int,
    ) -> None:
        await self._send(
            email,
            f"Booking confirmed: {service_name} on {date_label}",
            _booking_confirmation_body(name, service_name, booking_id, date_label, price),
        )


def build_notifier(config: Optional[Settings] = None) -> Notifier:
    """Pick the notification channel from configuration."""
    cfg = config or default_settings
    if cfg.smtp_host:
        logger.info("Notifications via SMTP relay %s:%d", cfg.smtp_host, cfg.smtp_port)
        return SmtpNotifier(cfg)
    logger.info("SMTP_HOST not set: notifications will be written to the log")
    return LogNotifier()
