"""
Appointment notifications.

The appointment service never talks to the mail server. It emits
``NotificationIntent`` records into a per-request ``NotificationOutbox``;
once the response has been sent, ``deliver_notifications`` hands each intent
to a notifier. Delivery failures are logged and never reach the client.
"""
from dataclasses import dataclass
from datetime import datetime
from email.message import EmailMessage
from enum import Enum
from typing import List, Optional, Protocol
import asyncio
import logging
import smtplib

from ..core.config import Settings, settings as app_settings

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class Contact:
    email: str
    name: str

class NotificationKind(str, Enum):
    CONFIRMATION = "confirmation"
    CANCELLATION = "cancellation"

@dataclass(frozen=True)
class NotificationIntent:
    kind: NotificationKind
    contact: Contact
    scheduled_at: datetime
    treatment_type: Optional[str] = None

class Notifier(Protocol):
    async def notify_confirmation(self, contact: Contact, scheduled_at: datetime, treatment_type: str) -> None:
        ...

    async def notify_cancellation(self, contact: Contact, scheduled_at: datetime) -> None:
        ...

class NotificationOutbox:
    """Collects intents emitted while a request is being handled."""

    def __init__(self):
        self._intents: List[NotificationIntent] = []

    def emit(self, intent: NotificationIntent) -> None:
        self._intents.append(intent)

    def drain(self) -> List[NotificationIntent]:
        intents, self._intents = self._intents, []
        return intents

    def __len__(self):
        return len(self._intents)

async def deliver_notifications(outbox: NotificationOutbox, notifier: Notifier) -> None:
    """Send every pending intent, logging failures one by one."""
    for intent in outbox.drain():
        try:
            if intent.kind == NotificationKind.CONFIRMATION:
                await notifier.notify_confirmation(
                    intent.contact, intent.scheduled_at, intent.treatment_type
                )
            else:
                await notifier.notify_cancellation(intent.contact, intent.scheduled_at)
        except Exception:
            logger.exception(
                f"Failed to send {intent.kind.value} notification to {intent.contact.email}"
            )

class EmailNotifier:
    """Plain-text appointment emails over SMTP."""

    def __init__(self, settings: Settings = app_settings):
        self.settings = settings

    async def notify_confirmation(self, contact: Contact, scheduled_at: datetime, treatment_type: str) -> None:
        body = (
            f"Hola {contact.name},\n\n"
            f"Tu cita ha sido confirmada para el {scheduled_at:%d/%m/%Y} a las {scheduled_at:%H:%M}.\n"
            f"Tipo de tratamiento: {treatment_type}\n\n"
            "Por favor, llega 10 minutos antes de tu cita.\n"
            "Si necesitas cancelar o reprogramar, hazlo con al menos 24 horas de anticipación."
        )
        await self.send(contact.email, "Confirmación de Cita Dental", body)

    async def notify_cancellation(self, contact: Contact, scheduled_at: datetime) -> None:
        body = (
            f"Hola {contact.name},\n\n"
            f"Tu cita programada para el {scheduled_at:%d/%m/%Y} a las {scheduled_at:%H:%M} "
            "ha sido cancelada exitosamente.\n\n"
            "Si deseas programar una nueva cita, puedes hacerlo a través de nuestra plataforma."
        )
        await self.send(contact.email, "Cancelación de Cita Dental", body)

    async def send(self, to: str, subject: str, body: str) -> None:
        if not self.settings.SMTP_HOST:
            logger.info(f"SMTP not configured, skipping email to {to}: {subject}")
            return

        message = EmailMessage()
        message["From"] = f"{self.settings.SENDER_NAME} <{self.settings.SENDER_EMAIL}>"
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        await asyncio.to_thread(self._send_message, message)
        logger.info(f"Sent '{subject}' to {to}")

    def _send_message(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.settings.SMTP_HOST, self.settings.SMTP_PORT, timeout=30) as server:
            if self.settings.SMTP_USE_TLS:
                server.starttls()
            if self.settings.SMTP_USER and self.settings.SMTP_PASSWORD:
                server.login(self.settings.SMTP_USER, self.settings.SMTP_PASSWORD)
            server.send_message(message)
