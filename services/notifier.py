"""Outbound message delivery."""
from __future__ import annotations

import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

from flask import current_app


class NotifierError(RuntimeError):
    """Raised when a message cannot be handed to the transport."""


class Notifier(ABC):
    @abstractmethod
    def send(self, to_address: str, subject: str, body: str) -> None:
        ...


@dataclass(frozen=True)
class OutboxMessage:
    to_address: str
    subject: str
    body: str


class OutboxNotifier(Notifier):
    """Keeps messages in memory instead of delivering them."""

    def __init__(self):
        self.messages: list[OutboxMessage] = []

    def send(self, to_address: str, subject: str, body: str) -> None:
        self.messages.append(OutboxMessage(to_address=to_address, subject=subject, body=body))
        current_app.logger.info('Queued message "%s" for %s in outbox', subject, to_address)


class SmtpNotifier(Notifier):
    def __init__(
        self,
        *,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        sender: str = 'noreply@library.local',
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> 'SmtpNotifier':
        return cls(
            host=config['MAIL_SERVER'],
            port=config['MAIL_PORT'],
            username=config.get('MAIL_USERNAME'),
            password=config.get('MAIL_PASSWORD'),
            use_tls=config.get('MAIL_USE_TLS', True),
            sender=config.get('MAIL_DEFAULT_SENDER', 'noreply@library.local'),
            timeout=config.get('MAIL_TIMEOUT', 10.0),
        )

    def send(self, to_address: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message['From'] = self.sender
        message['To'] = to_address
        message['Subject'] = subject
        message.set_content(body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotifierError(f'SMTP delivery to {self.host} failed') from exc


def notifier_from_config(config) -> Notifier:
    if config.get('MAIL_SERVER'):
        return SmtpNotifier.from_config(config)
    return OutboxNotifier()
