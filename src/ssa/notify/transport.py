"""Mail transports.

A transport owns at most one live connection. ``reset_connection`` drops
it so the next ``send`` starts from a fresh socket.
"""

from __future__ import annotations

import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Optional

from ..config.settings import settings
from ..core.exceptions import TransportError
from ..utils.logging import get_logger

logger = get_logger(__name__)


class MailTransport(ABC):
    """Interface for sending plain-text mail."""

    @abstractmethod
    def send(self, to: str, sender: str, subject: str, body: str) -> None:
        """Send one message.

        Raises:
            TransportError: if the message could not be handed to the relay.
        """
        raise NotImplementedError

    @abstractmethod
    def reset_connection(self) -> None:
        raise NotImplementedError

    def close(self) -> None:
        self.reset_connection()

    def __enter__(self) -> "MailTransport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class SmtpTransport(MailTransport):
    """Send mail through an SMTP relay with a lazily opened connection."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        starttls: Optional[bool] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.host = host or settings.smtp_host
        self.port = port or settings.smtp_port
        self.username = username if username is not None else settings.smtp_username
        self.password = password if password is not None else settings.smtp_password
        self.starttls = settings.smtp_starttls if starttls is None else starttls
        self.timeout = timeout or settings.smtp_timeout
        self._server: Optional[smtplib.SMTP] = None

    def _connect(self) -> smtplib.SMTP:
        if self._server is None:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            if self.starttls:
                server.starttls()
            if self.username:
                server.login(self.username, self.password or "")
            self._server = server
        return self._server

    @staticmethod
    def build_message(to: str, sender: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = sender
        msg["To"] = to
        msg.set_content(body)
        return msg

    def send(self, to: str, sender: str, subject: str, body: str) -> None:
        msg = self.build_message(to, sender, subject, body)
        try:
            self._connect().send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise TransportError(f"SMTP delivery to {self.host}:{self.port} failed: {e}") from e

    def reset_connection(self) -> None:
        server, self._server = self._server, None
        if server is None:
            return
        try:
            server.quit()
        except (smtplib.SMTPException, OSError) as e:
            logger.debug(f"Ignoring error while closing SMTP connection: {e}")
            server.close()
