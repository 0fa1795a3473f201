"""Digest delivery with a single bounded retry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from ..core.models import RenderedDigest
from ..utils.logging import get_logger
from .transport import MailTransport

logger = get_logger(__name__)


class AttemptOutcome(Enum):
    SENT = "sent"
    FAILED = "failed"


@dataclass(frozen=True)
class DeliveryAttempt:
    """One try at handing a digest to the transport (not persisted)."""

    ordinal: int
    recipient: str
    outcome: AttemptOutcome
    error: Optional[str] = None


@dataclass(frozen=True)
class Sent:
    recipient: str
    attempts: Tuple[DeliveryAttempt, ...]


@dataclass(frozen=True)
class Failed:
    recipient: str
    cause: BaseException
    attempts: Tuple[DeliveryAttempt, ...]

    @property
    def message(self) -> str:
        return f"Failed to send message to {self.recipient}: {self.cause}"


DeliveryResult = Union[Sent, Failed]


class DeliveryPolicy(ABC):
    """Strategy for delivering one rendered digest."""

    @abstractmethod
    def deliver(
        self,
        transport: MailTransport,
        message: RenderedDigest,
        to: str,
        sender: str,
    ) -> DeliveryResult:
        raise NotImplementedError

    @staticmethod
    def _attempt(
        transport: MailTransport,
        message: RenderedDigest,
        to: str,
        sender: str,
        ordinal: int,
    ) -> Tuple[DeliveryAttempt, Optional[Exception]]:
        try:
            transport.send(to, sender, message.subject, message.body)
        except Exception as e:
            return DeliveryAttempt(ordinal, to, AttemptOutcome.FAILED, str(e)), e
        return DeliveryAttempt(ordinal, to, AttemptOutcome.SENT), None


class SingleAttemptDelivery(DeliveryPolicy):
    """Send once; report the failure without retrying."""

    def deliver(self, transport, message, to, sender) -> DeliveryResult:
        attempt, error = self._attempt(transport, message, to, sender, 1)
        if error is not None:
            logger.error(f"Failed to send message to {to}: {error}")
            return Failed(recipient=to, cause=error, attempts=(attempt,))
        return Sent(recipient=to, attempts=(attempt,))


class BoundedRetryDelivery(DeliveryPolicy):
    """Send, and on failure reset the connection and try exactly once more.

    There is no backoff and no queuing: a message either goes out within
    these two attempts or the caller gets a ``Failed`` carrying the cause of
    the second attempt.
    """

    def deliver(
        self,
        transport: MailTransport,
        message: RenderedDigest,
        to: str,
        sender: str,
    ) -> DeliveryResult:
        first, error = self._attempt(transport, message, to, sender, 1)
        if error is None:
            return Sent(recipient=to, attempts=(first,))

        logger.warning(
            "Initial email send failed; resetting connection and retrying...",
            extra={"error": str(error)},
        )
        transport.reset_connection()

        second, error = self._attempt(transport, message, to, sender, 2)
        if error is not None:
            logger.error(f"Failed to send message to {to}: {error}")
            return Failed(recipient=to, cause=error, attempts=(first, second))
        return Sent(recipient=to, attempts=(first, second))
