"""Queue transport port — the broker operations the notification pipeline relies on.

A transport delivers each message at least once. A received message is
locked for a visibility timeout and must be settled with exactly one of
``complete``, ``abandon`` or ``dead_letter``; an unsettled message becomes
receivable again when its lock expires. ``delivery_count`` is 1 on the
first receive and grows by one on every redelivery.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime


class TransportError(Exception):
    """The broker rejected or failed an operation."""


class MessageTooLargeError(TransportError):
    def __init__(self, message_id: str, size: int, limit: int):
        self.message_id = message_id
        self.size = size
        self.limit = limit
        super().__init__(f"Message {message_id} is {size} bytes, larger than the {limit} byte limit")


class MessageLockLostError(TransportError):
    """Settlement was attempted after the message lock expired or was already settled."""


@dataclass(frozen=True)
class OutboundMessage:
    body: bytes
    message_id: str
    correlation_id: str | None = None
    partition_key: str | None = None
    subject: str | None = None
    content_type: str = "application/json"
    application_properties: dict = field(default_factory=dict)

    @property
    def size(self) -> int:
        """Body plus header bytes, which is what broker size limits apply to."""
        headers = [self.message_id, self.correlation_id, self.partition_key, self.subject, self.content_type]
        header_bytes = sum(len(h.encode("utf-8")) for h in headers if h)
        property_bytes = sum(
            len(str(key).encode("utf-8")) + len(str(value).encode("utf-8"))
            for key, value in self.application_properties.items()
        )
        return len(self.body) + header_bytes + property_bytes


@dataclass(frozen=True)
class ReceivedMessage:
    body: bytes
    message_id: str
    delivery_count: int
    lock_token: str
    sequence_number: int
    enqueued_at: datetime
    locked_until: datetime
    correlation_id: str | None = None
    partition_key: str | None = None
    subject: str | None = None
    content_type: str = "application/json"
    application_properties: dict = field(default_factory=dict)


@dataclass(frozen=True)
class DeadLetteredMessage:
    message_id: str
    body: bytes
    reason: str
    description: str
    delivery_count: int
    dead_lettered_at: datetime
    application_properties: dict = field(default_factory=dict)


class QueueTransport(ABC):
    max_message_bytes: int
    max_batch_bytes: int
    max_batch_messages: int

    @abstractmethod
    def send(self, messages: list[OutboundMessage]) -> list[int]:
        """Enqueue one batch atomically. Returns the assigned sequence numbers."""

    @abstractmethod
    def schedule(self, message: OutboundMessage, deliver_at: datetime) -> int:
        """Enqueue a message that becomes receivable no earlier than ``deliver_at``."""

    @abstractmethod
    def receive(self, max_messages: int = 1, visibility_timeout: float | None = None) -> list[ReceivedMessage]:
        """Lock and return up to ``max_messages`` receivable messages. Never blocks."""

    @abstractmethod
    def complete(self, message: ReceivedMessage) -> None:
        """Remove a delivered message."""

    @abstractmethod
    def abandon(self, message: ReceivedMessage) -> None:
        """Release the lock so the message is redelivered after the transport's retry delay."""

    @abstractmethod
    def dead_letter(self, message: ReceivedMessage, reason: str, description: str) -> None:
        """Move the message to the dead-letter sink."""
