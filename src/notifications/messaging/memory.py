"""In-memory queue transport — the reference broker for tests and single-process runs.

Messages sharing a partition key are handed out one at a time in enqueue
order: a partition's next message is not receivable while its head is
locked or waiting out a retry delay.

Settled messages are kept for inspection in ``completed`` and
``dead_letters``. Both are capped at ``history_limit`` entries, oldest
dropped first; ``completed_count`` and ``dead_lettered_count`` keep the totals.
"""

import itertools
import threading
from collections import deque
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import structlog
from notifications.messaging.transport import (
    DeadLetteredMessage,
    MessageLockLostError,
    MessageTooLargeError,
    OutboundMessage,
    QueueTransport,
    ReceivedMessage,
    TransportError,
)

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class _Entry:
    message: OutboundMessage
    sequence_number: int
    enqueued_at: datetime
    visible_after: datetime
    delivery_count: int = 0
    lock_token: str | None = None
    locked_until: datetime | None = None

    @property
    def partition(self) -> str:
        return self.message.partition_key or f"__message__{self.message.message_id}"


class InMemoryQueueTransport(QueueTransport):
    def __init__(
        self,
        max_message_bytes: int = 256 * 1024,
        max_batch_bytes: int = 256 * 1024,
        max_batch_messages: int = 100,
        visibility_timeout: float = 30.0,
        retry_delay: float = 10.0,
        history_limit: int = 1000,
        clock=_utcnow,
    ):
        self.max_message_bytes = max_message_bytes
        self.max_batch_bytes = max_batch_bytes
        self.max_batch_messages = max_batch_messages
        self.visibility_timeout = visibility_timeout
        self.retry_delay = retry_delay
        self.clock = clock

        self._lock = threading.Lock()
        self._sequence = itertools.count(1)
        self._partitions: dict[str, deque[_Entry]] = {}
        self._scheduled: list[_Entry] = []
        self._in_flight: dict[str, _Entry] = {}

        self.dead_letters: deque[DeadLetteredMessage] = deque(maxlen=history_limit)
        self.completed: deque[str] = deque(maxlen=history_limit)
        self.completed_count = 0
        self.dead_lettered_count = 0

        self.should_succeed = True
        self.failure_reason = "Queue unavailable"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Queue unavailable"):
        """Simulate a broker outage for sends."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    # -------------------------------------------------------------------
    # Producer side
    # -------------------------------------------------------------------
    def _check_batch(self, messages: list[OutboundMessage]) -> None:
        if not self.should_succeed:
            raise TransportError(self.failure_reason)
        if len(messages) > self.max_batch_messages:
            raise TransportError(f"Batch of {len(messages)} messages exceeds the limit of {self.max_batch_messages}")

        total = 0
        for message in messages:
            if message.size > self.max_message_bytes:
                raise MessageTooLargeError(message.message_id, message.size, self.max_message_bytes)
            total += message.size
        if total > self.max_batch_bytes:
            raise TransportError(f"Batch of {total} bytes exceeds the limit of {self.max_batch_bytes}")

    def send(self, messages: list[OutboundMessage]) -> list[int]:
        self._check_batch(messages)

        with self._lock:
            now = self.clock()
            sequence_numbers = []
            for message in messages:
                entry = _Entry(
                    message=message,
                    sequence_number=next(self._sequence),
                    enqueued_at=now,
                    visible_after=now,
                )
                self._partitions.setdefault(entry.partition, deque()).append(entry)
                sequence_numbers.append(entry.sequence_number)
        return sequence_numbers

    def schedule(self, message: OutboundMessage, deliver_at: datetime) -> int:
        self._check_batch([message])

        with self._lock:
            entry = _Entry(
                message=message,
                sequence_number=next(self._sequence),
                enqueued_at=self.clock(),
                visible_after=deliver_at,
            )
            self._scheduled.append(entry)
        return entry.sequence_number

    # -------------------------------------------------------------------
    # Consumer side
    # -------------------------------------------------------------------
    def _promote_scheduled(self, now: datetime) -> None:
        due = [entry for entry in self._scheduled if entry.visible_after <= now]
        if not due:
            return
        self._scheduled = [entry for entry in self._scheduled if entry.visible_after > now]
        for entry in sorted(due, key=lambda e: (e.visible_after, e.sequence_number)):
            self._partitions.setdefault(entry.partition, deque()).append(entry)

    def _expire_locks(self, now: datetime) -> None:
        for token, entry in list(self._in_flight.items()):
            if entry.locked_until <= now:
                logger.debug(
                    "Message lock expired",
                    message_id=entry.message.message_id,
                    delivery_count=entry.delivery_count,
                )
                del self._in_flight[token]
                entry.lock_token = None
                entry.locked_until = None

    def receive(self, max_messages: int = 1, visibility_timeout: float | None = None) -> list[ReceivedMessage]:
        timeout = timedelta(seconds=self.visibility_timeout if visibility_timeout is None else visibility_timeout)

        with self._lock:
            now = self.clock()
            self._promote_scheduled(now)
            self._expire_locks(now)

            heads = sorted(
                (queue[0] for queue in self._partitions.values() if queue),
                key=lambda e: e.sequence_number,
            )

            received = []
            for entry in heads:
                if len(received) >= max_messages:
                    break
                if entry.lock_token is not None or entry.visible_after > now:
                    continue

                entry.delivery_count += 1
                entry.lock_token = uuid4().hex
                entry.locked_until = now + timeout
                self._in_flight[entry.lock_token] = entry

                message = entry.message
                received.append(
                    ReceivedMessage(
                        body=message.body,
                        message_id=message.message_id,
                        delivery_count=entry.delivery_count,
                        lock_token=entry.lock_token,
                        sequence_number=entry.sequence_number,
                        enqueued_at=entry.enqueued_at,
                        locked_until=entry.locked_until,
                        correlation_id=message.correlation_id,
                        partition_key=message.partition_key,
                        subject=message.subject,
                        content_type=message.content_type,
                        application_properties=dict(message.application_properties),
                    )
                )
            return received

    def _take_locked(self, received: ReceivedMessage) -> _Entry:
        entry = self._in_flight.get(received.lock_token)
        if entry is None or entry.locked_until <= self.clock():
            raise MessageLockLostError(f"Lock lost for message {received.message_id}")
        del self._in_flight[received.lock_token]
        entry.lock_token = None
        entry.locked_until = None
        return entry

    def _remove(self, entry: _Entry) -> None:
        queue = self._partitions[entry.partition]
        queue.remove(entry)
        if not queue:
            del self._partitions[entry.partition]

    def complete(self, message: ReceivedMessage) -> None:
        with self._lock:
            entry = self._take_locked(message)
            self._remove(entry)
            self.completed.append(message.message_id)
            self.completed_count += 1

    def abandon(self, message: ReceivedMessage) -> None:
        with self._lock:
            entry = self._take_locked(message)
            entry.visible_after = self.clock() + timedelta(seconds=self.retry_delay)

    def dead_letter(self, message: ReceivedMessage, reason: str, description: str) -> None:
        with self._lock:
            entry = self._take_locked(message)
            self._remove(entry)
            self.dead_letters.append(
                DeadLetteredMessage(
                    message_id=message.message_id,
                    body=message.body,
                    reason=reason,
                    description=description,
                    delivery_count=entry.delivery_count,
                    dead_lettered_at=self.clock(),
                    application_properties=dict(entry.message.application_properties),
                )
            )
            self.dead_lettered_count += 1

    # -------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------
    def pending(self) -> list[OutboundMessage]:
        """Active (not scheduled) messages in enqueue order, locked ones included."""
        with self._lock:
            entries = [entry for queue in self._partitions.values() for entry in queue]
        return [entry.message for entry in sorted(entries, key=lambda e: e.sequence_number)]

    def scheduled(self) -> list[OutboundMessage]:
        with self._lock:
            return [entry.message for entry in sorted(self._scheduled, key=lambda e: e.sequence_number)]

    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def reset(self):
        with self._lock:
            self._partitions.clear()
            self._scheduled.clear()
            self._in_flight.clear()
            self.dead_letters.clear()
            self.completed.clear()
            self.completed_count = 0
            self.dead_lettered_count = 0
        self.should_succeed = True
        self.failure_reason = "Queue unavailable"
