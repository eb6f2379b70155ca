"""Message queue client — enqueues notification messages onto the queue transport.

Messages are partitioned by subscriber id, so notifications for one
subscriber are delivered in order, and tagged with the book category as
their subject.
"""

from datetime import datetime

import structlog
from notifications.messaging import get_transport
from notifications.messaging.transport import MessageTooLargeError, OutboundMessage, QueueTransport
from notifications.notification.message import CONTENT_TYPE, NotificationMessage

logger = structlog.get_logger(__name__)


def to_outbound(message: NotificationMessage) -> OutboundMessage:
    return OutboundMessage(
        body=message.to_json_bytes(),
        message_id=message.message_id,
        correlation_id=message.correlation_id,
        partition_key=message.subscriber_id,
        subject=message.book.category,
        content_type=CONTENT_TYPE,
        application_properties={
            "messageType": message.message_type,
            "subscriberId": message.subscriber_id,
            "bookId": message.book_id,
        },
    )


class MessageQueueClient:
    def __init__(self, transport: QueueTransport | None = None):
        self.transport = transport or get_transport()

    def _check_size(self, outbound: OutboundMessage) -> None:
        if outbound.size > self.transport.max_message_bytes:
            logger.error(
                "Notification message too large for the queue",
                message_id=outbound.message_id,
                size=outbound.size,
                limit=self.transport.max_message_bytes,
            )
            raise MessageTooLargeError(outbound.message_id, outbound.size, self.transport.max_message_bytes)

    def send_one(self, message: NotificationMessage) -> None:
        outbound = to_outbound(message)
        self._check_size(outbound)
        self.transport.send([outbound])
        logger.debug("Notification message enqueued", message_id=message.message_id)

    def send_batch(self, messages: list[NotificationMessage]) -> int:
        """Enqueue ``messages`` in as few transport batches as the limits allow.

        Every message is size-checked before the first batch goes out, so an
        oversized message fails the call without sending anything. A transport
        failure part-way through propagates; batches already sent stay sent.

        Returns:
            Number of messages enqueued.
        """
        outbound = [to_outbound(message) for message in messages]
        for item in outbound:
            self._check_size(item)

        batches = []
        current, current_bytes = [], 0
        for item in outbound:
            if current and (
                current_bytes + item.size > self.transport.max_batch_bytes
                or len(current) >= self.transport.max_batch_messages
            ):
                batches.append(current)
                current, current_bytes = [], 0
            current.append(item)
            current_bytes += item.size
        if current:
            batches.append(current)

        sent = 0
        for batch in batches:
            self.transport.send(batch)
            sent += len(batch)

        logger.info("Notification messages enqueued", count=sent, batches=len(batches))
        return sent

    def schedule(self, message: NotificationMessage, deliver_at: datetime) -> int:
        """Enqueue ``message`` for delivery no earlier than ``deliver_at``. Returns its sequence number."""
        outbound = to_outbound(message)
        self._check_size(outbound)
        sequence_number = self.transport.schedule(outbound, deliver_at)
        logger.info(
            "Notification message scheduled",
            message_id=message.message_id,
            deliver_at=deliver_at.isoformat(),
            sequence_number=sequence_number,
        )
        return sequence_number
