"""Delivery consumer — settles each queue message according to its delivery outcome.

Rules, in order:

1. A body that cannot be read is dead-lettered (``DeserializationFailed``).
2. A successful delivery completes the message.
3. A failed delivery is abandoned for redelivery while ``delivery_count`` is
   below the attempt cap, and dead-lettered (``MaxRetriesExceeded``) once it
   reaches it.
4. An exception from the executor is treated like a failure, but
   dead-lettered as ``ProcessingFailed``.

Cancellation leaves the message unsettled; its lock expires and the
transport redelivers it.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum

import structlog
from notifications.domain import notifications
from notifications.errors import MessageDeserializationError, OperationCancelled
from notifications.messaging import get_transport
from notifications.messaging.transport import MessageLockLostError, QueueTransport, ReceivedMessage
from notifications.notification.delivery import DeliveryExecutor
from notifications.notification.message import NotificationMessage
from notifications.settings import DeliverySettings, get_settings

logger = structlog.get_logger(__name__)


class DeliveryOutcome(Enum):
    COMPLETED = "Completed"
    ABANDONED = "Abandoned"
    DEAD_LETTERED = "DeadLettered"


class DeadLetterReason(Enum):
    DESERIALIZATION_FAILED = "DeserializationFailed"
    MAX_RETRIES_EXCEEDED = "MaxRetriesExceeded"
    PROCESSING_FAILED = "ProcessingFailed"


class DeliveryConsumer:
    def __init__(
        self,
        executor: DeliveryExecutor | None = None,
        transport: QueueTransport | None = None,
        settings: DeliverySettings | None = None,
        domain=None,
    ):
        self.executor = executor or DeliveryExecutor()
        self.transport = transport or get_transport()
        self.settings = settings or get_settings()
        self._domain = domain

    @property
    def max_delivery_attempts(self) -> int:
        return self.settings.max_delivery_attempts

    # -------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------
    def process(self, received: ReceivedMessage, cancel_event: threading.Event | None = None) -> DeliveryOutcome:
        with structlog.contextvars.bound_contextvars(
            message_id=received.message_id,
            delivery_count=received.delivery_count,
        ):
            try:
                message = NotificationMessage.from_json(received.body)
            except MessageDeserializationError as exc:
                logger.error("Dead-lettering unreadable notification message", error=str(exc))
                self.transport.dead_letter(received, DeadLetterReason.DESERIALIZATION_FAILED.value, str(exc))
                return DeliveryOutcome.DEAD_LETTERED

            try:
                result = self.executor.deliver(message, cancel_event)
            except OperationCancelled:
                logger.info("Delivery cancelled, leaving message for redelivery")
                raise
            except Exception as exc:
                logger.exception("Delivery raised unexpectedly")
                return self._retry_or_dead_letter(received, DeadLetterReason.PROCESSING_FAILED, str(exc))

            if result.success:
                self.transport.complete(received)
                return DeliveryOutcome.COMPLETED

            return self._retry_or_dead_letter(
                received,
                DeadLetterReason.MAX_RETRIES_EXCEEDED,
                result.error_message or "Unknown error",
            )

    def _retry_or_dead_letter(
        self,
        received: ReceivedMessage,
        reason: DeadLetterReason,
        description: str,
    ) -> DeliveryOutcome:
        if received.delivery_count < self.max_delivery_attempts:
            logger.info("Abandoning message for redelivery", error=description)
            self.transport.abandon(received)
            return DeliveryOutcome.ABANDONED

        logger.error(
            "Dead-lettering message after final attempt",
            reason=reason.value,
            error=description,
        )
        self.transport.dead_letter(received, reason.value, description)
        return DeliveryOutcome.DEAD_LETTERED

    # -------------------------------------------------------------------
    # Loops
    # -------------------------------------------------------------------
    def process_available(self, cancel_event: threading.Event | None = None) -> list[DeliveryOutcome]:
        """Process messages in this thread until none is receivable right now."""
        outcomes = []
        while cancel_event is None or not cancel_event.is_set():
            batch = self.transport.receive(max_messages=1, visibility_timeout=self.settings.visibility_timeout_seconds)
            if not batch:
                break
            for received in batch:
                try:
                    outcomes.append(self.process(received, cancel_event))
                except OperationCancelled:
                    return outcomes
                except MessageLockLostError:
                    # The lock lapsed before settlement; the message comes back on its own
                    logger.warning("Lost the message lock before settling", message_id=received.message_id)
        return outcomes

    def _worker(self, stop_event: threading.Event, worker_id: int) -> None:
        domain = self._domain or notifications

        log = logger.bind(worker=worker_id)
        log.info("Delivery worker started")
        with domain.domain_context():
            while not stop_event.is_set():
                batch = self.transport.receive(
                    max_messages=1,
                    visibility_timeout=self.settings.visibility_timeout_seconds,
                )
                if not batch:
                    stop_event.wait(self.settings.poll_interval_seconds)
                    continue

                for received in batch:
                    try:
                        self.process(received, stop_event)
                    except OperationCancelled:
                        break
                    except Exception:
                        # Settlement failed; the lock will lapse and the message comes back
                        log.exception("Failed to settle message", message_id=received.message_id)
        log.info("Delivery worker stopped")

    def run(self, stop_event: threading.Event, concurrency: int | None = None) -> None:
        """Run a pool of delivery workers until ``stop_event`` is set."""
        workers = concurrency or self.settings.consumer_concurrency
        logger.info("Starting delivery consumer", workers=workers, queue=self.settings.queue_name)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="delivery") as pool:
            futures = [pool.submit(self._worker, stop_event, worker_id) for worker_id in range(workers)]
            for future in futures:
                future.result()

        logger.info("Delivery consumer stopped")
