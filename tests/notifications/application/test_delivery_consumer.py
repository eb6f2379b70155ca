"""Application tests for DeliveryConsumer — how each received message is settled.

Covers:
- Success completes the message
- Failures are abandoned below the attempt cap and dead-lettered on the final attempt
- Unreadable bodies are dead-lettered straight away
- Executor exceptions are retried, then dead-lettered as ProcessingFailed
- Cancellation leaves the message unsettled
- process_available drives a message through every attempt on a real transport
- A lock lost before settlement does not stop process_available
"""

import threading
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
from notifications.errors import OperationCancelled
from notifications.messaging.client import MessageQueueClient
from notifications.messaging.transport import ReceivedMessage
from notifications.notification.consumer import DeadLetterReason, DeliveryConsumer, DeliveryOutcome
from notifications.notification.message import BookSnapshot, NotificationMessage, SubscriberSnapshot
from notifications.notification.result import NotificationResult
from notifications.settings import DeliverySettings


def _message():
    return NotificationMessage(
        correlation_id="b1",
        book=BookSnapshot(book_id="b1", title="The Long Way", author="A. Author", category="Fiction"),
        subscriber=SubscriberSnapshot(subscriber_id="s1", email="reader@example.com"),
    )


def _received(delivery_count=1, body=None):
    message = _message()
    now = datetime(2024, 1, 1, tzinfo=UTC)
    return ReceivedMessage(
        body=body if body is not None else message.to_json_bytes(),
        message_id=message.message_id,
        delivery_count=delivery_count,
        lock_token="lock-1",
        sequence_number=1,
        enqueued_at=now,
        locked_until=now,
    )


class _StubExecutor:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = 0

    def deliver(self, message, cancel_event=None):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


def _consumer(executor, transport=None, max_delivery_attempts=5):
    return DeliveryConsumer(
        executor=executor,
        transport=transport or MagicMock(),
        settings=DeliverySettings(max_delivery_attempts=max_delivery_attempts),
    )


def _failed(error="timeout"):
    return NotificationResult.failed("s1", "Email", error)


class TestSettlementRules:
    def test_success_completes(self):
        consumer = _consumer(_StubExecutor(NotificationResult.sent("s1", "Email")))
        received = _received()

        assert consumer.process(received) == DeliveryOutcome.COMPLETED
        consumer.transport.complete.assert_called_once_with(received)
        consumer.transport.abandon.assert_not_called()

    @pytest.mark.parametrize("delivery_count", [1, 2, 3, 4])
    def test_failure_below_cap_abandons(self, delivery_count):
        consumer = _consumer(_StubExecutor(_failed()))
        received = _received(delivery_count)

        assert consumer.process(received) == DeliveryOutcome.ABANDONED
        consumer.transport.abandon.assert_called_once_with(received)
        consumer.transport.dead_letter.assert_not_called()

    def test_failure_on_final_attempt_dead_letters(self):
        consumer = _consumer(_StubExecutor(_failed("timeout")))
        received = _received(5)

        assert consumer.process(received) == DeliveryOutcome.DEAD_LETTERED
        consumer.transport.dead_letter.assert_called_once_with(received, "MaxRetriesExceeded", "timeout")
        consumer.transport.abandon.assert_not_called()

    def test_failure_without_message_uses_unknown_error(self):
        consumer = _consumer(_StubExecutor(_failed(None)))
        received = _received(5)

        consumer.process(received)

        consumer.transport.dead_letter.assert_called_once_with(received, "MaxRetriesExceeded", "Unknown error")

    def test_cap_comes_from_settings(self):
        consumer = _consumer(_StubExecutor(_failed()), max_delivery_attempts=2)
        assert consumer.process(_received(2)) == DeliveryOutcome.DEAD_LETTERED

    def test_unreadable_body_is_dead_lettered(self):
        executor = _StubExecutor(NotificationResult.sent("s1", "Email"))
        consumer = _consumer(executor)
        received = _received(body=b"{not json")

        assert consumer.process(received) == DeliveryOutcome.DEAD_LETTERED

        args = consumer.transport.dead_letter.call_args.args
        assert args[1] == DeadLetterReason.DESERIALIZATION_FAILED.value
        assert executor.calls == 0

    def test_executor_exception_is_retried(self):
        consumer = _consumer(_StubExecutor(error=RuntimeError("boom")))
        received = _received(1)

        assert consumer.process(received) == DeliveryOutcome.ABANDONED
        consumer.transport.abandon.assert_called_once_with(received)

    def test_executor_exception_on_final_attempt(self):
        consumer = _consumer(_StubExecutor(error=RuntimeError("boom")))
        received = _received(5)

        assert consumer.process(received) == DeliveryOutcome.DEAD_LETTERED
        consumer.transport.dead_letter.assert_called_once_with(received, "ProcessingFailed", "boom")

    def test_cancellation_leaves_message_unsettled(self):
        consumer = _consumer(_StubExecutor(error=OperationCancelled("stop")))

        with pytest.raises(OperationCancelled):
            consumer.process(_received(), threading.Event())

        consumer.transport.complete.assert_not_called()
        consumer.transport.abandon.assert_not_called()
        consumer.transport.dead_letter.assert_not_called()


class TestProcessAvailable:
    def test_drains_successful_messages(self, transport):
        client = MessageQueueClient(transport)
        client.send_batch([_message(), _message()])
        consumer = _consumer(_StubExecutor(NotificationResult.sent("s1", "Email")), transport)

        assert consumer.process_available() == [DeliveryOutcome.COMPLETED, DeliveryOutcome.COMPLETED]
        assert transport.pending() == []
        assert len(transport.completed) == 2

    def test_failing_message_dead_lettered_after_five_attempts(self, transport):
        MessageQueueClient(transport).send_one(_message())
        executor = _StubExecutor(_failed("timeout"))
        consumer = _consumer(executor, transport)

        outcomes = consumer.process_available()

        assert outcomes == [DeliveryOutcome.ABANDONED] * 4 + [DeliveryOutcome.DEAD_LETTERED]
        assert executor.calls == 5
        [dead] = transport.dead_letters
        assert dead.reason == "MaxRetriesExceeded"
        assert dead.description == "timeout"
        assert dead.delivery_count == 5

    def test_stops_when_cancelled(self, transport):
        MessageQueueClient(transport).send_one(_message())
        cancel = threading.Event()
        cancel.set()
        consumer = _consumer(_StubExecutor(NotificationResult.sent("s1", "Email")), transport)

        assert consumer.process_available(cancel) == []
        assert len(transport.pending()) == 1

    def test_cancelled_delivery_keeps_message_locked(self, transport):
        MessageQueueClient(transport).send_one(_message())
        consumer = _consumer(_StubExecutor(error=OperationCancelled("stop")), transport)

        assert consumer.process_available(threading.Event()) == []
        assert transport.in_flight_count() == 1

    def test_lost_lock_is_logged_and_the_message_redelivered(self, transport, clock):
        MessageQueueClient(transport).send_one(_message())

        class _SlowFirstExecutor(_StubExecutor):
            def deliver(self, message, cancel_event=None):
                if self.calls == 0:
                    # Outlive the lock so settlement finds it gone
                    clock.advance(31)
                return super().deliver(message, cancel_event)

        executor = _SlowFirstExecutor(NotificationResult.sent("s1", "Email"))
        consumer = _consumer(executor, transport)

        assert consumer.process_available() == [DeliveryOutcome.COMPLETED]
        assert executor.calls == 2
        assert transport.completed_count == 1
        assert transport.in_flight_count() == 0
