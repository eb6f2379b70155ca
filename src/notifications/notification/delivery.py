"""Delivery executor — sends one notification message and records it on the subscriber.

Bookkeeping (notification count, last notification time) is written before
the send and is not rolled back when the send fails, so the count tracks
delivery attempts. The executor reports outcomes; deciding whether to
retry belongs to the queue consumer.
"""

import threading

import structlog
from notifications.channel import EMAIL, WEBHOOK, get_channel
from notifications.errors import OperationCancelled
from notifications.notification.message import NotificationMessage
from notifications.notification.result import ErrorKind, NotificationResult
from notifications.subscriber.store import SubscriberStore
from notifications.subscriber.subscriber import NotificationPreference
from notifications.templates import get_template

logger = structlog.get_logger(__name__)

WEBHOOK_URL_NOT_CONFIGURED = "Webhook URL not configured"

# (error message, error kind); (None, None) means sent
_Attempt = tuple[str | None, ErrorKind | None]
_SENT: _Attempt = (None, None)


def _raise_if_cancelled(cancel_event: threading.Event | None, message: NotificationMessage) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelled(f"Delivery of {message.message_id} cancelled")


def _correlation_headers(message: NotificationMessage) -> dict:
    return {
        "X-Message-Id": message.message_id,
        "X-Correlation-Id": message.correlation_id,
        "X-Message-Type": message.message_type,
    }


class DeliveryExecutor:
    def __init__(self, store: SubscriberStore | None = None, email_channel=None, webhook_channel=None):
        self.store = store or SubscriberStore()
        self._email_channel = email_channel
        self._webhook_channel = webhook_channel

    @property
    def email_channel(self):
        return self._email_channel or get_channel(EMAIL)

    @property
    def webhook_channel(self):
        return self._webhook_channel or get_channel(WEBHOOK)

    def deliver(self, message: NotificationMessage, cancel_event: threading.Event | None = None) -> NotificationResult:
        """Deliver ``message`` according to the subscriber's notification preference.

        Never raises for delivery problems; they come back as a failed
        result. ``OperationCancelled`` is the only exception that escapes.
        """
        subscriber_id = message.subscriber_id
        preference = message.subscriber.notification_preference

        try:
            _raise_if_cancelled(cancel_event, message)
            self.store.record_notification(subscriber_id)
            _raise_if_cancelled(cancel_event, message)
            result = self._dispatch(message)
        except OperationCancelled:
            raise
        except Exception as exc:
            logger.exception(
                "Unexpected error delivering notification",
                message_id=message.message_id,
                subscriber_id=subscriber_id,
            )
            return NotificationResult.failed(subscriber_id, preference, str(exc), ErrorKind.UNEXPECTED)

        if result.success:
            logger.info(
                "Notification delivered",
                message_id=message.message_id,
                subscriber_id=subscriber_id,
                delivery_method=result.delivery_method,
            )
        else:
            logger.warning(
                "Notification delivery failed",
                message_id=message.message_id,
                subscriber_id=subscriber_id,
                delivery_method=result.delivery_method,
                error=result.error_message,
                error_kind=result.error_kind.value if result.error_kind else None,
            )
        return result

    def _dispatch(self, message: NotificationMessage) -> NotificationResult:
        subscriber_id = message.subscriber_id
        raw_preference = message.subscriber.notification_preference
        preference = NotificationPreference.parse(raw_preference)

        if preference is None:
            return NotificationResult.failed(
                subscriber_id,
                str(raw_preference),
                f"Unknown notification preference: {raw_preference}",
                ErrorKind.INVALID_STATE,
            )

        if preference == NotificationPreference.EMAIL:
            attempts = [self._send_email(message)]
        elif preference == NotificationPreference.WEBHOOK:
            attempts = [self._post_webhook(message)]
        else:
            # Both channels are always attempted; the email error is reported first
            attempts = [self._send_email(message), self._post_webhook(message)]

        for error_message, error_kind in attempts:
            if error_message is not None:
                return NotificationResult.failed(subscriber_id, preference.value, error_message, error_kind)
        return NotificationResult.sent(subscriber_id, preference.value)

    def _send_email(self, message: NotificationMessage) -> _Attempt:
        try:
            template = get_template(message.message_type)
        except ValueError as exc:
            return str(exc), ErrorKind.INVALID_STATE

        rendered = template.render(message.template_context())
        response = self.email_channel.send(
            to=message.subscriber.email,
            subject=rendered["subject"],
            body=rendered["body"],
            html_body=rendered.get("html_body"),
            headers=_correlation_headers(message),
        )
        if response.get("status") == "sent":
            return _SENT
        return response.get("error") or "Email delivery failed", ErrorKind.DELIVERY_FAILED

    def _post_webhook(self, message: NotificationMessage) -> _Attempt:
        url = (message.subscriber.webhook_url or "").strip()
        if not url:
            return WEBHOOK_URL_NOT_CONFIGURED, ErrorKind.CONFIGURATION

        response = self.webhook_channel.post(url, message.to_payload(), headers=_correlation_headers(message))
        if response.get("status") == "sent":
            return _SENT
        return response.get("error") or "Webhook delivery failed", ErrorKind.DELIVERY_FAILED
