"""Fan-out — turns one "book added" trigger into one queued message per subscriber.

Repeated triggers for the same book enqueue again; delivery is
at-least-once and subscribers may see duplicates.
"""

import threading

import structlog
from notifications.book.listing import BookStore
from notifications.errors import OperationCancelled
from notifications.messaging.client import MessageQueueClient
from notifications.notification.factory import build_notification_message
from notifications.notification.selector import SubscriberSelector

logger = structlog.get_logger(__name__)


class FanOutOrchestrator:
    def __init__(
        self,
        book_store: BookStore | None = None,
        selector: SubscriberSelector | None = None,
        queue_client: MessageQueueClient | None = None,
    ):
        self.book_store = book_store or BookStore()
        self.selector = selector or SubscriberSelector()
        self.queue_client = queue_client or MessageQueueClient()

    def notify_subscribers(self, book_id, category: str, cancel_event: threading.Event | None = None) -> int:
        """Enqueue a notification for every eligible subscriber of ``category``.

        Returns:
            Number of messages enqueued; 0 when the book is unknown or nobody is interested.

        Raises:
            OperationCancelled: ``cancel_event`` was set before anything was enqueued.
            TransportError: enqueueing failed; the trigger should be retried.
        """
        log = logger.bind(book_id=str(book_id), category=category)

        book = self.book_store.get_by_id(book_id, category)
        if book is None:
            log.warning("Book not found, no notifications sent")
            return 0

        subscribers = self.selector.select_for_category(category)
        if not subscribers:
            log.info("No subscribers for category")
            return 0

        messages = [build_notification_message(book, subscriber) for subscriber in subscribers]

        if cancel_event is not None and cancel_event.is_set():
            log.info("Fan-out cancelled before enqueueing", pending=len(messages))
            raise OperationCancelled(f"Fan-out for book {book_id} cancelled")

        sent = self.queue_client.send_batch(messages)
        log.info("New book notifications enqueued", count=sent)
        return sent
