"""Builds the queue message for one (book, subscriber) pair."""

from notifications.notification.message import (
    BookSnapshot,
    NotificationMessage,
    SubscriberSnapshot,
)
from notifications.settings import get_settings


def _book_url(book_id: str, url_template: str | None) -> str | None:
    if not url_template:
        return None
    return url_template.format(book_id=book_id)


def build_notification_message(book, subscriber, book_url_template: str | None = None) -> NotificationMessage:
    """Snapshot ``book`` and ``subscriber`` into a new message.

    Only ``message_id`` and ``created_at`` differ between two calls with the
    same inputs. ``correlation_id`` is the book id.
    """
    book_id = str(book.book_id)
    if book_url_template is None:
        book_url_template = get_settings().book_url_template

    return NotificationMessage(
        correlation_id=book_id,
        book=BookSnapshot(
            book_id=book_id,
            title=book.title,
            author=book.author,
            isbn=book.isbn or "",
            category=book.category,
            description=book.description,
            price=float(book.price or 0.0),
            book_url=_book_url(book_id, book_url_template),
        ),
        subscriber=SubscriberSnapshot(
            subscriber_id=str(subscriber.id),
            email=subscriber.email,
            name=subscriber.name or "",
            notification_preference=subscriber.notification_preference,
            webhook_url=subscriber.webhook_url,
        ),
    )
