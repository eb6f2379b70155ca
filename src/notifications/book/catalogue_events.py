"""Inbound cross-domain event handler — Notifications reacts to Catalogue book events.

Keeps the local book listing in step with the catalogue and starts the
new-title fan-out when a book is added. Errors propagate so the event is
retried by the engine rather than silently acknowledged.
"""

import structlog
from notifications.book.listing import BookStore
from notifications.domain import notifications
from notifications.notification.pipeline import build_fanout
from notifications.subscriber.subscriber import Subscriber
from protean.utils.mixins import handle
from shared.events.catalogue import BookAdded, BookDetailsUpdated, BookRemoved

logger = structlog.get_logger(__name__)

notifications.register_external_event(BookAdded, "Catalogue.BookAdded.v1")
notifications.register_external_event(BookDetailsUpdated, "Catalogue.BookDetailsUpdated.v1")
notifications.register_external_event(BookRemoved, "Catalogue.BookRemoved.v1")


@notifications.event_handler(part_of=Subscriber, stream_category="catalogue::book")
class CatalogueEventsHandler:
    """Reacts to Catalogue book events."""

    @handle(BookAdded)
    def on_book_added(self, event: BookAdded) -> None:
        """Record the new book, then notify every interested subscriber."""
        BookStore().upsert(
            event.book_id,
            category=event.category,
            title=event.title,
            author=event.author,
            isbn=event.isbn,
            description=event.description,
            price=event.price,
            stock_quantity=event.stock_quantity or 0,
            is_available=bool(event.is_available),
            added_at=event.added_at,
        )

        count = build_fanout().notify_subscribers(str(event.book_id), event.category)
        logger.info(
            "Fan-out complete for new book",
            book_id=str(event.book_id),
            category=event.category,
            notified=count,
        )

    @handle(BookDetailsUpdated)
    def on_book_details_updated(self, event: BookDetailsUpdated) -> None:
        BookStore().upsert(
            event.book_id,
            category=event.category,
            title=event.title,
            author=event.author,
            isbn=event.isbn,
            description=event.description,
            price=event.price,
            stock_quantity=event.stock_quantity or 0,
            is_available=bool(event.is_available),
        )

    @handle(BookRemoved)
    def on_book_removed(self, event: BookRemoved) -> None:
        if not BookStore().remove(event.book_id):
            logger.info("Removed book was not listed", book_id=str(event.book_id))
