"""BookListing — Notifications' copy of the catalogue, partitioned by category.

Kept in sync from Catalogue events. The fan-out reads a book through
``BookStore.get_by_id(book_id, category)``: a book is only found in the
category partition it was added under.
"""

from datetime import UTC, datetime

import structlog
from notifications.domain import notifications
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

logger = structlog.get_logger(__name__)


@notifications.projection
class BookListing:
    book_id: Identifier(identifier=True, required=True)
    category: String(required=True, max_length=100)
    title: String(required=True, max_length=300)
    author: String(required=True, max_length=200)
    isbn: String(max_length=17)
    description: Text()
    price: Float(default=0.0)
    stock_quantity: Integer(default=0)
    is_available: Boolean(default=False)
    added_at: DateTime()
    updated_at: DateTime()


class BookStore:
    @property
    def _repo(self):
        return current_domain.repository_for(BookListing)

    def get_by_id(self, book_id, category) -> BookListing | None:
        try:
            listing = self._repo.get(str(book_id))
        except ObjectNotFoundError:
            return None
        if listing.category != category:
            logger.debug(
                "Book found under a different category",
                book_id=str(book_id),
                requested_category=category,
                stored_category=listing.category,
            )
            return None
        return listing

    def upsert(self, book_id, **fields) -> BookListing:
        """Create or overwrite the listing for ``book_id``."""
        now = datetime.now(UTC)
        try:
            listing = self._repo.get(str(book_id))
            for name, value in fields.items():
                setattr(listing, name, value)
            listing.updated_at = now
        except ObjectNotFoundError:
            listing = BookListing(book_id=str(book_id), updated_at=now, **fields)
        self._repo.add(listing)
        return listing

    def remove(self, book_id) -> bool:
        try:
            listing = self._repo.get(str(book_id))
        except ObjectNotFoundError:
            return False
        self._repo._dao.delete(listing)
        return True
