"""Cross-domain event contracts for Catalogue domain events.

These classes define the event shape for consumption by other domains
(the Notifications domain keeps a book listing and fans out new-title
notifications from them). They are registered as external events via
domain.register_external_event() with matching __type__ strings so
Protean's stream deserialization works correctly.

The source-of-truth events are in src/catalogue/book/events.py.
"""

from protean.core.event import BaseEvent
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text


class BookAdded(BaseEvent):
    """A new book was added to the inventory."""

    __version__ = 1

    book_id = Identifier(required=True)
    title = String(required=True)
    author = String(required=True)
    isbn = String(required=True)
    category = String(required=True)
    description = Text()
    price = Float(required=True)
    stock_quantity = Integer()
    is_available = Boolean()
    added_at = DateTime(required=True)


class BookDetailsUpdated(BaseEvent):
    """Descriptive fields, price or stock of a book changed."""

    __version__ = 1

    book_id = Identifier(required=True)
    category = String(required=True)
    title = String(required=True)
    author = String(required=True)
    isbn = String(required=True)
    description = Text()
    price = Float(required=True)
    stock_quantity = Integer()
    is_available = Boolean()
    updated_fields = Text()  # JSON list of changed field names
    updated_at = DateTime(required=True)


class BookRemoved(BaseEvent):
    """A book was taken out of the inventory."""

    __version__ = 1

    book_id = Identifier(required=True)
    category = String(required=True)
    removed_at = DateTime(required=True)
