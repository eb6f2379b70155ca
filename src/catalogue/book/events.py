"""Domain events for the Book aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from catalogue.domain import catalogue

# Published on the catalogue::book stream; Notifications consumes all three.


@catalogue.event(part_of="Book")
class BookAdded:
    """A new book was added to the inventory."""

    __version__ = 1

    book_id: Identifier(required=True)
    title: String(required=True)
    author: String(required=True)
    isbn: String(required=True)
    category: String(required=True)
    description: Text()
    price: Float(required=True)
    stock_quantity: Integer()
    is_available: Boolean()
    added_at: DateTime(required=True)


@catalogue.event(part_of="Book")
class BookDetailsUpdated:
    """Descriptive fields, price or stock of a book changed."""

    __version__ = 1

    book_id: Identifier(required=True)
    category: String(required=True)
    title: String(required=True)
    author: String(required=True)
    isbn: String(required=True)
    description: Text()
    price: Float(required=True)
    stock_quantity: Integer()
    is_available: Boolean()
    updated_fields: Text()
    updated_at: DateTime(required=True)


@catalogue.event(part_of="Book")
class BookRemoved:
    """A book was taken out of the inventory."""

    __version__ = 1

    book_id: Identifier(required=True)
    category: String(required=True)
    removed_at: DateTime(required=True)
