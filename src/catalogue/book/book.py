"""Book aggregate root — the catalogue's unit of inventory.

Books are partitioned by category; the category is fixed once a book is
added. Removing a book is a soft delete so the ``BookRemoved`` event can
still name the partition it lived in.
"""

import json
import re
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, Date, DateTime, Float, Integer, String, Text

from catalogue.domain import catalogue

_ISBN_PATTERN = re.compile(r"^(\d{9}[\dX]|\d{13})$")

# Fields a details update may touch, in the order they are reported
_UPDATABLE_FIELDS = (
    "title",
    "author",
    "description",
    "price",
    "publisher",
    "published_on",
    "page_count",
    "cover_image_url",
    "stock_quantity",
)


def normalize_isbn(value: str) -> str:
    """Strip hyphens and spaces so ISBN-10/13 can be compared and validated."""
    return re.sub(r"[\s-]", "", value or "").upper()


@catalogue.aggregate
class Book:
    """Book aggregate root."""

    title: String(required=True, max_length=300)
    author: String(required=True, max_length=200)
    isbn: String(required=True, max_length=17, unique=True)
    category: String(required=True, max_length=100)
    description: Text()
    price: Float(required=True, min_value=0.0)
    publisher: String(max_length=200)
    published_on: Date()
    page_count: Integer(min_value=0)
    cover_image_url: String(max_length=500)
    stock_quantity: Integer(default=0, min_value=0)
    is_available: Boolean(default=False)
    tags: Text()  # JSON list of free-form tags
    removed_at: DateTime()
    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def isbn_must_be_well_formed(self):
        if not _ISBN_PATTERN.match(normalize_isbn(self.isbn)):
            raise ValidationError({"isbn": [f"Invalid ISBN: {self.isbn}"]})

    @invariant.post
    def category_must_not_be_blank(self):
        if not (self.category or "").strip():
            raise ValidationError({"category": ["Category must not be blank"]})

    @classmethod
    def create(
        cls,
        title,
        author,
        isbn,
        category,
        price,
        description=None,
        publisher=None,
        published_on=None,
        page_count=None,
        cover_image_url=None,
        stock_quantity=0,
        tags=None,
    ):
        from catalogue.book.events import BookAdded

        now = datetime.now(UTC)
        book = cls(
            title=title,
            author=author,
            isbn=normalize_isbn(isbn),
            category=category.strip(),
            price=price,
            description=description,
            publisher=publisher,
            published_on=published_on,
            page_count=page_count,
            cover_image_url=cover_image_url,
            stock_quantity=stock_quantity or 0,
            is_available=(stock_quantity or 0) > 0,
            tags=json.dumps(tags or []),
            created_at=now,
            updated_at=now,
        )
        book.raise_(
            BookAdded(
                book_id=book.id,
                title=book.title,
                author=book.author,
                isbn=book.isbn,
                category=book.category,
                description=book.description,
                price=book.price,
                stock_quantity=book.stock_quantity,
                is_available=book.is_available,
                added_at=now,
            )
        )
        return book

    def update_details(self, **changes):
        """Apply the given field changes and report which ones actually changed.

        The category cannot be changed: it is the book's partition key.
        """
        from catalogue.book.events import BookDetailsUpdated

        if self.removed_at is not None:
            raise ValidationError({"book": ["Removed books cannot be updated"]})
        if "category" in changes:
            raise ValidationError({"category": ["Category cannot be changed once a book is added"]})

        unknown = set(changes) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError({"book": [f"Unknown fields: {', '.join(sorted(unknown))}"]})

        updated_fields = []
        for field_name in _UPDATABLE_FIELDS:
            if field_name not in changes or changes[field_name] is None:
                continue
            if getattr(self, field_name) != changes[field_name]:
                setattr(self, field_name, changes[field_name])
                updated_fields.append(field_name)

        if not updated_fields:
            return []

        if "stock_quantity" in updated_fields:
            self.is_available = self.stock_quantity > 0

        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            BookDetailsUpdated(
                book_id=self.id,
                category=self.category,
                title=self.title,
                author=self.author,
                isbn=self.isbn,
                description=self.description,
                price=self.price,
                stock_quantity=self.stock_quantity,
                is_available=self.is_available,
                updated_fields=json.dumps(updated_fields),
                updated_at=now,
            )
        )
        return updated_fields

    def remove(self):
        from catalogue.book.events import BookRemoved

        if self.removed_at is not None:
            raise ValidationError({"book": ["Book has already been removed"]})

        now = datetime.now(UTC)
        self.removed_at = now
        self.is_available = False
        self.updated_at = now

        self.raise_(
            BookRemoved(
                book_id=self.id,
                category=self.category,
                removed_at=now,
            )
        )

    def get_tags(self):
        return json.loads(self.tags) if self.tags else []
