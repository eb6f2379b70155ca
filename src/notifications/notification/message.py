"""Queue payload for one new-book notification to one subscriber.

The book and subscriber data are snapshots taken when the message was
built; consumers never re-read the book. Messages travel as camelCase
JSON and unknown fields are ignored on read, so producers and consumers
on different versions can share a queue.
"""

import uuid
from datetime import UTC, datetime

from notifications.errors import MessageDeserializationError
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

NEW_BOOK_NOTIFICATION = "NewBookNotification"
CONTENT_TYPE = "application/json"


class _Snapshot(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class BookSnapshot(_Snapshot):
    book_id: str
    title: str
    author: str
    isbn: str = ""
    category: str
    description: str | None = None
    price: float = 0.0
    book_url: str | None = None


class SubscriberSnapshot(_Snapshot):
    subscriber_id: str
    email: str
    name: str = ""
    # Kept as a plain string: an unknown value must survive the trip to the executor
    notification_preference: str = "Email"
    webhook_url: str | None = None


class NotificationMessage(_Snapshot):
    """Immutable notification envelope. ``correlation_id`` is the book id."""

    message_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    correlation_id: str
    message_type: str = NEW_BOOK_NOTIFICATION
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    attempt_count: int = Field(default=0, ge=0)
    book: BookSnapshot
    subscriber: SubscriberSnapshot

    @property
    def subscriber_id(self) -> str:
        return self.subscriber.subscriber_id

    @property
    def book_id(self) -> str:
        return self.book.book_id

    def to_json_bytes(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")

    def to_payload(self) -> dict:
        """JSON-compatible dict with wire (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True)

    def template_context(self) -> dict:
        return {
            "subscriber_name": self.subscriber.name,
            "title": self.book.title,
            "author": self.book.author,
            "isbn": self.book.isbn,
            "category": self.book.category,
            "description": self.book.description,
            "price": self.book.price,
            "book_url": self.book.book_url,
        }

    @classmethod
    def from_json(cls, data: bytes | str) -> "NotificationMessage":
        """Parse a queue body.

        Raises:
            MessageDeserializationError: the body is not a valid notification message.
        """
        try:
            return cls.model_validate_json(data)
        except (ValueError, TypeError) as exc:
            raise MessageDeserializationError(f"Invalid notification message: {exc}") from exc
