"""Outcome of one delivery attempt, as reported by the delivery executor."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class ErrorKind(Enum):
    CONFIGURATION = "Configuration"
    INVALID_STATE = "InvalidState"
    DELIVERY_FAILED = "DeliveryFailed"
    UNEXPECTED = "Unexpected"


@dataclass(frozen=True)
class NotificationResult:
    success: bool
    subscriber_id: str
    delivery_method: str
    error_message: str | None = None
    error_kind: ErrorKind | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def sent(cls, subscriber_id: str, delivery_method: str) -> "NotificationResult":
        return cls(success=True, subscriber_id=subscriber_id, delivery_method=delivery_method)

    @classmethod
    def failed(
        cls,
        subscriber_id: str,
        delivery_method: str,
        error_message: str,
        error_kind: ErrorKind = ErrorKind.DELIVERY_FAILED,
    ) -> "NotificationResult":
        return cls(
            success=False,
            subscriber_id=subscriber_id,
            delivery_method=delivery_method,
            error_message=error_message,
            error_kind=error_kind,
        )
