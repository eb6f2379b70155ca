"""Subscriber aggregate (CQRS) — a reader who wants to hear about new titles.

A subscriber is eligible for notifications once active and confirmed. An
empty category list means "every category". Delivery bookkeeping
(notification count, last notification time) is written under Protean's
optimistic concurrency on the aggregate version, through the subscriber store.
"""

import json
import re
from datetime import UTC, datetime
from enum import Enum

from notifications.domain import notifications
from notifications.subscriber.events import (
    DeliveryChannelChanged,
    SubscribedCategoriesChanged,
    SubscriberConfirmed,
    SubscriberDeactivated,
    SubscriberRegistered,
)
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Integer, String, Text

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class NotificationPreference(Enum):
    EMAIL = "Email"
    WEBHOOK = "Webhook"
    BOTH = "Both"

    @classmethod
    def parse(cls, value):
        """Resolve a preference from its value, case-insensitively. Returns None if unknown."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        wanted = value.strip().casefold()
        for member in cls:
            if member.value.casefold() == wanted:
                return member
        return None


def _normalize_categories(categories) -> list[str]:
    """Trim, drop blanks and de-duplicate case-insensitively, keeping first spelling."""
    seen = set()
    result = []
    for category in categories or []:
        name = str(category).strip()
        if not name or name.casefold() in seen:
            continue
        seen.add(name.casefold())
        result.append(name)
    return result


def _validate_webhook_url(webhook_url):
    if webhook_url and not webhook_url.startswith(("http://", "https://")):
        raise ValidationError({"webhook_url": [f"Webhook URL must be http(s): {webhook_url}"]})


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@notifications.aggregate
class Subscriber:
    """A notification recipient with category interests and a delivery preference."""

    email: String(required=True, max_length=254, unique=True)
    name: String(required=True, max_length=200)

    # Eligibility
    is_active: Boolean(default=True)
    confirmed_at: DateTime()

    # Interests and delivery
    subscribed_categories: Text()  # JSON list; empty means all categories
    notification_preference: String(
        choices=NotificationPreference, default=NotificationPreference.EMAIL.value
    )
    webhook_url: String(max_length=500)

    # Delivery bookkeeping
    last_notification_at: DateTime()
    notification_count: Integer(default=0)

    created_at: DateTime()
    updated_at: DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(
        cls,
        email,
        name,
        subscribed_categories=None,
        notification_preference=NotificationPreference.EMAIL.value,
        webhook_url=None,
    ):
        """Create an active, unconfirmed subscriber."""
        email = (email or "").strip().lower()
        if not _EMAIL_PATTERN.match(email):
            raise ValidationError({"email": [f"Invalid email address: {email}"]})

        preference = NotificationPreference.parse(notification_preference)
        if preference is None:
            raise ValidationError(
                {"notification_preference": [f"Unknown notification preference: {notification_preference}"]}
            )
        _validate_webhook_url(webhook_url)

        now = datetime.now(UTC)
        categories = json.dumps(_normalize_categories(subscribed_categories))

        subscriber = cls(
            email=email,
            name=name,
            is_active=True,
            subscribed_categories=categories,
            notification_preference=preference.value,
            webhook_url=webhook_url or None,
            notification_count=0,
            created_at=now,
            updated_at=now,
        )

        subscriber.raise_(
            SubscriberRegistered(
                subscriber_id=str(subscriber.id),
                email=email,
                name=name,
                subscribed_categories=categories,
                notification_preference=preference.value,
                registered_at=now,
            )
        )

        return subscriber

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def confirm(self):
        if not self.is_active:
            raise ValidationError({"is_active": ["Deactivated subscribers cannot be confirmed"]})
        if self.confirmed_at is not None:
            raise ValidationError({"confirmed_at": ["Subscriber is already confirmed"]})

        now = datetime.now(UTC)
        self.confirmed_at = now
        self.updated_at = now

        self.raise_(
            SubscriberConfirmed(
                subscriber_id=str(self.id),
                email=self.email,
                confirmed_at=now,
            )
        )

    def deactivate(self):
        if not self.is_active:
            raise ValidationError({"is_active": ["Subscriber is already inactive"]})

        now = datetime.now(UTC)
        self.is_active = False
        self.updated_at = now

        self.raise_(
            SubscriberDeactivated(
                subscriber_id=str(self.id),
                email=self.email,
                deactivated_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Preferences
    # -------------------------------------------------------------------
    def change_categories(self, categories):
        """Replace the subscribed categories. An empty list subscribes to everything."""
        normalized = json.dumps(_normalize_categories(categories))
        now = datetime.now(UTC)
        self.subscribed_categories = normalized
        self.updated_at = now

        self.raise_(
            SubscribedCategoriesChanged(
                subscriber_id=str(self.id),
                subscribed_categories=normalized,
                changed_at=now,
            )
        )

    def change_delivery_channel(self, notification_preference, webhook_url=None):
        preference = NotificationPreference.parse(notification_preference)
        if preference is None:
            raise ValidationError(
                {"notification_preference": [f"Unknown notification preference: {notification_preference}"]}
            )
        _validate_webhook_url(webhook_url)

        now = datetime.now(UTC)
        self.notification_preference = preference.value
        if webhook_url is not None:
            self.webhook_url = webhook_url or None
        self.updated_at = now

        self.raise_(
            DeliveryChannelChanged(
                subscriber_id=str(self.id),
                notification_preference=preference.value,
                webhook_url=self.webhook_url,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Delivery bookkeeping
    # -------------------------------------------------------------------
    def record_notification(self, at=None):
        """Count one delivery attempt. Applied to a freshly read copy on every retry."""
        at = at or datetime.now(UTC)
        self.notification_count = (self.notification_count or 0) + 1
        self.last_notification_at = at
        self.updated_at = at

    # -------------------------------------------------------------------
    # Query helpers
    # -------------------------------------------------------------------
    def get_subscribed_categories(self):
        return json.loads(self.subscribed_categories) if self.subscribed_categories else []

    def is_interested_in(self, category):
        """Empty subscriptions match every category; otherwise match case-insensitively."""
        categories = self.get_subscribed_categories()
        if not categories:
            return True
        wanted = (category or "").strip().casefold()
        return any(c.casefold() == wanted for c in categories)

    def is_eligible(self):
        """Active and confirmed."""
        return bool(self.is_active) and self.confirmed_at is not None
