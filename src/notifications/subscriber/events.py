"""Domain events for the Subscriber aggregate."""

from notifications.domain import notifications
from protean.fields import DateTime, Identifier, String, Text


@notifications.event(part_of="Subscriber")
class SubscriberRegistered:
    """A reader signed up for new-title notifications."""

    __version__ = 1

    subscriber_id: Identifier(required=True)
    email: String(required=True)
    name: String(required=True)
    subscribed_categories: Text()
    notification_preference: String(required=True)
    registered_at: DateTime(required=True)


@notifications.event(part_of="Subscriber")
class SubscriberConfirmed:
    """A subscriber confirmed their email address and became eligible for notifications."""

    __version__ = 1

    subscriber_id: Identifier(required=True)
    email: String(required=True)
    confirmed_at: DateTime(required=True)


@notifications.event(part_of="Subscriber")
class SubscriberDeactivated:
    """A subscriber opted out of all notifications."""

    __version__ = 1

    subscriber_id: Identifier(required=True)
    email: String(required=True)
    deactivated_at: DateTime(required=True)


@notifications.event(part_of="Subscriber")
class SubscribedCategoriesChanged:
    """A subscriber changed the categories they want to hear about."""

    __version__ = 1

    subscriber_id: Identifier(required=True)
    subscribed_categories: Text()
    changed_at: DateTime(required=True)


@notifications.event(part_of="Subscriber")
class DeliveryChannelChanged:
    """A subscriber switched between email, webhook or both."""

    __version__ = 1

    subscriber_id: Identifier(required=True)
    notification_preference: String(required=True)
    webhook_url: String()
    changed_at: DateTime(required=True)
