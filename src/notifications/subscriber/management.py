"""Subscriber management commands + handlers — sign-up, confirmation and preferences."""

import json

from notifications.domain import notifications
from notifications.subscriber.store import SubscriberStore
from notifications.subscriber.subscriber import Subscriber
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.mixins import handle


@notifications.command(part_of="Subscriber")
class RegisterSubscriber:
    """Sign a reader up for new-title notifications."""

    email: String(required=True, max_length=254)
    name: String(required=True, max_length=200)
    subscribed_categories: Text()  # JSON list; empty or missing means all categories
    notification_preference: String(max_length=20, default="Email")
    webhook_url: String(max_length=500)


@notifications.command(part_of="Subscriber")
class ConfirmSubscriber:
    """Mark a subscriber's email address as confirmed."""

    subscriber_id: Identifier(required=True)


@notifications.command(part_of="Subscriber")
class DeactivateSubscriber:
    """Stop all notifications to a subscriber."""

    subscriber_id: Identifier(required=True)


@notifications.command(part_of="Subscriber")
class ChangeSubscribedCategories:
    """Replace the categories a subscriber hears about."""

    subscriber_id: Identifier(required=True)
    subscribed_categories: Text()  # JSON list


@notifications.command(part_of="Subscriber")
class ChangeDeliveryChannel:
    """Switch a subscriber between email, webhook and both."""

    subscriber_id: Identifier(required=True)
    notification_preference: String(required=True, max_length=20)
    webhook_url: String(max_length=500)


def _parse_categories(raw) -> list[str]:
    if not raw:
        return []
    try:
        categories = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        raise ValidationError({"subscribed_categories": ["Categories must be a JSON list of strings"]}) from None
    if not isinstance(categories, list):
        raise ValidationError({"subscribed_categories": ["Categories must be a JSON list of strings"]})
    return categories


def _load(store: SubscriberStore, subscriber_id) -> Subscriber:
    subscriber = store.get_by_id(subscriber_id)
    if subscriber is None:
        raise ObjectNotFoundError(f"Subscriber {subscriber_id} not found")
    return subscriber


@notifications.command_handler(part_of=Subscriber)
class ManageSubscribersHandler:
    @handle(RegisterSubscriber)
    def register_subscriber(self, command: RegisterSubscriber):
        subscriber = Subscriber.register(
            email=command.email,
            name=command.name,
            subscribed_categories=_parse_categories(command.subscribed_categories),
            notification_preference=command.notification_preference,
            webhook_url=command.webhook_url,
        )
        SubscriberStore().add(subscriber)
        return str(subscriber.id)

    @handle(ConfirmSubscriber)
    def confirm_subscriber(self, command: ConfirmSubscriber):
        store = SubscriberStore()
        subscriber = _load(store, command.subscriber_id)
        subscriber.confirm()
        store.update(subscriber)

    @handle(DeactivateSubscriber)
    def deactivate_subscriber(self, command: DeactivateSubscriber):
        store = SubscriberStore()
        subscriber = _load(store, command.subscriber_id)
        subscriber.deactivate()
        store.update(subscriber)

    @handle(ChangeSubscribedCategories)
    def change_subscribed_categories(self, command: ChangeSubscribedCategories):
        store = SubscriberStore()
        subscriber = _load(store, command.subscriber_id)
        subscriber.change_categories(_parse_categories(command.subscribed_categories))
        store.update(subscriber)

    @handle(ChangeDeliveryChannel)
    def change_delivery_channel(self, command: ChangeDeliveryChannel):
        store = SubscriberStore()
        subscriber = _load(store, command.subscriber_id)
        subscriber.change_delivery_channel(command.notification_preference, command.webhook_url)
        store.update(subscriber)
