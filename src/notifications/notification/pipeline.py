"""Wiring for the two halves of the pipeline, sharing the process-wide transport."""

from notifications.book.listing import BookStore
from notifications.messaging import get_transport
from notifications.messaging.client import MessageQueueClient
from notifications.notification.consumer import DeliveryConsumer
from notifications.notification.delivery import DeliveryExecutor
from notifications.notification.fanout import FanOutOrchestrator
from notifications.notification.selector import SubscriberSelector
from notifications.settings import get_settings
from notifications.subscriber.store import SubscriberStore


def build_fanout() -> FanOutOrchestrator:
    store = SubscriberStore()
    return FanOutOrchestrator(
        book_store=BookStore(),
        selector=SubscriberSelector(store),
        queue_client=MessageQueueClient(get_transport()),
    )


def build_consumer(domain=None) -> DeliveryConsumer:
    settings = get_settings()
    return DeliveryConsumer(
        executor=DeliveryExecutor(SubscriberStore(settings.bookkeeping_max_conflicts)),
        transport=get_transport(),
        settings=settings,
        domain=domain,
    )
