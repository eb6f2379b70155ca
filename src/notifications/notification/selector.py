"""Subscriber selection — who hears about a new book in a category."""

import structlog
from notifications.subscriber.store import SubscriberStore
from notifications.subscriber.subscriber import Subscriber

logger = structlog.get_logger(__name__)


class SubscriberSelector:
    """Picks active, confirmed subscribers whose categories match (or who have none).

    Read-only; an empty result is a normal outcome.
    """

    def __init__(self, store: SubscriberStore | None = None):
        self.store = store or SubscriberStore()

    def select_for_category(self, category: str) -> list[Subscriber]:
        candidates = self.store.query_by_category(category, active_only=True, confirmed_only=True)

        selected = []
        seen = set()
        for subscriber in candidates:
            subscriber_id = str(subscriber.id)
            if subscriber_id in seen:
                continue
            if not (subscriber.is_eligible() and subscriber.is_interested_in(category)):
                continue
            seen.add(subscriber_id)
            selected.append(subscriber)

        logger.debug("Selected subscribers for category", category=category, count=len(selected))
        return selected
