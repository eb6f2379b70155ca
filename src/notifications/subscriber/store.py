"""Subscriber store — repository access with version-checked writes.

Every write to a persisted subscriber goes through ``update()``, which
surfaces Protean's optimistic-concurrency failure as
``ConcurrencyConflictError``. ``record_notification()`` builds the delivery
bookkeeping on top of that: re-read, reapply, retry on conflict.
"""

from datetime import UTC, datetime

import structlog
from notifications.errors import ConcurrencyConflictError
from notifications.settings import get_settings
from notifications.subscriber.subscriber import Subscriber
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

logger = structlog.get_logger(__name__)

_PAGE_SIZE = 500


class SubscriberStore:
    def __init__(self, max_conflict_retries: int | None = None):
        self.max_conflict_retries = (
            max_conflict_retries if max_conflict_retries is not None else get_settings().bookkeeping_max_conflicts
        )

    @property
    def _repo(self):
        return current_domain.repository_for(Subscriber)

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def get_by_id(self, subscriber_id) -> Subscriber | None:
        try:
            return self._repo.get(str(subscriber_id))
        except ObjectNotFoundError:
            return None

    def get_by_email(self, email) -> Subscriber | None:
        matches = self._repo._dao.query.filter(email=(email or "").strip().lower()).all().items
        return matches[0] if matches else None

    def query_by_category(self, category, active_only=True, confirmed_only=True) -> list[Subscriber]:
        """Subscribers interested in ``category``, including those with no category filter."""
        filters = {"is_active": True} if active_only else {}
        return [
            subscriber
            for subscriber in self._iter(**filters)
            if (not confirmed_only or subscriber.confirmed_at is not None) and subscriber.is_interested_in(category)
        ]

    def _iter(self, **filters):
        offset = 0
        while True:
            items = self._repo._dao.query.filter(**filters).offset(offset).limit(_PAGE_SIZE).all().items
            yield from items
            if len(items) < _PAGE_SIZE:
                return
            offset += _PAGE_SIZE

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def add(self, subscriber: Subscriber) -> Subscriber:
        """Persist a new subscriber."""
        if self.get_by_email(subscriber.email) is not None:
            raise ValidationError({"email": [f"A subscriber with email {subscriber.email} already exists"]})
        self._repo.add(subscriber)
        return subscriber

    def update(self, subscriber: Subscriber) -> Subscriber:
        """Write back a subscriber that was read from this store.

        Protean compares the aggregate ``_version`` the subscriber was loaded
        at against the stored one. Inside a unit of work the write, and so the
        check, is deferred to commit.

        Raises:
            ConcurrencyConflictError: another writer got there first.
            ObjectNotFoundError: the subscriber no longer exists.
        """
        expected_version = subscriber._version
        try:
            self._repo.add(subscriber)
        except ExpectedVersionError as exc:
            raise ConcurrencyConflictError(str(subscriber.id), expected_version, str(exc)) from exc
        return subscriber

    def record_notification(self, subscriber_id, at=None) -> Subscriber | None:
        """Increment the notification count and stamp the last notification time.

        Retries on version conflicts by re-reading and reapplying the delta.
        A subscriber that no longer exists is logged and skipped.
        """
        at = at or datetime.now(UTC)
        attempts = 0
        while True:
            subscriber = self.get_by_id(subscriber_id)
            if subscriber is None:
                logger.warning("Subscriber not found for bookkeeping", subscriber_id=str(subscriber_id))
                return None

            subscriber.record_notification(at)
            try:
                return self.update(subscriber)
            except ObjectNotFoundError:
                logger.warning("Subscriber removed during bookkeeping", subscriber_id=str(subscriber_id))
                return None
            except ConcurrencyConflictError as exc:
                attempts += 1
                if attempts > self.max_conflict_retries:
                    logger.error(
                        "Giving up on subscriber bookkeeping after repeated conflicts",
                        subscriber_id=str(subscriber_id),
                        attempts=attempts,
                    )
                    raise
                logger.debug(
                    "Subscriber bookkeeping conflict, retrying",
                    subscriber_id=str(subscriber_id),
                    expected_version=exc.expected_version,
                    attempt=attempts,
                )
