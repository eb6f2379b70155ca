from datetime import UTC, datetime, timedelta

import pytest
from protean.integrations.pytest import DomainFixture


class FakeClock:
    """Manually advanced clock for the in-memory transport."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture(scope="session")
def notifications_bed():
    from notifications.domain import notifications

    bed = DomainFixture(notifications)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(notifications_bed):
    from notifications.channel import reset_channels
    from notifications.messaging import reset_transport
    from notifications.settings import get_settings

    with notifications_bed.domain_context():
        get_settings.cache_clear()
        reset_channels()
        reset_transport()

        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()

        reset_channels()
        reset_transport()
        get_settings.cache_clear()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def transport(clock):
    """In-memory transport installed as the process transport; abandoned messages return immediately."""
    from notifications.messaging import set_transport
    from notifications.messaging.memory import InMemoryQueueTransport

    queue = InMemoryQueueTransport(retry_delay=0, visibility_timeout=30, clock=clock)
    set_transport(queue)
    return queue


@pytest.fixture()
def email_adapter():
    from notifications.channel import EMAIL, get_channel

    return get_channel(EMAIL)


@pytest.fixture()
def webhook_adapter():
    from notifications.channel import WEBHOOK, get_channel

    return get_channel(WEBHOOK)
