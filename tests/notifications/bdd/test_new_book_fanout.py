"""BDD tests for the new-book fan-out."""

from notifications.notification.message import NotificationMessage
from notifications.subscriber.store import SubscriberStore
from pytest_bdd import parsers, scenarios, then

scenarios("features/new_book_fanout.feature")


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("{count:d} notification message is enqueued"))
def enqueued_count(transport, fanout, count):
    assert fanout["count"] == count
    assert len(transport.pending()) == count


@then(parsers.cfparse('a notification message is enqueued for "{email}"'))
def enqueued_for(transport, email):
    subscriber = SubscriberStore().get_by_email(email)
    messages = [NotificationMessage.from_json(m.body) for m in transport.pending()]
    assert str(subscriber.id) in {m.subscriber_id for m in messages}
