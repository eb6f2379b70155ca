"""Shared BDD fixtures and step definitions for new-book notifications."""

import pytest
from notifications.book.listing import BookStore
from notifications.notification.fanout import FanOutOrchestrator
from notifications.subscriber.store import SubscriberStore
from notifications.subscriber.subscriber import Subscriber
from pytest_bdd import given, parsers, then, when


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def fanout():
    """Container for the fan-out outcome."""
    return {"count": None, "exc": None}


def _subscriber(email):
    return SubscriberStore().get_by_email(email)


def _add_subscriber(email, categories, active=True, confirmed=True, **kwargs):
    subscriber = Subscriber.register(
        email=email,
        name=email.split("@")[0],
        subscribed_categories=categories,
        **kwargs,
    )
    if confirmed:
        subscriber.confirm()
    if not active:
        subscriber.deactivate()
    return SubscriberStore().add(subscriber)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a "{category}" book "{book_id}" titled "{title}"'))
def book_in_category(category, book_id, title):
    BookStore().upsert(
        book_id,
        category=category,
        title=title,
        author="A. Author",
        isbn="9780000000001",
        price=12.5,
    )


@given(parsers.cfparse('an active confirmed subscriber "{email}" interested in "{category}"'))
def confirmed_subscriber(email, category):
    _add_subscriber(email, [category])


@given(parsers.cfparse('an active confirmed subscriber "{email}" interested in every category'))
def subscriber_for_everything(email):
    _add_subscriber(email, [])


@given(parsers.cfparse('an inactive subscriber "{email}" interested in "{category}"'))
def inactive_subscriber(email, category):
    _add_subscriber(email, [category], active=False)


@given(parsers.cfparse('an unconfirmed subscriber "{email}" interested in "{category}"'))
def unconfirmed_subscriber(email, category):
    _add_subscriber(email, [category], confirmed=False)


@given(parsers.cfparse('a confirmed subscriber "{email}" who prefers "{preference}" for "{category}"'))
def subscriber_with_preference(email, category, preference):
    _add_subscriber(email, [category], notification_preference=preference)


@given(parsers.cfparse('email delivery fails with "{reason}"'))
def email_delivery_fails(email_adapter, reason):
    email_adapter.configure(should_succeed=False, failure_reason=reason)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the book "{book_id}" is announced in "{category}"'))
def announce_book(transport, fanout, book_id, category):
    fanout["count"] = FanOutOrchestrator().notify_subscribers(book_id, category)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the notification count of "{email}" is {count:d}'))
def notification_count(email, count):
    assert _subscriber(email).notification_count == count
