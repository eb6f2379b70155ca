"""Tests for the Book aggregate — creation, details updates and removal."""

import json

import pytest
from catalogue.book.book import Book, normalize_isbn
from catalogue.book.events import BookAdded, BookDetailsUpdated, BookRemoved
from protean.exceptions import ValidationError


def _book(**overrides):
    defaults = {
        "title": "The Long Way",
        "author": "A. Author",
        "isbn": "978-0-00-000000-1",
        "category": "Fiction",
        "price": 12.5,
        "stock_quantity": 3,
    }
    defaults.update(overrides)
    return Book.create(**defaults)


class TestNormalizeIsbn:
    def test_strips_hyphens_and_spaces(self):
        assert normalize_isbn("978-0 00-000000-1") == "9780000000001"

    def test_uppercases_check_digit(self):
        assert normalize_isbn("0-00-000000-x") == "000000000X"


class TestCreateBook:
    def test_create(self):
        book = _book()
        assert book.isbn == "9780000000001"
        assert book.category == "Fiction"
        assert book.is_available is True
        assert book.removed_at is None

    def test_raises_book_added(self):
        book = _book(description="A novel.")
        assert len(book._events) == 1
        event = book._events[0]
        assert isinstance(event, BookAdded)
        assert event.book_id == book.id
        assert event.category == "Fiction"
        assert event.description == "A novel."
        assert event.price == 12.5

    def test_out_of_stock_is_unavailable(self):
        assert _book(stock_quantity=0).is_available is False

    def test_tags(self):
        assert _book(tags=["award", "debut"]).get_tags() == ["award", "debut"]

    def test_invalid_isbn_rejected(self):
        with pytest.raises(ValidationError):
            _book(isbn="12345")

    def test_blank_category_rejected(self):
        with pytest.raises(ValidationError):
            _book(category="   ")

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            _book(price=-1.0)


class TestUpdateDetails:
    def test_reports_changed_fields(self):
        book = _book()
        book._events.clear()

        changed = book.update_details(title="The Longer Way", price=15.0, author="A. Author")

        assert changed == ["title", "price"]
        assert book.title == "The Longer Way"
        [event] = book._events
        assert isinstance(event, BookDetailsUpdated)
        assert json.loads(event.updated_fields) == ["title", "price"]
        assert event.category == "Fiction"

    def test_no_change_raises_no_event(self):
        book = _book()
        book._events.clear()
        assert book.update_details(title="The Long Way", price=None) == []
        assert book._events == []

    def test_stock_change_updates_availability(self):
        book = _book(stock_quantity=0)
        book.update_details(stock_quantity=4)
        assert book.is_available is True

    def test_category_cannot_change(self):
        with pytest.raises(ValidationError):
            _book().update_details(category="Poetry")

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            _book().update_details(colour="red")

    def test_removed_book_cannot_be_updated(self):
        book = _book()
        book.remove()
        with pytest.raises(ValidationError):
            book.update_details(title="Again")


class TestRemove:
    def test_remove(self):
        book = _book()
        book._events.clear()

        book.remove()

        assert book.removed_at is not None
        assert book.is_available is False
        [event] = book._events
        assert isinstance(event, BookRemoved)
        assert event.category == "Fiction"

    def test_remove_twice_rejected(self):
        book = _book()
        book.remove()
        with pytest.raises(ValidationError):
            book.remove()
