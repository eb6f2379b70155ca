"""Application tests for book management handlers."""

import pytest
from catalogue.book.book import Book
from catalogue.book.management import AddBook, RemoveBook, UpdateBookDetails
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain


def _add_book(**overrides):
    defaults = {
        "title": "The Long Way",
        "author": "A. Author",
        "isbn": "9780000000001",
        "category": "Fiction",
        "price": 12.5,
        "stock_quantity": 2,
    }
    defaults.update(overrides)
    return current_domain.process(AddBook(**defaults), asynchronous=False)


class TestAddBookHandler:
    def test_add_book(self):
        book_id = _add_book(tags='["debut"]')

        book = current_domain.repository_for(Book).get(book_id)
        assert book.title == "The Long Way"
        assert book.category == "Fiction"
        assert book.get_tags() == ["debut"]

    def test_duplicate_isbn_rejected(self):
        _add_book()
        with pytest.raises(ValidationError):
            _add_book(isbn="978-0-00-000000-1", title="Another")

    def test_malformed_tags_rejected(self):
        with pytest.raises(ValidationError):
            _add_book(tags="debut")


class TestUpdateBookDetailsHandler:
    def test_update(self):
        book_id = _add_book()

        current_domain.process(UpdateBookDetails(book_id=book_id, price=9.99), asynchronous=False)

        book = current_domain.repository_for(Book).get(book_id)
        assert book.price == 9.99
        assert book.title == "The Long Way"

    def test_unknown_book(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(UpdateBookDetails(book_id="missing", price=1.0), asynchronous=False)


class TestRemoveBookHandler:
    def test_remove(self):
        book_id = _add_book()

        current_domain.process(RemoveBook(book_id=book_id), asynchronous=False)

        book = current_domain.repository_for(Book).get(book_id)
        assert book.removed_at is not None
        assert book.is_available is False
