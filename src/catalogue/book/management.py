"""Book management — commands and handler for adding, updating and removing books."""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Date, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from catalogue.book.book import Book, normalize_isbn
from catalogue.domain import catalogue


@catalogue.command(part_of="Book")
class AddBook:
    title: String(required=True, max_length=300)
    author: String(required=True, max_length=200)
    isbn: String(required=True, max_length=17)
    category: String(required=True, max_length=100)
    price: Float(required=True)
    description: Text()
    publisher: String(max_length=200)
    published_on: Date()
    page_count: Integer()
    cover_image_url: String(max_length=500)
    stock_quantity: Integer(default=0)
    tags: Text()  # JSON list


@catalogue.command(part_of="Book")
class UpdateBookDetails:
    book_id: Identifier(required=True)
    title: String(max_length=300)
    author: String(max_length=200)
    description: Text()
    price: Float()
    publisher: String(max_length=200)
    published_on: Date()
    page_count: Integer()
    cover_image_url: String(max_length=500)
    stock_quantity: Integer()


@catalogue.command(part_of="Book")
class RemoveBook:
    book_id: Identifier(required=True)


@catalogue.command_handler(part_of=Book)
class ManageBooksHandler:
    @handle(AddBook)
    def add_book(self, command):
        repo = current_domain.repository_for(Book)

        isbn = normalize_isbn(command.isbn)
        if repo._dao.query.filter(isbn=isbn).all().items:
            raise ValidationError({"isbn": [f"A book with ISBN {isbn} already exists"]})

        book = Book.create(
            title=command.title,
            author=command.author,
            isbn=command.isbn,
            category=command.category,
            price=command.price,
            description=command.description,
            publisher=command.publisher,
            published_on=command.published_on,
            page_count=command.page_count,
            cover_image_url=command.cover_image_url,
            stock_quantity=command.stock_quantity,
            tags=_parse_tags(command.tags),
        )
        repo.add(book)
        return str(book.id)

    @handle(UpdateBookDetails)
    def update_book_details(self, command):
        repo = current_domain.repository_for(Book)
        book = repo.get(command.book_id)
        book.update_details(
            title=command.title,
            author=command.author,
            description=command.description,
            price=command.price,
            publisher=command.publisher,
            published_on=command.published_on,
            page_count=command.page_count,
            cover_image_url=command.cover_image_url,
            stock_quantity=command.stock_quantity,
        )
        repo.add(book)

    @handle(RemoveBook)
    def remove_book(self, command):
        repo = current_domain.repository_for(Book)
        book = repo.get(command.book_id)
        book.remove()
        repo.add(book)


def _parse_tags(raw):
    if not raw:
        return []
    try:
        tags = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        raise ValidationError({"tags": ["Tags must be a JSON list of strings"]}) from None
    if not isinstance(tags, list):
        raise ValidationError({"tags": ["Tags must be a JSON list of strings"]})
    return [str(t) for t in tags]
