"""
Unit tests for the book catalog service.
Tests form completeness, poster checks and the uniqueness rule.
"""

import pytest
from datetime import date
from unittest.mock import AsyncMock

from pymongo.errors import DuplicateKeyError

from catalog.book_service import (
    GENRES_ERROR,
    POSTER_ERROR,
    PUBLICATION_DATE_ERROR,
    WRITER_ERROR,
    BookService,
)
from catalog.models import Assessment, Book, BookForm, Genre
from catalog.validation import ValidationContext, bind_form


@pytest.fixture
def book_service(store, poster_storage):
    return BookService(store, poster_storage)


def make_book(writer, title="War and Peace", publication_date=date(1869, 1, 1), genres=None, filename="a.poster.png"):
    return Book(
        title=title,
        publication_date=publication_date,
        writer=writer,
        genres=genres or {Genre.FICTION, Genre.DRAMA},
        filename=filename
    )


class TestValidateBookForm:
    """Test cases for book form completeness."""

    def test_complete_form(self, writer):
        context = ValidationContext()

        assert BookService.validate_book_form({Genre.FICTION}, writer, date(1869, 1, 1), context)
        assert context.is_valid

    def test_all_missing_fields_reported_together(self):
        context = ValidationContext()

        assert not BookService.validate_book_form(set(), None, None, context)
        assert context.errors == {
            "genres": GENRES_ERROR,
            "selected_writer": WRITER_ERROR,
            "publication_date": PUBLICATION_DATE_ERROR,
        }

    def test_missing_genres_only(self, writer):
        context = ValidationContext()

        assert not BookService.validate_book_form(set(), writer, date(1869, 1, 1), context)
        assert list(context.errors) == ["genres"]

    def test_missing_date_reported_with_blank_title(self):
        context = ValidationContext()
        book_form = bind_form(BookForm, {"title": " ", "publication_date": ""}, context)

        assert not BookService.validate_book_form(set(), None, book_form.publication_date, context)
        assert set(context.errors) == {"title", "genres", "selected_writer", "publication_date"}
        assert context.errors["publication_date"] == PUBLICATION_DATE_ERROR

    def test_binding_errors_fail_the_form(self, writer):
        context = ValidationContext()
        context.has_binding_errors = True
        context.add_error("title", "Please, fill the book title")

        assert not BookService.validate_book_form({Genre.FICTION}, writer, date(1869, 1, 1), context)


class TestValidatePoster:
    """Test cases for poster validation."""

    @pytest.mark.asyncio
    async def test_image_poster(self, book_service, make_upload, png_bytes):
        context = ValidationContext()

        assert await book_service.validate_poster(make_upload(png_bytes), context)
        assert context.is_valid

    @pytest.mark.asyncio
    async def test_missing_poster(self, book_service):
        context = ValidationContext()

        assert not await book_service.validate_poster(None, context)
        assert context.errors == {"poster_file": POSTER_ERROR}

    @pytest.mark.asyncio
    async def test_poster_without_name(self, book_service, make_upload, png_bytes):
        context = ValidationContext()

        assert not await book_service.validate_poster(make_upload(png_bytes, filename=""), context)
        assert context.errors == {"poster_file": POSTER_ERROR}

    @pytest.mark.asyncio
    async def test_poster_that_is_not_an_image(self, book_service, make_upload):
        context = ValidationContext()

        assert not await book_service.validate_poster(make_upload(b"plain text", "poster.png"), context)
        assert "poster_file" in context.errors


class TestAddNewBook:
    """Test cases for adding books."""

    @pytest.mark.asyncio
    async def test_round_trip(self, book_service, store, writer):
        book = make_book(writer, genres={Genre.FICTION, Genre.DRAMA})

        assert await book_service.add_new_book(book)

        stored = await store.get_book(book.id)
        assert stored.genres == {Genre.FICTION, Genre.DRAMA}
        assert stored.writer == writer
        assert stored.publication_date == date(1869, 1, 1)

    @pytest.mark.asyncio
    async def test_duplicate_book_rejected(self, book_service, store, writer):
        assert await book_service.add_new_book(make_book(writer, filename="first.png"))

        assert not await book_service.add_new_book(make_book(writer, filename="second.png"))

        books = await store.list_books()
        assert len(books) == 1
        assert books[0].filename == "first.png"

    @pytest.mark.asyncio
    async def test_same_title_other_date_is_a_new_book(self, book_service, store, writer):
        assert await book_service.add_new_book(make_book(writer))
        assert await book_service.add_new_book(make_book(writer, publication_date=date(1870, 1, 1)))

        assert len(await store.list_books()) == 2

    @pytest.mark.asyncio
    async def test_unique_index_catches_concurrent_insert(self, poster_storage, writer):
        database = AsyncMock()
        database.find_book.return_value = None
        database.save_book.side_effect = DuplicateKeyError("E11000 duplicate key error")
        service = BookService(database, poster_storage)

        assert not await service.add_new_book(make_book(writer))


class TestUpdateBook:
    """Test cases for editing books."""

    @pytest.mark.asyncio
    async def test_update_without_poster_keeps_filename(self, book_service, store, writer):
        current = store.seed_book("War and Peace", writer, date(1869, 1, 1), filename="old.png")
        edited = make_book(writer, title="War & Peace", genres={Genre.HISTORY}, filename=None)

        assert await book_service.update_book(current, edited)

        stored = await store.get_book(current.id)
        assert stored.title == "War & Peace"
        assert stored.genres == {Genre.HISTORY}
        assert stored.filename == "old.png"

    @pytest.mark.asyncio
    async def test_update_with_poster_replaces_filename(self, book_service, store, writer):
        current = store.seed_book("War and Peace", writer, date(1869, 1, 1), filename="old.png")

        assert await book_service.update_book(current, make_book(writer, filename="new.png"))

        assert (await store.get_book(current.id)).filename == "new.png"

    @pytest.mark.asyncio
    async def test_update_colliding_with_other_book(self, book_service, store, writer):
        store.seed_book("Anna Karenina", writer, date(1878, 1, 1))
        current = store.seed_book("War and Peace", writer, date(1869, 1, 1))

        edited = make_book(writer, title="Anna Karenina", publication_date=date(1878, 1, 1))

        assert not await book_service.update_book(current, edited)
        assert (await store.get_book(current.id)).title == "War and Peace"


class TestDeleteBook:
    """Test cases for deleting books."""

    @pytest.mark.asyncio
    async def test_delete_removes_reviews(self, book_service, store, writer, reader):
        book = store.seed_book("War and Peace", writer, date(1869, 1, 1))
        store.seed_review(book, reader, Assessment.FIVE, "Long but worth it")

        await book_service.delete_book(book)

        assert await store.get_book(book.id) is None
        assert await store.list_book_reviews(book.id) == []


class TestGenreSelection:
    """Test cases for genre checkbox parsing."""

    def test_selected_genres(self):
        form = {"title": "War and Peace", "FICTION": "on", "HISTORY": "on", "selected_writer": "1"}

        assert BookService.get_selected_genres_from_form(form) == {Genre.FICTION, Genre.HISTORY}
