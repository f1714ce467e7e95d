"""
Unit tests for MongoDB document conversion and the catalog database manager.
"""

import pytest
from datetime import date, datetime
from unittest.mock import AsyncMock, MagicMock

from catalog.database import (
    CatalogDatabase,
    book_from_document,
    book_to_document,
    review_from_document,
    review_to_document,
    user_from_document,
    user_to_document,
)
from catalog.models import Assessment, Book, Genre, Review, Role, User, Writer


class TestDocumentConversion:
    """Test cases for entity/document conversion."""

    def test_book_document(self):
        book = Book(
            id=3,
            title="War and Peace",
            publication_date=date(1869, 1, 1),
            writer=Writer(id=1, name="Leo Tolstoy"),
            genres={Genre.FICTION, Genre.DRAMA},
            filename="x.png"
        )

        document = book_to_document(book)

        assert document["_id"] == 3
        assert document["publication_date"] == datetime(1869, 1, 1)
        assert document["writer"] == {"id": 1, "name": "Leo Tolstoy"}
        assert document["genres"] == ["DRAMA", "FICTION"]
        assert book_from_document(document) == book

    def test_review_document(self):
        review = Review(id=5, book_id=3, author_id=2, author_name="reader", assessment=Assessment.FOUR, content="Good")

        document = review_to_document(review)

        assert document["assessment"] == 4
        assert review_from_document(document) == review

    def test_user_document_without_token_omits_field(self):
        user = User(id=2, username="reader", roles={Role.USER})

        document = user_to_document(user)

        assert "api_token" not in document
        assert document["roles"] == ["USER"]
        assert user_from_document(document) == user


class TestCatalogDatabase:
    """Test cases for CatalogDatabase with mocked collections."""

    @pytest.fixture
    def db_manager(self):
        manager = CatalogDatabase("mongodb://localhost:27017", "test_catalog")
        manager.database = MagicMock()
        manager.database.counters.find_one_and_update = AsyncMock(return_value={"_id": "books", "seq": 7})
        manager.database.books.insert_one = AsyncMock()
        manager.database.books.replace_one = AsyncMock()
        manager.database.books.find_one = AsyncMock(return_value=None)
        manager.database.books.delete_one = AsyncMock()
        manager.database.reviews.delete_many = AsyncMock(return_value=MagicMock(deleted_count=2))
        return manager

    @pytest.mark.asyncio
    async def test_save_new_book_allocates_id(self, db_manager):
        book = Book(title="War and Peace", writer=Writer(id=1, name="Leo Tolstoy"), publication_date=date(1869, 1, 1))

        saved = await db_manager.save_book(book)

        assert saved.id == 7
        assert book.id is None
        inserted = db_manager.database.books.insert_one.call_args[0][0]
        assert inserted["_id"] == 7
        db_manager.database.books.replace_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_save_existing_book_replaces(self, db_manager):
        book = Book(id=4, title="War and Peace")

        await db_manager.save_book(book)

        db_manager.database.books.replace_one.assert_called_once()
        assert db_manager.database.books.replace_one.call_args[0][0] == {"_id": 4}
        db_manager.database.counters.find_one_and_update.assert_not_called()

    @pytest.mark.asyncio
    async def test_find_book_queries_identity(self, db_manager):
        assert await db_manager.find_book("War and Peace", 1, date(1869, 1, 1)) is None

        db_manager.database.books.find_one.assert_called_once_with({
            "title": "War and Peace",
            "writer.id": 1,
            "publication_date": datetime(1869, 1, 1),
        })

    @pytest.mark.asyncio
    async def test_delete_book_cascades_reviews(self, db_manager):
        await db_manager.delete_book(Book(id=4, title="War and Peace"))

        db_manager.database.reviews.delete_many.assert_called_once_with({"book_id": 4})
        db_manager.database.books.delete_one.assert_called_once_with({"_id": 4})
