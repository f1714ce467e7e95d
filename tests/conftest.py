"""
Pytest configuration and shared fixtures.
"""

from collections import defaultdict
from datetime import date
from io import BytesIO
from typing import Dict, List, Optional

import pytest
from PIL import Image
from pymongo.errors import DuplicateKeyError
from starlette.datastructures import UploadFile

from catalog.models import Book, Genre, Review, Role, User, Writer
from catalog.posters import PosterStorage


class InMemoryCatalogStore:
    """
    In-memory stand-in for CatalogDatabase.

    Honours the same unique constraints as the MongoDB indexes by raising
    DuplicateKeyError, and hands out copies so callers never share state
    with the store.
    """

    def __init__(self):
        self.books: Dict[int, Book] = {}
        self.writers: Dict[int, Writer] = {}
        self.reviews: Dict[int, Review] = {}
        self.users: Dict[int, User] = {}
        self._counters = defaultdict(int)

    def _next_id(self, sequence: str) -> int:
        self._counters[sequence] += 1
        return self._counters[sequence]

    @staticmethod
    def _book_identity(book: Book):
        return book.title, book.writer.id if book.writer else None, book.publication_date

    # Books

    async def get_book(self, book_id: int) -> Optional[Book]:
        book = self.books.get(book_id)
        return book.model_copy(deep=True) if book else None

    async def find_book(self, title, writer_id, publication_date) -> Optional[Book]:
        for book in self.books.values():
            if self._book_identity(book) == (title, writer_id, publication_date):
                return book.model_copy(deep=True)
        return None

    async def list_books(self) -> List[Book]:
        return [self.books[book_id].model_copy(deep=True) for book_id in sorted(self.books)]

    async def save_book(self, book: Book) -> Book:
        for other in self.books.values():
            if other.id != book.id and self._book_identity(other) == self._book_identity(book):
                raise DuplicateKeyError("E11000 duplicate key error index: book_identity")
        if book.id is None:
            book = book.model_copy(update={"id": self._next_id("books")})
        self.books[book.id] = book.model_copy(deep=True)
        return book

    async def delete_book(self, book: Book) -> None:
        for review_id in [rid for rid, review in self.reviews.items() if review.book_id == book.id]:
            del self.reviews[review_id]
        self.books.pop(book.id, None)

    # Writers

    async def get_writer(self, writer_id: int) -> Optional[Writer]:
        writer = self.writers.get(writer_id)
        return writer.model_copy() if writer else None

    async def list_writers(self) -> List[Writer]:
        return sorted((w.model_copy() for w in self.writers.values()), key=lambda w: w.name)

    async def save_writer(self, writer: Writer) -> Writer:
        if writer.id is None:
            writer = writer.model_copy(update={"id": self._next_id("writers")})
        self.writers[writer.id] = writer.model_copy()
        return writer

    # Reviews

    async def get_review(self, review_id: int) -> Optional[Review]:
        review = self.reviews.get(review_id)
        return review.model_copy(deep=True) if review else None

    async def find_review(self, book_id: int, author_id: int) -> Optional[Review]:
        for review in self.reviews.values():
            if review.book_id == book_id and review.author_id == author_id:
                return review.model_copy(deep=True)
        return None

    async def list_book_reviews(self, book_id: int) -> List[Review]:
        return [
            self.reviews[review_id].model_copy(deep=True)
            for review_id in sorted(self.reviews)
            if self.reviews[review_id].book_id == book_id
        ]

    async def save_review(self, review: Review) -> Review:
        for other in self.reviews.values():
            if other.id != review.id and (other.book_id, other.author_id) == (review.book_id, review.author_id):
                raise DuplicateKeyError("E11000 duplicate key error index: one_review_per_user")
        if review.id is None:
            review = review.model_copy(update={"id": self._next_id("reviews")})
        self.reviews[review.id] = review.model_copy(deep=True)
        return review

    async def delete_review(self, review: Review) -> None:
        self.reviews.pop(review.id, None)

    # Users

    async def get_user(self, user_id: int) -> Optional[User]:
        user = self.users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def get_user_by_token(self, api_token: str) -> Optional[User]:
        for user in self.users.values():
            if user.api_token == api_token:
                return user.model_copy(deep=True)
        return None

    async def list_users(self) -> List[User]:
        return sorted((u.model_copy(deep=True) for u in self.users.values()), key=lambda u: u.username)

    async def save_user(self, user: User) -> User:
        for other in self.users.values():
            if other.id != user.id and other.username == user.username:
                raise DuplicateKeyError("E11000 duplicate key error index: username")
        if user.id is None:
            user = user.model_copy(update={"id": self._next_id("users")})
        self.users[user.id] = user.model_copy(deep=True)
        return user

    # Synchronous seeding helpers for fixtures

    def seed_writer(self, name: str) -> Writer:
        writer = Writer(id=self._next_id("writers"), name=name)
        self.writers[writer.id] = writer
        return writer.model_copy()

    def seed_user(self, username: str, roles=None, api_token: Optional[str] = None) -> User:
        user = User(
            id=self._next_id("users"),
            username=username,
            roles=roles or {Role.USER},
            api_token=api_token or f"lc_{username}_token"
        )
        self.users[user.id] = user
        return user.model_copy(deep=True)

    def seed_book(self, title: str, writer: Writer, publication_date: date, genres=None, filename="poster.png") -> Book:
        book = Book(
            id=self._next_id("books"),
            title=title,
            publication_date=publication_date,
            writer=writer,
            genres=genres or {Genre.FICTION},
            filename=filename
        )
        self.books[book.id] = book
        return book.model_copy(deep=True)

    def seed_review(self, book: Book, author: User, assessment, content: str) -> Review:
        review = Review(
            id=self._next_id("reviews"),
            book_id=book.id,
            author_id=author.id,
            author_name=author.username,
            assessment=assessment,
            content=content
        )
        self.reviews[review.id] = review
        return review.model_copy(deep=True)


@pytest.fixture
def store():
    """Empty in-memory catalog store."""
    return InMemoryCatalogStore()


@pytest.fixture
def writer(store):
    return store.seed_writer("Leo Tolstoy")


@pytest.fixture
def admin_user(store):
    return store.seed_user("admin", roles={Role.USER, Role.ADMIN})


@pytest.fixture
def reader(store):
    return store.seed_user("reader")


@pytest.fixture
def other_reader(store):
    return store.seed_user("other_reader")


@pytest.fixture
def poster_storage(tmp_path):
    """Poster storage writing into a temporary directory."""
    return PosterStorage(tmp_path / "posters", max_size=1024 * 1024)


@pytest.fixture
def png_bytes():
    """A tiny valid PNG image."""
    buffer = BytesIO()
    Image.new("RGB", (2, 2), color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def make_upload():
    """Factory for uploaded files."""
    def _make(content: bytes, filename: Optional[str] = "poster.png") -> UploadFile:
        return UploadFile(file=BytesIO(content), filename=filename)
    return _make
