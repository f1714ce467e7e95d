"""
MongoDB database utilities for async operations.
Handles connection, indexing and CRUD operations for books, writers, reviews and users.

Uniqueness of books (title, writer, publication date) and reviews (book, author)
is enforced by unique indexes, so concurrent inserts cannot both succeed. Every
save raises DuplicateKeyError when a unique index rejects the write.
"""

from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import ConnectionFailure

from .models import Book, Review, User, Writer

logger = structlog.get_logger(__name__)


def _date_to_storage(value: Optional[date]) -> Optional[datetime]:
    # BSON has no date-only type
    if value is None:
        return None
    return datetime.combine(value, time.min)


def _date_from_storage(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date()
    return value


def book_to_document(book: Book) -> Dict[str, Any]:
    """Convert a Book to a MongoDB document."""
    return {
        "_id": book.id,
        "title": book.title,
        "publication_date": _date_to_storage(book.publication_date),
        "writer": {"id": book.writer.id, "name": book.writer.name} if book.writer else None,
        "genres": sorted(genre.value for genre in book.genres),
        "filename": book.filename,
    }


def book_from_document(document: Dict[str, Any]) -> Book:
    """Convert a MongoDB document to a Book."""
    document = dict(document)
    document["id"] = document.pop("_id")
    document["publication_date"] = _date_from_storage(document.get("publication_date"))
    return Book(**document)


def review_to_document(review: Review) -> Dict[str, Any]:
    """Convert a Review to a MongoDB document."""
    return {
        "_id": review.id,
        "book_id": review.book_id,
        "author_id": review.author_id,
        "author_name": review.author_name,
        "assessment": review.assessment.value if review.assessment is not None else None,
        "content": review.content,
        "created_at": review.created_at,
    }


def review_from_document(document: Dict[str, Any]) -> Review:
    """Convert a MongoDB document to a Review."""
    document = dict(document)
    document["id"] = document.pop("_id")
    return Review(**document)


def user_to_document(user: User) -> Dict[str, Any]:
    """Convert a User to a MongoDB document."""
    document = {
        "_id": user.id,
        "username": user.username,
        "roles": sorted(role.value for role in user.roles),
    }
    # Sparse unique index: users without a token must omit the field
    if user.api_token:
        document["api_token"] = user.api_token
    return document


def user_from_document(document: Dict[str, Any]) -> User:
    """Convert a MongoDB document to a User."""
    document = dict(document)
    document["id"] = document.pop("_id")
    return User(**document)


def writer_from_document(document: Dict[str, Any]) -> Writer:
    """Convert a MongoDB document to a Writer."""
    return Writer(id=document["_id"], name=document["name"])


class CatalogDatabase:
    """
    Async MongoDB manager for catalog data.
    Acts as the entity resolver and persistence store for the services.
    """

    def __init__(self, connection_url: str, database_name: str):
        """
        Initialize catalog database manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None

    async def connect(self) -> None:
        """Establish connection to MongoDB and create indexes."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url)
            self.database = self.client[self.database_name]

            # Test connection
            await self.client.admin.command('ping')
            logger.info("Successfully connected to MongoDB", database=self.database_name)

            await self._create_indexes()

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """
        Create unique indexes backing the catalog invariants,
        plus lookup indexes for the common listing queries.
        """
        try:
            await self.database.books.create_index(
                [("title", ASCENDING), ("writer.id", ASCENDING), ("publication_date", ASCENDING)],
                unique=True,
                name="book_identity"
            )
            await self.database.reviews.create_index(
                [("book_id", ASCENDING), ("author_id", ASCENDING)],
                unique=True,
                name="one_review_per_user"
            )
            await self.database.users.create_index("username", unique=True)
            await self.database.users.create_index("api_token", unique=True, sparse=True)
            await self.database.writers.create_index("name")

            logger.info("Successfully created MongoDB indexes")

        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    async def _next_id(self, sequence: str) -> int:
        """Allocate the next numeric identity from an atomic counter."""
        counter = await self.database.counters.find_one_and_update(
            {"_id": sequence},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
        return counter["seq"]

    # Books

    async def get_book(self, book_id: int) -> Optional[Book]:
        """Retrieve a book by id, or None if absent."""
        document = await self.database.books.find_one({"_id": book_id})
        return book_from_document(document) if document else None

    async def find_book(self, title: str, writer_id: Optional[int], publication_date: Optional[date]) -> Optional[Book]:
        """Find the book with the given identity triple."""
        document = await self.database.books.find_one({
            "title": title,
            "writer.id": writer_id,
            "publication_date": _date_to_storage(publication_date),
        })
        return book_from_document(document) if document else None

    async def list_books(self) -> List[Book]:
        """Retrieve all books in insertion order."""
        cursor = self.database.books.find({}).sort("_id", ASCENDING)
        return [book_from_document(document) async for document in cursor]

    async def save_book(self, book: Book) -> Book:
        """
        Insert a new book or replace an existing one.

        Returns:
            The saved book, carrying its id

        Raises:
            DuplicateKeyError: If another book has the same identity
        """
        if book.id is None:
            book = book.copy(update={"id": await self._next_id("books")})
            await self.database.books.insert_one(book_to_document(book))
            logger.debug("Inserted book", book_id=book.id, title=book.title)
        else:
            await self.database.books.replace_one({"_id": book.id}, book_to_document(book))
            logger.debug("Replaced book", book_id=book.id, title=book.title)
        return book

    async def delete_book(self, book: Book) -> None:
        """Delete a book together with its reviews."""
        result = await self.database.reviews.delete_many({"book_id": book.id})
        await self.database.books.delete_one({"_id": book.id})
        logger.debug("Deleted book", book_id=book.id, reviews_deleted=result.deleted_count)

    # Writers

    async def get_writer(self, writer_id: int) -> Optional[Writer]:
        """Retrieve a writer by id, or None if absent."""
        document = await self.database.writers.find_one({"_id": writer_id})
        return writer_from_document(document) if document else None

    async def list_writers(self) -> List[Writer]:
        """Retrieve all writers sorted by name."""
        cursor = self.database.writers.find({}).sort("name", ASCENDING)
        return [writer_from_document(document) async for document in cursor]

    async def save_writer(self, writer: Writer) -> Writer:
        """Insert a new writer or rename an existing one."""
        if writer.id is None:
            writer = writer.copy(update={"id": await self._next_id("writers")})
            await self.database.writers.insert_one({"_id": writer.id, "name": writer.name})
        else:
            await self.database.writers.replace_one({"_id": writer.id}, {"_id": writer.id, "name": writer.name})
        return writer

    # Reviews

    async def get_review(self, review_id: int) -> Optional[Review]:
        """Retrieve a review by id, or None if absent."""
        document = await self.database.reviews.find_one({"_id": review_id})
        return review_from_document(document) if document else None

    async def find_review(self, book_id: int, author_id: int) -> Optional[Review]:
        """Find a user's review of a book."""
        document = await self.database.reviews.find_one({"book_id": book_id, "author_id": author_id})
        return review_from_document(document) if document else None

    async def list_book_reviews(self, book_id: int) -> List[Review]:
        """Retrieve the reviews of a book in insertion order."""
        cursor = self.database.reviews.find({"book_id": book_id}).sort("_id", ASCENDING)
        return [review_from_document(document) async for document in cursor]

    async def save_review(self, review: Review) -> Review:
        """
        Insert a new review or replace an existing one.

        Raises:
            DuplicateKeyError: If the author already reviewed the book
        """
        if review.id is None:
            review = review.copy(update={"id": await self._next_id("reviews")})
            await self.database.reviews.insert_one(review_to_document(review))
            logger.debug("Inserted review", review_id=review.id, book_id=review.book_id)
        else:
            await self.database.reviews.replace_one({"_id": review.id}, review_to_document(review))
            logger.debug("Replaced review", review_id=review.id, book_id=review.book_id)
        return review

    async def delete_review(self, review: Review) -> None:
        """Delete a single review."""
        await self.database.reviews.delete_one({"_id": review.id})
        logger.debug("Deleted review", review_id=review.id)

    # Users

    async def get_user(self, user_id: int) -> Optional[User]:
        """Retrieve a user by id, or None if absent."""
        document = await self.database.users.find_one({"_id": user_id})
        return user_from_document(document) if document else None

    async def get_user_by_token(self, api_token: str) -> Optional[User]:
        """Resolve the user owning a bearer token."""
        document = await self.database.users.find_one({"api_token": api_token})
        return user_from_document(document) if document else None

    async def list_users(self) -> List[User]:
        """Retrieve all users sorted by username."""
        cursor = self.database.users.find({}).sort("username", ASCENDING)
        return [user_from_document(document) async for document in cursor]

    async def save_user(self, user: User) -> User:
        """
        Insert a new user or replace an existing one.

        Raises:
            DuplicateKeyError: If the username or token is taken
        """
        if user.id is None:
            user = user.copy(update={"id": await self._next_id("users")})
            await self.database.users.insert_one(user_to_document(user))
        else:
            await self.database.users.replace_one({"_id": user.id}, user_to_document(user))
        return user

    async def get_stats(self) -> Dict[str, int]:
        """Get collection counts."""
        try:
            return {
                "books": await self.database.books.count_documents({}),
                "writers": await self.database.writers.count_documents({}),
                "reviews": await self.database.reviews.count_documents({}),
                "users": await self.database.users.count_documents({}),
            }
        except Exception as e:
            logger.error("Failed to get database stats", error=str(e))
            raise

    async def health_check(self) -> Dict:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")
            return {"status": "healthy", **await self.get_stats()}
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }
