"""
Book catalog service.
Validates book forms and posters, and creates, updates and deletes books.
"""

from datetime import date
from typing import List, Mapping, Optional, Set

import structlog
from pymongo.errors import DuplicateKeyError
from starlette.datastructures import UploadFile

from .database import CatalogDatabase
from .models import Book, Genre, Writer
from .posters import PosterStorage
from .validation import ValidationContext, selected_enum_members

logger = structlog.get_logger(__name__)

GENRES_ERROR = "Please, select a book genres"
WRITER_ERROR = "Please, select an author or create a new one"
PUBLICATION_DATE_ERROR = "Please, select the publication date"
POSTER_ERROR = "There are must be correct poster file"
POSTER_STORAGE_ERROR = "Incorrect file"
BOOK_EXISTS_ERROR = "Book already exists"


class BookService:
    """Service for book catalog operations."""

    def __init__(self, database: CatalogDatabase, poster_storage: PosterStorage):
        self.database = database
        self.poster_storage = poster_storage

    async def get_book_list(self) -> List[Book]:
        return await self.database.list_books()

    async def get_book(self, book_id: int) -> Optional[Book]:
        return await self.database.get_book(book_id)

    @staticmethod
    def get_selected_genres_from_form(form: Mapping[str, str]) -> Set[Genre]:
        """Collect the genre checkboxes ticked in a submitted form."""
        return selected_enum_members(form, Genre)

    @staticmethod
    def validate_book_form(
        genres: Set[Genre],
        writer: Optional[Writer],
        publication_date: Optional[date],
        context: ValidationContext
    ) -> bool:
        """
        Check book form completeness.

        Every check runs and records its own error, so all problems are
        reported together.

        Args:
            genres: Selected genres
            writer: Selected writer, None if none was chosen
            publication_date: Submitted publication date
            context: Validation context; its binding errors also fail the form

        Returns:
            True if the form can be saved
        """
        is_correct_genres = bool(genres)
        if not is_correct_genres:
            context.add_error("genres", GENRES_ERROR)

        is_writer_selected = writer is not None
        if not is_writer_selected:
            context.add_error("selected_writer", WRITER_ERROR)

        is_publication_date_selected = publication_date is not None
        if not is_publication_date_selected:
            context.add_error("publication_date", PUBLICATION_DATE_ERROR)

        return (
            is_correct_genres
            and is_writer_selected
            and is_publication_date_selected
            and not context.has_binding_errors
        )

    async def validate_poster(self, poster_file: Optional[UploadFile], context: ValidationContext) -> bool:
        """
        Check that a poster has an original name and image content.

        Args:
            poster_file: Uploaded poster, None if the form had no file part
            context: Validation context receiving the poster error

        Returns:
            True if the poster is acceptable
        """
        is_correct_poster = (
            poster_file is not None
            and bool(poster_file.filename)
            and await self.poster_storage.is_image_content(poster_file)
        )
        if not is_correct_poster:
            context.add_error("poster_file", POSTER_ERROR)

        return is_correct_poster

    def get_poster_filename(self, poster_file: UploadFile) -> str:
        return self.poster_storage.generate_unique_filename(poster_file)

    async def load_poster_file(self, poster_file: UploadFile, filename: str) -> None:
        """
        Store a poster file.

        Raises:
            OSError: If the file cannot be written
        """
        await self.poster_storage.store(poster_file, filename)

    async def add_new_book(self, book: Book) -> bool:
        """
        Add a book unless one with the same title, writer and date exists.

        The poster must already be stored. If the book is rejected the stored
        poster is left in place.

        Returns:
            True if the book was saved, False if it already exists
        """
        writer_id = book.writer.id if book.writer else None
        existing = await self.database.find_book(book.title, writer_id, book.publication_date)
        if existing is None:
            try:
                saved = await self.database.save_book(book)
                book.id = saved.id
                logger.info("Book added", book_id=saved.id, title=book.title, writer_id=writer_id)
                return True
            except DuplicateKeyError:
                pass

        logger.warning(
            "Book already exists",
            title=book.title,
            writer_id=writer_id,
            publication_date=str(book.publication_date),
            orphaned_poster=book.filename
        )
        return False

    async def update_book(self, current_book: Book, edited_book: Book) -> bool:
        """
        Replace the editable fields of a book.

        The poster filename is only replaced when the edit carries a new one.

        Returns:
            True if saved, False if the edit collides with another book
        """
        current_book.title = edited_book.title
        current_book.publication_date = edited_book.publication_date
        current_book.writer = edited_book.writer
        current_book.genres = set(edited_book.genres)
        if edited_book.filename:
            current_book.filename = edited_book.filename

        try:
            await self.database.save_book(current_book)
        except DuplicateKeyError:
            logger.warning("Edited book collides with an existing book", book_id=current_book.id)
            return False

        logger.info("Book updated", book_id=current_book.id, title=current_book.title)
        return True

    async def delete_book(self, book: Book) -> None:
        """Delete a book; its reviews are removed by the store."""
        await self.database.delete_book(book)
        logger.info("Book deleted", book_id=book.id, title=book.title)
