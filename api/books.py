"""
Book catalog endpoints.

Browsing is open to everyone; adding, editing and deleting books requires
the ADMIN role. Accepted submissions redirect to the canonical view,
rejected ones redisplay the form with every error found.
"""

from typing import Any, Dict, Mapping, Optional, Set

import structlog
from fastapi import APIRouter, Depends, Request

from api.auth import require_admin
from api.dependencies import get_book_service, get_writer_service
from api.models import BookListResponse, BookResponse, FormView, WriterResponse, genre_options
from api.responses import enforce, parse_id, redirect, uploaded_file
from catalog.book_service import BOOK_EXISTS_ERROR, POSTER_STORAGE_ERROR, BookService
from catalog.models import Book, BookForm, Genre, User, Writer
from catalog.validation import ValidationContext, bind_form, ensure_exists
from catalog.writer_service import WriterService
from utilities.logger import RequestLogger

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Books"])


async def _resolve_writer(form: Mapping[str, Any], writer_service: WriterService) -> Optional[Writer]:
    writer_id = parse_id(form.get("selected_writer"))
    if writer_id is None:
        return None
    return await writer_service.get_writer(writer_id)


def _submitted_values(book_form: BookForm, genres: Set[Genre], writer: Optional[Writer]) -> Dict[str, Any]:
    return {
        "title": book_form.title,
        "publication_date": book_form.publication_date,
        "genres": sorted(genre.value for genre in genres),
        "selected_writer": writer.id if writer else None,
    }


async def _book_form_view(
    view: str,
    action: str,
    values: Dict[str, Any],
    errors: Dict[str, str],
    writer_service: WriterService
) -> FormView:
    writers = await writer_service.get_writer_list()
    return FormView(
        view=view,
        action=action,
        values=values,
        errors=errors,
        genres=genre_options(),
        writers=[WriterResponse.from_writer(writer) for writer in writers]
    )


async def _store_poster(book_service: BookService, poster_file, context: ValidationContext) -> Optional[str]:
    """
    Store a validated poster under a fresh unique name.

    I/O failures are logged and reported as a poster field error.

    Returns:
        The stored filename, or None if storage failed
    """
    filename = book_service.get_poster_filename(poster_file)
    try:
        await book_service.load_poster_file(poster_file, filename)
    except OSError:
        logger.error("Failed to store poster file", filename=filename, exc_info=True)
        context.add_error("poster_file", POSTER_STORAGE_ERROR)
        return None
    return filename


@router.get("/books", response_model=BookListResponse)
async def get_book_list(book_service: BookService = Depends(get_book_service)):
    """List every book in the catalog."""
    books = await book_service.get_book_list()
    return BookListResponse(
        books=[BookResponse.from_book(book) for book in books],
        total=len(books)
    )


@router.get("/books/add", response_model=FormView)
async def get_book_add_page(
    current_user: User = Depends(require_admin),
    writer_service: WriterService = Depends(get_writer_service)
):
    """Empty book form with genre and writer options."""
    return await _book_form_view("book/add", "/books", {}, {}, writer_service)


@router.post("/books", response_model=FormView)
async def add_new_book(
    request: Request,
    current_user: User = Depends(require_admin),
    book_service: BookService = Depends(get_book_service),
    writer_service: WriterService = Depends(get_writer_service)
):
    """
    Create a book from a multipart form.

    Fields: title, publication_date, selected_writer, one checkbox per
    genre name, and poster_file.
    """
    log = RequestLogger("book.add", current_user.id)
    form = await request.form()
    context = ValidationContext()

    book_form = bind_form(BookForm, form, context)
    genres = book_service.get_selected_genres_from_form(form)
    writer = await _resolve_writer(form, writer_service)
    poster_file = uploaded_file(form, "poster_file")

    is_correct_book_form = book_service.validate_book_form(
        genres, writer, book_form.publication_date, context
    )
    is_correct_poster = await book_service.validate_poster(poster_file, context)

    if is_correct_book_form and is_correct_poster:
        filename = await _store_poster(book_service, poster_file, context)
        if filename is not None:
            book = Book(
                title=book_form.title,
                publication_date=book_form.publication_date,
                writer=writer,
                genres=genres,
                filename=filename
            )
            if await book_service.add_new_book(book):
                log.log_mutation("book", book.id, "create")
                return redirect("/books")
            context.add_error("book", BOOK_EXISTS_ERROR)

    log.log_rejected(context.errors)
    return await _book_form_view(
        "book/add", "/books", _submitted_values(book_form, genres, writer), context.errors, writer_service
    )


@router.get("/books/{book_id}", response_model=BookResponse)
async def get_book_page(book_id: int, book_service: BookService = Depends(get_book_service)):
    """Get a single book by ID."""
    book = await book_service.get_book(book_id)
    enforce(ensure_exists(book, "Book", book_id))
    return BookResponse.from_book(book)


@router.get("/books/{book_id}/edit", response_model=FormView)
async def get_book_edit_page(
    book_id: int,
    current_user: User = Depends(require_admin),
    book_service: BookService = Depends(get_book_service),
    writer_service: WriterService = Depends(get_writer_service)
):
    """Book form filled with the current values."""
    book = await book_service.get_book(book_id)
    enforce(ensure_exists(book, "Book", book_id))

    values = {
        "title": book.title,
        "publication_date": book.publication_date,
        "genres": sorted(genre.value for genre in book.genres),
        "selected_writer": book.writer.id if book.writer else None,
        "filename": book.filename,
        "current_book_id": book.id,
    }
    return await _book_form_view("book/edit", f"/books/{book.id}", values, {}, writer_service)


@router.put("/books/{book_id}", response_model=FormView)
async def update_book(
    book_id: int,
    request: Request,
    current_user: User = Depends(require_admin),
    book_service: BookService = Depends(get_book_service),
    writer_service: WriterService = Depends(get_writer_service)
):
    """
    Edit a book. A poster file is optional, but if one is sent it must be
    an image; without one the stored poster is kept.
    """
    log = RequestLogger("book.update", current_user.id).bind_context(book_id=book_id)
    current_book = await book_service.get_book(book_id)
    enforce(ensure_exists(current_book, "Book", book_id), log)

    form = await request.form()
    context = ValidationContext()

    book_form = bind_form(BookForm, form, context)
    genres = book_service.get_selected_genres_from_form(form)
    writer = await _resolve_writer(form, writer_service)
    poster_file = uploaded_file(form, "poster_file")

    is_correct_book_form = book_service.validate_book_form(
        genres, writer, book_form.publication_date, context
    )

    filename = None
    if is_correct_book_form and poster_file is not None and poster_file.filename:
        if await book_service.validate_poster(poster_file, context):
            filename = await _store_poster(book_service, poster_file, context)
            is_correct_book_form = filename is not None
        else:
            is_correct_book_form = False

    if is_correct_book_form:
        edited_book = Book(
            id=current_book.id,
            title=book_form.title,
            publication_date=book_form.publication_date,
            writer=writer,
            genres=genres,
            filename=filename
        )
        if await book_service.update_book(current_book, edited_book):
            log.log_mutation("book", current_book.id, "update")
            return redirect(f"/books/{current_book.id}")
        context.add_error("book", BOOK_EXISTS_ERROR)

    log.log_rejected(context.errors)
    values = _submitted_values(book_form, genres, writer)
    values["current_book_id"] = current_book.id
    return await _book_form_view(
        "book/edit", f"/books/{current_book.id}", values, context.errors, writer_service
    )


@router.delete("/books/{book_id}")
async def delete_book(
    book_id: int,
    current_user: User = Depends(require_admin),
    book_service: BookService = Depends(get_book_service)
):
    """Delete a book and its reviews."""
    log = RequestLogger("book.delete", current_user.id).bind_context(book_id=book_id)
    book = await book_service.get_book(book_id)
    enforce(ensure_exists(book, "Book", book_id), log)

    await book_service.delete_book(book)
    log.log_mutation("book", book_id, "delete")
    return redirect("/books")
