"""
Book review endpoints, nested under the reviewed book.

Any authenticated user may write one review per book. Only the author
can open, edit or delete a review.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request

from api.auth import require_user
from api.dependencies import get_book_service, get_review_service
from api.models import BookResponse, FormView, ReviewListView, ReviewResponse, assessment_options
from api.responses import enforce, redirect
from catalog.book_service import BookService
from catalog.models import Book, Review, ReviewForm, User
from catalog.review_service import REVIEW_EXISTS_ERROR, ReviewService
from catalog.validation import ValidationContext, bind_form, ensure_exists
from utilities.logger import RequestLogger

router = APIRouter(tags=["Reviews"])


def _review_values(review: Any) -> Dict[str, Any]:
    assessment = review.assessment
    return {
        "assessment": getattr(assessment, "name", assessment),
        "content": review.content,
    }


async def _review_list_view(
    book: Book,
    review_service: ReviewService,
    values: Optional[Dict[str, Any]] = None,
    errors: Optional[Dict[str, str]] = None
) -> ReviewListView:
    reviews = await review_service.get_all_book_reviews(book.id)
    return ReviewListView(
        view="review/list",
        action=f"/books/{book.id}/reviews",
        values=values or {},
        errors=errors or {},
        assessments=assessment_options(),
        book=BookResponse.from_book(book),
        reviews=[ReviewResponse.from_review(review) for review in reviews]
    )


async def _check_correct_request(
    book_id: int,
    review_id: int,
    current_user: User,
    book_service: BookService,
    review_service: ReviewService,
    log: RequestLogger
) -> tuple:
    """
    Resolve the book and review of a review path and run the guards in
    order: book exists, review exists, review belongs to book, user is author.

    Returns:
        (book, review)
    """
    book = await book_service.get_book(book_id)
    enforce(ensure_exists(book, "Book", book_id), log)

    review = await review_service.get_review(review_id)
    enforce(ensure_exists(review, "Review", review_id), log)

    enforce(review_service.check_book_contains_review(book, review), log)
    enforce(review_service.check_current_user_rights(current_user, review.author_id), log)
    return book, review


@router.get("/books/{book_id}/reviews", response_model=ReviewListView)
async def get_book_reviews_page(
    book_id: int,
    book_service: BookService = Depends(get_book_service),
    review_service: ReviewService = Depends(get_review_service)
):
    """Reviews of a book with the new-review form."""
    book = await book_service.get_book(book_id)
    enforce(ensure_exists(book, "Book", book_id))
    return await _review_list_view(book, review_service)


@router.post("/books/{book_id}/reviews", response_model=ReviewListView)
async def add_new_review(
    book_id: int,
    request: Request,
    current_user: User = Depends(require_user),
    book_service: BookService = Depends(get_book_service),
    review_service: ReviewService = Depends(get_review_service)
):
    """Write a review. Fields: assessment (name or 1-5) and content."""
    log = RequestLogger("review.add", current_user.id).bind_context(book_id=book_id)
    book = await book_service.get_book(book_id)
    enforce(ensure_exists(book, "Book", book_id), log)

    form = await request.form()
    context = ValidationContext()

    review_form = bind_form(ReviewForm, form, context)
    is_assessment_selected = review_service.validate_assessment_selected(review_form, context)

    if is_assessment_selected and not context.has_binding_errors:
        review = Review(
            assessment=review_form.assessment,
            content=review_form.content,
            author_name=current_user.username
        )
        if await review_service.add_new_review(current_user.id, book.id, review):
            log.log_mutation("review", review.id, "create")
            return redirect(f"/books/{book.id}/reviews")
        context.add_error("review", REVIEW_EXISTS_ERROR)

    log.log_rejected(context.errors)
    return await _review_list_view(book, review_service, _review_values(review_form), context.errors)


@router.get("/books/{book_id}/reviews/{review_id}", response_model=FormView)
async def get_user_review_page(
    book_id: int,
    review_id: int,
    current_user: User = Depends(require_user),
    book_service: BookService = Depends(get_book_service),
    review_service: ReviewService = Depends(get_review_service)
):
    """Edit form of the user's own review."""
    log = RequestLogger("review.view", current_user.id).bind_context(book_id=book_id, review_id=review_id)
    book, review = await _check_correct_request(
        book_id, review_id, current_user, book_service, review_service, log
    )
    return FormView(
        view="review/edit",
        action=f"/books/{book.id}/reviews/{review.id}",
        values=_review_values(review),
        assessments=assessment_options()
    )


@router.put("/books/{book_id}/reviews/{review_id}", response_model=FormView)
async def edit_user_review(
    book_id: int,
    review_id: int,
    request: Request,
    current_user: User = Depends(require_user),
    book_service: BookService = Depends(get_book_service),
    review_service: ReviewService = Depends(get_review_service)
):
    """Edit the assessment and text of the user's own review."""
    log = RequestLogger("review.update", current_user.id).bind_context(book_id=book_id, review_id=review_id)
    book, current_review = await _check_correct_request(
        book_id, review_id, current_user, book_service, review_service, log
    )

    form = await request.form()
    context = ValidationContext()

    edited_review = bind_form(ReviewForm, form, context)
    is_assessment_selected = review_service.validate_assessment_selected(edited_review, context)

    if is_assessment_selected and not context.has_binding_errors:
        await review_service.update_user_review(current_review, edited_review)
        log.log_mutation("review", current_review.id, "update")
        return redirect(f"/books/{book.id}/reviews")

    log.log_rejected(context.errors)
    return FormView(
        view="review/edit",
        action=f"/books/{book.id}/reviews/{current_review.id}",
        values=_review_values(edited_review),
        errors=context.errors,
        assessments=assessment_options()
    )


@router.delete("/books/{book_id}/reviews/{review_id}")
async def delete_review(
    book_id: int,
    review_id: int,
    current_user: User = Depends(require_user),
    book_service: BookService = Depends(get_book_service),
    review_service: ReviewService = Depends(get_review_service)
):
    """Delete the user's own review."""
    log = RequestLogger("review.delete", current_user.id).bind_context(book_id=book_id, review_id=review_id)
    book, review = await _check_correct_request(
        book_id, review_id, current_user, book_service, review_service, log
    )

    await review_service.delete_user_review(review)
    log.log_mutation("review", review.id, "delete")
    return redirect(f"/books/{book.id}/reviews")
