"""
Review service.
One review per user per book; only the author may edit or delete a review.
"""

from typing import List, Optional

import structlog
from pymongo.errors import DuplicateKeyError

from .database import CatalogDatabase
from .models import Book, Review, ReviewForm, User
from .validation import GuardFailure, GuardResult, ValidationContext

logger = structlog.get_logger(__name__)

ASSESSMENT_ERROR = "Please, select an assessment"
REVIEW_EXISTS_ERROR = "You have already written a review of this book"


class ReviewService:
    """Service for book review operations."""

    def __init__(self, database: CatalogDatabase):
        self.database = database

    async def get_review(self, review_id: int) -> Optional[Review]:
        return await self.database.get_review(review_id)

    async def get_all_book_reviews(self, book_id: int) -> List[Review]:
        """Reviews of a book in the order they were written."""
        return await self.database.list_book_reviews(book_id)

    @staticmethod
    def validate_assessment_selected(review: ReviewForm, context: ValidationContext) -> bool:
        is_assessment_selected = review.assessment is not None
        if not is_assessment_selected:
            context.add_error("assessment", ASSESSMENT_ERROR)

        return is_assessment_selected

    async def add_new_review(self, user_id: int, book_id: int, review: Review) -> bool:
        """
        Save a review bound to (book, user).

        The unique index on (book, author) backs the pre-check, so two
        concurrent submissions cannot both succeed.

        Returns:
            True if saved, False if the user already reviewed the book
        """
        existing = await self.database.find_review(book_id, user_id)
        if existing is None:
            review.book_id = book_id
            review.author_id = user_id
            try:
                saved = await self.database.save_review(review)
                review.id = saved.id
                logger.info("Review added", review_id=saved.id, book_id=book_id, user_id=user_id)
                return True
            except DuplicateKeyError:
                pass

        logger.warning("Review already exists", book_id=book_id, user_id=user_id)
        return False

    async def update_user_review(self, current_review: Review, edited_review: ReviewForm) -> None:
        """Replace assessment and content; book and author never change."""
        current_review.assessment = edited_review.assessment
        current_review.content = edited_review.content
        await self.database.save_review(current_review)
        logger.info("Review updated", review_id=current_review.id, book_id=current_review.book_id)

    async def delete_user_review(self, review: Review) -> None:
        await self.database.delete_review(review)
        logger.info("Review deleted", review_id=review.id, book_id=review.book_id)

    @staticmethod
    def check_book_contains_review(book: Book, review: Review) -> GuardResult:
        """Guard against a review addressed through another book's path."""
        if review.book_id != book.id:
            return GuardResult.fail(
                GuardFailure.MISMATCH,
                f"Review '{review.id}' does not belong to book '{book.id}'"
            )
        return GuardResult.success()

    @staticmethod
    def check_current_user_rights(current_user: Optional[User], review_author_id: Optional[int]) -> GuardResult:
        """Only the author may act on a review; roles grant no override."""
        if current_user is None or current_user.id != review_author_id:
            return GuardResult.fail(
                GuardFailure.FORBIDDEN,
                "Only the author can change this review"
            )
        return GuardResult.success()
