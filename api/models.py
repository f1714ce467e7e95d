"""
API models and schemas for the FastAPI application.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from catalog.models import Assessment, Book, Genre, Review, Role, User, Writer


class WriterResponse(BaseModel):
    """Writer response model for API."""
    id: int = Field(..., description="Writer identifier")
    name: str = Field(..., description="Writer name")

    @classmethod
    def from_writer(cls, writer: Writer) -> "WriterResponse":
        return cls(id=writer.id, name=writer.name)


class BookResponse(BaseModel):
    """Book response model for API."""
    id: int = Field(..., description="Book identifier")
    title: str = Field(..., description="Book title")
    publication_date: Optional[date] = Field(None, description="Publication date")
    writer: Optional[WriterResponse] = Field(None, description="Writer of the book")
    genres: List[Genre] = Field(default_factory=list, description="Book genres")
    filename: Optional[str] = Field(None, description="Poster filename")

    @classmethod
    def from_book(cls, book: Book) -> "BookResponse":
        return cls(
            id=book.id,
            title=book.title,
            publication_date=book.publication_date,
            writer=WriterResponse.from_writer(book.writer) if book.writer else None,
            genres=sorted(book.genres, key=lambda genre: genre.value),
            filename=book.filename
        )


class BookListResponse(BaseModel):
    """Response model for the book list."""
    books: List[BookResponse] = Field(..., description="List of books")
    total: int = Field(..., description="Total number of books")


class ReviewResponse(BaseModel):
    """Review response model for API."""
    id: int = Field(..., description="Review identifier")
    book_id: int = Field(..., description="Reviewed book")
    author_id: int = Field(..., description="Reviewing user")
    author_name: Optional[str] = Field(None, description="Reviewing user's name")
    assessment: Optional[Assessment] = Field(None, description="Rating (1-5)")
    content: str = Field(..., description="Review text")
    created_at: datetime = Field(..., description="When the review was written")

    @classmethod
    def from_review(cls, review: Review) -> "ReviewResponse":
        return cls(**review.dict())


class UserResponse(BaseModel):
    """User response model for API; never exposes the token."""
    id: int = Field(..., description="User identifier")
    username: str = Field(..., description="Username")
    roles: List[Role] = Field(default_factory=list, description="Granted roles")

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            roles=sorted(user.roles, key=lambda role: role.value)
        )


class UserListResponse(BaseModel):
    """Response model for the user list."""
    users: List[UserResponse] = Field(..., description="List of users")


class OptionResponse(BaseModel):
    """Enumerated choice offered by a form."""
    name: str = Field(..., description="Submitted value")
    label: str = Field(..., description="Display label")


class FormView(BaseModel):
    """
    Form to display, either empty or redisplayed after a rejected submission.
    """
    view: str = Field(..., description="Name of the form view")
    action: str = Field(..., description="Where the form submits to")
    values: Dict[str, Any] = Field(default_factory=dict, description="Submitted or current values")
    errors: Dict[str, str] = Field(default_factory=dict, description="Error messages keyed by field")
    genres: List[OptionResponse] = Field(default_factory=list, description="Genre options")
    writers: List[WriterResponse] = Field(default_factory=list, description="Writer options")
    assessments: List[OptionResponse] = Field(default_factory=list, description="Assessment options")
    roles: List[OptionResponse] = Field(default_factory=list, description="Role options")


class ReviewListView(FormView):
    """Review list of a book together with the new-review form."""
    book: BookResponse = Field(..., description="Reviewed book")
    reviews: List[ReviewResponse] = Field(default_factory=list, description="Reviews in the order written")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")


def genre_options() -> List[OptionResponse]:
    return [OptionResponse(name=genre.value, label=genre.value.replace("_", " ").title()) for genre in Genre]


def assessment_options() -> List[OptionResponse]:
    return [OptionResponse(name=assessment.name, label=assessment.label) for assessment in Assessment]


def role_options() -> List[OptionResponse]:
    return [OptionResponse(name=role.value, label=role.value.title()) for role in Role]
