"""
Pydantic models for the library catalog.
Defines the Book, Writer, Review and User entities and the forms that edit them.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional, Set
from pydantic import BaseModel, Field, validator
from pydantic_core import PydanticCustomError


class Genre(str, Enum):
    """Enum for book genres. A book holds a non-empty subset."""
    FICTION = "FICTION"
    DRAMA = "DRAMA"
    POETRY = "POETRY"
    DETECTIVE = "DETECTIVE"
    FANTASY = "FANTASY"
    SCIENCE_FICTION = "SCIENCE_FICTION"
    ROMANCE = "ROMANCE"
    HORROR = "HORROR"
    ADVENTURE = "ADVENTURE"
    BIOGRAPHY = "BIOGRAPHY"
    HISTORY = "HISTORY"
    SCIENCE = "SCIENCE"


class Assessment(int, Enum):
    """Enum for review assessment values (1-5)."""
    ONE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5

    @property
    def label(self) -> str:
        return _ASSESSMENT_LABELS[self]


_ASSESSMENT_LABELS = {
    Assessment.ONE: "Terrible",
    Assessment.TWO: "Bad",
    Assessment.THREE: "Normal",
    Assessment.FOUR: "Good",
    Assessment.FIVE: "Excellent",
}


class Role(str, Enum):
    """Enum for user permission grants."""
    USER = "USER"
    ADMIN = "ADMIN"


class Writer(BaseModel):
    """Author of a book. Lookup data, never created by catalog flows."""
    id: Optional[int] = Field(None, description="Numeric writer identifier")
    name: str = Field(..., description="Writer name")


class Book(BaseModel):
    """
    Catalog book. No two books share (title, writer, publication_date).
    """
    id: Optional[int] = Field(None, description="Numeric book identifier")
    title: str = Field(..., description="Book title")
    publication_date: Optional[date] = Field(None, description="Publication date")
    writer: Optional[Writer] = Field(None, description="Writer of the book")
    genres: Set[Genre] = Field(default_factory=set, description="Book genres")
    filename: Optional[str] = Field(None, description="Stored poster filename")


class Review(BaseModel):
    """
    Review of a book. At most one per (book, author); bound to its book for life.
    """
    id: Optional[int] = Field(None, description="Numeric review identifier")
    book_id: Optional[int] = Field(None, description="Reviewed book")
    author_id: Optional[int] = Field(None, description="Reviewing user")
    author_name: Optional[str] = Field(None, description="Reviewing user's name")
    assessment: Optional[Assessment] = Field(None, description="Rating")
    content: str = Field("", description="Review text")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="When the review was written")


class User(BaseModel):
    """Registered user with a whole-set role assignment."""
    id: Optional[int] = Field(None, description="Numeric user identifier")
    username: str = Field(..., description="Unique username")
    roles: Set[Role] = Field(default_factory=lambda: {Role.USER}, description="Granted roles")
    api_token: Optional[str] = Field(None, description="Bearer token identifying the user")

    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles


class BookForm(BaseModel):
    """
    Scalar fields of a submitted book form. Genres, writer and poster are
    resolved separately because they come from checkboxes, a lookup and an upload.
    """
    title: str = Field(..., max_length=255)
    publication_date: Optional[date] = None

    @validator('title')
    def validate_title(cls, v):
        """Reject blank titles."""
        v = v.strip()
        if not v:
            raise PydanticCustomError('blank', 'Please, fill the book title')
        return v

    @validator('publication_date', pre=True)
    def empty_date_is_unset(cls, v):
        """An empty date input means no date was selected."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ReviewForm(BaseModel):
    """Submitted review form."""
    content: str = Field(..., max_length=2048)
    assessment: Optional[Assessment] = None

    @validator('content')
    def validate_content(cls, v):
        """Reject blank review text."""
        v = v.strip()
        if not v:
            raise PydanticCustomError('blank', 'Please, fill the review text')
        return v

    @validator('assessment', pre=True)
    def parse_assessment(cls, v):
        """Accept an assessment by name ("FOUR") or by value ("4")."""
        if v is None or isinstance(v, Assessment):
            return v
        text = str(v).strip()
        if not text:
            return None
        if text.isdigit():
            return int(text)
        if text.upper() in Assessment.__members__:
            return Assessment[text.upper()]
        return text
