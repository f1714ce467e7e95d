"""
FastAPI dependencies wiring the catalog services to the request.
"""

from fastapi import Depends, HTTPException, Request, status

from catalog.book_service import BookService
from catalog.database import CatalogDatabase
from catalog.posters import PosterStorage
from catalog.review_service import ReviewService
from catalog.user_service import UserService
from catalog.writer_service import WriterService
from utilities.config import config


def get_database(request: Request) -> CatalogDatabase:
    """Database manager opened by the application lifespan."""
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database service not available"
        )
    return database


def get_poster_storage() -> PosterStorage:
    return PosterStorage(config.get_upload_path(), config.max_poster_size)


def get_book_service(
    database: CatalogDatabase = Depends(get_database),
    poster_storage: PosterStorage = Depends(get_poster_storage)
) -> BookService:
    return BookService(database, poster_storage)


def get_review_service(database: CatalogDatabase = Depends(get_database)) -> ReviewService:
    return ReviewService(database)


def get_user_service(database: CatalogDatabase = Depends(get_database)) -> UserService:
    return UserService(database)


def get_writer_service(database: CatalogDatabase = Depends(get_database)) -> WriterService:
    return WriterService(database)
