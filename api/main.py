"""
FastAPI main application for the Library Catalog API.
"""

from contextlib import asynccontextmanager
from datetime import datetime

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import admin, books, reviews
from api.models import ErrorResponse, HealthResponse
from catalog.database import CatalogDatabase
from utilities.config import config
from utilities.logger import setup_logging

# Setup logging
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger.info("Starting Library Catalog API")

    database = CatalogDatabase(config.mongodb_url, config.mongodb_database)
    try:
        await database.connect()
        logger.info("Database connection established")
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        raise

    app.state.database = database

    yield

    # Shutdown
    logger.info("Shutting down Library Catalog API")
    await database.disconnect()


# Create FastAPI application
app = FastAPI(
    title=config.api_title,
    description="""
    Library catalog backend.

    ## Features

    * **Books**: Browse the catalog; admins add, edit and delete books with posters
    * **Reviews**: Users write one review per book and manage their own reviews
    * **Users**: Admins assign roles

    ## Authentication

    Mutating endpoints require a user token in the Authorization header:

    ```
    Authorization: Bearer your_api_token_here
    ```

    ## Forms

    Submissions are form-encoded. A rejected submission returns the form
    with the submitted values and an error per invalid field; an accepted one
    redirects (303) to the resource.
    """,
    version=config.api_version,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=config.cors_allow_credentials,
    allow_methods=config.cors_allow_methods,
    allow_headers=config.cors_allow_headers,
)

app.include_router(books.router)
app.include_router(reviews.router)
app.include_router(admin.router)


# Exception handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=str(exc.detail),
            status_code=exc.status_code
        ).dict(),
        headers=exc.headers
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal server error",
            detail=None if config.is_production() else str(exc),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        ).dict()
    )


# Health check endpoint (no authentication required)
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint."""
    database = getattr(request.app.state, "database", None)
    db_status = "unavailable"
    if database is not None:
        health_info = await database.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.utcnow(),
        version=config.api_version,
        database_status=db_status
    )
