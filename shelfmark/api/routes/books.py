"""
Book API Routes

Public catalog browsing (listing, detail, suggestions, statistics) and
authenticated catalog maintenance (add, partial update).
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from loguru import logger

from shelfmark.api.dependencies import (
    Principal,
    get_book_repository,
    get_current_principal,
    require_roles,
)
from shelfmark.api.middleware.error_handler import service_errors
from shelfmark.api.schemas import (
    BookListResponse,
    BookMutationResponse,
    BookResponse,
    BookStatsResponse,
    BookSuggestion,
    BookWrite,
    ErrorResponse,
)
from shelfmark.storage.book_repository import BookRepository, column_changes, to_column_name
from shelfmark.storage.catalog_query import CatalogFilters, PageRequest
from shelfmark.storage.models import STAFF_ROLES


router = APIRouter(prefix="/books", tags=["books"])

staff_only = require_roles(*STAFF_ROLES)


# =============================================================================
# Catalog Browsing
# =============================================================================

@router.get("", response_model=BookListResponse)
async def list_books(
    search: Optional[str] = Query(None, description="Full-text search on title, summary and authors"),
    section: Optional[str] = Query(None, description="Section contains"),
    author: Optional[str] = Query(None, description="Either author contains"),
    theme: Optional[str] = Query(None, description="General theme contains"),
    geography: Optional[str] = Query(None, description="Geography contains"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, description="Items per page"),
    repo: BookRepository = Depends(get_book_repository),
):
    """List catalog entries ordered by title."""
    filters = CatalogFilters.from_params(
        search=search,
        section=section,
        author=author,
        theme=theme,
        geography=geography,
    )
    async with service_errors("Error fetching books"):
        books, pagination = await repo.list_books(filters, PageRequest(page=page, limit=limit))

    return {"books": books, "pagination": pagination.to_dict()}


@router.get("/stats", response_model=BookStatsResponse)
async def get_stats(repo: BookRepository = Depends(get_book_repository)):
    """Catalog totals and per-section counts."""
    async with service_errors("Error fetching statistics"):
        return await repo.get_stats()


@router.get("/suggestions", response_model=list[BookSuggestion])
async def get_suggestions(
    query: Optional[str] = Query(None, description="Partial title or author"),
    repo: BookRepository = Depends(get_book_repository),
):
    """Autocomplete on titles and authors."""
    async with service_errors("Error fetching suggestions"):
        return await repo.suggest(query)


@router.get(
    "/{book_id}",
    response_model=BookResponse,
    responses={404: {"model": ErrorResponse, "description": "Book not found"}},
)
async def get_book(
    book_id: int,
    repo: BookRepository = Depends(get_book_repository),
):
    """Get a book by ID."""
    async with service_errors("Error fetching book"):
        return await repo.get(book_id)


# =============================================================================
# Catalog Maintenance
# =============================================================================

@router.post(
    "",
    response_model=BookMutationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse, "description": "Title or section missing"}},
)
async def add_book(
    payload: dict[str, Any] = Body(...),
    principal: Principal = Depends(get_current_principal),
    repo: BookRepository = Depends(get_book_repository),
):
    """
    Add a book to the catalog.

    The entry number is assigned by the server; any supplied one is ignored.
    """
    fields = BookWrite.model_validate(
        {to_column_name(key): value for key, value in payload.items()}
    ).model_dump(exclude_unset=True)

    async with service_errors("Error adding book"):
        book = await repo.create(fields)

    logger.info(f"User {principal.user_id} added book {book.id}")
    return {"message": "Book added successfully", "book": book}


@router.put(
    "/{book_id}",
    response_model=BookMutationResponse,
    responses={
        400: {"model": ErrorResponse, "description": "No valid fields to update"},
        403: {"model": ErrorResponse, "description": "Insufficient permissions"},
        404: {"model": ErrorResponse, "description": "Book not found"},
    },
)
async def update_book(
    book_id: int,
    payload: dict[str, Any] = Body(...),
    principal: Principal = Depends(staff_only),
    repo: BookRepository = Depends(get_book_repository),
):
    """Partially update a book (librarian or admin)."""
    changes = BookWrite.model_validate(column_changes(payload)).model_dump(exclude_unset=True)

    async with service_errors("Error updating book"):
        book = await repo.update(book_id, changes)

    logger.info(f"User {principal.user_id} updated book {book_id}")
    return {"message": "Book updated successfully", "book": book}
