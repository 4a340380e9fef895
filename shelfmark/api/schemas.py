"""
API Schemas for Shelfmark

Pydantic models for request validation and response serialization:
- Book models
- Consultation request models
- Account models

Design Decisions:
1. Request bodies use the client's camelCase spelling (snake_case accepted too)
2. Responses use column names, the shape rows have in the store
3. Required-field checks live in the repositories so that missing input
   yields the domain's own error messages
"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


# =============================================================================
# Book Schemas
# =============================================================================

class BookWrite(BaseModel):
    """
    Writable book columns.

    Keys are column names; callers translate client field names first
    (see ``shelfmark.storage.book_repository.to_column_name``).
    """

    model_config = ConfigDict(extra="ignore")

    location: Optional[str] = Field(None, max_length=50)
    section: Optional[str] = Field(None, max_length=100)
    title: Optional[str] = Field(None, max_length=500)
    subtitle: Optional[str] = Field(None, max_length=500)
    author_1: Optional[str] = Field(None, max_length=200)
    author_2: Optional[str] = Field(None, max_length=200)
    publisher: Optional[str] = Field(None, max_length=200)
    publication_date: Optional[date] = None
    isbn: Optional[str] = Field(None, max_length=20)
    format: Optional[str] = Field(None, max_length=20)
    page_count: Optional[int] = Field(None, ge=0)
    summary: Optional[str] = None
    historical_period: Optional[str] = Field(None, max_length=100)
    general_theme: Optional[str] = Field(None, max_length=200)
    major_event: Optional[str] = Field(None, max_length=200)
    geography: Optional[str] = Field(None, max_length=200)
    groups_actors: Optional[str] = Field(None, max_length=500)
    sources: Optional[str] = Field(None, max_length=200)

    enriched_summary: Optional[str] = None
    subjects: Optional[list[str]] = None
    genres: Optional[list[str]] = None
    author_bio: Optional[str] = None
    cover_image_url: Optional[str] = Field(None, max_length=500)
    external_links: Optional[dict[str, str]] = None
    search_keywords: Optional[list[str]] = None

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("isbn", mode="before")
    @classmethod
    def isbn_as_text(cls, value: Any) -> Any:
        # Spreadsheet exports turn ISBNs into numbers
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("publication_date", mode="before")
    @classmethod
    def date_part_only(cls, value: Any) -> Any:
        if isinstance(value, str) and len(value) > 10 and value[10] == "T":
            return value[:10]
        return value


class BookResponse(BaseModel):
    """Full catalog record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    entry_id: Optional[int] = None
    location: Optional[str] = None
    section: Optional[str] = None
    title: str
    subtitle: Optional[str] = None
    author_1: Optional[str] = None
    author_2: Optional[str] = None
    publisher: Optional[str] = None
    publication_date: Optional[date] = None
    isbn: Optional[str] = None
    format: Optional[str] = None
    page_count: Optional[int] = None
    summary: Optional[str] = None
    historical_period: Optional[str] = None
    general_theme: Optional[str] = None
    major_event: Optional[str] = None
    geography: Optional[str] = None
    groups_actors: Optional[str] = None
    sources: Optional[str] = None
    enriched_summary: Optional[str] = None
    subjects: Optional[list[str]] = None
    genres: Optional[list[str]] = None
    author_bio: Optional[str] = None
    cover_image_url: Optional[str] = None
    external_links: Optional[dict[str, str]] = None
    search_keywords: Optional[list[str]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PaginationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")


class BookListResponse(BaseModel):
    """Paginated catalog page."""

    books: list[BookResponse]
    pagination: PaginationResponse


class BookMutationResponse(BaseModel):
    message: str
    book: BookResponse


class BookSuggestion(BaseModel):
    id: int
    title: str
    author_1: Optional[str] = None
    author_2: Optional[str] = None


class StatsOverview(BaseModel):
    total_books: int
    total_sections: int
    total_authors: int
    total_themes: int


class SectionCount(BaseModel):
    section: str
    count: int


class BookStatsResponse(BaseModel):
    overview: StatsOverview
    sections: list[SectionCount]


# =============================================================================
# Consultation Schemas
# =============================================================================

class ConsultationCreate(BaseModel):
    """Consultation request from a member."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "bookId": 5,
                "requestedDate": "2025-03-01",
                "requestedTimeSlot": "09:00",
                "notes": "Interested in the maps section",
            }
        },
    )

    book_id: Optional[int] = Field(None, alias="bookId")
    requested_date: Optional[str] = Field(None, alias="requestedDate")
    requested_time_slot: Optional[str] = Field(None, alias="requestedTimeSlot")
    notes: Optional[str] = None


class ConsultationUpdate(BaseModel):
    """Status change by a librarian or admin."""

    model_config = ConfigDict(populate_by_name=True)

    status: Optional[str] = None
    admin_notes: Optional[str] = Field(None, alias="adminNotes")


class ConsultationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    book_id: Optional[int] = None
    requested_date: date
    requested_time_slot: str
    status: str
    notes: Optional[str] = None
    admin_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ConsultationWithBook(ConsultationResponse):
    """Request joined with the book's display fields."""

    title: str
    author_1: Optional[str] = None
    author_2: Optional[str] = None
    location: Optional[str] = None


class ConsultationWithBookAndUser(ConsultationWithBook):
    """Request joined with book and requester."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None


class ConsultationMutationResponse(BaseModel):
    message: str
    request: ConsultationResponse


# =============================================================================
# Account Schemas
# =============================================================================

class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[EmailStr] = None
    password: Optional[str] = None
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    first_name: str
    last_name: str
    role: str
    created_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    message: str
    user: UserResponse
    token: str


# =============================================================================
# System
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    message: str
    timestamp: datetime
    environment: str


class ErrorResponse(BaseModel):
    """Error body returned by every failing endpoint."""

    message: str
    code: str
    timestamp: datetime
    detail: Optional[Any] = None
    error: Optional[str] = None
