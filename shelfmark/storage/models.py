"""
Database models for Shelfmark.
"""

from enum import Enum

from sqlalchemy import (
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    DateTime,
    func,
    literal_column,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

SEARCH_LANGUAGE = "french"


class UserRole(str, Enum):
    """Closed set of principal roles."""
    USER = "user"
    LIBRARIAN = "librarian"
    ADMIN = "admin"


STAFF_ROLES = frozenset({UserRole.LIBRARIAN, UserRole.ADMIN})


class ConsultationStatus(str, Enum):
    """Consultation request status."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


# Statuses that hold a slot
ACTIVE_STATUSES = (ConsultationStatus.PENDING.value, ConsultationStatus.APPROVED.value)


class TimeSlot(str, Enum):
    """Daily consultation slots offered by the reading room."""
    NINE = "09:00"
    TEN = "10:00"
    ELEVEN = "11:00"
    FOURTEEN = "14:00"
    FIFTEEN = "15:00"
    SIXTEEN = "16:00"
    SEVENTEEN = "17:00"


class User(Base):
    """User model for authentication."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.USER.value)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now())

    consultation_requests = relationship("ConsultationRequest", back_populates="user")

    def __repr__(self):
        return f"<User {self.email}>"


class Book(Base):
    """A catalog entry of the society's library."""

    __tablename__ = "books"

    id = Column(Integer, primary_key=True)
    entry_id = Column(Integer, unique=True)

    # Shelving
    location = Column(String(50))
    section = Column(String(100))

    # Bibliographic
    title = Column(String(500), nullable=False)
    subtitle = Column(String(500))
    author_1 = Column(String(200))
    author_2 = Column(String(200))
    publisher = Column(String(200))
    publication_date = Column(Date)
    isbn = Column(String(20))
    format = Column(String(20))
    page_count = Column(Integer)
    summary = Column(Text)

    # Thematic classification
    historical_period = Column(String(100))
    general_theme = Column(String(200))
    major_event = Column(String(200))
    geography = Column(String(200))
    groups_actors = Column(String(500))
    sources = Column(String(200))

    # Enrichment (filled by an external process)
    enriched_summary = Column(Text)
    subjects = Column(JSONType)
    genres = Column(JSONType)
    author_bio = Column(Text)
    cover_image_url = Column(String(500))
    external_links = Column(JSONType)
    search_keywords = Column(JSONType)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now())

    consultation_requests = relationship("ConsultationRequest", back_populates="book")

    __table_args__ = (
        Index("idx_books_section", "section"),
        Index("idx_books_author", "author_1", "author_2"),
    )

    def __repr__(self):
        return f"<Book {self.entry_id} - {self.title}>"


# Full-text indexes backing the catalog search (PostgreSQL only)
Index(
    "idx_books_title",
    func.to_tsvector(literal_column(f"'{SEARCH_LANGUAGE}'"), Book.title),
    postgresql_using="gin",
).ddl_if(dialect="postgresql")

Index(
    "idx_books_summary",
    func.to_tsvector(literal_column(f"'{SEARCH_LANGUAGE}'"), func.coalesce(Book.summary, "")),
    postgresql_using="gin",
).ddl_if(dialect="postgresql")


class ConsultationRequest(Base):
    """An on-site consultation of one book at one date and slot."""

    __tablename__ = "consultation_requests"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    book_id = Column(Integer, ForeignKey("books.id"), index=True)
    requested_date = Column(Date, nullable=False, index=True)
    requested_time_slot = Column(String(5), nullable=False)
    status = Column(String(20), nullable=False, default=ConsultationStatus.PENDING.value)
    notes = Column(Text)
    admin_notes = Column(Text)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="consultation_requests")
    book = relationship("Book", back_populates="consultation_requests")

    def __repr__(self):
        return f"<ConsultationRequest {self.id} - Book {self.book_id} {self.requested_date} {self.requested_time_slot}>"
