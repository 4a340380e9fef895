"""
Catalog filter translation.

Turns a typed filter object into SQLAlchemy boolean clauses. Every
user-supplied value travels as a bound parameter.

Free-text search uses PostgreSQL text search (``to_tsvector`` /
``plainto_tsquery``) over title and summary, combined with a substring
match on both author fields. Databases without text search (SQLite in
tests) fall back to substring matching on title and summary.
"""

import math
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import and_, cast, func, literal, or_
from sqlalchemy.dialects.postgresql import REGCONFIG
from sqlalchemy.sql.elements import ColumnElement

from .models import Book, SEARCH_LANGUAGE


DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20


@dataclass(frozen=True)
class CatalogFilters:
    """Catalog search filters. Empty values are ignored."""

    search: str = ""
    section: str = ""
    author: str = ""
    theme: str = ""
    geography: str = ""

    @classmethod
    def from_params(
        cls,
        search: Optional[str] = None,
        section: Optional[str] = None,
        author: Optional[str] = None,
        theme: Optional[str] = None,
        geography: Optional[str] = None,
    ) -> "CatalogFilters":
        return cls(
            search=search or "",
            section=section or "",
            author=author or "",
            theme=theme or "",
            geography=geography or "",
        )


@dataclass(frozen=True)
class PageRequest:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class Pagination:
    """Pagination metadata returned with a result page."""

    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page_request: PageRequest, total: int) -> "Pagination":
        return cls(
            page=page_request.page,
            limit=page_request.limit,
            total=total,
            total_pages=total_pages(total, page_request.limit),
        )

    def to_dict(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
        }


def total_pages(total: int, limit: int) -> int:
    """ceil(total / limit); 0 when limit is not positive."""
    if limit <= 0:
        return 0
    return math.ceil(total / limit)


def contains_pattern(value: str) -> str:
    """ILIKE pattern for a substring match."""
    return f"%{value}%"


def text_search_clause(
    column,
    query: str,
    dialect_name: str,
    language: str = SEARCH_LANGUAGE,
) -> ColumnElement:
    """Match ``query`` against ``column`` using the best strategy for the dialect."""
    if dialect_name == "postgresql":
        regconfig = cast(literal(language), REGCONFIG)
        document = func.to_tsvector(regconfig, column)
        return document.bool_op("@@")(func.plainto_tsquery(regconfig, query))
    return column.ilike(contains_pattern(query))


def author_clause(value: str) -> ColumnElement:
    pattern = contains_pattern(value)
    return or_(Book.author_1.ilike(pattern), Book.author_2.ilike(pattern))


def build_catalog_predicate(
    filters: CatalogFilters,
    dialect_name: str = "postgresql",
    language: str = SEARCH_LANGUAGE,
) -> list[ColumnElement]:
    """
    Translate filters into clauses to be ANDed together.

    Args:
        filters: Catalog filters
        dialect_name: Backend name, selects the text search strategy
        language: Text search configuration name

    Returns:
        One clause per supplied filter, in a fixed order
    """
    clauses: list[ColumnElement] = []

    if filters.search:
        clauses.append(
            or_(
                text_search_clause(Book.title, filters.search, dialect_name, language),
                text_search_clause(
                    func.coalesce(Book.summary, ""), filters.search, dialect_name, language
                ),
                author_clause(filters.search),
            )
        )

    if filters.section:
        clauses.append(Book.section.ilike(contains_pattern(filters.section)))

    if filters.author:
        clauses.append(author_clause(filters.author))

    if filters.theme:
        clauses.append(Book.general_theme.ilike(contains_pattern(filters.theme)))

    if filters.geography:
        clauses.append(Book.geography.ilike(contains_pattern(filters.geography)))

    return clauses


def combine(clauses: list[ColumnElement]) -> Optional[ColumnElement]:
    """AND the clauses together, or None when there are none."""
    if not clauses:
        return None
    return and_(*clauses)


def suggestion_clause(query: str) -> ColumnElement:
    """Title or either author contains ``query``."""
    pattern = contains_pattern(query)
    return or_(
        Book.title.ilike(pattern),
        Book.author_1.ilike(pattern),
        Book.author_2.ilike(pattern),
    )
