"""
Book Repository for Shelfmark

Catalog reads and writes over an async SQLAlchemy session:
- Filtered, paginated catalog listing (count + page)
- Title/author suggestions
- Catalog statistics
- Book creation with sequential entry numbers
- Partial updates driven by client field names

Design Decisions:
1. Filters are translated by a pure function (catalog_query) into bound clauses
2. Count and page are two statements; no snapshot is shared between them
3. Entry numbers are MAX(entry_id) + 1, not guarded against concurrent inserts
"""

import re
from typing import Any, Optional

from loguru import logger
from sqlalchemy import distinct, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NotFoundError, ValidationError
from .catalog_query import (
    CatalogFilters,
    PageRequest,
    Pagination,
    build_catalog_predicate,
    combine,
    suggestion_clause,
)
from .models import Book, SEARCH_LANGUAGE


SUGGESTION_LIMIT = 10

# Client keys that never reach an UPDATE
PROTECTED_FIELDS = frozenset({
    "id",
    "entryId",
    "entry_id",
    "createdAt",
    "created_at",
    "updatedAt",
    "updated_at",
})

BOOK_COLUMNS = frozenset(column.key for column in Book.__table__.columns)

# Mandatory on every row, so never blanked by an update
REQUIRED_COLUMNS = ("title", "section")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z0-9])|(?<=[0-9])(?=[A-Z])")


def to_column_name(field: str) -> str:
    """
    Translate a client field name into a column name.

    ``pageCount`` -> ``page_count``, ``author1`` -> ``author_1``.
    Snake-case names pass through unchanged.
    """
    return _CAMEL_BOUNDARY.sub("_", field).lower()


def column_changes(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Map an arbitrary partial update onto book columns.

    Raises:
        ValidationError: If nothing is left after dropping protected
            fields, or a field does not name a book column.
    """
    changes = {}
    for field, value in payload.items():
        if field in PROTECTED_FIELDS:
            continue
        column = to_column_name(field)
        if column in PROTECTED_FIELDS:
            continue
        if column not in BOOK_COLUMNS:
            raise ValidationError(f"Unknown field: {field}")
        changes[column] = value

    if not changes:
        raise ValidationError("No valid fields to update")
    return changes


class BookRepository:
    """
    Repository for catalog queries and book mutations.

    Usage:
        async with database.session() as session:
            repo = BookRepository(session, dialect_name=database.dialect_name)
            books, pagination = await repo.list_books(
                CatalogFilters(section="Histoire"),
                PageRequest(page=2, limit=10),
            )
    """

    def __init__(
        self,
        session: AsyncSession,
        dialect_name: str = "postgresql",
        search_language: str = SEARCH_LANGUAGE,
    ):
        self.session = session
        self.dialect_name = dialect_name
        self.search_language = search_language

    async def list_books(
        self,
        filters: CatalogFilters,
        page_request: PageRequest,
    ) -> tuple[list[Book], Pagination]:
        """
        List catalog entries matching every supplied filter.

        Args:
            filters: Catalog filters (empty values ignored)
            page_request: Page number and size

        Returns:
            (Books ordered by title, pagination metadata)
        """
        predicate = combine(
            build_catalog_predicate(filters, self.dialect_name, self.search_language)
        )

        count_query = select(func.count()).select_from(Book)
        books_query = select(Book)
        if predicate is not None:
            count_query = count_query.where(predicate)
            books_query = books_query.where(predicate)

        total = (await self.session.execute(count_query)).scalar_one()

        books_query = (
            books_query
            .order_by(Book.title.asc())
            .limit(page_request.limit)
            .offset(page_request.offset)
        )
        books = list((await self.session.execute(books_query)).scalars().all())

        logger.debug(f"Catalog query matched {total} books, returning {len(books)}")
        return books, Pagination.build(page_request, total)

    async def get(self, book_id: int) -> Book:
        """
        Get book by ID.

        Raises:
            NotFoundError: If no book has this ID
        """
        book = await self.session.get(Book, book_id)
        if book is None:
            raise NotFoundError("Book", book_id)
        return book

    async def suggest(self, query: Optional[str]) -> list[dict]:
        """
        Suggest books whose title or authors contain ``query``.

        Args:
            query: Partial title or author name

        Returns:
            Up to 10 distinct (title, author_1, author_2, id) rows
        """
        if not query:
            return []

        stmt = (
            select(Book.title, Book.author_1, Book.author_2, Book.id)
            .where(suggestion_clause(query))
            .distinct()
            .limit(SUGGESTION_LIMIT)
        )
        rows = (await self.session.execute(stmt)).mappings().all()
        return [dict(row) for row in rows]

    async def get_stats(self) -> dict:
        """
        Get catalog statistics.

        ``total_authors`` adds distinct first authors to distinct second
        authors; a name appearing in both columns is counted twice.

        Returns:
            {"overview": {...}, "sections": [{"section", "count"}]}
        """
        overview_stmt = select(
            func.count().label("total_books"),
            func.count(distinct(Book.section)).label("total_sections"),
            (
                func.count(distinct(Book.author_1)) + func.count(distinct(Book.author_2))
            ).label("total_authors"),
            func.count(distinct(Book.general_theme)).label("total_themes"),
        ).select_from(Book)
        overview = (await self.session.execute(overview_stmt)).mappings().one()

        count = func.count().label("count")
        sections_stmt = (
            select(Book.section, count)
            .where(Book.section.isnot(None))
            .group_by(Book.section)
            .order_by(count.desc())
        )
        sections = (await self.session.execute(sections_stmt)).mappings().all()

        return {
            "overview": dict(overview),
            "sections": [dict(row) for row in sections],
        }

    async def next_entry_id(self) -> int:
        """MAX(entry_id) + 1, starting at 1 on an empty catalog."""
        current = (await self.session.execute(select(func.max(Book.entry_id)))).scalar()
        return (current or 0) + 1

    async def create(self, fields: dict[str, Any]) -> Book:
        """
        Create a new book.

        Args:
            fields: Column values; ``title`` and ``section`` are required

        Returns:
            Created Book with its assigned entry number

        Raises:
            ValidationError: If title or section is missing
        """
        if not fields.get("title") or not fields.get("section"):
            raise ValidationError("Title and section are required")

        values = {
            key: value for key, value in fields.items()
            if key in BOOK_COLUMNS and key not in PROTECTED_FIELDS
        }
        values["entry_id"] = await self.next_entry_id()

        book = Book(**values)
        self.session.add(book)
        await self.session.commit()
        await self.session.refresh(book)

        logger.info(f"Book added: entry {book.entry_id} '{book.title}'")
        return book

    async def update(self, book_id: int, changes: dict[str, Any]) -> Book:
        """
        Apply a partial update in a single statement.

        Args:
            book_id: Book ID
            changes: Column name -> new value (see ``column_changes``)

        Returns:
            Updated Book

        Raises:
            ValidationError: If no columns are given, or title or section
                is blanked
            NotFoundError: If no book has this ID
        """
        if not changes:
            raise ValidationError("No valid fields to update")
        for column in REQUIRED_COLUMNS:
            if column in changes and not changes[column]:
                raise ValidationError(f"{column.capitalize()} cannot be empty")

        stmt = (
            update(Book)
            .where(Book.id == book_id)
            .values(**changes, updated_at=func.now())
            .returning(Book)
            .execution_options(synchronize_session=False)
        )
        book = (await self.session.execute(stmt)).scalar_one_or_none()
        if book is None:
            await self.session.rollback()
            raise NotFoundError("Book", book_id)

        await self.session.commit()
        await self.session.refresh(book)

        logger.info(f"Book {book_id} updated: {sorted(changes)}")
        return book
