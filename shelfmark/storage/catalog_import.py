"""
Catalog bootstrap and bulk import.

Loads the society's catalog spreadsheet (the .xlsx workbook itself, or a
CSV export of it) into the books table and makes sure a default admin
account exists.

- Column headers are the spreadsheet's French headers (COLUMN_MAPPING)
- Strings are trimmed; blank cells become NULL
- Rows are upserted by entry number
- A row that fails is logged and skipped; the import carries on
"""

import csv
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from loguru import logger
from openpyxl import load_workbook
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..security import get_password_hash
from .database import Database
from .models import Book, User, UserRole


DEFAULT_ADMIN_EMAIL = "admin@library.com"
DEFAULT_ADMIN_PASSWORD = "admin123"

MISSING_TITLE = "Titre non spécifié"

# Spreadsheet header -> books column
COLUMN_MAPPING = {
    "Ent. SdSdC": "entry_id",
    "Localisation": "location",
    "Section": "section",
    "Titre complet de l'ouvrage": "title",
    "Sous titre": "subtitle",
    "Auteur 1": "author_1",
    "auteur 2": "author_2",
    "Editeur": "publisher",
    "Date de Publ.": "publication_date",
    "ISBN": "isbn",
    "Format": "format",
    "nb pages": "page_count",
    "résumé": "summary",
    "Période Hist": "historical_period",
    "Pérlode Hist": "historical_period",
    "Thématique Générale": "general_theme",
    "Evt Majeur": "major_event",
    "Géographie": "geography",
    "Groupes et acteurs": "groups_actors",
    "Sources": "sources",
}

DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%d/%m/%y", "%Y")

WORKBOOK_SUFFIXES = (".xlsx", ".xlsm")


@dataclass
class ImportResult:
    """Outcome of one import run."""

    imported: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)


def clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    # Workbook cells hold numbers as floats (ISBN 9782000000001.0)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def parse_int(value: Any) -> Optional[int]:
    """Parse ``12``, ``"12"`` or ``"12.0"``; anything else is None."""
    text = clean_text(value)
    if text is None:
        return None
    try:
        return int(float(text.replace(",", ".")))
    except ValueError:
        return None


def parse_date(value: Any) -> Optional[date]:
    """Parse the date formats found in the spreadsheet."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = clean_text(value)
    if text is None:
        return None
    if len(text) > 10 and text[4] == "-":
        text = text[:10]

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def clean_row(row: dict[str, Any]) -> Optional[dict[str, Any]]:
    """
    Translate one spreadsheet row into book column values.

    Returns:
        Column values, or None when the row has no entry number
    """
    values: dict[str, Any] = {}
    for header, raw in row.items():
        column = COLUMN_MAPPING.get((header or "").strip())
        if column is None:
            continue
        if column in ("entry_id", "page_count"):
            values[column] = parse_int(raw)
        elif column == "publication_date":
            values[column] = parse_date(raw)
        else:
            values[column] = clean_text(raw)

    if not values.get("entry_id"):
        return None
    if not values.get("title"):
        values["title"] = MISSING_TITLE
    return values


def read_catalog_csv(
    path: Union[str, Path],
    encoding: str = "utf-8-sig",
    delimiter: str = ",",
) -> list[dict[str, Any]]:
    """Read the exported spreadsheet as a list of header -> cell dicts."""
    with open(path, "r", encoding=encoding, newline="") as f:
        rows = list(csv.DictReader(f, delimiter=delimiter))
    logger.info(f"Found {len(rows)} records in {path}")
    return rows


def read_catalog_xlsx(path: Union[str, Path]) -> list[dict[str, Any]]:
    """
    Read the first sheet of the catalog workbook.

    The first row holds the headers. Cells are read as their cached
    values, so formulas give their last computed result. Empty rows are
    dropped.
    """
    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        cells = workbook.worksheets[0].iter_rows(values_only=True)
        header_row = next(cells, None) or ()
        headers = [clean_text(header) or "" for header in header_row]
        rows = [
            dict(zip(headers, values))
            for values in cells
            if any(value is not None for value in values)
        ]
    finally:
        workbook.close()

    logger.info(f"Found {len(rows)} records in {path}")
    return rows


def read_catalog(
    path: Union[str, Path],
    encoding: str = "utf-8-sig",
    delimiter: str = ",",
) -> list[dict[str, Any]]:
    """Read a workbook (.xlsx, .xlsm) or a CSV export, by file suffix."""
    if Path(path).suffix.lower() in WORKBOOK_SUFFIXES:
        return read_catalog_xlsx(path)
    return read_catalog_csv(path, encoding=encoding, delimiter=delimiter)


async def ensure_default_admin(
    session: AsyncSession,
    email: str = DEFAULT_ADMIN_EMAIL,
    password: str = DEFAULT_ADMIN_PASSWORD,
) -> bool:
    """
    Create the admin account unless the email is already registered.

    Returns:
        True if the account was created
    """
    existing = (
        await session.execute(select(User.id).where(User.email == email))
    ).scalar_one_or_none()
    if existing is not None:
        logger.info(f"Admin account {email} already exists")
        return False

    session.add(User(
        email=email,
        password_hash=get_password_hash(password),
        first_name="Admin",
        last_name="User",
        role=UserRole.ADMIN.value,
    ))
    await session.commit()
    logger.info(f"Default admin user created: {email}")
    return True


async def upsert_book(session: AsyncSession, values: dict[str, Any]) -> Book:
    """Insert the book, or overwrite the one with the same entry number."""
    book = (
        await session.execute(select(Book).where(Book.entry_id == values["entry_id"]))
    ).scalar_one_or_none()

    if book is None:
        book = Book(**values)
        session.add(book)
    else:
        for column, value in values.items():
            setattr(book, column, value)
        book.updated_at = func.now()

    await session.commit()
    return book


async def import_rows(
    session: AsyncSession,
    rows: Iterable[dict[str, Any]],
) -> ImportResult:
    """
    Upsert every usable row.

    Rows without an entry number, and rows the database rejects, are
    counted as skipped.
    """
    result = ImportResult()

    for line, row in enumerate(rows, start=2):
        values = clean_row(row)
        if values is None:
            result.skipped += 1
            continue

        try:
            await upsert_book(session, values)
        except SQLAlchemyError as e:
            await session.rollback()
            message = f"Row {line} (entry {values['entry_id']}): {type(e).__name__}: {e}"
            logger.error(f"Error importing book: {message}")
            result.errors.append(message)
            result.skipped += 1
            continue

        result.imported += 1
        if result.imported % 500 == 0:
            logger.info(f"  Imported {result.imported} books...")

    logger.info(f"Import finished: {result.imported} imported, {result.skipped} skipped")
    return result


async def run_import(
    database: Database,
    source_path: Optional[Union[str, Path]] = None,
    admin_password: str = DEFAULT_ADMIN_PASSWORD,
    encoding: str = "utf-8-sig",
    delimiter: str = ",",
) -> ImportResult:
    """
    Bootstrap the schema and admin account, then import ``source_path``
    (a workbook or a CSV export).

    With no path only the bootstrap steps run.
    """
    await database.create_all()

    async with database.session() as session:
        await ensure_default_admin(session, password=admin_password)

        if source_path is None:
            return ImportResult()

        rows = read_catalog(source_path, encoding=encoding, delimiter=delimiter)
        return await import_rows(session, rows)
