"""
Tests for catalog bootstrap and spreadsheet import.
"""

import csv
from datetime import date, datetime

import pytest
from openpyxl import Workbook
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from shelfmark.security import verify_password
from shelfmark.storage import catalog_import
from shelfmark.storage.catalog_import import (
    DEFAULT_ADMIN_EMAIL,
    MISSING_TITLE,
    clean_row,
    ensure_default_admin,
    import_rows,
    parse_date,
    parse_int,
    read_catalog,
    read_catalog_xlsx,
    run_import,
)
from shelfmark.storage.models import Book, User


HEADERS = [
    "Ent. SdSdC",
    "Localisation",
    "Section",
    "Titre complet de l'ouvrage",
    "Auteur 1",
    "auteur 2",
    "Date de Publ.",
    "ISBN",
    "nb pages",
    "Géographie",
]


def write_csv(path, rows):
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=HEADERS)
        writer.writeheader()
        writer.writerows(rows)
    return path


def write_workbook(path, rows):
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(HEADERS)
    for row in rows:
        sheet.append([row.get(header) for header in HEADERS])
    workbook.save(path)
    return path


class TestRowCleaning:
    """Tests for spreadsheet cell conversion."""

    def test_workbook_numbers_as_text(self):
        assert clean_row({"Ent. SdSdC": 4.0, "ISBN": 9782000000001.0})["isbn"] == "9782000000001"

    def test_parse_int(self):
        assert parse_int("12") == 12
        assert parse_int("12.0") == 12
        assert parse_int(" ") is None
        assert parse_int("n/a") is None

    def test_parse_date(self):
        assert parse_date("1995-06-01") == date(1995, 6, 1)
        assert parse_date("01/06/1995") == date(1995, 6, 1)
        assert parse_date("1995-06-01T00:00:00") == date(1995, 6, 1)
        assert parse_date("1995") == date(1995, 1, 1)
        assert parse_date("bientôt") is None

    def test_clean_row(self):
        values = clean_row({
            "Ent. SdSdC": "17",
            "Localisation": " A3 ",
            "Section": "Histoire",
            "Titre complet de l'ouvrage": "  Le Léman  ",
            "auteur 2": "",
            "nb pages": "230",
            "Colonne inconnue": "ignored",
        })

        assert values == {
            "entry_id": 17,
            "location": "A3",
            "section": "Histoire",
            "title": "Le Léman",
            "author_2": None,
            "page_count": 230,
        }

    def test_row_without_entry_number_is_dropped(self):
        assert clean_row({"Ent. SdSdC": "", "Titre complet de l'ouvrage": "Orphelin"}) is None

    def test_row_without_title_gets_placeholder(self):
        values = clean_row({"Ent. SdSdC": "3", "Titre complet de l'ouvrage": " "})

        assert values["title"] == MISSING_TITLE


@pytest.mark.asyncio
class TestImport:
    """Tests for upserting rows into the catalog."""

    async def test_upsert_by_entry_number(self, db_session):
        rows = [
            {"Ent. SdSdC": "1", "Section": "Histoire", "Titre complet de l'ouvrage": "Premier"},
            {"Ent. SdSdC": "2", "Section": "Cartes", "Titre complet de l'ouvrage": "Second"},
        ]
        result = await import_rows(db_session, rows)
        assert (result.imported, result.skipped) == (2, 0)

        result = await import_rows(db_session, [
            {"Ent. SdSdC": "1", "Section": "Histoire", "Titre complet de l'ouvrage": "Premier (2e éd.)"},
        ])
        assert result.imported == 1

        total = (await db_session.execute(select(func.count()).select_from(Book))).scalar_one()
        title = (
            await db_session.execute(select(Book.title).where(Book.entry_id == 1))
        ).scalar_one()
        assert total == 2
        assert title == "Premier (2e éd.)"

    async def test_bad_rows_are_skipped(self, db_session, monkeypatch):
        real_upsert = catalog_import.upsert_book

        async def failing_upsert(session, values):
            if values["entry_id"] == 5:
                raise IntegrityError("INSERT INTO books", {}, Exception("constraint failed"))
            return await real_upsert(session, values)

        monkeypatch.setattr(catalog_import, "upsert_book", failing_upsert)
        rows = [
            {"Ent. SdSdC": "", "Titre complet de l'ouvrage": "Sans numéro"},
            {"Ent. SdSdC": "5", "Titre complet de l'ouvrage": "Rejeté"},
            {"Ent. SdSdC": "6", "Titre complet de l'ouvrage": "Valide"},
        ]

        result = await import_rows(db_session, rows)

        assert (result.imported, result.skipped) == (1, 2)
        assert len(result.errors) == 1
        assert "entry 5" in result.errors[0]
        titles = (await db_session.execute(select(Book.title))).scalars().all()
        assert titles == ["Valide"]

    async def test_default_admin_is_created_once(self, db_session):
        assert await ensure_default_admin(db_session, password="pw") is True
        assert await ensure_default_admin(db_session, password="other") is False

        admin = (
            await db_session.execute(select(User).where(User.email == DEFAULT_ADMIN_EMAIL))
        ).scalar_one()
        assert admin.role == "admin"
        assert verify_password("pw", admin.password_hash)

    async def test_run_import_from_csv(self, database, tmp_path):
        path = write_csv(tmp_path / "catalogue.csv", [
            {
                "Ent. SdSdC": "10",
                "Localisation": "B1",
                "Section": "Histoire",
                "Titre complet de l'ouvrage": "Les foires de Genève",
                "Auteur 1": "Anne Morel",
                "Date de Publ.": "12/03/2001",
                "ISBN": "9782000000001",
                "nb pages": "154",
                "Géographie": "Genève",
            },
            {"Ent. SdSdC": "", "Titre complet de l'ouvrage": "Ignoré"},
        ])

        result = await run_import(database, source_path=path, admin_password="pw")

        assert (result.imported, result.skipped) == (1, 1)
        async with database.session() as session:
            book = (await session.execute(select(Book).where(Book.entry_id == 10))).scalar_one()
            admins = (await session.execute(select(func.count()).select_from(User))).scalar_one()

        assert book.publication_date == date(2001, 3, 12)
        assert book.geography == "Genève"
        assert book.page_count == 154
        assert admins == 1

    async def test_run_import_from_workbook(self, database, tmp_path):
        path = write_workbook(tmp_path / "catalogue.xlsx", [
            {
                "Ent. SdSdC": 11,
                "Localisation": "C2",
                "Section": "Cartes",
                "Titre complet de l'ouvrage": "  Atlas du Chablais ",
                "Auteur 1": "Louis Favre",
                "Date de Publ.": datetime(1998, 5, 4),
                "ISBN": 9782000000002,
                "nb pages": 96,
            },
            {"Localisation": "C3", "Titre complet de l'ouvrage": "Sans numéro"},
        ])

        result = await run_import(database, source_path=path, admin_password="pw")

        assert (result.imported, result.skipped) == (1, 1)
        async with database.session() as session:
            book = (await session.execute(select(Book).where(Book.entry_id == 11))).scalar_one()

        assert book.title == "Atlas du Chablais"
        assert book.publication_date == date(1998, 5, 4)
        assert book.isbn == "9782000000002"
        assert book.page_count == 96
        assert book.geography is None


class TestWorkbookReader:
    """Tests for reading the catalog workbook."""

    def test_first_sheet_rows_keyed_by_header(self, tmp_path):
        path = write_workbook(tmp_path / "catalogue.xlsx", [
            {"Ent. SdSdC": 1, "Section": "Histoire", "Titre complet de l'ouvrage": "Premier"},
            {},
            {"Ent. SdSdC": 2, "Section": "Cartes", "Titre complet de l'ouvrage": "Second"},
        ])

        rows = read_catalog_xlsx(path)

        assert [row["Titre complet de l'ouvrage"] for row in rows] == ["Premier", "Second"]
        assert rows[0]["Ent. SdSdC"] == 1
        assert rows[1]["Section"] == "Cartes"

    def test_suffix_selects_reader(self, tmp_path):
        row = {"Ent. SdSdC": "3", "Titre complet de l'ouvrage": "Même livre"}
        from_csv = read_catalog(write_csv(tmp_path / "catalogue.csv", [row]))
        from_workbook = read_catalog(write_workbook(tmp_path / "catalogue.XLSX", [row]))

        assert clean_row(from_csv[0]) == clean_row(from_workbook[0])
