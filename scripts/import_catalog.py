#!/usr/bin/env python3
"""
Import the society's catalog into the database.

Creates the tables, the default admin account and, when the catalog
workbook (.xlsx) or a CSV export of it is given, upserts every book by
entry number.

Usage:
    python scripts/import_catalog.py path/to/catalogue.xlsx
    python scripts/import_catalog.py path/to/catalogue.csv --delimiter ";"
    python scripts/import_catalog.py --bootstrap-only

Expected columns (first row of the sheet or CSV header):
    Ent. SdSdC, Localisation, Section, Titre complet de l'ouvrage,
    Sous titre, Auteur 1, auteur 2, Editeur, Date de Publ., ISBN, Format,
    nb pages, résumé, Période Hist, Thématique Générale, Evt Majeur,
    Géographie, Groupes et acteurs, Sources
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shelfmark.api.dependencies import build_database, get_settings
from shelfmark.storage.catalog_import import DEFAULT_ADMIN_PASSWORD, run_import


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import the library catalog")
    parser.add_argument("source", nargs="?", help="Catalog workbook (.xlsx) or CSV export")
    parser.add_argument(
        "--bootstrap-only",
        action="store_true",
        help="Only create tables and the default admin",
    )
    parser.add_argument("--encoding", default="utf-8-sig", help="CSV file encoding (ignored for workbooks)")
    parser.add_argument("--delimiter", default=",", help="CSV field delimiter (ignored for workbooks)")
    return parser.parse_args()


async def main() -> int:
    load_dotenv()
    args = parse_args()

    if not args.source and not args.bootstrap_only:
        logger.error("No catalog file given. Pass a path or --bootstrap-only.")
        return 1
    if args.source and not Path(args.source).exists():
        logger.error(f"File not found: {args.source}")
        return 1

    settings = get_settings()
    database = build_database(settings)
    admin_password = os.getenv("ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD)

    logger.info("Starting data import...")
    try:
        result = await run_import(
            database,
            source_path=None if args.bootstrap_only else args.source,
            admin_password=admin_password,
            encoding=args.encoding,
            delimiter=args.delimiter,
        )
    finally:
        await database.dispose()

    logger.info(f"Imported {result.imported} books, skipped {result.skipped}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
