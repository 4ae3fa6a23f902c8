"""
Bulk import of Open Library works from a CSV export.

Expected columns: work_key, title, author_name, description, genre, cover_id.
Rows are inserted in batches; works already present (same work_key) are skipped,
so the import can be re-run safely.

Run: python -m bookshelf.importer data/final_library.csv
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Any, Iterator, Optional

import pandas as pd
import structlog
from sqlalchemy.ext.asyncio import AsyncEngine

from bookshelf.config import get_settings
from bookshelf.database import engine as default_engine
from bookshelf.database import insert_ignore
from bookshelf.logging_config import setup_logging
from bookshelf.models import Book, BookSource, CoverSource

logger = structlog.get_logger()

BATCH_SIZE = 200
CSV_COLUMNS = ["work_key", "title", "author_name", "description", "genre", "cover_id"]


def _text(value: Any) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    value = str(value).strip()
    return value or None


def to_book_row(record: dict) -> Optional[dict]:
    """Map one CSV record to ``books`` column values; rows without a title are dropped."""
    title = _text(record.get("title"))
    if title is None:
        return None
    return {
        "work_key": _text(record.get("work_key")),
        "title": title,
        "authors": _text(record.get("author_name")) or "Unknown",
        "description": _text(record.get("description")),
        "genre": _text(record.get("genre")),
        "cover_id": _text(record.get("cover_id")),
        "cover_source": CoverSource.OPENLIBRARY,
        "source": BookSource.OPENLIBRARY,
        "created_by": None,
    }


def read_batches(csv_path: str, batch_size: int = BATCH_SIZE) -> Iterator[tuple[int, list[dict]]]:
    """Yield ``(rows_read, book_rows)`` per chunk of the CSV."""
    reader = pd.read_csv(
        csv_path,
        usecols=lambda c: c in CSV_COLUMNS,
        dtype=str,
        keep_default_na=False,
        na_values=[""],
        chunksize=batch_size,
    )
    for chunk in reader:
        records = chunk.to_dict(orient="records")
        rows = [row for row in (to_book_row(r) for r in records) if row is not None]
        yield len(records), rows


async def run_import(
    csv_path: str,
    batch_size: int = BATCH_SIZE,
    engine: Optional[AsyncEngine] = None,
) -> tuple[int, int]:
    """Import the CSV and return ``(rows_read, rows_inserted)``."""
    engine = engine or default_engine
    total_read = 0
    total_inserted = 0
    logger.info("import_started", csv=csv_path, batch_size=batch_size)

    for read, rows in read_batches(csv_path, batch_size):
        total_read += read
        if not rows:
            continue
        # One transaction per batch; a failing batch aborts the run
        async with engine.begin() as conn:
            stmt = insert_ignore(conn.dialect.name, Book).values(rows)
            result = await conn.execute(stmt)
            total_inserted += max(result.rowcount, 0)

        if total_read % 5000 < batch_size:
            logger.info("import_progress", read=total_read, inserted=total_inserted)

    logger.info("import_complete", read=total_read, inserted=total_inserted)
    return total_read, total_inserted


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Import Open Library works into the catalog")
    parser.add_argument("csv_path", help="CSV file with work_key, title, author_name, ... columns")
    parser.add_argument("--batch-size", type=int, default=BATCH_SIZE)
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    asyncio.run(run_import(args.csv_path, args.batch_size))


if __name__ == "__main__":
    main()
