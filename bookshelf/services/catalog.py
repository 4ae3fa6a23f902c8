"""Catalog operations: genres, book detail, create / update / delete with owner checks."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bookshelf.exceptions import (
    BookFetchError,
    BookNotFoundError,
    BookPermissionError,
    BookWriteError,
    BookshelfError,
)
from bookshelf.models import Book, BookSource, CoverSource, User
from bookshelf.schemas.book import BookRow
from bookshelf.services.library import add_owned
from bookshelf.services.list_query import BOOK_COLUMNS
from bookshelf.services.storage import StoredCover

logger = structlog.get_logger()


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


async def list_genres(db: AsyncSession) -> list[str]:
    """Distinct genres, alphabetical. Empty list if the backend fails."""
    try:
        result = await db.execute(
            select(Book.genre).where(Book.genre.is_not(None)).distinct().order_by(Book.genre.asc())
        )
    except SQLAlchemyError as exc:
        logger.error("genre_list_failed", error=str(exc))
        await db.rollback()
        return []
    return list(result.scalars().all())


async def get_book(db: AsyncSession, book_id: int) -> BookRow:
    try:
        result = await db.execute(
            select(*BOOK_COLUMNS)
            .select_from(Book)
            .outerjoin(User, User.id == Book.created_by)
            .where(Book.id == book_id)
            .limit(1)
        )
        row = result.mappings().first()
    except SQLAlchemyError as exc:
        logger.error("book_fetch_failed", book_id=book_id, error=str(exc))
        raise BookFetchError() from exc

    if row is None:
        raise BookNotFoundError(book_id)
    return BookRow.model_validate(dict(row))


def edit_window_open(created_at: Optional[datetime], window_hours: int, now: Optional[datetime] = None) -> bool:
    """Whether a book created at ``created_at`` may still be changed.

    ``window_hours <= 0`` means no time limit.
    """
    if window_hours <= 0:
        return True
    if created_at is None:
        return False
    if created_at.tzinfo is None:
        # SQLite hands back naive UTC timestamps
        created_at = created_at.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return now - created_at <= timedelta(hours=window_hours)


async def authorize_book_change(
    db: AsyncSession,
    identity: dict,
    book_id: int,
    window_hours: int,
) -> None:
    """Admins may change any book, users only the ones they created; both within the edit window."""
    try:
        result = await db.execute(
            select(Book.source, Book.created_by, Book.created_at).where(Book.id == book_id)
        )
        book = result.first()
    except SQLAlchemyError as exc:
        logger.error("book_owner_lookup_failed", book_id=book_id, error=str(exc))
        raise BookFetchError() from exc

    if book is None:
        raise BookNotFoundError(book_id)

    is_admin = identity["role"] == "admin"
    is_creator = book.source == BookSource.USER and book.created_by == identity["user_id"]
    if not (is_admin or is_creator):
        logger.info("book_change_denied", book_id=book_id, user_id=identity["user_id"], reason="not_owner")
        raise BookPermissionError()

    if not edit_window_open(book.created_at, window_hours):
        logger.info("book_change_denied", book_id=book_id, user_id=identity["user_id"], reason="window_closed")
        raise BookPermissionError("The edit window for this book has closed")


async def create_book(
    db: AsyncSession,
    user_id: int,
    title: str,
    authors: Optional[str] = None,
    genre: Optional[str] = None,
    description: Optional[str] = None,
    cover: Optional[StoredCover] = None,
) -> int:
    """Insert a user-submitted book and record the creator as its owner.

    The ownership row is best effort: if it fails the book still exists and the
    new id is returned.
    """
    book = Book(
        title=title.strip(),
        authors=_clean(authors) or "Unknown",
        genre=_clean(genre),
        description=_clean(description),
        cover_source=cover.source if cover else CoverSource.NONE,
        cover_url=cover.url if cover else None,
        source=BookSource.USER,
        created_by=user_id,
    )
    try:
        db.add(book)
        await db.flush()
        book_id = book.id
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("book_create_failed", user_id=user_id, error=str(exc))
        raise BookWriteError("Book creation failed") from exc

    logger.info("book_created", book_id=book_id, user_id=user_id)

    try:
        await add_owned(db, user_id, book_id)
    except BookshelfError as exc:
        # Non-fatal; the book row is already committed
        logger.warning("book_owner_link_failed", book_id=book_id, user_id=user_id, error=str(exc))

    return book_id


async def update_book(
    db: AsyncSession,
    book_id: int,
    title: str,
    authors: Optional[str] = None,
    genre: Optional[str] = None,
    description: Optional[str] = None,
    cover: Optional[StoredCover] = None,
) -> None:
    values = {
        "title": title.strip(),
        "authors": _clean(authors) or "Unknown",
        "genre": _clean(genre),
        "description": _clean(description),
    }
    # Without a new upload the existing cover is kept
    if cover is not None:
        values["cover_url"] = cover.url
        values["cover_source"] = cover.source

    try:
        result = await db.execute(
            update(Book)
            .where(Book.id == book_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            raise BookNotFoundError(book_id)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("book_update_failed", book_id=book_id, error=str(exc))
        raise BookWriteError("Failed to update book") from exc

    logger.info("book_updated", book_id=book_id)


async def delete_book(db: AsyncSession, book_id: int) -> None:
    try:
        result = await db.execute(
            delete(Book).where(Book.id == book_id).execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            raise BookNotFoundError(book_id)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("book_delete_failed", book_id=book_id, error=str(exc))
        raise BookWriteError("Failed to delete book") from exc

    logger.info("book_deleted", book_id=book_id)
