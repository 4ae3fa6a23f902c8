"""Per-user library: owned books (``user_books``) and the reading list."""

from __future__ import annotations

import structlog
from sqlalchemy import delete, exists, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bookshelf.database import insert_ignore
from bookshelf.exceptions import BookNotFoundError, BookWriteError
from bookshelf.models import Book, ReadingListEntry, UserBook
from bookshelf.schemas.book import BookActions, ReadingStatus

logger = structlog.get_logger()


async def _ensure_book(db: AsyncSession, book_id: int) -> None:
    found = await db.execute(select(Book.id).where(Book.id == book_id))
    if found.scalar_one_or_none() is None:
        raise BookNotFoundError(book_id)


async def _add(db: AsyncSession, model, values: dict, event: str) -> None:
    try:
        await _ensure_book(db, values["book_id"])
        await db.execute(insert_ignore(db.get_bind().dialect.name, model).values(**values))
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error(f"{event}_failed", error=str(exc), **values)
        raise BookWriteError() from exc
    logger.info(event, user_id=values["user_id"], book_id=values["book_id"])


async def _remove(db: AsyncSession, model, user_id: int, book_id: int, event: str) -> None:
    try:
        await db.execute(
            delete(model)
            .where(model.user_id == user_id, model.book_id == book_id)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error(f"{event}_failed", user_id=user_id, book_id=book_id, error=str(exc))
        raise BookWriteError() from exc
    logger.info(event, user_id=user_id, book_id=book_id)


async def add_owned(db: AsyncSession, user_id: int, book_id: int) -> None:
    """Mark a book as owned. Adding an already-owned book is a no-op."""
    await _add(db, UserBook, {"user_id": user_id, "book_id": book_id, "status": "owned"}, "owned_book_added")


async def remove_owned(db: AsyncSession, user_id: int, book_id: int) -> None:
    await _remove(db, UserBook, user_id, book_id, "owned_book_removed")


async def add_to_reading_list(db: AsyncSession, user_id: int, book_id: int) -> None:
    """Put a book on the reading list, not currently reading. Repeats are no-ops."""
    await _add(
        db,
        ReadingListEntry,
        {"user_id": user_id, "book_id": book_id, "currently_reading": False},
        "reading_list_added",
    )


async def remove_from_reading_list(db: AsyncSession, user_id: int, book_id: int) -> None:
    await _remove(db, ReadingListEntry, user_id, book_id, "reading_list_removed")


async def _row_exists(db: AsyncSession, model, user_id: int, book_id: int) -> bool:
    try:
        result = await db.execute(
            select(model.book_id).where(model.user_id == user_id, model.book_id == book_id).limit(1)
        )
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error(
            "library_lookup_failed",
            table=model.__tablename__,
            user_id=user_id,
            book_id=book_id,
            error=str(exc),
        )
        return False
    return result.first() is not None


async def is_owned(db: AsyncSession, user_id: int, book_id: int) -> bool:
    return await _row_exists(db, UserBook, user_id, book_id)


async def in_reading_list(db: AsyncSession, user_id: int, book_id: int) -> bool:
    return await _row_exists(db, ReadingListEntry, user_id, book_id)


async def reading_status(db: AsyncSession, user_id: int, book_id: int) -> ReadingStatus:
    try:
        result = await db.execute(
            select(ReadingListEntry.currently_reading)
            .where(ReadingListEntry.user_id == user_id, ReadingListEntry.book_id == book_id)
            .limit(1)
        )
        flag = result.scalar_one_or_none()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("reading_status_failed", user_id=user_id, book_id=book_id, error=str(exc))
        return ReadingStatus()

    if flag is None:
        return ReadingStatus()
    return ReadingStatus(in_reading_list=True, currently_reading=bool(flag))


async def book_actions(db: AsyncSession, user_id: int, book_id: int) -> BookActions:
    owned = exists().where(UserBook.user_id == user_id, UserBook.book_id == book_id)
    listed = exists().where(ReadingListEntry.user_id == user_id, ReadingListEntry.book_id == book_id)
    try:
        row = (await db.execute(select(owned.label("owned"), listed.label("listed")))).one()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("book_actions_failed", user_id=user_id, book_id=book_id, error=str(exc))
        return BookActions()
    return BookActions(in_my_books=bool(row.owned), in_reading_list=bool(row.listed))
