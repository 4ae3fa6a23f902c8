"""
Single "currently reading" book per user.

The flag lives on ``reading_list`` rows. Moving it is two statements (clear every
row of the user, then set the target row) that must commit together: if the
target is not on the user's reading list, or the backend fails half way, the
transaction is rolled back and the previously flagged book stays flagged.

Two concurrent moves for the same user serialise on the row locks taken by the
clearing UPDATE, so the last commit wins and exactly one row stays set.
"""

from __future__ import annotations

import structlog
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bookshelf.exceptions import NotInReadingListError, ReadingStateError
from bookshelf.models import ReadingListEntry

logger = structlog.get_logger()


async def set_currently_reading(db: AsyncSession, user_id: int, book_id: int) -> None:
    """Make ``book_id`` the only currently-reading entry of ``user_id``.

    Raises ``NotInReadingListError`` when the book is not on the user's list and
    ``ReadingStateError`` on any backend failure. Nothing is committed in either case.
    """
    try:
        await db.execute(
            update(ReadingListEntry)
            .where(ReadingListEntry.user_id == user_id)
            .values(currently_reading=False)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(
            update(ReadingListEntry)
            .where(
                ReadingListEntry.user_id == user_id,
                ReadingListEntry.book_id == book_id,
            )
            .values(currently_reading=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            logger.info("currently_reading_target_missing", user_id=user_id, book_id=book_id)
            raise NotInReadingListError(book_id)

        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error(
            "currently_reading_update_failed",
            user_id=user_id,
            book_id=book_id,
            error=str(exc),
        )
        raise ReadingStateError() from exc

    logger.info("currently_reading_updated", user_id=user_id, book_id=book_id)
