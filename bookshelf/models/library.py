"""Per-user join tables: owned books and the reading list."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from bookshelf.database import Base


class UserBook(Base):
    __tablename__ = "user_books"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    book_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("books.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    status: Mapped[str] = mapped_column(String(20), default="owned", server_default="owned")
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<UserBook user={self.user_id} book={self.book_id} status={self.status}>"


class ReadingListEntry(Base):
    __tablename__ = "reading_list"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    book_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("books.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    # At most one row per user may be true; maintained by services.reading_state
    currently_reading: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="0", nullable=False
    )
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return (
            f"<ReadingListEntry user={self.user_id} book={self.book_id}"
            f" current={self.currently_reading}>"
        )
