"""Book ORM model."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from bookshelf.database import Base


class BookSource(str, enum.Enum):
    USER = "user"
    OPENLIBRARY = "openlibrary"


class CoverSource(str, enum.Enum):
    NONE = "none"
    CLOUDINARY = "cloudinary"
    OPENLIBRARY = "openlibrary"


def _enum_values(e: type[enum.Enum]) -> list[str]:
    return [x.value for x in e]


class Book(Base):
    __tablename__ = "books"
    __table_args__ = (
        CheckConstraint(
            "(source = 'user' AND created_by IS NOT NULL)"
            " OR (source = 'openlibrary' AND created_by IS NULL)",
            name="ck_books_source_created_by",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    work_key: Mapped[Optional[str]] = mapped_column(String(64), unique=True, nullable=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    authors: Mapped[str] = mapped_column(
        String(500), nullable=False, default="Unknown", server_default="Unknown"
    )
    genre: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cover_source: Mapped[CoverSource] = mapped_column(
        Enum(CoverSource, name="coversource", native_enum=False, length=16, values_callable=_enum_values),
        default=CoverSource.NONE,
        server_default="none",
        nullable=False,
    )
    cover_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    cover_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    source: Mapped[BookSource] = mapped_column(
        Enum(BookSource, name="booksource", native_enum=False, length=16, values_callable=_enum_values),
        nullable=False,
    )
    created_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Book id={self.id} title={self.title!r} source={self.source}>"
