"""Book schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from bookshelf.models.book import CoverSource


class BookRow(BaseModel):
    """One book as returned by list and detail endpoints."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    title: str
    authors: str
    genre: Optional[str] = None
    description: Optional[str] = Field(None, alias="desc")
    cover_id: Optional[str] = None
    cover_source: CoverSource = CoverSource.NONE
    cover_url: Optional[str] = None
    user_id: Optional[int] = None
    username: Optional[str] = None
    created_at: Optional[datetime] = None


class ReadingListRow(BookRow):
    currently_reading: bool = False
    added_at: Optional[datetime] = None


class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_page: int = Field(..., alias="currentPage")
    total_pages: int = Field(..., alias="totalPages")
    total_books: int = Field(..., alias="totalBooks")


class BookListResponse(BaseModel):
    books: list[BookRow]
    pagination: Pagination


class ReadingListResponse(BaseModel):
    books: list[ReadingListRow]
    pagination: Pagination


class BookCreated(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "Book created successfully"
    book_id: int = Field(..., alias="bookId")


class BookIdIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    book_id: int = Field(..., alias="bookId", gt=0)


class ReadingStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    in_reading_list: bool = Field(False, alias="inReadingList")
    currently_reading: bool = Field(False, alias="currentlyReading")


class BookActions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    in_my_books: bool = Field(False, alias="inMyBooks")
    in_reading_list: bool = Field(False, alias="inReadingList")


class StatusMessage(BaseModel):
    message: str
