"""Personal library routes — owned books, reading list and the currently-reading book."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookshelf.auth.dependencies import get_current_user
from bookshelf.config import Settings, get_settings
from bookshelf.database import get_db
from bookshelf.exceptions import BookshelfError
from bookshelf.routers.common import http_error, list_params
from bookshelf.schemas.book import (
    BookActions,
    BookIdIn,
    BookListResponse,
    ReadingListResponse,
    ReadingStatus,
    StatusMessage,
)
from bookshelf.services import library
from bookshelf.services.list_query import ListQuery, ListScope, fetch_page
from bookshelf.services.reading_state import set_currently_reading

router = APIRouter(tags=["Library"])


def _scoped_query(scope: ListScope, user: dict, params: dict, settings: Settings) -> ListQuery:
    return ListQuery.build(
        scope,
        user_id=user["user_id"],
        default_limit=settings.list_default_limit,
        max_limit=settings.list_max_limit,
        **params,
    )


# ── Owned books ──

@router.get("/my-books", response_model=BookListResponse)
async def list_my_books(
    params: dict = Depends(list_params),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: dict = Depends(get_current_user),
):
    """Books the current user owns, newest additions first by default."""
    return await fetch_page(db, _scoped_query(ListScope.OWNED, current_user, params, settings))


@router.get("/user-books/{book_id}", response_model=bool)
async def is_owned(
    book_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    return await library.is_owned(db, current_user["user_id"], book_id)


@router.post("/user-books", response_model=StatusMessage, status_code=status.HTTP_201_CREATED)
async def add_owned(
    data: BookIdIn,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    try:
        await library.add_owned(db, current_user["user_id"], data.book_id)
    except BookshelfError as exc:
        raise http_error(exc)
    return StatusMessage(message="Added to My Books")


@router.delete("/user-books/{book_id}", response_model=StatusMessage)
async def remove_owned(
    book_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    try:
        await library.remove_owned(db, current_user["user_id"], book_id)
    except BookshelfError as exc:
        raise http_error(exc)
    return StatusMessage(message="Removed from My Books")


# ── Reading list ──

@router.get("/reading-list", response_model=ReadingListResponse)
async def list_reading_list(
    params: dict = Depends(list_params),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: dict = Depends(get_current_user),
):
    """The current user's reading list, with the currently-reading flag per book."""
    return await fetch_page(db, _scoped_query(ListScope.READING_LIST, current_user, params, settings))


@router.get("/reading-list/{book_id}", response_model=bool)
async def in_reading_list(
    book_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    return await library.in_reading_list(db, current_user["user_id"], book_id)


@router.post("/reading-list", response_model=StatusMessage, status_code=status.HTTP_201_CREATED)
async def add_to_reading_list(
    data: BookIdIn,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    try:
        await library.add_to_reading_list(db, current_user["user_id"], data.book_id)
    except BookshelfError as exc:
        raise http_error(exc)
    return StatusMessage(message="Added to Reading List")


@router.delete("/reading-list/{book_id}", response_model=StatusMessage)
async def remove_from_reading_list(
    book_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    try:
        await library.remove_from_reading_list(db, current_user["user_id"], book_id)
    except BookshelfError as exc:
        raise http_error(exc)
    return StatusMessage(message="Removed from Reading List")


@router.put("/reading-list/{book_id}/current", response_model=StatusMessage)
async def mark_currently_reading(
    book_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    """Make this book the user's only currently-reading book."""
    try:
        await set_currently_reading(db, current_user["user_id"], book_id)
    except BookshelfError as exc:
        raise http_error(exc)
    return StatusMessage(message="Currently reading updated")


@router.get("/reading-list/{book_id}/status", response_model=ReadingStatus)
async def get_reading_status(
    book_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    return await library.reading_status(db, current_user["user_id"], book_id)


@router.get("/book-actions/{book_id}", response_model=BookActions)
async def get_book_actions(
    book_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    """Whether the book is in the user's owned books and reading list."""
    return await library.book_actions(db, current_user["user_id"], book_id)
