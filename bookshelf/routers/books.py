"""Catalog routes — public listing and detail, owner/admin-only writes."""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from bookshelf.auth.dependencies import get_current_user
from bookshelf.config import Settings, get_settings
from bookshelf.database import get_db
from bookshelf.exceptions import BookshelfError
from bookshelf.routers.common import http_error, list_params
from bookshelf.schemas.book import BookCreated, BookListResponse, BookRow, StatusMessage
from bookshelf.services import catalog
from bookshelf.services.list_query import ListQuery, ListScope, fetch_page
from bookshelf.services.storage import CloudinaryCoverStorage, StoredCover, get_cover_storage

logger = structlog.get_logger()
router = APIRouter(tags=["Books"])


async def _store_cover(cover: Optional[UploadFile], storage: CloudinaryCoverStorage) -> Optional[StoredCover]:
    if cover is None or not cover.filename:
        return None
    content_type = cover.content_type or ""
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Cover must be an image")
    data = await cover.read()
    if not data:
        return None
    return await run_in_threadpool(storage.upload, data, content_type)


def _require_title(title: Optional[str]) -> str:
    if title is None or not title.strip():
        raise HTTPException(status_code=400, detail="Title is required")
    return title


@router.get("/genres", response_model=list[str])
async def list_genres(db: AsyncSession = Depends(get_db)):
    """Distinct genres present in the catalog."""
    return await catalog.list_genres(db)


@router.get("/books", response_model=BookListResponse)
async def list_books(
    params: dict = Depends(list_params),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Paginated catalog with title search, genre filter and sorting."""
    query = ListQuery.build(
        ListScope.ALL,
        default_limit=settings.list_default_limit,
        max_limit=settings.list_max_limit,
        **params,
    )
    return await fetch_page(db, query)


@router.get("/books/{book_id}", response_model=BookRow)
async def get_book(book_id: int, db: AsyncSession = Depends(get_db)):
    try:
        return await catalog.get_book(db, book_id)
    except BookshelfError as exc:
        raise http_error(exc)


@router.post("/books", response_model=BookCreated, status_code=status.HTTP_201_CREATED)
async def create_book(
    title: Optional[str] = Form(None),
    authors: Optional[str] = Form(None),
    desc: Optional[str] = Form(None),
    genre: Optional[str] = Form(None),
    cover: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    storage: CloudinaryCoverStorage = Depends(get_cover_storage),
    current_user: dict = Depends(get_current_user),
):
    """Create a book from a multipart form; the creator automatically owns it."""
    title = _require_title(title)
    try:
        stored = await _store_cover(cover, storage)
        book_id = await catalog.create_book(
            db,
            current_user["user_id"],
            title=title,
            authors=authors,
            genre=genre,
            description=desc,
            cover=stored,
        )
    except BookshelfError as exc:
        raise http_error(exc)
    return BookCreated(book_id=book_id)


@router.put("/books/{book_id}", response_model=StatusMessage)
async def update_book(
    book_id: int,
    title: Optional[str] = Form(None),
    authors: Optional[str] = Form(None),
    desc: Optional[str] = Form(None),
    genre: Optional[str] = Form(None),
    cover: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    storage: CloudinaryCoverStorage = Depends(get_cover_storage),
    settings: Settings = Depends(get_settings),
    current_user: dict = Depends(get_current_user),
):
    """Update a book (its creator or an admin, within the edit window)."""
    title = _require_title(title)
    try:
        await catalog.authorize_book_change(db, current_user, book_id, settings.book_edit_window_hours)
        stored = await _store_cover(cover, storage)
        await catalog.update_book(
            db,
            book_id,
            title=title,
            authors=authors,
            genre=genre,
            description=desc,
            cover=stored,
        )
    except BookshelfError as exc:
        raise http_error(exc)
    return StatusMessage(message="Book updated successfully")


@router.delete("/books/{book_id}", response_model=StatusMessage)
async def delete_book(
    book_id: int,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: dict = Depends(get_current_user),
):
    """Delete a book (its creator or an admin, within the edit window)."""
    try:
        await catalog.authorize_book_change(db, current_user, book_id, settings.book_edit_window_hours)
        await catalog.delete_book(db, book_id)
    except BookshelfError as exc:
        raise http_error(exc)
    return StatusMessage(message="Book deleted successfully")
