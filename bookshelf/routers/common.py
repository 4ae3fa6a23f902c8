"""Helpers shared by the book routers: list query parameters and error translation."""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Query, status

from bookshelf.exceptions import (
    BookNotFoundError,
    BookPermissionError,
    BookshelfError,
    NotInReadingListError,
    StorageError,
)

_STATUS_BY_ERROR = {
    BookNotFoundError: status.HTTP_404_NOT_FOUND,
    NotInReadingListError: status.HTTP_404_NOT_FOUND,
    BookPermissionError: status.HTTP_403_FORBIDDEN,
    StorageError: status.HTTP_502_BAD_GATEWAY,
}


def http_error(exc: BookshelfError) -> HTTPException:
    """Map a service error to a response carrying only its coarse message."""
    code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=code, detail=exc.message)


def list_params(
    q: Optional[str] = Query(None, description="Case-insensitive title substring"),
    genre: Optional[str] = Query(None, description="Exact genre"),
    sort: Optional[str] = Query(None, description="title | created_at"),
    order: Optional[str] = Query(None, description="asc | desc"),
    # Taken as text so junk values fall back to defaults instead of a 422
    page: Optional[str] = Query(None, description="1-based page number"),
    limit: Optional[str] = Query(None, description="Page size, at most 50"),
) -> dict:
    """Raw list parameters.

    ``page`` and ``limit`` must be whole integers: anything else, including a
    numeric prefix such as ``3abc``, falls back to the default rather than being
    truncated to its leading digits.
    """
    return {"q": q, "genre": genre, "sort": sort, "order": order, "page": page, "limit": limit}
