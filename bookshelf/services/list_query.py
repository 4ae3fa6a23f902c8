"""
Search / filter / sort / paginate engine shared by every book list endpoint.

A ``ListQuery`` is built from raw request parameters and a scope:

- ``all``           every catalog book
- ``owned``         books in ``user_books`` for one user
- ``reading_list``  books in ``reading_list`` for one user

Request values are normalised up front (page >= 1, 1 <= limit <= max, sort key
looked up in a per-scope whitelist, direction restricted to asc/desc) so the
statements never see raw identifier text. The WHERE clause is assembled once and
shared by the COUNT and the page SELECT, and every user value travels as a bound
parameter.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import structlog
from sqlalchemy import ColumnElement, Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bookshelf.models import Book, ReadingListEntry, User, UserBook
from bookshelf.schemas.book import (
    BookListResponse,
    BookRow,
    Pagination,
    ReadingListResponse,
    ReadingListRow,
)

logger = structlog.get_logger()

DEFAULT_LIMIT = 20
MAX_LIMIT = 50
# Offsets travel as signed 64-bit integers
MAX_OFFSET = 2**63 - 1


class ListScope(str, enum.Enum):
    ALL = "all"
    OWNED = "owned"
    READING_LIST = "reading_list"


# Whitelisted sort keys per scope. Anything else falls back to the scope default.
SORT_COLUMNS: Mapping[ListScope, Mapping[str, Any]] = {
    ListScope.ALL: {
        "title": Book.title,
        "created_at": Book.created_at,
    },
    ListScope.OWNED: {
        "title": Book.title,
        "created_at": UserBook.added_at,
        "added_at": UserBook.added_at,
    },
    ListScope.READING_LIST: {
        "title": Book.title,
        "created_at": ReadingListEntry.added_at,
        "added_at": ReadingListEntry.added_at,
    },
}

DEFAULT_SORT: Mapping[ListScope, tuple[str, str]] = {
    ListScope.ALL: ("title", "asc"),
    ListScope.OWNED: ("created_at", "desc"),
    ListScope.READING_LIST: ("created_at", "desc"),
}

SORT_DIRECTIONS = ("asc", "desc")

BOOK_COLUMNS = (
    Book.id,
    Book.title,
    Book.authors,
    Book.genre,
    Book.description,
    Book.cover_id,
    Book.cover_source,
    Book.cover_url,
    Book.created_by.label("user_id"),
    User.username,
    Book.created_at,
)


def _as_int(raw: Any) -> Optional[int]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


def clamp_page(raw: Any, limit: int = DEFAULT_LIMIT) -> int:
    """Missing, non-numeric or non-positive pages are page 1; the offset stays within int64."""
    page = _as_int(raw)
    if page is None or page < 1:
        return 1
    return min(page, MAX_OFFSET // limit)


def clamp_limit(raw: Any, default: int = DEFAULT_LIMIT, maximum: int = MAX_LIMIT) -> int:
    """Missing, non-numeric, zero or negative limits use the default; large ones are capped."""
    limit = _as_int(raw)
    if limit is None or limit < 1:
        limit = default
    return min(limit, maximum)


def resolve_sort_key(scope: ListScope, raw: Optional[str]) -> str:
    if raw and raw in SORT_COLUMNS[scope]:
        return raw
    return DEFAULT_SORT[scope][0]


def resolve_direction(scope: ListScope, raw: Optional[str]) -> str:
    direction = (raw or "").strip().lower()
    if direction in SORT_DIRECTIONS:
        return direction
    return DEFAULT_SORT[scope][1]


def total_pages(total: int, limit: int) -> int:
    if total <= 0:
        return 0
    return math.ceil(total / limit)


@dataclass(frozen=True)
class ListQuery:
    scope: ListScope
    user_id: Optional[int]
    search: str
    genre: Optional[str]
    sort_key: str
    direction: str
    page: int
    limit: int

    @classmethod
    def build(
        cls,
        scope: ListScope,
        *,
        user_id: Optional[int] = None,
        q: Optional[str] = None,
        genre: Optional[str] = None,
        sort: Optional[str] = None,
        order: Optional[str] = None,
        page: Any = None,
        limit: Any = None,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
    ) -> "ListQuery":
        if scope is not ListScope.ALL and user_id is None:
            raise ValueError(f"scope {scope.value!r} requires a user_id")
        limit = clamp_limit(limit, default=default_limit, maximum=max_limit)
        return cls(
            scope=scope,
            user_id=user_id,
            search=q or "",
            genre=genre or None,
            sort_key=resolve_sort_key(scope, sort),
            direction=resolve_direction(scope, order),
            page=clamp_page(page, limit),
            limit=limit,
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def sort_column(self):
        return SORT_COLUMNS[self.scope][self.sort_key]

    def predicates(self) -> list[ColumnElement[bool]]:
        """The WHERE conditions, identical for the count and the page query."""
        conditions: list[ColumnElement[bool]] = []
        if self.scope is ListScope.OWNED:
            conditions.append(UserBook.user_id == self.user_id)
        elif self.scope is ListScope.READING_LIST:
            conditions.append(ReadingListEntry.user_id == self.user_id)

        # Substring match; autoescape keeps % and _ in the term literal
        conditions.append(Book.title.icontains(self.search, autoescape=True))

        if self.genre is not None:
            conditions.append(Book.genre == self.genre)
        return conditions

    def _base(self, stmt: Select) -> Select:
        if self.scope is ListScope.OWNED:
            return stmt.select_from(UserBook).join(Book, Book.id == UserBook.book_id)
        if self.scope is ListScope.READING_LIST:
            return stmt.select_from(ReadingListEntry).join(Book, Book.id == ReadingListEntry.book_id)
        return stmt.select_from(Book)

    def count_statement(self) -> Select:
        return self._base(select(func.count())).where(*self.predicates())

    def page_statement(self) -> Select:
        columns = list(BOOK_COLUMNS)
        if self.scope is ListScope.READING_LIST:
            columns += [ReadingListEntry.currently_reading, ReadingListEntry.added_at]

        sort_column = self.sort_column
        ordering = sort_column.desc() if self.direction == "desc" else sort_column.asc()

        return (
            self._base(select(*columns))
            # Imported books have no creator; outer join keeps them
            .outerjoin(User, User.id == Book.created_by)
            .where(*self.predicates())
            .order_by(ordering, Book.id.asc())
            .limit(self.limit)
            .offset(self.offset)
        )

    def empty_result(self) -> BookListResponse | ReadingListResponse:
        return self.to_response([], 0)

    def to_response(self, rows: list[Mapping[str, Any]], total: int):
        pagination = Pagination(
            current_page=self.page,
            total_pages=total_pages(total, self.limit),
            total_books=total,
        )
        if self.scope is ListScope.READING_LIST:
            return ReadingListResponse(
                books=[ReadingListRow.model_validate(dict(r)) for r in rows],
                pagination=pagination,
            )
        return BookListResponse(
            books=[BookRow.model_validate(dict(r)) for r in rows],
            pagination=pagination,
        )


async def fetch_page(db: AsyncSession, query: ListQuery) -> BookListResponse | ReadingListResponse:
    """Run the count and page statements; a backend failure yields an empty page."""
    try:
        total = (await db.execute(query.count_statement())).scalar_one()
        if query.offset >= total:
            return query.to_response([], total)
        rows = (await db.execute(query.page_statement())).mappings().all()
    except SQLAlchemyError as exc:
        logger.error(
            "book_list_query_failed",
            scope=query.scope.value,
            user_id=query.user_id,
            error=str(exc),
        )
        await db.rollback()
        return query.empty_result()

    return query.to_response(rows, total)
