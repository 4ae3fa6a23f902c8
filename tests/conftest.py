"""Shared test configuration and fixtures."""

from __future__ import annotations

import os

# Settings are cached on first import, so the test environment goes in first
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import AsyncGenerator, Optional  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event, select  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from bookshelf.auth.jwt_handler import create_access_token  # noqa: E402
from bookshelf.database import Base, get_db  # noqa: E402
from bookshelf.models import (  # noqa: E402
    Book,
    BookSource,
    CoverSource,
    ReadingListEntry,
    User,
    UserBook,
    UserRole,
)
from bookshelf.services.storage import StoredCover, get_cover_storage  # noqa: E402


class FakeCoverStorage:
    """Records uploads instead of talking to Cloudinary."""

    source = CoverSource.CLOUDINARY

    def __init__(self):
        self.uploads: list[tuple[bytes, str]] = []

    def upload(self, data: bytes, content_type: str) -> StoredCover:
        self.uploads.append((data, content_type))
        url = f"https://res.cloudinary.test/book-covers/{len(self.uploads)}.png"
        return StoredCover(url=url, source=self.source)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def cover_storage():
    return FakeCoverStorage()


@pytest_asyncio.fixture
async def client(session_factory, cover_storage):
    """Test client for the FastAPI app backed by the in-memory database."""
    from bookshelf.main import app

    async def _get_test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_cover_storage] = lambda: cover_storage
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ── Data helpers ──

class Factory:
    """Inserts rows directly, bypassing the API."""

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self._users = 0

    async def user(self, role: UserRole = UserRole.USER, username: Optional[str] = None) -> User:
        self._users += 1
        username = username or f"reader{self._users}"
        async with self.session_factory() as session:
            user = User(
                email=f"{username}@example.com",
                username=username,
                hashed_password="not-a-real-hash",
                role=role,
            )
            session.add(user)
            await session.commit()
            return user

    async def book(
        self,
        title: str,
        genre: Optional[str] = None,
        created_by: Optional[int] = None,
        created_at: Optional[datetime] = None,
        **fields,
    ) -> Book:
        async with self.session_factory() as session:
            book = Book(
                title=title,
                authors=fields.pop("authors", "Someone"),
                genre=genre,
                source=BookSource.USER if created_by else BookSource.OPENLIBRARY,
                created_by=created_by,
                **fields,
            )
            if created_at is not None:
                book.created_at = created_at
            session.add(book)
            await session.commit()
            return book

    async def own(self, user_id: int, book_id: int, added_at: Optional[datetime] = None) -> None:
        async with self.session_factory() as session:
            row = UserBook(user_id=user_id, book_id=book_id)
            if added_at is not None:
                row.added_at = added_at
            session.add(row)
            await session.commit()

    async def listed(
        self,
        user_id: int,
        book_id: int,
        currently_reading: bool = False,
        added_at: Optional[datetime] = None,
    ) -> None:
        async with self.session_factory() as session:
            row = ReadingListEntry(user_id=user_id, book_id=book_id, currently_reading=currently_reading)
            if added_at is not None:
                row.added_at = added_at
            session.add(row)
            await session.commit()

    async def reading_flags(self, user_id: int) -> dict[int, bool]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ReadingListEntry.book_id, ReadingListEntry.currently_reading).where(
                    ReadingListEntry.user_id == user_id
                )
            )
            return {book_id: flag for book_id, flag in result.all()}

    async def count(self, model, **filters) -> int:
        async with self.session_factory() as session:
            stmt = select(model)
            for name, value in filters.items():
                stmt = stmt.where(getattr(model, name) == value)
            return len((await session.execute(stmt)).scalars().all())


@pytest.fixture
def factory(session_factory):
    return Factory(session_factory)


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.role.value, user.username)
    return {"Authorization": f"Bearer {token}"}


def hours_ago(hours: float) -> datetime:
    return datetime.now(timezone.utc) - timedelta(hours=hours)
