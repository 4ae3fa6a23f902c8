"""
Seed script — populates the database with sample users, books, owned books and
reading-list entries for local development.
Run: python -m bookshelf.seed
"""

from __future__ import annotations

import asyncio

from sqlalchemy import select

from bookshelf.auth.password import hash_password
from bookshelf.database import Base, async_session, engine
from bookshelf.models import Book, BookSource, CoverSource, ReadingListEntry, User, UserBook, UserRole

SAMPLE_BOOKS = [
    {"title": "Dune", "authors": "Frank Herbert", "genre": "Science Fiction", "work_key": "OL893415W", "cover_id": "11481354"},
    {"title": "Dune Messiah", "authors": "Frank Herbert", "genre": "Science Fiction", "work_key": "OL893512W", "cover_id": "6976407"},
    {"title": "Children of Dune", "authors": "Frank Herbert", "genre": "Science Fiction", "work_key": "OL893526W", "cover_id": "6976424"},
    {"title": "Foundation", "authors": "Isaac Asimov", "genre": "Science Fiction", "work_key": "OL46125W", "cover_id": "12543296"},
    {"title": "The Hobbit", "authors": "J.R.R. Tolkien", "genre": "Fantasy", "work_key": "OL262758W", "cover_id": "6979861"},
    {"title": "The Name of the Wind", "authors": "Patrick Rothfuss", "genre": "Fantasy", "work_key": "OL8479867W", "cover_id": "8259443"},
    {"title": "Pride and Prejudice", "authors": "Jane Austen", "genre": "Romance", "work_key": "OL66554W", "cover_id": "14348537"},
    {"title": "Jane Eyre", "authors": "Charlotte Brontë", "genre": "Classic", "work_key": "OL1095427W", "cover_id": "8235363"},
    {"title": "Crime and Punishment", "authors": "Fyodor Dostoevsky", "genre": "Classic", "work_key": "OL166894W", "cover_id": "8479260"},
    {"title": "Frankenstein", "authors": "Mary Shelley", "genre": "Horror", "work_key": "OL450063W", "cover_id": "12356249"},
    {"title": "Dracula", "authors": "Bram Stoker", "genre": "Horror", "work_key": "OL85892W", "cover_id": "12216503"},
    {"title": "Meditations", "authors": "Marcus Aurelius", "genre": "Philosophy", "work_key": "OL1085209W", "cover_id": "8370471"},
]

SAMPLE_USERS = [
    {"email": "admin@bookshelf.dev", "username": "admin", "password": "Admin@123456", "role": UserRole.ADMIN},
    {"email": "alice@example.com", "username": "alice", "password": "Alice@123456", "role": UserRole.USER},
    {"email": "bob@example.com", "username": "bob", "password": "Bob@1234567", "role": UserRole.USER},
]


async def seed():
    """Seed the database with sample data."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        result = await session.execute(select(User).limit(1))
        if result.scalar_one_or_none():
            print("Database already seeded. Skipping.")
            return

        users = []
        for u in SAMPLE_USERS:
            user = User(
                email=u["email"],
                username=u["username"],
                hashed_password=hash_password(u["password"]),
                role=u["role"],
            )
            session.add(user)
            users.append(user)
        await session.flush()
        print(f"Created {len(users)} users")

        books = []
        for b in SAMPLE_BOOKS:
            book = Book(
                **b,
                source=BookSource.OPENLIBRARY,
                cover_source=CoverSource.OPENLIBRARY,
                created_by=None,
            )
            session.add(book)
            books.append(book)

        alice = users[1]
        own_book = Book(
            title="Alice's Field Notes",
            authors="Alice",
            genre="Memoir",
            description="A notebook of birds seen from the kitchen window.",
            source=BookSource.USER,
            created_by=alice.id,
        )
        session.add(own_book)
        books.append(own_book)
        await session.flush()
        print(f"Created {len(books)} books")

        session.add(UserBook(user_id=alice.id, book_id=own_book.id))
        for book in books[:4]:
            session.add(UserBook(user_id=alice.id, book_id=book.id))

        for i, book in enumerate(books[:5]):
            session.add(ReadingListEntry(user_id=alice.id, book_id=book.id, currently_reading=(i == 0)))
        await session.flush()
        print("Created owned books and reading list for alice")

        await session.commit()
        print("Seeding complete!")


if __name__ == "__main__":
    asyncio.run(seed())
