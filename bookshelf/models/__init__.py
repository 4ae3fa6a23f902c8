"""ORM models; importing this package registers every table on ``Base.metadata``."""

from bookshelf.models.book import Book, BookSource, CoverSource
from bookshelf.models.library import ReadingListEntry, UserBook
from bookshelf.models.user import User, UserRole

__all__ = [
    "Book",
    "BookSource",
    "CoverSource",
    "ReadingListEntry",
    "User",
    "UserBook",
    "UserRole",
]
