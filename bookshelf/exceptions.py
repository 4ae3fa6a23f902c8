"""Domain errors raised by the service layer and translated to HTTP by the routers."""

from __future__ import annotations


class BookshelfError(Exception):
    """Base class for bookshelf service errors."""

    message = "Request failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class BookNotFoundError(BookshelfError):
    message = "Book not found"

    def __init__(self, book_id: int):
        super().__init__()
        self.book_id = book_id


class BookFetchError(BookshelfError):
    message = "Failed to fetch book"


class BookWriteError(BookshelfError):
    message = "Failed to save changes"


class BookPermissionError(BookshelfError):
    message = "You are not allowed to modify this book"


class NotInReadingListError(BookshelfError):
    """The target of a currently-reading change is not on the user's reading list."""

    message = "Book is not in your reading list"

    def __init__(self, book_id: int):
        super().__init__()
        self.book_id = book_id


class ReadingStateError(BookshelfError):
    message = "Failed to update reading state"


class StorageError(BookshelfError):
    message = "Cover upload failed"
