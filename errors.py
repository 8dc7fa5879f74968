"""Exceptions raised by the circulation core.

Store failures are translated from ``sqlite3`` errors at the database and
repository boundary; the rest are guard violations raised by ``Library``.
"""


class CirculationError(Exception):
    """Base class for every error the circulation core raises."""


class StoreError(CirculationError):
    pass


class StoreUnavailable(StoreError):
    """The database file could not be opened or created."""


class SchemaCreationFailed(StoreError):
    pass


class StoreReadFailed(StoreError):
    pass


class StoreWriteFailed(StoreError):
    pass


class BookNotFound(CirculationError, LookupError):
    def __init__(self, book_id: str) -> None:
        super().__init__(f"Book with id {book_id} not found.")
        self.book_id = book_id


class DuplicateId(CirculationError, ValueError):
    def __init__(self, book_id: str) -> None:
        super().__init__(f"Book with id {book_id} already exists.")
        self.book_id = book_id


class DuplicateLend(CirculationError, ValueError):
    def __init__(self, student: str, book_id: str) -> None:
        super().__init__(f"{student} already holds book {book_id}.")
        self.student = student
        self.book_id = book_id


class AlreadyIssued(CirculationError):
    def __init__(self, book_id: str) -> None:
        super().__init__(f"Book with id {book_id} is already issued.")
        self.book_id = book_id


class NotIssued(CirculationError):
    def __init__(self, book_id: str) -> None:
        super().__init__(f"Book with id {book_id} is not currently issued.")
        self.book_id = book_id
