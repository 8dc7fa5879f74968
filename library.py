import logging
from typing import Any, Dict, List, Optional

import database
from book import Book, BookStatus, Lend
from config import settings
from errors import AlreadyIssued, BookNotFound, NotIssued, StoreWriteFailed
from repositories import BookRepository, LendRepository
from utils.validators import BookValidator, StudentValidator

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


class Library:
    """Circulation service over the books and lends tables.

    Every status change goes through ``issue`` and ``return_book`` so that an
    issued book always has exactly one lend row and an available book none.
    """

    def __init__(self, db_file: Optional[str] = None) -> None:
        # Raises StoreUnavailable / SchemaCreationFailed; callers treat both as fatal.
        self.db_file = database.initialize_database(db_file)

    # ------------------------- Catalog ------------------------- #
    def list_books(self) -> List[Book]:
        with database.connect(self.db_file) as conn:
            return BookRepository(conn).list_books()

    def find_book(self, book_id: str) -> Optional[Book]:
        with database.connect(self.db_file) as conn:
            return BookRepository(conn).get_book(BookValidator.normalize_id(book_id))

    def add_book(self, book: Book) -> Book:
        """Add a new book. It must start out available."""
        if not BookValidator.is_valid_id(book.id):
            raise ValueError(
                f"Invalid book id {book.id!r}: expected 1-{settings.book_id_max_length} "
                "characters without spaces."
            )
        if not BookValidator.validate_title(book.title):
            raise ValueError("Title cannot be empty.")
        if not BookValidator.validate_author(book.author):
            raise ValueError("Author cannot be empty.")
        if book.status != BookStatus.AVAILABLE:
            raise ValueError("New books must be added as available.")

        with database.connect(self.db_file) as conn, conn:
            BookRepository(conn).add_book(book)
        logger.info(f"Added book {book.id} ({book.title})")
        return book

    def delete_book(self, book_id: str) -> bool:
        """Delete a book. Returns False if it did not exist.

        Issued books cannot be deleted; they have to be returned first.
        """
        book_id = BookValidator.normalize_id(book_id)
        with database.connect(self.db_file) as conn, conn:
            books = BookRepository(conn)
            book = books.get_book(book_id)
            if book is None:
                return False
            if book.is_issued:
                logger.warning(f"Refusing to delete issued book {book_id}")
                raise AlreadyIssued(book_id)
            deleted = books.delete_book(book_id)
        if deleted:
            logger.info(f"Deleted book {book_id}")
        return deleted

    # ------------------------- Circulation ------------------------- #
    def issue(self, book_id: str, student: str) -> Lend:
        """Lend an available book to a student."""
        book_id = BookValidator.normalize_id(book_id)
        student = StudentValidator.normalize(student)
        if not StudentValidator.is_valid(student):
            raise ValueError("Student name cannot be empty.")

        with database.connect(self.db_file) as conn, conn:
            books = BookRepository(conn)
            book = books.get_book(book_id)
            if book is None:
                raise BookNotFound(book_id)
            if book.is_issued:
                logger.warning(f"Book {book_id} is already issued")
                raise AlreadyIssued(book_id)
            if not books.update_status(book_id, BookStatus.ISSUED):
                raise StoreWriteFailed(f"Status of book {book_id} was not updated.")
            LendRepository(conn).add_lend(student, book_id)

        logger.info(f"Issued book {book_id} to {student}")
        return Lend(student=student, book_id=book_id)

    def return_book(self, book_id: str) -> Lend:
        """Take an issued book back. Returns the lend that was closed."""
        book_id = BookValidator.normalize_id(book_id)
        with database.connect(self.db_file) as conn, conn:
            books = BookRepository(conn)
            lends = LendRepository(conn)
            book = books.get_book(book_id)
            if book is None:
                raise BookNotFound(book_id)
            if not book.is_issued:
                logger.warning(f"Book {book_id} is not currently issued")
                raise NotIssued(book_id)
            lend = lends.find_by_book(book_id)
            if not books.update_status(book_id, BookStatus.AVAILABLE):
                raise StoreWriteFailed(f"Status of book {book_id} was not updated.")
            lends.remove_lend(book_id)

        student = lend.student if lend else ""
        logger.info(f"Returned book {book_id} from {student or 'unknown student'}")
        return lend or Lend(student=student, book_id=book_id)

    def list_lends(self) -> List[Lend]:
        with database.connect(self.db_file) as conn:
            return LendRepository(conn).list_lends()

    # ------------------------- Reporting ------------------------- #
    def get_statistics(self) -> Dict[str, Any]:
        with database.connect(self.db_file) as conn:
            counts = BookRepository(conn).count_by_status()
            active_lends = len(LendRepository(conn).list_lends())
        return {
            "total_books": sum(counts.values()),
            "available_books": counts[BookStatus.AVAILABLE.value],
            "issued_books": counts[BookStatus.ISSUED.value],
            "active_lends": active_lends,
        }

    def close(self) -> None:
        """Connections are opened per operation, so there is nothing to release."""
        return None
