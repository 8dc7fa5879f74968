"""Data access for the ``books`` and ``lends`` tables.

Repositories work on a connection handed to them by the caller and never
commit on their own, so the caller decides the transaction scope.
"""
import logging
import sqlite3
from typing import Dict, List, Optional

from book import Book, BookStatus, Lend
from errors import (
    BookNotFound,
    DuplicateId,
    DuplicateLend,
    StoreReadFailed,
    StoreWriteFailed,
)

logger = logging.getLogger(__name__)


class BookRepository:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def list_books(self) -> List[Book]:
        """Return every book in table scan order."""
        try:
            rows = self.conn.execute(
                "SELECT id, title, author, status FROM books ORDER BY rowid"
            ).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Listing books failed: {e}")
            raise StoreReadFailed(f"Listing books failed: {e}") from e
        return [Book.from_dict(dict(row)) for row in rows]

    def get_book(self, book_id: str) -> Optional[Book]:
        try:
            row = self.conn.execute(
                "SELECT id, title, author, status FROM books WHERE id = ?",
                (book_id,),
            ).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Looking up book {book_id} failed: {e}")
            raise StoreReadFailed(f"Looking up book {book_id} failed: {e}") from e
        return Book.from_dict(dict(row)) if row else None

    def add_book(self, book: Book) -> None:
        try:
            self.conn.execute(
                "INSERT INTO books (id, title, author, status) VALUES (?, ?, ?, ?)",
                (book.id, book.title, book.author, book.status.value),
            )
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e) or "PRIMARY KEY" in str(e):
                raise DuplicateId(book.id) from e
            logger.error(f"Inserting book {book.id} failed: {e}")
            raise StoreWriteFailed(f"Inserting book {book.id} failed: {e}") from e
        except sqlite3.Error as e:
            logger.error(f"Inserting book {book.id} failed: {e}")
            raise StoreWriteFailed(f"Inserting book {book.id} failed: {e}") from e

    def delete_book(self, book_id: str) -> bool:
        """Delete a book by id. Returns False when nothing matched."""
        try:
            cursor = self.conn.execute("DELETE FROM books WHERE id = ?", (book_id,))
        except sqlite3.Error as e:
            logger.error(f"Deleting book {book_id} failed: {e}")
            raise StoreWriteFailed(f"Deleting book {book_id} failed: {e}") from e
        return cursor.rowcount > 0

    def update_status(self, book_id: str, status: BookStatus) -> bool:
        try:
            cursor = self.conn.execute(
                "UPDATE books SET status = ? WHERE id = ?",
                (BookStatus(status).value, book_id),
            )
        except sqlite3.Error as e:
            logger.error(f"Updating status of book {book_id} failed: {e}")
            raise StoreWriteFailed(f"Updating status of book {book_id} failed: {e}") from e
        return cursor.rowcount > 0

    def count_by_status(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in BookStatus}
        try:
            rows = self.conn.execute(
                "SELECT status, COUNT(*) AS total FROM books GROUP BY status"
            ).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Counting books failed: {e}")
            raise StoreReadFailed(f"Counting books failed: {e}") from e
        for row in rows:
            counts[row["status"]] = row["total"]
        return counts


class LendRepository:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def add_lend(self, student: str, book_id: str) -> None:
        try:
            self.conn.execute(
                "INSERT INTO lends (student, book_id) VALUES (?, ?)",
                (student, book_id),
            )
        except sqlite3.IntegrityError as e:
            message = str(e)
            if "FOREIGN KEY" in message:
                raise BookNotFound(book_id) from e
            if "UNIQUE" in message or "PRIMARY KEY" in message:
                raise DuplicateLend(student, book_id) from e
            logger.error(f"Recording lend of {book_id} to {student} failed: {e}")
            raise StoreWriteFailed(f"Recording lend of {book_id} failed: {e}") from e
        except sqlite3.Error as e:
            logger.error(f"Recording lend of {book_id} to {student} failed: {e}")
            raise StoreWriteFailed(f"Recording lend of {book_id} failed: {e}") from e

    def remove_lend(self, book_id: str) -> int:
        """Delete every lend of ``book_id``. Returns the number of rows removed."""
        try:
            cursor = self.conn.execute("DELETE FROM lends WHERE book_id = ?", (book_id,))
        except sqlite3.Error as e:
            logger.error(f"Removing lend of {book_id} failed: {e}")
            raise StoreWriteFailed(f"Removing lend of {book_id} failed: {e}") from e
        return cursor.rowcount

    def list_lends(self) -> List[Lend]:
        try:
            rows = self.conn.execute(
                "SELECT student, book_id FROM lends ORDER BY rowid"
            ).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Listing lends failed: {e}")
            raise StoreReadFailed(f"Listing lends failed: {e}") from e
        return [Lend.from_dict(dict(row)) for row in rows]

    def find_by_book(self, book_id: str) -> Optional[Lend]:
        try:
            row = self.conn.execute(
                "SELECT student, book_id FROM lends WHERE book_id = ? ORDER BY rowid LIMIT 1",
                (book_id,),
            ).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Looking up lend of {book_id} failed: {e}")
            raise StoreReadFailed(f"Looking up lend of {book_id} failed: {e}") from e
        return Lend.from_dict(dict(row)) if row else None
