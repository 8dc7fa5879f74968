import sqlite3

import pytest

import database
from book import Book, BookStatus, Lend
from errors import (
    AlreadyIssued,
    BookNotFound,
    DuplicateId,
    NotIssued,
    StoreWriteFailed,
)
from library import Library
from repositories import LendRepository


def test_add_list_and_find(lib):
    assert lib.list_books() == []

    book = Book("B1", "Ulysses", "James Joyce")
    lib.add_book(book)

    assert lib.find_book("B1") == book
    assert len(lib.list_books()) == 1
    assert lib.list_books()[0].status == BookStatus.AVAILABLE


def test_added_book_round_trips(lib):
    book = Book("B1", "Sapiens", "Yuval Noah Harari")
    lib.add_book(book)
    matches = [b for b in lib.list_books() if b.id == book.id]
    assert matches == [book]


def test_add_duplicate_id(lib):
    lib.add_book(Book("B1", "Test Book", "Test Author"))

    with pytest.raises(DuplicateId, match="Book with id B1 already exists."):
        lib.add_book(Book("B1", "Another", "Someone"))

    assert len(lib.list_books()) == 1


@pytest.mark.parametrize(
    "book",
    [
        Book("", "Title", "Author"),
        Book("B 1", "Title", "Author"),
        Book("B123456789X", "Title", "Author"),
        Book("B1", "   ", "Author"),
        Book("B1", "Title", ""),
        Book("B1", "Title", "Author", status=BookStatus.ISSUED),
    ],
)
def test_add_book_rejects_invalid_input(lib, book):
    with pytest.raises(ValueError):
        lib.add_book(book)
    assert lib.list_books() == []


def test_persistence(db_file):
    lib = Library(db_file=db_file)
    lib.add_book(Book("B1", "Sapiens", "Yuval Noah Harari"))
    lib.issue("B1", "Alice")

    # New instance should read persisted data from SQLite
    lib2 = Library(db_file=db_file)
    assert lib2.find_book("B1").status == BookStatus.ISSUED
    assert lib2.list_lends() == [Lend("Alice", "B1")]


def test_delete_book(lib):
    lib.add_book(Book("B1", "Test", "Author"))
    assert lib.delete_book("B1") is True
    assert lib.list_books() == []
    assert lib.delete_book("B1") is False


def test_delete_issued_book_is_rejected(lib):
    lib.add_book(Book("B1", "Test", "Author"))
    lib.issue("B1", "Alice")

    with pytest.raises(AlreadyIssued):
        lib.delete_book("B1")

    assert lib.find_book("B1").status == BookStatus.ISSUED
    assert lib.list_lends() == [Lend("Alice", "B1")]


def test_issue_and_return_scenario(lib):
    lib.add_book(Book("B1", "T", "A"))

    assert lib.issue("B1", "Alice") == Lend("Alice", "B1")
    assert lib.find_book("B1").status == BookStatus.ISSUED
    assert lib.list_lends() == [Lend("Alice", "B1")]

    assert lib.return_book("B1") == Lend("Alice", "B1")
    assert lib.find_book("B1").status == BookStatus.AVAILABLE
    assert lib.list_lends() == []


def test_issue_unknown_book(lib):
    with pytest.raises(BookNotFound):
        lib.issue("B2", "Bob")
    assert lib.list_lends() == []


def test_issue_already_issued_book(lib):
    lib.add_book(Book("B1", "T", "A"))
    lib.issue("B1", "Alice")

    with pytest.raises(AlreadyIssued):
        lib.issue("B1", "Bob")

    assert lib.find_book("B1").status == BookStatus.ISSUED
    assert lib.list_lends() == [Lend("Alice", "B1")]


def test_issue_requires_student(lib):
    lib.add_book(Book("B1", "T", "A"))
    with pytest.raises(ValueError):
        lib.issue("B1", "   ")
    assert lib.find_book("B1").status == BookStatus.AVAILABLE


def test_return_available_book_is_noop(lib):
    lib.add_book(Book("B1", "T", "A"))
    with pytest.raises(NotIssued):
        lib.return_book("B1")
    assert lib.find_book("B1").status == BookStatus.AVAILABLE
    assert lib.list_lends() == []


def test_return_unknown_book(lib):
    with pytest.raises(BookNotFound):
        lib.return_book("ghost")


def test_failed_lend_insert_rolls_back_status(lib, monkeypatch):
    lib.add_book(Book("B1", "T", "A"))

    def broken_add_lend(self, student, book_id):
        raise StoreWriteFailed("disk full")

    monkeypatch.setattr(LendRepository, "add_lend", broken_add_lend)

    with pytest.raises(StoreWriteFailed):
        lib.issue("B1", "Alice")

    assert lib.find_book("B1").status == BookStatus.AVAILABLE
    assert lib.list_lends() == []


def test_failed_lend_removal_rolls_back_status(lib, monkeypatch):
    lib.add_book(Book("B1", "T", "A"))
    lib.issue("B1", "Alice")

    def broken_remove_lend(self, book_id):
        raise StoreWriteFailed("disk full")

    monkeypatch.setattr(LendRepository, "remove_lend", broken_remove_lend)

    with pytest.raises(StoreWriteFailed):
        lib.return_book("B1")

    assert lib.find_book("B1").status == BookStatus.ISSUED
    assert lib.list_lends() == [Lend("Alice", "B1")]


def test_book_can_be_reissued_after_return(lib):
    lib.add_book(Book("B1", "T", "A"))
    lib.issue("B1", "Alice")
    lib.return_book("B1")
    lib.issue("B1", "Bob")
    assert lib.list_lends() == [Lend("Bob", "B1")]


def test_get_statistics(lib):
    lib.add_book(Book("B1", "T", "A"))
    lib.add_book(Book("B2", "T", "A"))
    lib.issue("B2", "Alice")

    assert lib.get_statistics() == {
        "total_books": 2,
        "available_books": 1,
        "issued_books": 1,
        "active_lends": 1,
    }


def test_numeric_author_is_accepted(lib):
    book = Book("B1", "Title", "1984")
    lib.add_book(book)
    assert [b for b in lib.list_books() if b.id == "B1"] == [book]


def test_issue_keeps_student_name_as_given(lib):
    lib.add_book(Book("B1", "T", "A"))
    assert lib.issue("B1", "  Alice  Smith ") == Lend("Alice  Smith", "B1")
    assert lib.list_lends() == [Lend("Alice  Smith", "B1")]


def test_issue_rolls_back_when_lend_insert_is_aborted(lib):
    lib.add_book(Book("B1", "T", "A"))
    with database.connect(lib.db_file) as conn, conn:
        conn.execute(
            "CREATE TRIGGER block_lends BEFORE INSERT ON lends "
            "BEGIN SELECT RAISE(ABORT, 'lends are read-only'); END"
        )

    with pytest.raises(StoreWriteFailed) as excinfo:
        lib.issue("B1", "Alice")

    assert isinstance(excinfo.value.__cause__, sqlite3.Error)
    assert lib.find_book("B1").status == BookStatus.AVAILABLE
    assert lib.list_lends() == []


def test_return_rolls_back_when_lend_delete_is_aborted(lib):
    lib.add_book(Book("B1", "T", "A"))
    lib.issue("B1", "Alice")
    with database.connect(lib.db_file) as conn, conn:
        conn.execute(
            "CREATE TRIGGER keep_lends BEFORE DELETE ON lends "
            "BEGIN SELECT RAISE(ABORT, 'lends are read-only'); END"
        )

    with pytest.raises(StoreWriteFailed):
        lib.return_book("B1")

    assert lib.find_book("B1").status == BookStatus.ISSUED
    assert lib.list_lends() == [Lend("Alice", "B1")]
