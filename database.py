import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional

from config import settings
from errors import SchemaCreationFailed, StoreUnavailable

logger = logging.getLogger(__name__)

BOOKS_TABLE = """
    CREATE TABLE IF NOT EXISTS books (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        author TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'available'
            CHECK (status IN ('available', 'issued'))
    )
"""

LENDS_TABLE = """
    CREATE TABLE IF NOT EXISTS lends (
        student TEXT NOT NULL,
        book_id TEXT NOT NULL,
        PRIMARY KEY (student, book_id),
        FOREIGN KEY (book_id) REFERENCES books(id)
    )
"""


def resolve_database_file(db_file: Optional[str] = None) -> str:
    """Return the store path, falling back to the configured default."""
    return db_file or settings.database_file


def get_db_connection(db_file: Optional[str] = None) -> sqlite3.Connection:
    """Open a connection to the SQLite store, creating the file if needed."""
    path = resolve_database_file(db_file)
    try:
        conn = sqlite3.connect(path)
        conn.row_factory = sqlite3.Row
        # SQLite leaves foreign keys off unless enabled per connection
        conn.execute("PRAGMA foreign_keys = ON;")
    except sqlite3.Error as e:
        logger.error(f"Could not open database {path}: {e}")
        raise StoreUnavailable(f"Could not open database {path}: {e}") from e
    return conn


@contextmanager
def connect(db_file: Optional[str] = None) -> Iterator[sqlite3.Connection]:
    """Yield a connection and always close it afterwards.

    Callers that need several statements to apply together use the
    connection itself as a transaction scope (``with conn:``).
    """
    conn = get_db_connection(db_file)
    try:
        yield conn
    finally:
        conn.close()


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Create the ``books`` and ``lends`` tables if they do not exist yet."""
    try:
        with conn:
            conn.execute(BOOKS_TABLE)
            conn.execute(LENDS_TABLE)
    except sqlite3.Error as e:
        logger.error(f"Schema creation failed: {e}")
        raise SchemaCreationFailed(f"Schema creation failed: {e}") from e


def initialize_database(db_file: Optional[str] = None) -> str:
    """Make sure the store at ``db_file`` exists and has the required tables.

    Safe to call on every startup. Returns the resolved path.
    """
    path = resolve_database_file(db_file)
    if not os.path.exists(path):
        logger.info(f"Creating new database at {path}")
    with connect(path) as conn:
        ensure_schema(conn)
    return path
