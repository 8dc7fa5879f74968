import subprocess
import sys
from typing import Optional

import typer
from rich.console import Console

from book import Book
from config import settings
from errors import (
    AlreadyIssued,
    BookNotFound,
    CirculationError,
    DuplicateId,
    NotIssued,
    SchemaCreationFailed,
    StoreUnavailable,
)
from library import Library
from utils.ui_helpers import (
    print_lends_result,
    print_list_result,
    print_stats_result,
    set_output_mode,
)

console = Console()

_library: Optional[Library] = None


def get_library() -> Library:
    """Return the process-wide Library, initializing the store on first use.

    A store that cannot be opened or initialized ends the command with exit code 1.
    """
    global _library
    if _library is None:
        try:
            _library = Library(settings.database_file)
        except (StoreUnavailable, SchemaCreationFailed) as e:
            console.print(f"[bold red]Could not initialize library: {e}[/]")
            raise typer.Exit(code=1)
    return _library


app = typer.Typer(help=settings.app_name)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    )
):
    """Global options for the CLI (e.g. output mode)."""
    if output:
        set_output_mode(output)


@app.command("init")
def cli_init():
    """Create the database and its tables if they are missing."""
    lib = get_library()
    print(f"Database ready at {lib.db_file}")


@app.command("list")
def cli_list():
    """List every book with its status."""
    try:
        books = get_library().list_books()
    except CirculationError as e:
        print(f"Error: {e}")
        raise typer.Exit(code=1)
    print_list_result(books)


@app.command("find")
def cli_find(book_id: str):
    """Find a book by id and show its details."""
    try:
        book = get_library().find_book(book_id)
    except CirculationError as e:
        print(f"Error: {e}")
        raise typer.Exit(code=1)
    if book:
        print("Book Found")
        print(f"ID: {book.id}")
        print(f"Title: {book.title}")
        print(f"Author: {book.author}")
        print(f"Status: {book.status.value}")
    else:
        print(f"Book with id {book_id} not found.")


@app.command("add")
def cli_add(book_id: str, title: str, author: str):
    """Add a new book to the catalog."""
    lib = get_library()
    try:
        book = lib.add_book(Book(id=book_id, title=title, author=author))
        print(f"Successfully added: {book.title} by {book.author}")
    except DuplicateId as e:
        print(f"Could not add book: {e}")
    except ValueError as e:
        print(f"Error: {e}")
    except CirculationError as e:
        print(f"Unexpected error: {e}")


@app.command("remove")
def cli_remove(book_id: str):
    """Remove a book by id."""
    lib = get_library()
    try:
        removed = lib.delete_book(book_id)
    except AlreadyIssued:
        print(f"Book with id {book_id} is issued; return it before removing.")
        return
    except CirculationError as e:
        print(f"Unexpected error: {e}")
        return
    if removed:
        print(f"Book with id {book_id} has been removed.")
    else:
        print(f"Book with id {book_id} not found.")


@app.command("issue")
def cli_issue(book_id: str, student: str):
    """Issue a book to a student."""
    lib = get_library()
    try:
        lend = lib.issue(book_id, student)
        print(f"Issued {lend.book_id} to {lend.student}.")
    except (BookNotFound, AlreadyIssued) as e:
        print(str(e))
    except ValueError as e:
        print(f"Error: {e}")
    except CirculationError as e:
        print(f"Unexpected error: {e}")


@app.command("return")
def cli_return(book_id: str):
    """Return an issued book."""
    lib = get_library()
    try:
        lend = lib.return_book(book_id)
        print(f"Returned {lend.book_id} from {lend.student}.")
    except (BookNotFound, NotIssued) as e:
        print(str(e))
    except CirculationError as e:
        print(f"Unexpected error: {e}")


@app.command("lends")
def cli_lends():
    """Show which student holds which book."""
    try:
        lends = get_library().list_lends()
    except CirculationError as e:
        print(f"Error: {e}")
        raise typer.Exit(code=1)
    print_lends_result(lends)


@app.command("stats")
def cli_stats():
    """Show circulation statistics."""
    try:
        stats = get_library().get_statistics()
    except CirculationError as e:
        print(f"Error: {e}")
        raise typer.Exit(code=1)
    print_stats_result(stats)


@app.command("serve")
def cli_serve(
    host: str = typer.Option(settings.api_host, help="Host to bind"),
    port: int = typer.Option(settings.api_port, help="Port to bind"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Start the HTTP API with uvicorn."""
    print(f"Starting API on http://{host}:{port}")
    cmd = [sys.executable, "-m", "uvicorn", "api:app", "--host", host, "--port", str(port)]
    if reload:
        cmd.append("--reload")
    subprocess.run(cmd)


if __name__ == "__main__":
    app()
