import json
import os
from typing import Any, Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_list_result(books: List[Any]) -> None:
    """Print books in the current output mode.
    - plain: 'ID - Title by Author [status]' lines, or 'No books in library.'
    - json: array of id, title, author, status
    - rich: Rich table
    """
    mode = get_output_mode()

    if not books:
        print("No books in library.")
        return

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Status")
        for b in books:
            colour = "red" if b.is_issued else "green"
            table.add_row(b.id, b.title, b.author, f"[{colour}]{b.status.value}[/]")
        _console.print(table)
    else:
        for b in books:
            print(f"{b.id} - {b.title} by {b.author} [{b.status.value}]")


def print_lends_result(lends: List[Any]) -> None:
    mode = get_output_mode()

    if not lends:
        print("No books are issued.")
        return

    if mode == "json":
        print(json.dumps([l.to_dict() for l in lends], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="🎓 Issued books", header_style="bold cyan")
        table.add_column("Student", style="white")
        table.add_column("Book ID", style="magenta", no_wrap=True)
        for l in lends:
            table.add_row(l.student, l.book_id)
        _console.print(table)
    else:
        for l in lends:
            print(f"{l.book_id} -> {l.student}")


def print_stats_result(stats: Dict[str, Any]) -> None:
    mode = get_output_mode()

    if not stats:
        print("No statistics available.")
        return

    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
    elif mode == "rich":
        content = (
            f"[bold]Total Books:[/] {stats.get('total_books', 0)}\n"
            f"[bold]Available:[/] {stats.get('available_books', 0)}\n"
            f"[bold]Issued:[/] {stats.get('issued_books', 0)}"
        )
        _console.print(Panel.fit(content, title="📊 Stats", border_style="blue"))
    else:
        print(f"Total Books: {stats.get('total_books', 0)}")
        print(f"Available: {stats.get('available_books', 0)}")
        print(f"Issued: {stats.get('issued_books', 0)}")
