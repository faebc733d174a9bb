"""Library command implementations."""

from pathlib import Path

from rich.console import Console
from rich.table import Table

from reflow_reader.library.manager import LibraryManager


def execute_add(manager: LibraryManager, epub_paths: list[Path], console: Console) -> None:
    known = {book.id for book in manager.list_books()}
    for path in epub_paths:
        book = manager.add_book(path)
        if book.id in known:
            console.print(f"[yellow]Already in library:[/] {book.title} [dim]({book.id[:8]})[/]")
        else:
            console.print(f"[green]Added:[/] {book.title} [dim]({book.id[:8]})[/]")
            known.add(book.id)


def execute_list(manager: LibraryManager, tag: str | None, console: Console) -> None:
    """Show the catalog as a table, optionally filtered by tag."""
    books = manager.list_books()
    if tag:
        books = [book for book in books if tag in book.tags]

    if not books:
        console.print("[dim]No books in library[/]")
        return

    table = Table(title="Library", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", width=8)
    table.add_column("Title", style="white")
    table.add_column("Author", style="cyan")
    table.add_column("Last page", justify="right", style="green")
    table.add_column("Tags", style="magenta")
    table.add_column("Added", style="dim")

    for book in books:
        table.add_row(
            book.id[:8],
            book.title,
            book.author,
            str(book.last_page_read),
            ", ".join(book.tags),
            book.date_added.strftime("%Y-%m-%d"),
        )

    console.print(table)


def execute_tag(
    manager: LibraryManager, book_id: str, names: list[str], console: Console
) -> None:
    book = manager.add_tags(book_id, names)
    console.print(f"[green]Tags for {book.title}:[/] {', '.join(book.tags) or '-'}")


def execute_progress(
    manager: LibraryManager, book_id: str, page: int | None, console: Console
) -> None:
    """Show the saved page, or save a new one when ``page`` is given."""
    if page is None:
        book = manager.get_book(book_id)
    else:
        book = manager.save_progress(book_id, page)
    console.print(f"{book.title}: last page read [bold]{book.last_page_read}[/]")


def execute_remove(manager: LibraryManager, book_id: str, console: Console) -> None:
    book = manager.remove_book(book_id)
    console.print(f"[green]Removed:[/] {book.title}")
