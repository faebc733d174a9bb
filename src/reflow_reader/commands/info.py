"""Info command implementation."""

from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from reflow_reader.core.archive_loader import load_archive


def execute_info(book_path: Path, console: Console) -> None:
    """Display book metadata and the reading order."""
    archive, _ = load_archive(book_path)
    metadata = archive.metadata

    info_lines = [
        f"[bold]{metadata.title}[/]",
        "",
        f"[dim]Author(s):[/] {', '.join(metadata.authors) or 'Unknown'}",
        f"[dim]Language:[/] {metadata.language or 'Unknown'}",
        f"[dim]Publisher:[/] {metadata.publisher or 'Unknown'}",
        f"[dim]Sections:[/] {len(archive.entries)}",
        f"[dim]Assets:[/] {len(archive.images)} image(s), {len(archive.fonts)} font(s), "
        f"{len(archive.styles)} stylesheet(s), {len(archive.files)} other",
        f"[dim]Cover:[/] {archive.cover.path if archive.cover else 'None'}",
    ]

    console.print()
    console.print(Panel("\n".join(info_lines), title="Book Information", border_style="green"))

    console.print()
    table = Table(title="Reading Order", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Path", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Words", justify="right", style="green")

    for i, entry in enumerate(archive.entries):
        table.add_row(str(i + 1), entry.key or "-", entry.title or "", f"{entry.word_count:,}")

    console.print(table)
    console.print()
