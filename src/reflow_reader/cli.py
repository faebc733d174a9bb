"""Main CLI application."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from reflow_reader.commands.info import execute_info
from reflow_reader.commands.render import execute_render
from reflow_reader.library.manager import DEFAULT_LIBRARY_DIR, LibraryManager

app = typer.Typer(
    name="reflow-reader",
    help="Reflow EPUB sections into paginated, self-contained reader documents.",
    add_completion=False,
)

console = Console()

# Library subcommand group
library_app = typer.Typer(help="Book catalog commands")
app.add_typer(library_app, name="library")

BookPath = Annotated[
    Path,
    typer.Argument(
        help="Path to the EPUB file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
]


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
) -> None:
    """Reflow EPUB sections into paginated, self-contained reader documents."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=verbose)],
        force=True,
    )


@app.command()
def info(book_path: BookPath) -> None:
    """Display book metadata and reading order."""
    try:
        execute_info(book_path, console)
    except Exception as e:
        console.print(f"[red]Error reading file: {e}[/]")
        raise typer.Exit(1)


@app.command()
def render(
    book_path: BookPath,
    sections: Annotated[
        Optional[str],
        typer.Option(
            "--sections",
            "-s",
            help="Sections to render by index: '1,3,5-7' or 'all' (default: all)",
        ),
    ] = None,
    output_dir: Annotated[
        Optional[Path],
        typer.Option(
            "--output-dir",
            "-o",
            help="Output directory (default: {book_name}_rendered/)",
        ),
    ] = None,
    template: Annotated[
        Optional[Path],
        typer.Option(
            "--template",
            "-t",
            help="Reader template to use instead of the packaged one",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress progress output"),
    ] = False,
) -> None:
    """Write selected sections as standalone paginated HTML documents."""
    try:
        execute_render(
            book_path=book_path,
            sections=sections,
            output_dir=output_dir,
            template_path=template,
            quiet=quiet,
            console=console,
        )
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


@library_app.callback()
def library_main(
    ctx: typer.Context,
    library_dir: Annotated[
        Path,
        typer.Option(
            "--library",
            "-l",
            help="Library directory (default: ~/.reflow_reader)",
        ),
    ] = DEFAULT_LIBRARY_DIR,
) -> None:
    """Manage the book catalog."""
    ctx.obj = LibraryManager(library_dir.expanduser().resolve())


@library_app.command("add")
def library_add(
    ctx: typer.Context,
    epub_paths: Annotated[
        list[Path],
        typer.Argument(help="EPUB files to import", exists=True, dir_okay=False),
    ],
) -> None:
    """Import EPUB files into the library."""
    from reflow_reader.commands.library import execute_add

    try:
        execute_add(ctx.obj, epub_paths, console)
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


@library_app.command("list")
def library_list(
    ctx: typer.Context,
    tag: Annotated[
        Optional[str],
        typer.Option("--tag", "-t", help="Only show books with this tag"),
    ] = None,
) -> None:
    """List the books in the library."""
    from reflow_reader.commands.library import execute_list

    try:
        execute_list(ctx.obj, tag, console)
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


@library_app.command("tag")
def library_tag(
    ctx: typer.Context,
    book_id: Annotated[str, typer.Argument(help="Book id or unique id prefix")],
    names: Annotated[list[str], typer.Argument(help="Tags to add")],
) -> None:
    """Add tags to a book."""
    from reflow_reader.commands.library import execute_tag

    try:
        execute_tag(ctx.obj, book_id, names, console)
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


@library_app.command("progress")
def library_progress(
    ctx: typer.Context,
    book_id: Annotated[str, typer.Argument(help="Book id or unique id prefix")],
    page: Annotated[
        Optional[int],
        typer.Option("--set", help="Save this as the last page read"),
    ] = None,
) -> None:
    """Show or set a book's last page read."""
    from reflow_reader.commands.library import execute_progress

    try:
        execute_progress(ctx.obj, book_id, page, console)
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


@library_app.command("remove")
def library_remove(
    ctx: typer.Context,
    book_id: Annotated[str, typer.Argument(help="Book id or unique id prefix")],
) -> None:
    """Remove a book and its files from the library."""
    from reflow_reader.commands.library import execute_remove

    try:
        execute_remove(ctx.obj, book_id, console)
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
