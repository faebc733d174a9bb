"""Render command implementation."""

import re
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn

from reflow_reader.core.archive_loader import load_archive
from reflow_reader.core.output_writer import OutputWriter


SELECTION_PART_RE = re.compile(r"^(?P<start>\d+)(?:\s*-\s*(?P<end>\d+))?$")


def parse_section_selection(selection: str, total_sections: int) -> list[int]:
    """Turn ``"1,3,5-7"`` or ``"all"`` into sorted 0-based section indices.

    Unparseable parts and numbers outside the book are dropped.
    """
    if selection.strip().lower() == "all":
        return list(range(total_sections))

    chosen: set[int] = set()
    for part in selection.split(","):
        match = SELECTION_PART_RE.match(part.strip())
        if match is None:
            continue
        first = int(match.group("start"))
        last = int(match.group("end") or first)
        chosen.update(range(first - 1, last))

    return sorted(i for i in chosen if 0 <= i < total_sections)


def get_default_output_dir(book_path: Path) -> Path:
    """``<book>_rendered`` next to the book, with a filesystem-safe name."""
    safe = re.sub(r"[^\w\s-]", "", book_path.stem).strip()
    safe = re.sub(r"[-\s]+", "_", safe)
    return book_path.parent / f"{safe}_rendered"


def execute_render(
    book_path: Path,
    sections: str | None,
    output_dir: Path | None,
    template_path: Path | None,
    quiet: bool,
    console: Console,
) -> Path | None:
    """Execute the render command. Returns the manifest path."""
    if quiet:
        archive, _ = load_archive(book_path)
    else:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task("Reading EPUB...", total=None)
            archive, _ = load_archive(book_path)

    selected = parse_section_selection(sections or "all", len(archive.entries))
    if not selected:
        console.print("[yellow]No sections selected. Exiting.[/]")
        return None

    final_output_dir = output_dir or get_default_output_dir(book_path)
    writer = OutputWriter(final_output_dir, book_path, archive, template_path)
    rendered = []

    if not quiet:
        with Progress(console=console) as progress:
            task = progress.add_task("Rendering sections...", total=len(selected))
            for idx in selected:
                _, section = writer.write_section(idx)
                rendered.append(section)
                label = section.title or section.key
                progress.update(task, advance=1, description=f"Rendering: {label[:40]}")
    else:
        for idx in selected:
            _, section = writer.write_section(idx)
            rendered.append(section)

    manifest_path = writer.write_manifest(selected, rendered)

    if not quiet:
        console.print()
        console.print(
            Panel(
                "\n".join(
                    [
                        f"[green]Rendered {len(selected)} section(s)[/]",
                        "",
                        f"[dim]Output directory:[/] {final_output_dir}",
                        f"[dim]Manifest:[/] {manifest_path.name}",
                    ]
                ),
                title="Complete",
                border_style="green",
            )
        )

    return manifest_path
