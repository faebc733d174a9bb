"""EPUB fixtures and a scripted rendering surface shared by the tests."""

from __future__ import annotations

import io
import re
import zipfile
from pathlib import Path

from reflow_reader.core.pagination import CURRENT_PAGE_SCRIPT, LAYOUT_SCRIPT, PAGE_COUNT_SCRIPT
from reflow_reader.core.surface import RenderSurface

# Smallest valid PNG (1x1, transparent)
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)
FONT_BYTES = b"\x00\x01\x00\x00fake-font-table"

CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="OEBPS/content.opf" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""

MEDIA_TYPES = {
    ".xhtml": "application/xhtml+xml",
    ".css": "text/css",
    ".png": "image/png",
    ".ttf": "font/ttf",
}


def section_markup(title: str, body: str, head: str = "") -> str:
    return f"""<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
  <head><title>{title}</title>{head}</head>
  <body>
    <h1>{title}</h1>
    {body}
  </body>
</html>
"""


def build_epub(
    sections: list[tuple[str, str]],
    assets: dict[str, bytes] | None = None,
    title: str = "Sample Book",
    author: str = "Sample Author",
    cover: str | None = None,
    omit: tuple[str, ...] = (),
) -> bytes:
    """Zip an EPUB whose OPF sits in ``OEBPS/``.

    ``sections`` are ``(path, markup)`` pairs in reading order; ``assets``
    maps paths (relative to the OPF) to file content. Paths in ``omit`` stay
    in the manifest but are left out of the zip.
    """
    assets = assets or {}
    manifest = []
    spine = []
    for i, (path, _markup) in enumerate(sections):
        manifest.append(
            f'<item id="s{i}" href="{path}" media-type="application/xhtml+xml"/>'
        )
        spine.append(f'<itemref idref="s{i}"/>')
    for i, path in enumerate(assets):
        media_type = MEDIA_TYPES.get(Path(path).suffix, "application/octet-stream")
        properties = ' properties="cover-image"' if path == cover else ""
        manifest.append(f'<item id="a{i}" href="{path}" media-type="{media_type}"{properties}/>')

    manifest_xml = "\n    ".join(manifest)
    spine_xml = "\n    ".join(spine)
    opf = f"""<?xml version="1.0" encoding="UTF-8"?>
<package version="3.0" unique-identifier="BookId" xmlns="http://www.idpf.org/2007/opf">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:identifier id="BookId">urn:uuid:12345678-1234-1234-1234-123456789abc</dc:identifier>
    <dc:title>{title}</dc:title>
    <dc:creator>{author}</dc:creator>
    <dc:language>en</dc:language>
  </metadata>
  <manifest>
    {manifest_xml}
  </manifest>
  <spine>
    {spine_xml}
  </spine>
</package>
"""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("mimetype", "application/epub+zip")
        zf.writestr("META-INF/container.xml", CONTAINER_XML)
        zf.writestr("OEBPS/content.opf", opf)
        for path, markup in sections:
            if path not in omit:
                zf.writestr(f"OEBPS/{path}", markup)
        for path, content in assets.items():
            if path not in omit:
                zf.writestr(f"OEBPS/{path}", content)
    return buffer.getvalue()


def paged_sections(page_counts: list[int]) -> list[tuple[str, str]]:
    """Sections ``chN.xhtml`` whose rendered page counts the fake surface reports."""
    return [
        (
            f"ch{i + 1}.xhtml",
            section_markup(f"Chapter {i + 1}", f'<div data-pages="{pages}"><p>Text {i + 1}</p></div>'),
        )
        for i, pages in enumerate(page_counts)
    ]


class FakeSurface(RenderSurface):
    """Rendering surface that paginates by markers found in the loaded HTML.

    ``data-pages="N"`` sets the page count, ``id="x" data-page="N"`` places
    an anchor on page N.
    """

    def __init__(self) -> None:
        self.loaded: list[str] = []
        self.scripts: list[str] = []
        self.go_to_calls: list[int] = []
        self.anchor_calls: list[str] = []
        self.page = 0
        self.fail_loads = False
        self.fail_page_count = False
        self.page_count_results: list[str] = []

    @property
    def html(self) -> str:
        return self.loaded[-1] if self.loaded else ""

    def _pages(self) -> int:
        match = re.search(r'data-pages="(\d+)"', self.html)
        return int(match.group(1)) if match else 1

    async def load_html(self, html: str) -> bool:
        self.loaded.append(html)
        self.page = 0
        return not self.fail_loads

    async def evaluate(self, script: str) -> str:
        self.scripts.append(script)
        if script == PAGE_COUNT_SCRIPT:
            if self.fail_page_count:
                raise RuntimeError("script host crashed")
            if self.page_count_results:
                return self.page_count_results.pop(0)
            return str(self._pages())
        if script == CURRENT_PAGE_SCRIPT:
            return str(self.page)
        if script == LAYOUT_SCRIPT:
            return ""

        anchor = re.search(r"goToAnchor\('([^']*)'\)", script)
        if anchor:
            self.anchor_calls.append(anchor.group(1))
            placed = re.search(rf'id="{re.escape(anchor.group(1))}"[^>]*data-page="(\d+)"', self.html)
            if placed:
                self.page = int(placed.group(1))
            return ""

        go_to = re.search(r"\.goTo\((\d+)\)", script)
        if go_to:
            self.page = int(go_to.group(1))
            self.go_to_calls.append(self.page)
        return ""

