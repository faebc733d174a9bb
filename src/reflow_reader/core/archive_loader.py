"""EPUB archive loading using ebooklib."""

import asyncio
import logging
import os
import tempfile
import warnings
from html import escape
from pathlib import Path

import ebooklib
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning
from ebooklib import epub

from reflow_reader.core.link_index import LinkIndex
from reflow_reader.models.archive import (
    ArchiveModel,
    AssetBucket,
    AssetFile,
    ReadingOrderEntry,
)
from reflow_reader.models.book import BookMetadata

# Suppress XML parsing warnings - EPUB files often use XHTML
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

log = logging.getLogger(__name__)

NO_CONTENT_MESSAGE = "No EPUB content found."
TEXT_ITEM_TYPES = (
    ebooklib.ITEM_DOCUMENT,
    ebooklib.ITEM_NAVIGATION,
    ebooklib.ITEM_SCRIPT,
    ebooklib.ITEM_STYLE,
)


class FormatError(Exception):
    """The archive cannot be read as an EPUB at all."""


def fallback_markup(message: str) -> str:
    """Minimal document carrying a human-readable notice."""
    return (
        "<!doctype html>\n"
        "<html><head><meta name='viewport' content='width=device-width, initial-scale=1.0' />\n"
        "<style>body{font-family: sans-serif; padding:24px;}</style></head>\n"
        f"<body><h3>{escape(message)}</h3></body></html>"
    )


def _raw_content(item: epub.EpubItem) -> bytes:
    """Bytes of an item exactly as stored in the archive.

    ``EpubHtml.get_content()`` regenerates the document from a template,
    dropping head links and styles, so the stored payload is read instead.
    """
    content = item.content
    if content is None:
        return b""
    if isinstance(content, str):
        return content.encode("utf-8")
    return content


class _TolerantReader(epub.EpubReader):
    """Reader that treats a manifest item missing from the zip as empty.

    The container and package documents must still be present.
    """

    def read_file(self, name):
        try:
            return super().read_file(name)
        except KeyError:
            if not self.opf_file or name == self.opf_file:
                raise
            log.warning("Missing archive entry %s, skipping", name)
            return b""


class ArchiveLoader:
    """Parse EPUB bytes into reading order entries and asset buckets."""

    def __init__(self, source: bytes | Path):
        self.source = source
        self.book = self._read(source)

    @staticmethod
    def _read(source: bytes | Path) -> epub.EpubBook:
        if isinstance(source, Path):
            return ArchiveLoader._read_path(source)

        # ebooklib expects a file name, so spill the bytes to a temporary file
        fd, temp_name = tempfile.mkstemp(suffix=".epub")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(source)
            return ArchiveLoader._read_path(Path(temp_name))
        finally:
            os.unlink(temp_name)

    @staticmethod
    def _read_path(path: Path) -> epub.EpubBook:
        try:
            reader = _TolerantReader(str(path), options={"ignore_ncx": True})
            book = reader.load()
            reader.process()
            return book
        except Exception as e:
            raise FormatError(f"Cannot read EPUB: {e}") from e

    def parse(self) -> ArchiveModel:
        """Build the archive model. Never returns an empty reading order."""
        entries = self._get_entries()
        if not entries:
            log.info("No usable sections, using fallback section")
            entries = [ReadingOrderEntry(key="", markup=fallback_markup(NO_CONTENT_MESSAGE))]

        images, fonts, styles, files = self._get_assets()
        return ArchiveModel(
            metadata=self._get_metadata(),
            entries=entries,
            images=images,
            fonts=fonts,
            styles=styles,
            files=files,
            cover=self._get_cover(images),
        )

    def _dc_values(self, name: str) -> list[str]:
        """Non-blank Dublin Core values for ``name``, in document order."""
        return [
            value.strip()
            for value, _attrs in self.book.get_metadata("DC", name)
            if value and value.strip()
        ]

    def _get_metadata(self) -> BookMetadata:
        titles = self._dc_values("title")
        languages = self._dc_values("language")
        publishers = self._dc_values("publisher")

        return BookMetadata(
            title=titles[0] if titles else "Unknown Title",
            authors=self._dc_values("creator"),
            language=languages[0] if languages else None,
            publisher=publishers[0] if publishers else None,
        )

    def _get_entries(self) -> list[ReadingOrderEntry]:
        """Spine documents in reading order, skipping empty or unreadable ones."""
        toc_titles = self._build_toc_title_map()
        entries = []

        for idref, _linear in self.book.spine:
            item = self.book.get_item_with_id(idref)
            if not isinstance(item, epub.EpubHtml):
                continue
            try:
                markup = _raw_content(item).decode("utf-8", errors="replace")
            except Exception as e:
                log.warning("Skipping unreadable section %s: %s", idref, e)
                continue
            if not markup.strip():
                continue

            key = item.get_name()
            entries.append(
                ReadingOrderEntry(
                    key=key,
                    markup=markup,
                    title=toc_titles.get(key) or self._extract_title_from_content(markup),
                    word_count=self._count_words(markup),
                )
            )

        return entries

    def _get_assets(self) -> tuple[AssetBucket, AssetBucket, AssetBucket, AssetBucket]:
        images, fonts, styles, files = AssetBucket(), AssetBucket(), AssetBucket(), AssetBucket()

        for item in self.book.get_items():
            asset = AssetFile(
                path=item.get_name(),
                content=_raw_content(item),
                media_type=getattr(item, "media_type", None),
            )
            item_type = item.get_type()
            if item_type in (ebooklib.ITEM_IMAGE, ebooklib.ITEM_COVER):
                images.add(asset)
            elif item_type == ebooklib.ITEM_FONT:
                fonts.add(asset)
            elif item_type == ebooklib.ITEM_STYLE:
                styles.add(asset)
                continue
            # Text documents are never inlined as binary data
            if isinstance(item, epub.EpubHtml) or item_type in TEXT_ITEM_TYPES:
                continue
            files.add(asset)

        return images, fonts, styles, files

    def _get_cover(self, images: AssetBucket) -> AssetFile | None:
        """Cover image from the EPUB 3 property or the EPUB 2 meta element."""
        for item in self.book.get_items():
            properties = getattr(item, "properties", None) or []
            if item.get_type() == ebooklib.ITEM_COVER or "cover-image" in properties:
                return images.get(item.get_name())

        for _value, attrs in self.book.get_metadata("OPF", "cover"):
            item = self.book.get_item_with_id(attrs.get("content", ""))
            if item is not None:
                return images.get(item.get_name())
        return None

    def _build_toc_title_map(self) -> dict[str, str]:
        """Build a map of file names to TOC titles."""
        title_map: dict[str, str] = {}
        self._collect_toc_titles(self.book.toc, title_map)
        return title_map

    def _collect_toc_titles(
        self, toc_items: list, title_map: dict[str, str]
    ) -> None:
        """Recursively collect titles from TOC."""
        for item in toc_items:
            if isinstance(item, tuple):
                section, children = item
                if getattr(section, "href", None) and section.title:
                    title_map.setdefault(section.href.split("#")[0], section.title)
                self._collect_toc_titles(children, title_map)
            elif getattr(item, "href", None) and item.title:
                title_map.setdefault(item.href.split("#")[0], item.title)

    def _extract_title_from_content(self, content: str) -> str | None:
        """Try to extract title from HTML content."""
        try:
            soup = BeautifulSoup(content, "lxml")
        except Exception:
            return None
        for tag in ["h1", "h2", "title"]:
            element = soup.find(tag)
            if element:
                text = element.get_text(strip=True)
                if text:
                    return text
        return None

    def _count_words(self, content: str) -> int:
        """Count words in HTML content."""
        try:
            soup = BeautifulSoup(content, "lxml")
        except Exception:
            return 0
        return len(soup.get_text(separator=" ", strip=True).split())


def load_archive(source: bytes | Path) -> tuple[ArchiveModel, LinkIndex]:
    """Parse an archive and index its sections for link resolution."""
    archive = ArchiveLoader(source).parse()
    return archive, LinkIndex(entry.key for entry in archive.entries)


async def load_archive_async(source: bytes | Path) -> tuple[ArchiveModel, LinkIndex]:
    """Same as :func:`load_archive`, run in a worker thread."""
    return await asyncio.to_thread(load_archive, source)
