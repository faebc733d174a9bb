"""Reading session controller.

Owns the section list and the reading position for one book, builds
section documents on demand, drives the on-screen rendering surface and
measures page counts, both for the section being read and, in the
background, for every other section through an off-screen surface.
"""

import asyncio
import logging
from typing import Callable

from reflow_reader.core.archive_loader import fallback_markup, load_archive_async
from reflow_reader.core.assets import AssetResolver
from reflow_reader.core.link_index import LinkIndex
from reflow_reader.core.measurement import MeasurementError, measure_page_count
from reflow_reader.core.pagination import (
    CURRENT_PAGE_SCRIPT,
    LAYOUT_SCRIPT,
    go_to_anchor_script,
    go_to_script,
    load_template,
    parse_js_int,
    render_document,
)
from reflow_reader.core.paths import link_target
from reflow_reader.core.surface import RenderSurface
from reflow_reader.core.transcoder import HtmlTranscoder
from reflow_reader.models.archive import ArchiveModel
from reflow_reader.models.book import Book
from reflow_reader.models.session import (
    ReaderConfig,
    ReaderState,
    ReadingPosition,
    Section,
)

log = logging.getLogger(__name__)

# Navigation the host should let through instead of handing to the session
PASSTHROUGH_SCHEMES = ("http://", "https://", "mailto:", "tel:")

BOOK_NOT_LOADED_MESSAGE = "Book not loaded."


class ReaderSession:
    """State machine over Cover, Loading and a displayed section/page."""

    def __init__(
        self,
        book: Book,
        surface: RenderSurface,
        measure_surface: RenderSurface | None = None,
        config: ReaderConfig | None = None,
        on_indicator: Callable[[int, int], None] | None = None,
    ):
        self.book = book
        self.surface = surface
        self.measure_surface = measure_surface
        self.config = config or ReaderConfig()
        self.on_indicator = on_indicator

        self.state = ReaderState.COVER
        self.position = ReadingPosition()
        self.sections: list[Section] = []
        self.archive: ArchiveModel | None = None
        self.link_index = LinkIndex()

        self._transcoder: HtmlTranscoder | None = None
        self._template: str | None = None
        self._initialized = False
        self._init_lock = asyncio.Lock()
        self._measure_lock = asyncio.Lock()
        self._precompute_task: asyncio.Task | None = None
        self._load_generation = 0
        self._closed = False

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def current_page(self) -> int:
        """1-based page across the book, cover included."""
        return self.position.global_page(self.sections)

    @property
    def total_pages(self) -> int:
        return ReadingPosition.global_total(self.sections)

    @property
    def page_indicator(self) -> str:
        return f"{self.current_page}/{self.total_pages}"

    @property
    def initialized(self) -> bool:
        return self._initialized

    def _update_indicator(self) -> None:
        if self.on_indicator is not None and not self._closed:
            self.on_indicator(self.current_page, self.total_pages)

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Parse the book's archive and build the section list, once.

        Raises FormatError when the archive is unreadable.
        """
        async with self._init_lock:
            if self._initialized:
                return

            archive, link_index = await load_archive_async(self.book.epub_content)
            self.archive = archive
            self.link_index = link_index
            self._transcoder = HtmlTranscoder(AssetResolver(archive))
            self.sections = [
                Section(key=entry.key, raw_markup=entry.markup, title=entry.title)
                for entry in archive.entries
            ]
            self._initialized = True
            log.info("Loaded %d section(s) from %r", len(self.sections), self.book.title)

        self._update_indicator()
        if self.config.precompute:
            self.start_precompute()

    async def start(self, resume: bool = False) -> None:
        """Show the cover, or jump back to the saved page when ``resume`` is set."""
        self.display_cover()
        if not resume or self.book.last_page_read <= 0:
            return

        await self.initialize()
        if self._precompute_task is not None:
            # Saved pages are global, so every section's count is needed first
            await self._precompute_task
        index, page = self.position_for_page(self.book.last_page_read + 1)
        if index is not None:
            await self.display_section(index, page)

    def position_for_page(self, global_page: int) -> tuple[int | None, int]:
        """Section and in-section page for a 1-based global page (None = cover)."""
        if global_page <= 1 or not self.sections:
            return None, 0
        remaining = global_page - 1
        for index, section in enumerate(self.sections):
            pages = max(1, section.page_count)
            if remaining <= pages:
                return index, remaining - 1
            remaining -= pages
        last = len(self.sections) - 1
        return last, max(1, self.sections[last].page_count) - 1

    # ------------------------------------------------------------------
    # Section documents
    # ------------------------------------------------------------------

    def _template_text(self) -> str:
        if self._template is None:
            self._template = load_template(self.config.template_path)
        return self._template

    def section_html(self, index: int) -> str:
        """Standalone document for a section, built on first use and cached."""
        section = self.sections[index]
        if section.html is None:
            if self._transcoder is None:
                return fallback_markup(BOOK_NOT_LOADED_MESSAGE)
            parts = self._transcoder.transcode(section.raw_markup, section.key)
            section.html = render_document(self._template_text(), parts)
        return section.html

    def _record_page_count(self, index: int, pages: int) -> None:
        self.sections[index].record_page_count(pages)
        if not self.position.showing_cover and self.position.section_index == index:
            self.position.pages_in_section = self.sections[index].page_count

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def display_cover(self) -> None:
        self.state = ReaderState.COVER
        self._load_generation += 1
        self.position = ReadingPosition()
        self._update_indicator()

    async def tap_cover(self) -> None:
        await self.display_section(0, 0)

    async def display_section(
        self, index: int, page: int, anchor: str | None = None
    ) -> None:
        """Load a section on the surface and position it on ``page`` (0-based).

        ``anchor`` is scrolled to once this load completes; it is dropped when
        the load fails or another one supersedes it.
        """
        if not self._initialized:
            await self.initialize()
        if not self.sections:
            return

        index = min(max(index, 0), len(self.sections) - 1)
        self.state = ReaderState.LOADING
        self.position = ReadingPosition(
            showing_cover=False,
            section_index=index,
            page_in_section=max(0, page),
            pages_in_section=max(1, self.sections[index].page_count),
        )
        self._update_indicator()

        html = self.section_html(index)
        self._load_generation += 1
        generation = self._load_generation

        ok = await self.surface.load_html(html)
        if self._is_stale(generation):
            return
        if not ok:
            log.warning("Rendering section %d failed, no measurement taken", index)
            self.state = ReaderState.SECTION
            return

        await self._on_section_loaded(index, generation, anchor)

    def _is_stale(self, generation: int) -> bool:
        return self._closed or generation != self._load_generation

    async def _on_section_loaded(
        self, index: int, generation: int, anchor: str | None = None
    ) -> None:
        """Measure the freshly loaded section, then apply page and anchor."""
        async with self._measure_lock:
            try:
                pages = await measure_page_count(
                    self.surface,
                    self.config.measure_settle_delay,
                    self.config.measure_retry_delay,
                )
            except MeasurementError as e:
                log.warning("Measuring section %d failed, assuming one page: %s", index, e)
                pages = None

        if self._is_stale(generation):
            return

        self._record_page_count(index, pages or 1)
        self.position.page_in_section = min(
            self.position.page_in_section, self.position.pages_in_section - 1
        )
        self.state = ReaderState.SECTION

        if pages is not None:
            await self.surface.evaluate(go_to_script(self.position.page_in_section))
        if anchor:
            await asyncio.sleep(self.config.anchor_delay)
            if self._is_stale(generation):
                return
            await self._go_to_anchor(anchor)

        self._update_indicator()

    async def advance(self) -> None:
        """Next page, next section, or nothing at the end of the book."""
        if not self._initialized:
            await self.initialize()

        if self.position.showing_cover:
            await self.display_section(0, 0)
            return

        position = self.position
        if position.page_in_section < position.pages_in_section - 1:
            position.page_in_section += 1
            await self.surface.evaluate(go_to_script(position.page_in_section))
        elif position.section_index < len(self.sections) - 1:
            await self.display_section(position.section_index + 1, 0)
            return

        self._update_indicator()

    async def retreat(self) -> None:
        """Previous page, last page of the previous section, or the cover."""
        if not self._initialized:
            await self.initialize()

        if self.position.showing_cover:
            return

        position = self.position
        if position.page_in_section > 0:
            position.page_in_section -= 1
            await self.surface.evaluate(go_to_script(position.page_in_section))
        elif position.section_index > 0:
            previous = position.section_index - 1
            last_page = max(1, self.sections[previous].page_count) - 1
            await self.display_section(previous, last_page)
            return
        else:
            self.display_cover()
            return

        self._update_indicator()

    async def on_viewport_resized(self) -> None:
        """Relayout the current section and re-measure it in place."""
        if self.position.showing_cover or self.state != ReaderState.SECTION:
            return

        index = self.position.section_index
        generation = self._load_generation
        await self.surface.evaluate(LAYOUT_SCRIPT)
        async with self._measure_lock:
            try:
                pages = await measure_page_count(self.surface, 0, self.config.measure_retry_delay)
            except MeasurementError as e:
                log.warning("Re-measuring section %d failed: %s", index, e)
                return
        if self._is_stale(generation):
            return

        self._record_page_count(index, pages)
        self.position.page_in_section = min(
            self.position.page_in_section, self.position.pages_in_section - 1
        )
        await self.surface.evaluate(go_to_script(self.position.page_in_section))
        self._update_indicator()

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    @staticmethod
    def intercepts(url: str | None) -> bool:
        """Whether the host must cancel this navigation and hand it over."""
        if not url or not url.strip():
            return False
        return not url.lower().startswith(PASSTHROUGH_SCHEMES)

    async def on_navigating(self, url: str | None) -> bool:
        """Handle a navigation request raised by the on-screen surface.

        Returns True when the request was intercepted; the host should have
        cancelled it already, based on :meth:`intercepts`.
        """
        if not self.intercepts(url):
            return False

        if url.startswith("#"):
            anchor = url[1:]
            if anchor.strip():
                await self._go_to_anchor(anchor)
            return True

        path, anchor = link_target(url)
        target = self.link_index.lookup(path)
        if target is not None:
            await self.display_section(target, 0, anchor=anchor if anchor.strip() else None)
            return True

        if anchor.strip():
            await self._go_to_anchor(anchor)
        else:
            log.debug("Ignoring unresolved link %r", url)
        return True

    async def _go_to_anchor(self, anchor: str) -> None:
        """Jump to an element of the current document and follow the page."""
        await self.surface.evaluate(go_to_anchor_script(anchor))
        if self.position.showing_cover:
            return
        try:
            page = parse_js_int(await self.surface.evaluate(CURRENT_PAGE_SCRIPT))
        except Exception as e:
            log.debug("Could not read current page after anchor jump: %s", e)
            return
        if page is not None:
            self.position.page_in_section = min(page, self.position.pages_in_section - 1)
            self._update_indicator()

    # ------------------------------------------------------------------
    # Background measurement
    # ------------------------------------------------------------------

    def start_precompute(self) -> asyncio.Task | None:
        """Start the background pass once; later calls return the same task."""
        if self.measure_surface is None:
            return None
        if self._precompute_task is None:
            self._precompute_task = asyncio.create_task(self.precompute_page_counts())
        return self._precompute_task

    async def precompute_page_counts(self) -> None:
        """Measure every section still at one page, one at a time."""
        if self.measure_surface is None or not self.sections:
            return

        for index, section in enumerate(self.sections):
            if self._closed:
                return
            if section.page_count > 1:
                continue

            async with self._measure_lock:
                try:
                    ok = await self.measure_surface.load_html(self.section_html(index))
                    if not ok:
                        log.debug("Off-screen load of section %d failed", index)
                        continue
                    pages = await measure_page_count(
                        self.measure_surface,
                        self.config.precompute_settle_delay,
                        self.config.precompute_retry_delay,
                    )
                except MeasurementError as e:
                    log.warning("Precomputing section %d failed, assuming one page: %s", index, e)
                    pages = 1
                except Exception:
                    log.exception("Off-screen surface failed on section %d", index)
                    continue

            if self._closed:
                return
            self._record_page_count(index, pages)
            self._update_indicator()

    # ------------------------------------------------------------------
    # Exit
    # ------------------------------------------------------------------

    def close(self) -> int:
        """Stop the session and write the reading position back to the book.

        Returns the saved page (global page minus one, 0 for the cover).
        """
        last_page = max(0, self.current_page - 1)
        self.book.last_page_read = last_page
        self._closed = True
        if self._precompute_task is not None and not self._precompute_task.done():
            self._precompute_task.cancel()
        return last_page
