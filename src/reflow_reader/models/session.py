"""Mutable state of a reading session."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ReaderState(str, Enum):
    """Where the session controller currently is."""

    COVER = "cover"
    LOADING = "loading"
    SECTION = "section"


@dataclass
class Section:
    """A content document and what has been learned about it so far."""

    key: str
    raw_markup: str
    title: str | None = None
    html: str | None = None  # built lazily
    page_count: int = 1

    def record_page_count(self, measured: int) -> None:
        self.page_count = max(1, measured)


@dataclass
class ReadingPosition:
    """Cover flag plus section/page. Global page numbers derive from it."""

    showing_cover: bool = True
    section_index: int = 0
    page_in_section: int = 0  # 0-based
    pages_in_section: int = 1

    def global_page(self, sections: list[Section]) -> int:
        """1-based page across the book, the cover being page 1."""
        if self.showing_cover:
            return 1
        page = 1
        for section in sections[: self.section_index]:
            page += max(1, section.page_count)
        return max(1, page + self.page_in_section + 1)

    @staticmethod
    def global_total(sections: list[Section]) -> int:
        return 1 + sum(max(1, section.page_count) for section in sections)


@dataclass
class ReaderConfig:
    """Timings and template used by the session controller.

    Delays are in seconds.
    """

    measure_settle_delay: float = 0.12
    measure_retry_delay: float = 0.25
    precompute_settle_delay: float = 0.16
    precompute_retry_delay: float = 0.26
    anchor_delay: float = 0.06
    template_path: Path | None = None
    precompute: bool = True
