"""Data models for rendered output."""

from datetime import datetime

from pydantic import BaseModel, Field


class RenderedSection(BaseModel):
    """One section written out as a standalone reader document."""

    section_index: int
    key: str
    title: str | None = None
    file_name: str
    word_count: int = 0
    byte_size: int


class RenderManifest(BaseModel):
    """Manifest written next to the rendered section documents."""

    book_title: str
    authors: list[str]
    source_path: str
    total_sections: int
    rendered_sections: list[int]
    output_directory: str
    created_at: datetime = Field(default_factory=datetime.now)
    sections: list[RenderedSection]
