"""Data models for books held in the library."""

from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


class BookMetadata(BaseModel):
    """Book-level metadata read from the OPF package."""

    title: str
    authors: list[str] = Field(default_factory=list)
    language: str | None = None
    publisher: str | None = None


class Book(BaseModel):
    """A book in the catalog: EPUB payload, cover and reading progress.

    The binary payloads are excluded from serialization; the library stores
    them as separate files next to the index.
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    title: str
    author: str = "Unknown author"
    date_added: datetime = Field(default_factory=datetime.now)
    content_hash: str | None = None
    cover_file: str | None = None  # file name inside the book's directory
    last_page_read: int = 0
    tags: list[str] = Field(default_factory=list)

    epub_content: bytes = Field(default=b"", exclude=True, repr=False)
    cover_image: bytes = Field(default=b"", exclude=True, repr=False)

    model_config = {"validate_assignment": True}

    @field_validator("last_page_read")
    @classmethod
    def _never_negative(cls, value: int) -> int:
        return max(0, value)


class LibraryIndex(BaseModel):
    """Index of all books known to the library."""

    books: list[Book] = Field(default_factory=list)
