"""Data models."""

from reflow_reader.models.archive import (
    ArchiveModel,
    AssetBucket,
    AssetFile,
    ReadingOrderEntry,
)
from reflow_reader.models.book import Book, BookMetadata, LibraryIndex
from reflow_reader.models.output import RenderedSection, RenderManifest
from reflow_reader.models.session import (
    ReaderConfig,
    ReaderState,
    ReadingPosition,
    Section,
)

__all__ = [
    # Archive models
    "ArchiveModel",
    "AssetBucket",
    "AssetFile",
    "ReadingOrderEntry",
    # Library models
    "Book",
    "BookMetadata",
    "LibraryIndex",
    # Output models
    "RenderedSection",
    "RenderManifest",
    # Session models
    "ReaderConfig",
    "ReaderState",
    "ReadingPosition",
    "Section",
]
