"""In-memory representation of a parsed EPUB archive."""

from dataclasses import dataclass, field
from typing import Iterable

from reflow_reader.core.paths import file_name_only, normalize
from reflow_reader.models.book import BookMetadata


@dataclass(frozen=True)
class AssetFile:
    """A binary resource from the archive, keyed by its path."""

    path: str
    content: bytes
    media_type: str | None = None

    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


class AssetBucket:
    """Assets of one category, queryable by full path or bare file name.

    When two assets share a file name the first one in manifest order is
    returned for a file-name lookup.
    """

    def __init__(self, files: Iterable[AssetFile] = ()):
        self._by_path: dict[str, AssetFile] = {}
        self._by_name: dict[str, AssetFile] = {}
        for asset in files:
            self.add(asset)

    def add(self, asset: AssetFile) -> None:
        path = normalize(asset.path)
        self._by_path[path] = asset
        self._by_name.setdefault(file_name_only(path), asset)

    def get(self, path_or_name: str) -> AssetFile | None:
        key = normalize(path_or_name)
        if not key:
            return None
        return self._by_path.get(key) or self._by_name.get(key)

    def __len__(self) -> int:
        return len(self._by_path)

    def __iter__(self):
        return iter(self._by_path.values())


@dataclass(frozen=True)
class ReadingOrderEntry:
    """One content document from the spine."""

    key: str
    markup: str
    title: str | None = None
    word_count: int = 0


@dataclass
class ArchiveModel:
    """Reading order plus categorized assets. Built once per session."""

    metadata: BookMetadata
    entries: list[ReadingOrderEntry]
    images: AssetBucket = field(default_factory=AssetBucket)
    fonts: AssetBucket = field(default_factory=AssetBucket)
    styles: AssetBucket = field(default_factory=AssetBucket)
    files: AssetBucket = field(default_factory=AssetBucket)
    cover: AssetFile | None = None
