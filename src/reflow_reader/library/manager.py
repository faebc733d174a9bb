"""Book catalog stored on disk: a JSON index plus one directory per book."""

import hashlib
import logging
import shutil
from pathlib import Path

from reflow_reader.core.archive_loader import load_archive
from reflow_reader.core.paths import file_name_only
from reflow_reader.models.book import Book, LibraryIndex

log = logging.getLogger(__name__)

DEFAULT_LIBRARY_DIR = Path.home() / ".reflow_reader"


class LibraryError(Exception):
    """Unknown book or unreadable library state."""


class LibraryManager:
    """Manages the books a reader knows about, with their covers and progress."""

    INDEX_FILE = "library.json"
    BOOKS_DIR = "books"
    EPUB_FILE = "book.epub"

    def __init__(self, root: Path = DEFAULT_LIBRARY_DIR):
        self.root = root
        self.index_path = root / self.INDEX_FILE
        self._index: LibraryIndex | None = None

    def _ensure_root(self) -> None:
        (self.root / self.BOOKS_DIR).mkdir(parents=True, exist_ok=True)

    def _load_index(self) -> LibraryIndex:
        """Load or create the library index."""
        if self._index is not None:
            return self._index

        if self.index_path.exists():
            try:
                self._index = LibraryIndex.model_validate_json(
                    self.index_path.read_text(encoding="utf-8")
                )
            except ValueError as e:
                raise LibraryError(f"Corrupt library index {self.index_path}: {e}") from e
        else:
            self._index = LibraryIndex()

        return self._index

    def _save_index(self) -> None:
        self._ensure_root()
        index = self._load_index()
        self.index_path.write_text(index.model_dump_json(indent=2), encoding="utf-8")

    def book_dir(self, book: Book) -> Path:
        return self.root / self.BOOKS_DIR / book.id

    @staticmethod
    def content_hash(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    def add_book(self, epub_path: Path) -> Book:
        """Import an EPUB file. Importing the same content twice returns the first record.

        Raises FormatError when the file is not a readable EPUB.
        """
        data = epub_path.read_bytes()
        digest = self.content_hash(data)

        index = self._load_index()
        for existing in index.books:
            if existing.content_hash == digest:
                log.info("%s is already in the library as %s", epub_path.name, existing.id)
                return existing

        archive, _ = load_archive(data)
        metadata = archive.metadata
        book = Book(
            title=metadata.title or epub_path.stem,
            author=", ".join(metadata.authors) or "Unknown author",
            content_hash=digest,
        )

        book_dir = self.book_dir(book)
        book_dir.mkdir(parents=True, exist_ok=True)
        (book_dir / self.EPUB_FILE).write_bytes(data)

        if archive.cover is not None:
            suffix = Path(file_name_only(archive.cover.path)).suffix or ".img"
            book.cover_file = f"cover{suffix.lower()}"
            (book_dir / book.cover_file).write_bytes(archive.cover.content)

        index.books.append(book)
        self._save_index()
        log.info("Added %r (%s)", book.title, book.id)
        return book

    def list_books(self) -> list[Book]:
        return list(self._load_index().books)

    def get_book(self, book_id: str) -> Book:
        """Find a book by id, or by a unique id prefix."""
        books = self._load_index().books
        for book in books:
            if book.id == book_id:
                return book

        matches = [book for book in books if book.id.startswith(book_id)]
        if len(matches) == 1:
            return matches[0]
        if matches:
            raise LibraryError(f"Ambiguous book id: {book_id}")
        raise LibraryError(f"No book with id {book_id}")

    def load_epub_bytes(self, book: Book) -> bytes:
        """Read the stored archive into ``book.epub_content`` and return it."""
        path = self.book_dir(book) / self.EPUB_FILE
        if not path.exists():
            raise LibraryError(f"Missing archive for {book.id}: {path}")
        book.epub_content = path.read_bytes()
        return book.epub_content

    def load_cover_bytes(self, book: Book) -> bytes:
        if not book.cover_file:
            return b""
        path = self.book_dir(book) / book.cover_file
        if not path.exists():
            log.warning("Cover file missing for %s", book.id)
            return b""
        book.cover_image = path.read_bytes()
        return book.cover_image

    def add_tags(self, book_id: str, names: list[str]) -> Book:
        book = self.get_book(book_id)
        for name in names:
            name = name.strip()
            if name and name not in book.tags:
                book.tags.append(name)
        self._save_index()
        return book

    def save_progress(self, book_id: str, last_page_read: int) -> Book:
        """Persist the last page read (negative values are stored as 0)."""
        book = self.get_book(book_id)
        book.last_page_read = last_page_read
        self._save_index()
        return book

    def remove_book(self, book_id: str) -> Book:
        book = self.get_book(book_id)
        index = self._load_index()
        index.books = [b for b in index.books if b.id != book.id]

        book_dir = self.book_dir(book)
        if book_dir.exists():
            shutil.rmtree(book_dir)

        self._save_index()
        return book
