"""Resolve archive assets and encode them as data URIs."""

import base64
import logging
from pathlib import PurePosixPath

from reflow_reader.core.paths import file_name_only, resolve
from reflow_reader.models.archive import ArchiveModel, AssetFile

log = logging.getLogger(__name__)

MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".mp3": "audio/mpeg",
    ".mp4": "video/mp4",
}
DEFAULT_MIME = "application/octet-stream"


def guess_mime(path: str) -> str:
    """MIME type from the file extension."""
    return MIME_TYPES.get(PurePosixPath(path).suffix.lower(), DEFAULT_MIME)


def to_data_uri(content: bytes, mime: str) -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime};base64,{encoded}"


class AssetResolver:
    """Finds the binary behind a reference made from a given section."""

    def __init__(self, archive: ArchiveModel):
        self.archive = archive

    def find_binary(self, path_or_name: str) -> AssetFile | None:
        """Look in images, then fonts, then every file of the archive."""
        for bucket in (self.archive.images, self.archive.fonts, self.archive.files):
            asset = bucket.get(path_or_name)
            if asset is not None and asset.content:
                return asset
        return None

    def find_stylesheet(self, resolved_path: str) -> AssetFile | None:
        return self.archive.styles.get(resolved_path) or self.archive.styles.get(
            file_name_only(resolved_path)
        )

    def data_uri(self, base_key: str, reference: str) -> str | None:
        """Data URI for ``reference`` as seen from ``base_key``, or None."""
        resolved = resolve(base_key, reference)
        asset = self.find_binary(resolved) or self.find_binary(file_name_only(resolved))
        if asset is None:
            log.debug("Unresolved asset %r from %r", reference, base_key)
            return None
        return to_data_uri(asset.content, guess_mime(resolved))
