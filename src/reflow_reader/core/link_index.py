"""Lookup from internal link targets to section ordinals."""

from typing import Iterable

from reflow_reader.core.paths import file_name_only, normalize


class LinkIndex:
    """Maps normalized section paths and bare file names to section ordinals.

    Keys are case-insensitive. When two sections share a file name the one
    indexed last wins.
    """

    def __init__(self, keys: Iterable[str] = ()):
        self._index: dict[str, int] = {}
        for ordinal, key in enumerate(keys):
            path = normalize(key)
            if not path:
                continue
            self._index[path.casefold()] = ordinal
            self._index[file_name_only(path).casefold()] = ordinal

    def lookup(self, target: str) -> int | None:
        """Section ordinal for a link target path, or None."""
        path = normalize(target)
        if not path:
            return None
        found = self._index.get(path.casefold())
        if found is None:
            found = self._index.get(file_name_only(path).casefold())
        return found

    def __len__(self) -> int:
        return len(self._index)
