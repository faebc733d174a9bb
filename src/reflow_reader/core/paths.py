"""Path handling for links and assets inside an EPUB archive."""

from urllib.parse import unquote

EXTERNAL_SCHEMES = ("http://", "https://", "mailto:", "tel:", "data:")


def normalize(path: str | None) -> str:
    """Use forward slashes and drop a leading "./"."""
    if not path or not path.strip():
        return ""
    path = path.replace("\\", "/")
    if path.startswith("./"):
        path = path[2:]
    return path


def file_name_only(path: str | None) -> str:
    """Return the part of a path after its last slash."""
    path = normalize(path)
    return path.rsplit("/", 1)[-1]


def resolve(base_path: str | None, relative_path: str | None) -> str:
    """Resolve a relative reference against the directory of ``base_path``.

    ``.`` segments are dropped, ``..`` pops one directory (never above the
    archive root) and empty segments are collapsed.

    >>> resolve("chapters/ch1.xhtml", "../images/a.png")
    'images/a.png'
    """
    base_dir = normalize(base_path)
    slash = base_dir.rfind("/")
    base_dir = base_dir[: slash + 1] if slash >= 0 else ""

    parts: list[str] = []
    for segment in (base_dir + (relative_path or "")).replace("\\", "/").split("/"):
        if not segment or segment == ".":
            continue
        if segment == "..":
            if parts:
                parts.pop()
            continue
        parts.append(segment)
    return "/".join(parts)


def is_external_url(url: str) -> bool:
    """True for references that must never be rewritten or intercepted."""
    return url.lower().startswith(EXTERNAL_SCHEMES)


def split_fragment(url: str) -> tuple[str, str]:
    """Split ``file.xhtml#anchor`` into ``("file.xhtml", "anchor")``."""
    before, _, fragment = url.partition("#")
    return before, fragment


def link_target(url: str) -> tuple[str, str]:
    """Unescaped, normalized file path and fragment of a navigation URL."""
    before, fragment = split_fragment(url)
    return normalize(unquote(before)), fragment
