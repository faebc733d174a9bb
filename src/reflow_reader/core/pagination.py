"""Column pagination: the reader template and the scripts that drive it.

The template lays the section body out in columns exactly one viewport
wide and publishes ``window.__reflow`` with these operations:

* ``layout()`` recomputes the column width from the viewport,
* ``pageCount()`` returns ``ceil(scrollWidth / viewportWidth)``, at least 1,
* ``goTo(index)`` scrolls to ``index * viewportWidth``,
* ``goToAnchor(id)`` scrolls to the page holding the element ``id``,
* ``currentPage()`` reports the page currently scrolled to.

The host evaluates the expressions below and reads back their text.
"""

import re
from importlib import resources
from pathlib import Path

from reflow_reader.core.transcoder import TranscodedSection

TEMPLATE_NAME = "reader_template.html"
CSS_PLACEHOLDER = "{{extraCss}}"
BODY_PLACEHOLDER = "{{innerBodyHtml}}"

READER = "window.__reflow"
LAYOUT_SCRIPT = f"{READER} && {READER}.layout && {READER}.layout();"
PAGE_COUNT_SCRIPT = f"{READER} && {READER}.pageCount ? {READER}.pageCount() : '1'"
CURRENT_PAGE_SCRIPT = f"{READER} && {READER}.currentPage ? {READER}.currentPage() : '0'"

_INT_RE = re.compile(r"\d+")


def load_template(path: Path | None = None) -> str:
    """Reader template text, from ``path`` or the packaged default."""
    if path is not None:
        return path.read_text(encoding="utf-8")
    return (resources.files("reflow_reader") / "templates" / TEMPLATE_NAME).read_text(
        encoding="utf-8"
    )


def render_document(template: str, parts: TranscodedSection) -> str:
    """Inject extracted CSS and body markup into the template."""
    return template.replace(CSS_PLACEHOLDER, parts.css or "").replace(
        BODY_PLACEHOLDER, parts.body_inner or ""
    )


def js_string(value: str | None) -> str:
    """Single-quoted JavaScript string literal."""
    escaped = (value or "").replace("\\", "\\\\").replace("'", "\\'")
    escaped = escaped.replace("\n", "\\n").replace("\r", "\\r")
    return f"'{escaped}'"


def go_to_script(page_index: int) -> str:
    return f"{READER} && {READER}.goTo && {READER}.goTo({int(page_index)});"


def go_to_anchor_script(anchor: str) -> str:
    return f"{READER} && {READER}.goToAnchor && {READER}.goToAnchor({js_string(anchor)});"


def parse_js_int(value: str | None) -> int | None:
    """First integer in a script result such as ``"12"`` or ``'"12"'``."""
    match = _INT_RE.search(value or "")
    return int(match.group(0)) if match else None
