"""Turn a section's XHTML into a self-contained document.

Every stylesheet link is inlined and every reference to an archive asset
becomes a data URI, so the rendering surface never needs to fetch anything
from the archive or the network. References that cannot be resolved are
left untouched.
"""

import logging
import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

from reflow_reader.core.assets import AssetResolver
from reflow_reader.core.paths import is_external_url, resolve

log = logging.getLogger(__name__)

STYLESHEET_LINK_RE = re.compile(
    r"<link(?:(?!>).)*rel=[\"']?stylesheet[\"']?(?:(?!>).)*>",
    re.IGNORECASE | re.DOTALL,
)
LINK_HREF_RE = re.compile(r"href=[\"'](?P<href>[^\"']+)[\"']", re.IGNORECASE)
ASSET_ATTR_RE = re.compile(
    r"(?<![\w:-])(?P<attr>xlink:href|src|href)=(?P<quote>[\"'])(?P<url>[^\"']+)(?P=quote)",
    re.IGNORECASE,
)
STYLE_BLOCK_RE = re.compile(
    r"(?P<open><style(?:(?!>).)*>)(?P<css>[\s\S]*?)(?P<close></style>)", re.IGNORECASE
)
CSS_URL_RE = re.compile(r"url\((?P<url>[^)]+)\)", re.IGNORECASE)
BODY_OPEN_RE = re.compile(r"<body\b[^>]*>", re.IGNORECASE)
BODY_CLOSE_RE = re.compile(r"</body\s*>", re.IGNORECASE)


@dataclass(frozen=True)
class TranscodedSection:
    """CSS and body markup ready for injection into the reader template."""

    css: str
    body_inner: str


class HtmlTranscoder:
    """Rewrite section markup against the assets of one archive."""

    def __init__(self, resolver: AssetResolver):
        self.resolver = resolver

    def transcode(self, raw_markup: str, section_key: str) -> TranscodedSection:
        processed = self.inline_stylesheets(raw_markup, section_key)
        processed = self.rewrite_asset_attributes(processed, section_key)
        processed = self.rewrite_style_blocks(processed, section_key)
        return TranscodedSection(
            css=extract_style_blocks(processed),
            body_inner=extract_body_inner(processed),
        )

    def inline_stylesheets(self, html: str, base_key: str) -> str:
        """Replace ``<link rel="stylesheet">`` tags with ``<style>`` blocks."""

        def repl(match: re.Match[str]) -> str:
            tag = match.group(0)
            href_match = LINK_HREF_RE.search(tag)
            if not href_match:
                return tag
            href = href_match.group("href")
            if is_external_url(href):
                return tag

            resolved = resolve(base_key, href)
            stylesheet = self.resolver.find_stylesheet(resolved)
            if stylesheet is None or not stylesheet.content:
                log.debug("Stylesheet %r not found for %r", href, base_key)
                return tag

            css = self.rewrite_css_urls(stylesheet.text(), resolved)
            return f"<style>\n{css}\n</style>"

        return STYLESHEET_LINK_RE.sub(repl, html)

    def rewrite_asset_attributes(self, html: str, base_key: str) -> str:
        """Rewrite ``src``, ``href`` and ``xlink:href`` values to data URIs."""

        def repl(match: re.Match[str]) -> str:
            url = match.group("url")
            if is_external_url(url) or url.startswith("#"):
                return match.group(0)
            data_uri = self.resolver.data_uri(base_key, url)
            if data_uri is None:
                return match.group(0)
            quote = match.group("quote")
            return f"{match.group('attr')}={quote}{data_uri}{quote}"

        return ASSET_ATTR_RE.sub(repl, html)

    def rewrite_style_blocks(self, html: str, base_key: str) -> str:
        """Rewrite ``url(...)`` references inside inline ``<style>`` blocks."""

        def repl(match: re.Match[str]) -> str:
            css = self.rewrite_css_urls(match.group("css"), base_key)
            return f"{match.group('open')}{css}{match.group('close')}"

        return STYLE_BLOCK_RE.sub(repl, html)

    def rewrite_css_urls(self, css: str, base_key: str) -> str:
        def repl(match: re.Match[str]) -> str:
            raw = match.group("url").strip().strip("\"' ")
            if not raw or is_external_url(raw) or raw.startswith("#"):
                return match.group(0)
            data_uri = self.resolver.data_uri(base_key, raw)
            if data_uri is None:
                return match.group(0)
            return f"url('{data_uri}')"

        return CSS_URL_RE.sub(repl, css)


def extract_style_blocks(html: str) -> str:
    """Concatenate the text of every ``<style>`` element."""
    soup = BeautifulSoup(html, "lxml")
    return "".join(f"{style.get_text()}\n" for style in soup.find_all("style"))


def extract_body_inner(html: str) -> str:
    """Inner markup of ``<body>``, or the whole document when there is none.

    The text is sliced out as written, so attribute order and quoting survive.
    """
    opening = BODY_OPEN_RE.search(html)
    if opening is None:
        return html
    closings = list(BODY_CLOSE_RE.finditer(html, opening.end()))
    end = closings[-1].start() if closings else len(html)
    return html[opening.end():end]
