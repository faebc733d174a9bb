from __future__ import annotations

import base64

from reflow_reader.core.assets import AssetResolver, guess_mime, to_data_uri
from reflow_reader.core.pagination import load_template, render_document
from reflow_reader.core.transcoder import (
    HtmlTranscoder,
    extract_body_inner,
    extract_style_blocks,
)
from reflow_reader.models.archive import ArchiveModel, AssetBucket, AssetFile
from reflow_reader.models.book import BookMetadata

PNG = b"\x89PNG\r\n\x1a\nimage-bytes"
FONT = b"font-bytes"


def _archive(styles: dict[str, str] | None = None) -> ArchiveModel:
    images = AssetBucket([AssetFile("img/cover.png", PNG), AssetFile("img/icons.svg", b"<svg/>")])
    fonts = AssetBucket([AssetFile("fonts/serif.ttf", FONT)])
    style_bucket = AssetBucket(
        AssetFile(path, css.encode("utf-8")) for path, css in (styles or {}).items()
    )
    return ArchiveModel(
        metadata=BookMetadata(title="Test"),
        entries=[],
        images=images,
        fonts=fonts,
        styles=style_bucket,
    )


def _transcoder(styles: dict[str, str] | None = None) -> HtmlTranscoder:
    return HtmlTranscoder(AssetResolver(_archive(styles)))


def _png_uri() -> str:
    return "data:image/png;base64," + base64.b64encode(PNG).decode("ascii")


def test_image_is_embedded_and_missing_image_is_left_alone() -> None:
    markup = (
        "<html><body>"
        '<img src="../img/cover.png"/>'
        '<img src="missing.png"/>'
        "</body></html>"
    )
    parts = _transcoder().transcode(markup, "chapters/ch2.xhtml")

    assert f'src="{_png_uri()}"' in parts.body_inner
    assert 'src="missing.png"' in parts.body_inner


def test_linked_stylesheet_is_inlined_with_urls_relative_to_the_stylesheet() -> None:
    css = "@font-face { font-family: S; src: url(../fonts/serif.ttf); }\np { color: red; }"
    markup = (
        '<html><head><link rel="stylesheet" type="text/css" href="../styles/main.css"/></head>'
        "<body><p>Hi</p></body></html>"
    )
    parts = _transcoder({"styles/main.css": css}).transcode(markup, "text/ch1.xhtml")

    font_uri = "data:font/ttf;base64," + base64.b64encode(FONT).decode("ascii")
    assert f"url('{font_uri}')" in parts.css
    assert "p { color: red; }" in parts.css
    assert "<link" not in parts.body_inner


def test_stylesheet_found_by_file_name_when_path_does_not_match() -> None:
    markup = '<html><head><link href="css/book.css" rel="stylesheet"/></head><body></body></html>'
    parts = _transcoder({"Styles/book.css": "h1 { margin: 0; }"}).transcode(markup, "ch1.xhtml")

    assert "h1 { margin: 0; }" in parts.css


def test_unresolved_stylesheet_link_is_kept() -> None:
    html = '<link rel="stylesheet" href="nope.css"/>'
    assert _transcoder().inline_stylesheets(html, "ch1.xhtml") == html


def test_inline_style_urls_and_svg_references_are_embedded() -> None:
    markup = (
        "<html><head><style>body { background: url('img/cover.png'); }</style></head>"
        '<body><svg><image xlink:href="img/cover.png"/><use href="#shape"/></svg></body></html>'
    )
    parts = _transcoder().transcode(markup, "ch1.xhtml")

    assert f"url('{_png_uri()}')" in parts.css
    assert _png_uri() in parts.body_inner
    assert "#shape" in parts.body_inner


def test_external_and_anchor_references_are_not_rewritten() -> None:
    html = (
        '<a href="https://example.com/cover.png">x</a>'
        '<a href="#note1">1</a>'
        '<img src="data:image/gif;base64,R0lGOD"/>'
    )
    assert _transcoder().rewrite_asset_attributes(html, "ch1.xhtml") == html


def test_links_to_other_sections_stay_intact() -> None:
    html = '<a href="ch3.xhtml#sec2">next</a>'
    assert _transcoder().rewrite_asset_attributes(html, "ch1.xhtml") == html


def test_transcoding_is_idempotent() -> None:
    markup = '<html><body><img src="img/cover.png"/><p>Same</p></body></html>'
    transcoder = _transcoder()

    assert transcoder.transcode(markup, "ch1.xhtml") == transcoder.transcode(markup, "ch1.xhtml")


def test_body_extraction_without_body_returns_whole_markup() -> None:
    fragment = "<p>Just a fragment</p>"
    assert extract_body_inner(fragment) == fragment
    assert extract_body_inner("<html><body><p>A</p><p>B</p></body></html>") == "<p>A</p><p>B</p>"


def test_unresolved_markup_keeps_its_quoting_and_attribute_order() -> None:
    inner = "\n<img src='missing.png' alt='a &amp; b'/>\n<P CLASS=x>Kept</P>\n"
    markup = f"<html><head><title>t</title></head><BODY class='c'>{inner}</BODY></html>"

    assert _transcoder().transcode(markup, "ch1.xhtml").body_inner == inner


def test_style_blocks_are_concatenated() -> None:
    html = "<html><head><style>a{}</style><style>b{}</style></head><body></body></html>"
    assert extract_style_blocks(html) == "a{}\nb{}\n"


def test_render_document_fills_both_placeholders() -> None:
    parts = _transcoder().transcode(
        "<html><head><style>p{}</style></head><body><p>Body</p></body></html>", "ch1.xhtml"
    )
    document = render_document(load_template(), parts)

    assert "{{extraCss}}" not in document
    assert "{{innerBodyHtml}}" not in document
    assert "<p>Body</p>" in document
    assert "window.__reflow" in document


def test_mime_guess_and_data_uri() -> None:
    assert guess_mime("a/B.JPG") == "image/jpeg"
    assert guess_mime("font.woff2") == "font/woff2"
    assert guess_mime("blob.bin") == "application/octet-stream"
    assert to_data_uri(b"abc", "text/plain") == "data:text/plain;base64,YWJj"
