from __future__ import annotations

import pytest

from reflow_reader.core.link_index import LinkIndex
from reflow_reader.core.paths import (
    file_name_only,
    is_external_url,
    link_target,
    normalize,
    resolve,
    split_fragment,
)


@pytest.mark.parametrize(
    ("base", "relative", "expected"),
    [
        ("chapters/ch1.xhtml", "../images/a.png", "images/a.png"),
        ("chapters/ch1.xhtml", "b.png", "chapters/b.png"),
        ("chapters/ch1.xhtml", "./b.png", "chapters/b.png"),
        ("ch1.xhtml", "img/c.png", "img/c.png"),
        ("a/b/c.xhtml", "../../x.css", "x.css"),
        ("a/c.xhtml", "../../../x.css", "x.css"),
        ("a\\b\\c.xhtml", "d//e.png", "a/b/d/e.png"),
        ("", "img.png", "img.png"),
    ],
)
def test_resolve_against_section_directory(base: str, relative: str, expected: str) -> None:
    assert resolve(base, relative) == expected


def test_normalize_and_file_name() -> None:
    assert normalize("./Text\\ch1.xhtml") == "Text/ch1.xhtml"
    assert normalize("   ") == ""
    assert normalize(None) == ""
    assert file_name_only("OEBPS/Text/ch1.xhtml") == "ch1.xhtml"
    assert file_name_only("ch1.xhtml") == "ch1.xhtml"


def test_external_urls_are_recognized_case_insensitively() -> None:
    assert is_external_url("HTTP://example.com/a.png")
    assert is_external_url("mailto:someone@example.com")
    assert is_external_url("data:image/png;base64,AAAA")
    assert not is_external_url("images/a.png")


def test_link_target_unescapes_path_and_keeps_fragment() -> None:
    assert split_fragment("ch3.xhtml#sec2") == ("ch3.xhtml", "sec2")
    assert split_fragment("ch3.xhtml") == ("ch3.xhtml", "")
    assert link_target("./Text/Chapter%203.xhtml#sec2") == ("Text/Chapter 3.xhtml", "sec2")


def test_link_index_matches_path_then_file_name() -> None:
    index = LinkIndex(["Text/ch1.xhtml", "Text/ch2.xhtml", ""])

    assert index.lookup("Text/ch2.xhtml") == 1
    assert index.lookup("text/CH2.XHTML") == 1
    assert index.lookup("../Text/ch1.xhtml") == 0
    assert index.lookup("ch1.xhtml") == 0
    assert index.lookup("missing.xhtml") is None
    assert index.lookup("") is None


def test_link_index_file_name_collision_last_wins() -> None:
    index = LinkIndex(["part1/notes.xhtml", "part2/notes.xhtml"])

    assert index.lookup("notes.xhtml") == 1
    assert index.lookup("part1/notes.xhtml") == 0
