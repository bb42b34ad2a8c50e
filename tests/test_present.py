"""Unit tests for the present document parser.

These tests cover header parsing, title-only mode, section nesting, element
classification, code excerpt selection, Markdown-flavoured documents, and the
inline ``style`` filter.
"""

from __future__ import annotations

import datetime as dt
import io
from pathlib import Path

import pytest

from minidoc.present import (
    HTML,
    BulletList,
    Code,
    Image,
    Link,
    ParseMode,
    PresentParseError,
    Section,
    Text,
    parse,
    style,
)


def _parse(source: str, tmp_path: Path, mode: ParseMode = ParseMode.FULL):
    return parse(io.StringIO(source), "test.slide", mode, base_dir=tmp_path)


@pytest.fixture
def code_dir(tmp_path: Path, hello_go: str) -> Path:
    (tmp_path / "hello.go").write_text(hello_go, encoding="utf-8")
    return tmp_path


def test_header_fields(code_dir: Path, sample_slide: str) -> None:
    """Title, subtitle, time and tags come from the header block."""
    doc = _parse(sample_slide, code_dir)
    assert doc.title == "Intro to minidoc"
    assert doc.subtitle == "A guided tour"
    assert doc.time == dt.datetime(2020, 1, 2, 15, 4)
    assert doc.tags == ["docs", "present"]
    assert not doc.markdown


def test_authors_split_into_text_and_links(code_dir: Path, sample_slide: str) -> None:
    doc = _parse(sample_slide, code_dir)
    assert len(doc.authors) == 1
    author = doc.authors[0]
    assert author.name == "Jane Doe"
    assert author.elems[-1] == Link(url="mailto:jane@example.com", label="jane@example.com")


def test_titles_only_ignores_malformed_body(tmp_path: Path) -> None:
    """Title-only parsing never reads the body, so body errors do not surface."""
    source = "Deck\n\n* Slide\n\n.bogus thing\n"
    doc = _parse(source, tmp_path, ParseMode.TITLES_ONLY)
    assert doc.title == "Deck"
    assert doc.sections == []
    assert doc.authors == []
    with pytest.raises(PresentParseError, match="unknown command 'bogus'"):
        _parse(source, tmp_path)


def test_slide_elements(code_dir: Path, sample_slide: str) -> None:
    doc = _parse(sample_slide, code_dir)
    first, second = doc.sections
    assert first.title == "First slide"
    assert first.number == [1]
    text, bullets, code = first.elems
    assert isinstance(text, Text)
    assert text.lines == ["Hello *world* & friends."]
    assert bullets == BulletList(bullets=["one", "two"])
    assert isinstance(code, Code)
    assert code.play
    assert code.ext == ".go"
    assert second.elems == [Text(lines=["indented text"], pre=True)]


def test_code_address_and_omit(code_dir: Path, sample_slide: str) -> None:
    """Regex addresses select an inclusive range and OMIT lines are dropped."""
    doc = _parse(sample_slide, code_dir)
    code = doc.sections[0].elems[2]
    assert code.text == 'func main() {\n\tfmt.Println("hello")\n}\n'
    assert "draft" not in code.html
    assert 'data-language="go"' in code.html


def test_code_line_numbers_and_flags(code_dir: Path) -> None:
    source = "Deck\n\n* Code\n\n.code -edit -numbers hello.go 1,3\n"
    code = _parse(source, code_dir).sections[0].elems[0]
    assert code.text == 'package main\n\nimport "fmt"\n'
    assert code.edit
    assert code.numbers
    assert not code.play


def test_code_bad_address(code_dir: Path) -> None:
    source = "Deck\n\n* Code\n\n.code hello.go 99\n"
    with pytest.raises(PresentParseError, match="out of range"):
        _parse(source, code_dir)


def test_missing_code_file_is_os_error(tmp_path: Path) -> None:
    source = "Deck\n\n* Code\n\n.code missing.go\n"
    with pytest.raises(FileNotFoundError):
        _parse(source, tmp_path)


@pytest.mark.parametrize(
    "action", [".code ../secret.go", ".play /etc/passwd", ".html ../../page.html"]
)
def test_action_files_stay_inside_root(tmp_path: Path, action: str) -> None:
    (tmp_path / "secret.go").write_text("package secret\n", encoding="utf-8")
    talks = tmp_path / "talks"
    talks.mkdir()
    source = f"Deck\n\n* Code\n\n{action}\n"
    with pytest.raises(PresentParseError, match="outside the document root"):
        parse(io.StringIO(source), "deck.slide", base_dir=talks, root_dir=talks)


def test_action_files_may_use_sibling_directories(
    tmp_path: Path, hello_go: str
) -> None:
    (tmp_path / "shared").mkdir()
    (tmp_path / "shared" / "hello.go").write_text(hello_go, encoding="utf-8")
    talks = tmp_path / "talks"
    talks.mkdir()
    source = "Deck\n\n* Code\n\n.code ../shared/hello.go 1\n"
    doc = parse(io.StringIO(source), "deck.slide", base_dir=talks, root_dir=tmp_path)
    assert doc.sections[0].elems[0].text == "package main\n"


def test_article_sections_nest(tmp_path: Path, sample_article: str) -> None:
    doc = _parse(sample_article, tmp_path)
    background, summary = doc.sections
    assert [s.title for s in doc.sections] == ["Background", "Summary"]
    nested = background.elems[-1]
    assert isinstance(nested, Section)
    assert nested.sectioned_number == "1.1"
    assert nested.level == 2
    assert nested.elems == [Text(lines=["More text."])]
    assert summary.number == [2]


def test_heading_that_skips_a_level(tmp_path: Path) -> None:
    with pytest.raises(PresentParseError, match="skips a level"):
        _parse("Deck\n\n* One\n\n*** Too deep\n", tmp_path)


def test_unexpected_header_line(tmp_path: Path) -> None:
    with pytest.raises(PresentParseError, match="unexpected header line"):
        _parse("Deck\nSubtitle\nAnother subtitle\n", tmp_path)


def test_missing_title(tmp_path: Path) -> None:
    with pytest.raises(PresentParseError, match="missing title"):
        _parse("\n\n", tmp_path, ParseMode.TITLES_ONLY)


def test_section_heading_in_place_of_title(tmp_path: Path) -> None:
    with pytest.raises(PresentParseError, match="expected title"):
        _parse("* Slide\n", tmp_path, ParseMode.TITLES_ONLY)


def test_actions_notes_and_background(tmp_path: Path) -> None:
    (tmp_path / "snippet.html").write_text("<em>raw</em>", encoding="utf-8")
    source = (
        "Deck\n\n* Media\n\n"
        ".background bg.png\n"
        ".image gopher.png 100 _\n"
        ".link https://example.com Example site\n"
        ".html snippet.html\n"
        ": remember to smile\n"
    )
    section = _parse(source, tmp_path).sections[0]
    assert section.background == "bg.png"
    assert section.notes == ["remember to smile"]
    image, link, html = section.elems
    assert image == Image(url="gopher.png", height=100, width=0)
    assert link == Link(url="https://example.com", label="Example site")
    assert isinstance(html, HTML)
    assert str(html.html) == "<em>raw</em>"


def test_comments_are_skipped(tmp_path: Path) -> None:
    doc = _parse("// a comment\nDeck\n\n* One\n\n// hidden\nShown\n", tmp_path)
    assert doc.title == "Deck"
    assert doc.sections[0].elems == [Text(lines=["Shown"])]


def test_markdown_document(tmp_path: Path) -> None:
    source = "# Markdown deck\n\n## Heading\n\nSome **bold** text.\n\n## Next\n\nMore.\n"
    doc = _parse(source, tmp_path)
    assert doc.markdown
    assert doc.title == "Markdown deck"
    assert [s.title for s in doc.sections] == ["Heading", "Next"]
    (body,) = doc.sections[0].elems
    assert isinstance(body, HTML)
    assert "<strong>bold</strong>" in body.html


def test_bytes_stream(tmp_path: Path) -> None:
    doc = parse(io.BytesIO("Déjà vu\n".encode()), "x.slide", ParseMode.TITLES_ONLY)
    assert doc.title == "Déjà vu"


def test_style_markup() -> None:
    rendered = str(style("*bold* _it_ `x<y` [[https://go.dev][Go]] a & b"))
    assert rendered == (
        '<b>bold</b> <i>it</i> <code>x&lt;y</code> '
        '<a href="https://go.dev" target="_blank">Go</a> a &amp; b'
    )


def test_style_bare_link_drops_scheme() -> None:
    assert str(style("[[https://example.com/x]]")) == (
        '<a href="https://example.com/x" target="_blank">example.com/x</a>'
    )
