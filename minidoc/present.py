r"""Parse present-format slide decks and articles into structured documents.

A present file opens with a header (title, optional subtitle, a time stamp and
``Tags:``/``Summary:``/``OldURL:`` metadata), followed by blank-line separated
author blocks and then ``*`` sections. Section bodies hold paragraphs, ``-``
lists, indented preformatted text, ``:`` presenter notes, and ``.``-prefixed
actions such as ``.code`` and ``.image``. Documents whose title line starts
with ``# `` use Markdown headings (``##``) and Markdown prose instead.

The templates registered by :mod:`minidoc.templates` consume the dataclasses
returned here; every element carries a ``kind`` that the ``action.tmpl``
macros dispatch on.

Example
-------
>>> import io
>>> from minidoc.present import ParseMode, parse
>>> doc = parse(io.StringIO("Hello\n\n* One\n\nBody\n"), "hello.slide")
>>> doc.title, doc.sections[0].title
('Hello', 'One')
>>> parse(io.StringIO("Hello\n"), "x.slide", ParseMode.TITLES_ONLY).sections
[]
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import enum
import posixpath
import re
import textwrap
import typing as typ
from pathlib import Path

from markupsafe import Markup, escape
from werkzeug.security import safe_join

from .renderer import HtmlContentRenderer

TIME_FORMATS = ("%H:%M %d %b %Y", "%d %b %Y")
ADDRESS_PATTERN = re.compile(
    r"^(?P<lo>\d+|\$|/(?:[^/\\]|\\.)*/)(?:,(?P<hi>\d+|\$|/(?:[^/\\]|\\.)*/))?$"
)
INLINE_PATTERN = re.compile(
    r"""
      `(?P<code>[^`]+)`
    | \[\[(?P<url>[^\]\s]+)\](?:\[(?P<label>[^\]]+)\])?\]
    | (?<![\w*])\*(?P<bold>\S(?:[^*]*?\S)?)\*(?![\w*])
    | (?<!\w)_(?P<italic>\S(?:[^_]*?\S)?)_(?!\w)
    """,
    re.VERBOSE,
)


class PresentParseError(ValueError):
    """Raised when present source is malformed."""


class ParseMode(enum.Flag):
    """Control how much of a document :func:`parse` reads."""

    FULL = 0
    TITLES_ONLY = enum.auto()


@dc.dataclass(slots=True)
class Text:
    """A paragraph, or an indented preformatted block when ``pre`` is set."""

    kind: typ.ClassVar[str] = "text"
    lines: list[str]
    pre: bool = False


@dc.dataclass(slots=True)
class BulletList:
    """A ``-`` bullet list."""

    kind: typ.ClassVar[str] = "list"
    bullets: list[str]


@dc.dataclass(slots=True)
class Code:
    """A ``.code`` or ``.play`` excerpt.

    Attributes
    ----------
    text : str
        Selected source lines with ``OMIT`` lines removed.
    html : Markup
        Syntax-highlighted rendering of ``text``.
    filename : str
        File name as written in the action, relative to the document.
    ext : str
        Extension of ``filename``; drives the ``playable`` template helper.
    play : bool
        ``True`` for ``.play`` actions.
    edit : bool
        ``True`` when the ``-edit`` flag was given.
    numbers : bool
        ``True`` when the ``-numbers`` flag was given.
    """

    kind: typ.ClassVar[str] = "code"
    text: str
    html: Markup
    filename: str
    ext: str
    play: bool = False
    edit: bool = False
    numbers: bool = False


@dc.dataclass(slots=True)
class Image:
    """An ``.image`` action; zero dimensions mean unspecified."""

    kind: typ.ClassVar[str] = "image"
    url: str
    height: int = 0
    width: int = 0


@dc.dataclass(slots=True)
class Iframe:
    """An ``.iframe`` action."""

    kind: typ.ClassVar[str] = "iframe"
    url: str
    height: int = 0
    width: int = 0


@dc.dataclass(slots=True)
class Link:
    """A ``.link`` action or a link line inside an author block."""

    kind: typ.ClassVar[str] = "link"
    url: str
    label: str


@dc.dataclass(slots=True)
class HTML:
    """Raw HTML from an ``.html`` action or rendered Markdown prose."""

    kind: typ.ClassVar[str] = "html"
    html: Markup


@dc.dataclass(slots=True)
class Caption:
    """A ``.caption`` line, styled like body text."""

    kind: typ.ClassVar[str] = "caption"
    text: str


Elem = Text | BulletList | Code | Image | Iframe | Link | HTML | Caption


@dc.dataclass(slots=True)
class Section:
    """A heading and its body; nested sections appear inside ``elems``."""

    kind: typ.ClassVar[str] = "section"
    number: list[int]
    title: str
    elems: list[typ.Any] = dc.field(default_factory=list)
    notes: list[str] = dc.field(default_factory=list)
    background: str = ""

    @property
    def level(self) -> int:
        """Return the nesting depth, starting at one for top-level sections."""
        return len(self.number)

    @property
    def sectioned_number(self) -> str:
        """Return the dotted section number, e.g. ``"2.1"``."""
        return ".".join(str(n) for n in self.number)

    @property
    def html_id(self) -> str:
        return "sec-" + "-".join(str(n) for n in self.number)


@dc.dataclass(slots=True)
class Author:
    """One author block; each line is a :class:`Text` or :class:`Link`."""

    elems: list[Text | Link] = dc.field(default_factory=list)

    @property
    def name(self) -> str:
        for elem in self.elems:
            if isinstance(elem, Text):
                return " ".join(elem.lines)
        return ""


@dc.dataclass(slots=True)
class Document:
    """A parsed present document.

    Attributes
    ----------
    title : str
        First line of the file.
    subtitle : str
        Optional second header line.
    time : datetime or None
        Time stamp from the header, when present.
    tags : list[str]
        Values from the ``Tags:`` header line.
    summary : str
        Value of the ``Summary:`` header line.
    old_url : list[str]
        Values from the ``OldURL:`` header line.
    authors : list[Author]
        Author blocks; empty in title-only mode.
    sections : list[Section]
        Top-level sections; empty in title-only mode.
    markdown : bool
        ``True`` when the document uses Markdown headings and prose.
    """

    title: str
    subtitle: str = ""
    time: dt.datetime | None = None
    tags: list[str] = dc.field(default_factory=list)
    summary: str = ""
    old_url: list[str] = dc.field(default_factory=list)
    authors: list[Author] = dc.field(default_factory=list)
    sections: list[Section] = dc.field(default_factory=list)
    markdown: bool = False


def style(text: str) -> Markup:
    """Escape ``text`` and apply present inline markup.

    Supports ``*bold*``, ``_italic_``, ```code``` and ``[[url][label]]`` (or
    ``[[url]]``) links. Registered as the ``style`` template filter.

    >>> str(style("a *b* & `c`"))
    'a <b>b</b> &amp; <code>c</code>'
    """
    parts: list[str] = []
    pos = 0
    for match in INLINE_PATTERN.finditer(text):
        parts.append(escape(text[pos : match.start()]))
        groups = match.groupdict()
        if groups["code"] is not None:
            parts.append(f"<code>{escape(groups['code'])}</code>")
        elif groups["url"] is not None:
            url = groups["url"]
            label = groups["label"] or re.sub(r"^\w+://", "", url)
            parts.append(f'<a href="{escape(url)}" target="_blank">{escape(label)}</a>')
        elif groups["bold"] is not None:
            parts.append(f"<b>{escape(groups['bold'])}</b>")
        else:
            italic = groups["italic"].replace("_", " ")
            parts.append(f"<i>{escape(italic)}</i>")
        pos = match.end()
    parts.append(escape(text[pos:]))
    return Markup("".join(parts))


class _Lines:
    """Line cursor over the source that skips ``//`` comments."""

    def __init__(self, text: str) -> None:
        self._lines = [
            line.rstrip()
            for line in text.splitlines()
            if not (line.startswith("//") and (len(line) == 2 or line[2] in " \t"))
        ]
        self.pos = 0

    def peek(self) -> str | None:
        if self.pos < len(self._lines):
            return self._lines[self.pos]
        return None

    def next(self) -> str | None:
        line = self.peek()
        if line is not None:
            self.pos += 1
        return line

    def skip_blank(self) -> None:
        while (line := self.peek()) is not None and not line.strip():
            self.pos += 1


class _Parser:
    def __init__(
        self,
        text: str,
        name: str,
        base_dir: Path,
        renderer: HtmlContentRenderer | None,
        root_dir: Path | None = None,
    ) -> None:
        self.lines = _Lines(text)
        self.name = name
        self.base_dir = base_dir
        self.root_dir = root_dir if root_dir is not None else base_dir
        self._renderer = renderer
        self.markdown = False

    @property
    def renderer(self) -> HtmlContentRenderer:
        if self._renderer is None:
            self._renderer = HtmlContentRenderer()
        return self._renderer

    def error(self, message: str) -> PresentParseError:
        return PresentParseError(f"{self.name}:{self.lines.pos}: {message}")

    def parse_header(self) -> Document:
        self.lines.skip_blank()
        title = self.lines.next()
        if title is None:
            msg = f"{self.name}: missing title"
            raise PresentParseError(msg)
        if title.startswith("# "):
            self.markdown = True
            title = title[2:]
        elif self.heading_level(title):
            raise self.error("expected title, found section heading")
        doc = Document(title=title.strip(), markdown=self.markdown)
        while (line := self.lines.next()) is not None and line.strip():
            if line.startswith("Tags:"):
                doc.tags = _split_list(line[len("Tags:") :])
            elif line.startswith("Summary:"):
                doc.summary = line[len("Summary:") :].strip()
            elif line.startswith("OldURL:"):
                doc.old_url = _split_list(line[len("OldURL:") :])
            elif doc.time is None and (stamp := _parse_time(line)) is not None:
                doc.time = stamp
            elif not doc.subtitle:
                doc.subtitle = line.strip()
            else:
                raise self.error(f"unexpected header line: {line!r}")
        return doc

    def parse_authors(self) -> list[Author]:
        authors: list[Author] = []
        while True:
            self.lines.skip_blank()
            line = self.lines.peek()
            if line is None or self.heading_level(line):
                return authors
            author = Author()
            while (line := self.lines.peek()) is not None and line.strip():
                if self.heading_level(line):
                    break
                self.lines.next()
                author.elems.append(_author_elem(line.strip()))
            authors.append(author)

    def heading_level(self, line: str) -> int:
        marker = "#" if self.markdown else "*"
        stripped = line.lstrip(marker)
        depth = len(line) - len(stripped)
        if not depth or not stripped.startswith(" "):
            return 0
        if self.markdown:
            # "# Title" is the document title; sections start at "##".
            return depth - 1
        return depth

    def parse_sections(self, depth: int, prefix: list[int]) -> list[Section]:
        sections: list[Section] = []
        while (line := self.lines.peek()) is not None:
            if not line.strip():
                self.lines.next()
                continue
            level = self.heading_level(line)
            if level < depth:
                if level == 0:
                    raise self.error(f"expected section heading, found {line!r}")
                break
            if level > depth:
                raise self.error(f"section heading skips a level: {line!r}")
            self.lines.next()
            title = line.lstrip("#*").strip()
            section = Section(number=[*prefix, len(sections) + 1], title=title)
            self.parse_body(section, depth)
            sections.append(section)
        return sections

    def parse_body(self, section: Section, depth: int) -> None:
        while (line := self.lines.peek()) is not None:
            level = self.heading_level(line)
            if level:
                if level <= depth:
                    return
                section.elems.extend(self.parse_sections(depth + 1, section.number))
                continue
            if not line.strip():
                self.lines.next()
            elif line.startswith(":"):
                self.lines.next()
                section.notes.append(line[1:].strip())
            elif line.startswith("."):
                self.lines.next()
                elem = self.parse_action(line, section)
                if elem is not None:
                    section.elems.append(elem)
            elif self.markdown:
                section.elems.append(self.parse_markdown())
            elif line.startswith("- "):
                section.elems.append(self.parse_list())
            elif line[0] in " \t":
                section.elems.append(self.parse_pre())
            else:
                section.elems.append(Text(lines=self.take_paragraph()))

    def take_paragraph(self) -> list[str]:
        lines: list[str] = []
        while (line := self.lines.peek()) is not None and line.strip():
            if self.heading_level(line) or line.startswith((".", ":")):
                break
            lines.append(self.lines.next() or "")
        return lines

    def parse_list(self) -> BulletList:
        bullets: list[str] = []
        for line in self.take_paragraph():
            if line.startswith("- "):
                bullets.append(line[2:].strip())
            elif bullets:
                bullets[-1] = f"{bullets[-1]} {line.strip()}"
        return BulletList(bullets=bullets)

    def parse_pre(self) -> Text:
        lines: list[str] = []
        while (line := self.lines.peek()) is not None:
            if line and line[0] not in " \t":
                break
            lines.append(line)
            self.lines.next()
        while lines and not lines[-1].strip():
            lines.pop()
        return Text(lines=textwrap.dedent("\n".join(lines)).split("\n"), pre=True)

    def parse_markdown(self) -> HTML:
        chunk: list[str] = []
        while (line := self.lines.peek()) is not None:
            if self.heading_level(line) or line.startswith((".", ":")):
                break
            chunk.append(line)
            self.lines.next()
        return HTML(html=Markup(self.renderer.markdown("\n".join(chunk))))

    def parse_action(self, line: str, section: Section) -> Elem | None:
        command, _, rest = line[1:].partition(" ")
        args = rest.split()
        match command:
            case "code" | "play":
                return self.parse_code(args, play=command == "play")
            case "image" | "iframe":
                url, height, width = self.sized_args(command, args)
                cls = Image if command == "image" else Iframe
                return cls(url=url, height=height, width=width)
            case "background":
                if not args:
                    raise self.error(".background requires a file name")
                section.background = args[0]
                return None
            case "link":
                if not args:
                    raise self.error(".link requires a URL")
                label = " ".join(args[1:]) or re.sub(r"^\w+://", "", args[0])
                return Link(url=args[0], label=label)
            case "html":
                if not args:
                    raise self.error(".html requires a file name")
                return HTML(html=Markup(self.read_file(args[0])))
            case "caption":
                return Caption(text=rest.strip())
            case _:
                raise self.error(f"unknown command {command!r}")

    def sized_args(self, command: str, args: list[str]) -> tuple[str, int, int]:
        if not args:
            raise self.error(f".{command} requires a URL")
        if len(args) not in (1, 3):
            raise self.error(f".{command} takes a URL and optional height and width")
        if len(args) == 1:
            return args[0], 0, 0
        try:
            height, width = (0 if arg == "_" else int(arg) for arg in args[1:])
        except ValueError:
            raise self.error(f"bad dimensions for .{command}: {args[1:]}") from None
        return args[0], height, width

    def parse_code(self, args: list[str], *, play: bool) -> Code:
        numbers = edit = False
        while args and args[0].startswith("-"):
            flag = args.pop(0)
            if flag == "-numbers":
                numbers = True
            elif flag == "-edit":
                edit = True
            else:
                raise self.error(f"unknown code flag {flag!r}")
        if not args:
            raise self.error("code action requires a file name")
        filename = args[0]
        source_lines = self.read_file(filename).splitlines()
        lo, hi = self.resolve_address(" ".join(args[1:]), source_lines, filename)
        selected = [
            line for line in source_lines[lo:hi] if not line.rstrip().endswith("OMIT")
        ]
        text = "\n".join(selected) + "\n"
        html = self.renderer.code_block(text, filename, numbers=numbers)
        return Code(
            text=text,
            html=Markup(html),
            filename=filename,
            ext=Path(filename).suffix,
            play=play,
            edit=edit,
            numbers=numbers,
        )

    def resolve_address(
        self, address: str, lines: list[str], filename: str
    ) -> tuple[int, int]:
        """Return the half-open line range ``address`` selects in ``lines``."""
        if not address:
            return 0, len(lines)
        match = ADDRESS_PATTERN.match(address)
        if match is None:
            raise self.error(f"bad address {address!r} for {filename}")
        lo = self.address_line(match.group("lo"), lines, 0, filename)
        hi_part = match.group("hi")
        hi = lo if hi_part is None else self.address_line(hi_part, lines, lo, filename)
        if hi < lo:
            raise self.error(f"address {address!r} selects an empty range")
        return lo, hi + 1

    def address_line(
        self, part: str, lines: list[str], start: int, filename: str
    ) -> int:
        if part == "$":
            return max(len(lines) - 1, 0)
        if part.startswith("/"):
            try:
                pattern = re.compile(part[1:-1])
            except re.error as exc:
                raise self.error(f"bad pattern {part}: {exc}") from None
            for idx in range(start, len(lines)):
                if pattern.search(lines[idx]):
                    return idx
            raise self.error(f"no match for {part} in {filename}")
        number = int(part)
        if not 1 <= number <= len(lines):
            raise self.error(f"line {number} out of range in {filename}")
        return number - 1

    def read_file(self, filename: str) -> str:
        """Read a file named by an action; it may not leave ``root_dir``."""
        subdir = self.base_dir.relative_to(self.root_dir).as_posix()
        path = safe_join(str(self.root_dir), posixpath.join(subdir, filename))
        if path is None:
            raise self.error(f"{filename!r} is outside the document root")
        return Path(path).read_text(encoding="utf-8")


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_time(value: str) -> dt.datetime | None:
    for fmt in TIME_FORMATS:
        try:
            return dt.datetime.strptime(value.strip(), fmt)
        except ValueError:
            continue
    return None


def _author_elem(line: str) -> Text | Link:
    """Turn an author line into a link when it looks like a URL or address."""
    if re.match(r"^\w+://", line):
        return Link(url=line, label=re.sub(r"^\w+://", "", line))
    if line.startswith("@") and " " not in line:
        return Link(url=f"https://twitter.com/{line[1:]}", label=line)
    if "@" in line and " " not in line:
        return Link(url=f"mailto:{line}", label=line)
    return Text(lines=[line])


def parse(
    stream: typ.IO[str] | typ.IO[bytes],
    name: str,
    mode: ParseMode = ParseMode.FULL,
    *,
    base_dir: Path | None = None,
    root_dir: Path | None = None,
    renderer: HtmlContentRenderer | None = None,
) -> Document:
    """Parse present source read from ``stream``.

    Parameters
    ----------
    stream : IO
        Readable text or UTF-8 byte stream holding the document source.
    name : str
        Name used in error messages; its parent directory is the default base
        for files referenced by actions.
    mode : ParseMode, optional
        ``ParseMode.TITLES_ONLY`` stops after the header, leaving authors and
        sections empty. Defaults to a full parse.
    base_dir : Path, optional
        Directory that ``.code``, ``.play`` and ``.html`` file names are
        resolved against.
    root_dir : Path, optional
        Directory those files must stay inside; defaults to ``base_dir``.
    renderer : HtmlContentRenderer, optional
        Renderer used for code highlighting and Markdown prose.

    Returns
    -------
    Document
        The parsed document.

    Raises
    ------
    PresentParseError
        If the source is malformed, or an action names a file outside
        ``root_dir``.
    OSError
        If a file referenced by an action cannot be read.
    """
    raw = stream.read()
    text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
    parser = _Parser(
        text,
        name,
        base_dir if base_dir is not None else Path(name).parent,
        renderer,
        root_dir,
    )
    doc = parser.parse_header()
    if mode & ParseMode.TITLES_ONLY:
        return doc
    doc.authors = parser.parse_authors()
    doc.sections = parser.parse_sections(1, [])
    return doc


__all__ = [
    "HTML",
    "Author",
    "BulletList",
    "Caption",
    "Code",
    "Document",
    "Iframe",
    "Image",
    "Link",
    "ParseMode",
    "PresentParseError",
    "Section",
    "Text",
    "parse",
    "style",
]
