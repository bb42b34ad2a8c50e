"""Classify a directory's children and render them as a listing page.

Each immediate child of a directory lands in exactly one category (``dirs``,
``slides``, ``articles`` or ``other``) or is left out. Documents are parsed in
title-only mode so the listing can show their titles; a document that fails to
parse is still listed, just without a title. A directory holding an
``index.html`` is rendered as that page instead of a listing.

Typical usage from a request handler:

>>> import io
>>> from pathlib import Path
>>> from minidoc.listing import ListOutcome, list_directory
>>> out = io.StringIO()
>>> list_directory(registry, Path("."), "talks", out)  # doctest: +SKIP
<ListOutcome.LISTED: 'listed'>
"""

from __future__ import annotations

import dataclasses as dc
import enum
import logging
import operator
import os
import posixpath
import stat
import typing as typ
from pathlib import Path

from ._constants import (
    ALWAYS_VISIBLE_EXTENSIONS,
    INDEX_PAGE,
    RESERVED_DIR,
    ROOT_EXCLUDED_ENTRY,
)
from .present import ParseMode
from .render import parse_document, render_html_page

if typ.TYPE_CHECKING:
    from .templates import TemplateRegistry

logger = logging.getLogger(__name__)


class ListOutcome(enum.Enum):
    """What :func:`list_directory` did with a path."""

    NOT_A_DIRECTORY = "not-a-directory"
    RENDERED = "rendered"
    LISTED = "listed"


@dc.dataclass(slots=True)
class DirEntry:
    """One child of a listed directory.

    Attributes
    ----------
    name : str
        Base name of the child.
    path : str
        Slash-separated path relative to the serving root.
    title : str
        Document title; empty for non-documents and unparsable documents.
    """

    name: str
    path: str
    title: str = ""


@dc.dataclass(slots=True)
class IndexPage:
    """Marker returned by :func:`scan_directory` when a directory has an index."""

    path: str


@dc.dataclass(slots=True)
class DirListing:
    """Classified children of a directory, passed to ``dir.tmpl``."""

    path: str
    dirs: list[DirEntry] = dc.field(default_factory=list)
    slides: list[DirEntry] = dc.field(default_factory=list)
    articles: list[DirEntry] = dc.field(default_factory=list)
    other: list[DirEntry] = dc.field(default_factory=list)

    def category(self, name: str) -> list[DirEntry]:
        """Return the entry list for a document kind's listing category."""
        match name:
            case "slides":
                return self.slides
            case "articles":
                return self.articles
            case _:
                msg = f"unknown listing category {name!r}"
                raise KeyError(msg)

    def sort(self) -> None:
        key = operator.attrgetter("name")
        for entries in (self.dirs, self.slides, self.articles, self.other):
            entries.sort(key=key)


def is_visible_file(registry: TemplateRegistry, name: str) -> bool:
    """Report whether a file named ``name`` is worth showing in a listing.

    PDFs, HTML pages and Go sources are always shown; otherwise only
    registered document kinds are.
    """
    suffix = posixpath.splitext(name)[1]
    return suffix in ALWAYS_VISIBLE_EXTENSIONS or registry.is_document(name)


def is_visible_dir(registry: TemplateRegistry, root: Path, entry: DirEntry) -> bool:
    """Report whether a subdirectory should appear in its parent's listing.

    Hidden (``.``/``_`` prefixed) and reserved directories are skipped, as are
    directories with no visible file among their immediate children.
    """
    name = entry.name
    if name.startswith((".", "_")) or name == RESERVED_DIR:
        return False
    try:
        children = os.listdir(root / entry.path)
    except OSError:
        return False
    return any(is_visible_file(registry, child) for child in children)


def scan_directory(
    registry: TemplateRegistry, root: Path, name: str
) -> DirListing | IndexPage | None:
    """Classify the children of ``name`` without rendering anything.

    Parameters
    ----------
    registry : TemplateRegistry
        Supplies the registered document kinds.
    root : Path
        Serving root.
    name : str
        Slash-separated directory path relative to ``root``; ``""`` is the
        root itself.

    Returns
    -------
    DirListing | IndexPage | None
        ``None`` when ``name`` is not a directory, an :class:`IndexPage` when
        it contains ``index.html``, otherwise the sorted listing.

    Raises
    ------
    OSError
        If ``name`` cannot be stat'ed or read.
    """
    target = root / name
    if not stat.S_ISDIR(target.stat().st_mode):
        return None

    listing = DirListing(path=name)
    with os.scandir(target) as children:
        for child in children:
            if not name and child.name == ROOT_EXCLUDED_ENTRY:
                continue
            entry = DirEntry(name=child.name, path=posixpath.join(name, child.name))
            if child.name == INDEX_PAGE:
                return IndexPage(path=entry.path)
            if child.is_dir():
                if is_visible_dir(registry, root, entry):
                    listing.dirs.append(entry)
                continue
            kind = registry.kind_for(child.name)
            if kind is not None:
                entry.title = _document_title(root, entry.path)
                listing.category(kind.category).append(entry)
            elif is_visible_file(registry, child.name):
                listing.other.append(entry)
    listing.sort()
    return listing


def _document_title(root: Path, path: str) -> str:
    try:
        return parse_document(root, path, ParseMode.TITLES_ONLY).title
    except (OSError, ValueError) as exc:
        logger.error("%s: %s", path, exc)
        return ""


def list_directory(
    registry: TemplateRegistry, root: Path, name: str, out: typ.TextIO
) -> ListOutcome:
    """Render ``name`` as a directory listing, or its index page, into ``out``.

    Returns
    -------
    ListOutcome
        ``NOT_A_DIRECTORY`` (nothing written), ``RENDERED`` when an
        ``index.html`` was rendered in place of the listing, or ``LISTED``.

    Raises
    ------
    OSError
        If the directory cannot be stat'ed or read; nothing is written.
    jinja2.TemplateError
        If the listing or index page fails to render.
    """
    match scan_directory(registry, root, name):
        case None:
            return ListOutcome.NOT_A_DIRECTORY
        case IndexPage(path=index_path):
            render_html_page(registry, root, index_path, out)
            return ListOutcome.RENDERED
        case DirListing() as listing:
            registry.dir_listing.stream(listing=listing).dump(out)
            return ListOutcome.LISTED
    msg = f"unexpected scan result for {name!r}"  # pragma: no cover
    raise TypeError(msg)  # pragma: no cover


__all__ = [
    "DirEntry",
    "DirListing",
    "IndexPage",
    "ListOutcome",
    "is_visible_dir",
    "is_visible_file",
    "list_directory",
    "scan_directory",
]
