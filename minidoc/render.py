"""Render present documents and raw HTML pages into a writable stream.

Both renderers re-read their source from disk on every call; nothing parsed
here is cached, so edits show up on the next request.
"""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

from .present import Document, ParseMode, parse
from .renderer import HtmlContentRenderer

if typ.TYPE_CHECKING:
    from .templates import TemplateRegistry

logger = logging.getLogger(__name__)


def parse_document(
    root: Path,
    name: str,
    mode: ParseMode = ParseMode.FULL,
    *,
    renderer: HtmlContentRenderer | None = None,
) -> Document:
    """Open ``name`` relative to ``root`` and parse it as a present document."""
    path = root / name
    with path.open("rb") as handle:
        return parse(
            handle,
            name,
            mode,
            base_dir=path.parent,
            root_dir=root,
            renderer=renderer,
        )


def render_document(
    registry: TemplateRegistry, root: Path, name: str, out: typ.TextIO
) -> None:
    """Parse the document at ``name`` and execute its content template into ``out``.

    Parameters
    ----------
    registry : TemplateRegistry
        Compiled templates; the entry for ``name``'s extension is used.
    root : Path
        Serving root that ``name`` is relative to.
    name : str
        Slash-separated document path relative to ``root``.
    out : TextIO
        Destination for the rendered HTML.

    Raises
    ------
    KeyError
        If no content template is registered for the extension.
    PresentParseError
        If the document source is malformed.
    OSError
        If the document, or a file it references, cannot be read.
    """
    entry = registry.content[Path(name).suffix]
    renderer = HtmlContentRenderer()
    doc = parse_document(root, name, renderer=renderer)
    entry.template.stream(
        doc=doc,
        kind=entry.kind,
        play_enabled=registry.play_enabled,
        pygments_css=renderer.stylesheet,
    ).dump(out)


def render_html_page(
    registry: TemplateRegistry, root: Path, name: str, out: typ.TextIO
) -> None:
    """Render an HTML file through a private copy of the shared layout.

    The file is compiled as a child of ``layout.tmpl``, so its ``{% block %}``
    definitions fill the layout while anything outside a block is dropped. The
    child is compiled in an overlay of the registry environment and is never
    cached.

    Raises
    ------
    OSError
        If the page cannot be read.
    jinja2.TemplateError
        If the page fails to compile or render.
    """
    logger.info("rendering HTML page %s", name)
    source = (root / name).read_text(encoding="utf-8")
    env = registry.environment.overlay()
    template = env.from_string(
        '{% extends "' + registry.layout.name + '" %}' + source
    )
    template.stream().dump(out)


__all__ = ["parse_document", "render_document", "render_html_page"]
