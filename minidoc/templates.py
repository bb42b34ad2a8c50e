"""Load and compose the Jinja templates shared by every request.

The registry is built once at startup from a directory holding the fixed
template set (``action.tmpl``, ``slides.tmpl``, ``article.tmpl``,
``layout.tmpl`` and ``dir.tmpl``) and is read-only afterwards, so request
handlers may share it without locking. Any missing file or syntax error
raises immediately; there is no partially usable registry.

Example
-------
>>> from pathlib import Path
>>> from minidoc.templates import load_templates
>>> registry = load_templates(Path("minidoc/templates"))  # doctest: +SKIP
>>> sorted(registry.content)  # doctest: +SKIP
['.article', '.slide']
"""

from __future__ import annotations

import dataclasses as dc
import logging
import types
import typing as typ
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, Template

from ._constants import (
    ACTION_TEMPLATE,
    ARTICLE_TEMPLATE,
    DEFAULT_EXECUTABLE_EXTENSIONS,
    DIR_TEMPLATE,
    LAYOUT_TEMPLATE,
    SLIDES_TEMPLATE,
)
from .present import Code, style

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "templates"


@dc.dataclass(frozen=True, slots=True)
class DocumentKind:
    """A presentable file type: its extension, template, and listing category."""

    extension: str
    template_name: str
    category: str


DOCUMENT_KINDS: typ.Mapping[str, DocumentKind] = types.MappingProxyType(
    {
        ".slide": DocumentKind(".slide", SLIDES_TEMPLATE, "slides"),
        ".article": DocumentKind(".article", ARTICLE_TEMPLATE, "articles"),
    }
)


@dc.dataclass(frozen=True, slots=True)
class ContentTemplate:
    """Compiled content template paired with the kind it renders."""

    kind: DocumentKind
    template: Template


@dc.dataclass(frozen=True, slots=True)
class TemplateRegistry:
    """Compiled templates shared read-only across requests.

    Attributes
    ----------
    environment : Environment
        Environment owning the layout and directory listing templates. HTML
        pages render through an overlay of it so their block definitions never
        touch this instance.
    layout : Template
        The page shell every content and HTML page render extends.
    dir_listing : Template
        Directory listing template; extends ``layout.tmpl`` by name.
    content : Mapping[str, ContentTemplate]
        Content templates keyed by document extension (``".slide"``).
    play_enabled : bool
        Whether ``.play`` excerpts may be marked executable.
    """

    environment: Environment
    layout: Template
    dir_listing: Template
    content: typ.Mapping[str, ContentTemplate]
    play_enabled: bool = False

    def kind_for(self, name: str | Path) -> DocumentKind | None:
        """Return the document kind registered for ``name``'s extension."""
        entry = self.content.get(Path(name).suffix)
        return entry.kind if entry else None

    def is_document(self, name: str | Path) -> bool:
        return Path(name).suffix in self.content


def _environment(base: Path) -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(base)),
        autoescape=True,
        trim_blocks=True,
        lstrip_blocks=True,
        auto_reload=False,
    )
    env.filters["style"] = style
    return env


def make_playable(
    *, play_enabled: bool, executable_extensions: typ.Iterable[str]
) -> typ.Callable[[Code], bool]:
    """Build the ``playable`` helper exposed to content templates.

    A code excerpt is playable only when play is enabled for the server, the
    excerpt came from a ``.play`` action, and its file extension is one of
    ``executable_extensions``.
    """
    extensions = frozenset(executable_extensions)

    def playable(code: Code) -> bool:
        return play_enabled and code.play and code.ext in extensions

    return playable


def load_templates(
    base: Path,
    *,
    play_enabled: bool = False,
    executable_extensions: typ.Iterable[str] = DEFAULT_EXECUTABLE_EXTENSIONS,
) -> TemplateRegistry:
    """Compile the template set found in ``base``.

    Parameters
    ----------
    base : Path
        Directory containing the template files.
    play_enabled : bool, optional
        Allow ``.play`` excerpts to be marked executable.
    executable_extensions : Iterable[str], optional
        Source extensions the ``playable`` helper accepts.

    Returns
    -------
    TemplateRegistry
        Fully compiled registry.

    Raises
    ------
    FileNotFoundError
        If ``base`` is not a directory.
    jinja2.TemplateNotFound
        If one of the fixed template files is missing.
    jinja2.TemplateSyntaxError
        If a template fails to compile.
    """
    if not base.is_dir():
        msg = f"Template directory '{base}' not found."
        raise FileNotFoundError(msg)

    playable = make_playable(
        play_enabled=play_enabled, executable_extensions=executable_extensions
    )
    content: dict[str, ContentTemplate] = {}
    for extension, kind in DOCUMENT_KINDS.items():
        # Each kind gets its own environment so helpers stay per-kind.
        env = _environment(base)
        env.globals["playable"] = playable
        env.globals["action"] = env.get_template(ACTION_TEMPLATE).module
        content[extension] = ContentTemplate(
            kind=kind, template=env.get_template(kind.template_name)
        )

    env = _environment(base)
    layout = env.get_template(LAYOUT_TEMPLATE)
    dir_listing = env.get_template(DIR_TEMPLATE)
    logger.info("loaded templates from %s", base)
    return TemplateRegistry(
        environment=env,
        layout=layout,
        dir_listing=dir_listing,
        content=types.MappingProxyType(content),
        play_enabled=play_enabled,
    )


__all__ = [
    "DEFAULT_TEMPLATES_DIR",
    "DOCUMENT_KINDS",
    "ContentTemplate",
    "DocumentKind",
    "TemplateRegistry",
    "load_templates",
    "make_playable",
]
