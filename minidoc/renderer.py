"""Markdown and syntax-highlighting helpers shared by document rendering."""

from __future__ import annotations

import re
from html import escape

from markdown import Markdown
from pygments import highlight
from pygments.formatters.html import HtmlFormatter
from pygments.lexers import get_lexer_by_name, get_lexer_for_filename
from pygments.util import ClassNotFound

CODEHILITE_OPEN_TAG = re.compile(r'<div class="codehilite">')
MARKDOWN_EXTENSIONS = ["fenced_code", "codehilite", "tables", "sane_lists"]


class HtmlContentRenderer:
    """Render markdown prose and code samples with consistent styling."""

    def __init__(self, pygments_style: str = "friendly") -> None:
        """Initialize a renderer with the given Pygments style.

        Parameters
        ----------
        pygments_style : str, optional
            Name of the Pygments style used for syntax highlighting. Defaults
            to ``"friendly"``, which reads well on the light slide background.
        """
        self.pygments_style = pygments_style
        self._formatter = HtmlFormatter(style=pygments_style, cssclass="codehilite")
        self._numbered_formatter = HtmlFormatter(
            style=pygments_style, cssclass="codehilite", linenos="inline"
        )

    @property
    def stylesheet(self) -> str:
        """Return the CSS used for highlighted code blocks."""
        return self._formatter.get_style_defs(".codehilite")

    def markdown(self, text: str) -> str:
        """Render markdown into HTML using fenced code and table support."""
        if not text.strip():
            return ""
        md = Markdown(
            extensions=MARKDOWN_EXTENSIONS,
            extension_configs={
                "codehilite": {
                    "linenums": False,
                    "guess_lang": False,
                    "css_class": "codehilite",
                    "pygments_style": self.pygments_style,
                }
            },
        )
        return md.convert(text)

    def code_block(
        self, code: str, filename: str = "", *, numbers: bool = False
    ) -> str:
        """Render ``code`` into highlighted HTML, picking a lexer from ``filename``.

        Parameters
        ----------
        code : str
            Source snippet to highlight.
        filename : str, optional
            Name of the file the snippet came from; its extension selects the
            lexer. Unknown or missing names fall back to plain text.
        numbers : bool, optional
            Emit inline line numbers when ``True``.

        Returns
        -------
        str
            HTML containing the highlighted block with ``data-language``
            metadata applied.
        """
        try:
            lexer = get_lexer_for_filename(filename) if filename else None
        except ClassNotFound:
            lexer = None
        if lexer is None:
            lexer = get_lexer_by_name("text")
        formatter = self._numbered_formatter if numbers else self._formatter
        html = highlight(code, lexer, formatter)
        language = lexer.aliases[0] if lexer.aliases else "text"
        return self._attach_language_attribute(html, language)

    @staticmethod
    def _attach_language_attribute(html: str, language: str) -> str:
        """Add a single language attribute to an already highlighted block."""
        safe_lang = escape(language or "text", quote=True)

        def _repl(match: re.Match[str]) -> str:
            return f'<div class="codehilite" data-language="{safe_lang}">'

        return CODEHILITE_OPEN_TAG.sub(_repl, html, 1)


__all__ = ["HtmlContentRenderer"]
