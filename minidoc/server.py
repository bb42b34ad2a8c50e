"""Flask front end that dispatches every request path to a render strategy.

A single catch-all route hands the request path to :class:`DocumentServer`,
which picks exactly one behaviour, in order:

1. redirect legacy repository paths to the canonical host,
2. refuse ``/favicon.ico`` without touching the disk,
3. render registered document kinds (``.slide``, ``.article``),
4. list directories (or render their ``index.html``),
5. render ``.html`` files through the shared layout,
6. serve anything else as a static file.

Render failures are logged and answered with a plain-text 500 carrying the
error message.

Example
-------
>>> from minidoc.config import load_server_config
>>> from minidoc.server import create_app
>>> app = create_app(load_server_config())  # doctest: +SKIP
>>> app.test_client().get("/favicon.ico").status_code  # doctest: +SKIP
404
"""

from __future__ import annotations

import io
import logging
import posixpath
import typing as typ
from urllib.parse import quote

from flask import Flask, Response, redirect, request, send_from_directory
from jinja2 import TemplateError
from werkzeug.security import safe_join

from ._constants import FAVICON_PATH, HTML_EXTENSION
from .listing import ListOutcome, list_directory
from .render import render_document, render_html_page
from .templates import load_templates

if typ.TYPE_CHECKING:
    from pathlib import Path

    from werkzeug.wrappers import Response as BaseResponse

    from .config import ServerConfig
    from .templates import TemplateRegistry

logger = logging.getLogger(__name__)

Renderer = typ.Callable[["TemplateRegistry", "Path", str, typ.TextIO], None]
RENDER_ERRORS = (OSError, ValueError, TemplateError)
# RFC 3986 pchar punctuation plus the segment separator.
PATH_SAFE = "/:@!$&'()*+,;=-._~"


class DocumentServer:
    """Route request paths under a serving root to the matching renderer."""

    def __init__(self, config: ServerConfig, registry: TemplateRegistry) -> None:
        """Bind the server to its configuration and compiled templates.

        Parameters
        ----------
        config : ServerConfig
            Supplies the serving root and the legacy redirect settings.
        registry : TemplateRegistry
            Templates loaded at startup; shared read-only by every request.
        """
        self.config = config
        self.registry = registry
        # send_from_directory resolves relative directories against the
        # package, not the working directory.
        self.root = config.root.resolve()

    def handle(self, path: str, query_string: str = "") -> BaseResponse:
        """Answer a request for ``path``, with ``query_string`` kept raw."""
        if path.startswith(self.config.legacy_prefix):
            return redirect(self.legacy_location(path, query_string), code=301)
        if path == FAVICON_PATH:
            return _plain("not found", 404)

        name = self.resolve(path)
        if name is None:
            return _plain("not found", 404)
        if self.registry.is_document(name):
            return self._render(render_document, name)

        buffer = io.StringIO()
        try:
            outcome = list_directory(self.registry, self.root, name, buffer)
        except (FileNotFoundError, NotADirectoryError):
            return send_from_directory(self.root, name)
        except RENDER_ERRORS as exc:
            return self._failure(exc)
        if outcome is not ListOutcome.NOT_A_DIRECTORY:
            return _html(buffer.getvalue())

        if posixpath.splitext(name)[1] == HTML_EXTENSION:
            return self._render(render_html_page, name)
        return send_from_directory(self.root, name)

    def legacy_location(self, path: str, query_string: str = "") -> str:
        """Return the redirect target for a legacy repository path.

        ``path`` arrives percent-decoded, so it is re-escaped; characters such
        as ``?`` and ``#`` that were encoded in the request stay encoded.

        >>> from minidoc.config import ServerConfig
        >>> server = DocumentServer(ServerConfig(), registry=None)
        >>> server.legacy_location("/minimega.git/info/refs", "service=git")
        'https://github.com/sandia-minimega/minimega.git/info/refs?service=git'
        """
        location = f"{self.config.redirect_base}{quote(path, safe=PATH_SAFE)}"
        if query_string:
            location = f"{location}?{query_string}"
        return location

    def resolve(self, path: str) -> str | None:
        """Return ``path`` relative to the root, or ``None`` if it escapes it.

        The root itself resolves to ``""``.
        """
        relative = posixpath.normpath(path.lstrip("/") or ".")
        if relative == ".":
            return ""
        if safe_join(str(self.root), relative) is None:
            return None
        return relative

    def _render(self, render: Renderer, name: str) -> BaseResponse:
        buffer = io.StringIO()
        try:
            render(self.registry, self.root, name, buffer)
        except RENDER_ERRORS as exc:
            return self._failure(exc)
        return _html(buffer.getvalue())

    @staticmethod
    def _failure(exc: Exception) -> BaseResponse:
        logger.error("%s", exc)
        return _plain(str(exc), 500)


def _html(body: str) -> Response:
    return Response(body, status=200, mimetype="text/html")


def _plain(body: str, status: int) -> Response:
    return Response(f"{body}\n", status=status, mimetype="text/plain")


def create_app(
    config: ServerConfig, registry: TemplateRegistry | None = None
) -> Flask:
    """Build the Flask application serving ``config.root``.

    Parameters
    ----------
    config : ServerConfig
        Server settings.
    registry : TemplateRegistry, optional
        Pre-built templates; loaded from ``config.templates_dir`` when
        omitted. Loading errors propagate so a broken template set stops the
        server before it accepts requests.

    Returns
    -------
    Flask
        Application with a single catch-all route. The
        :class:`DocumentServer` is available as ``app.extensions["minidoc"]``.
    """
    if registry is None:
        registry = load_templates(
            config.templates_dir,
            play_enabled=config.play_enabled,
            executable_extensions=config.executable_extensions,
        )
    server = DocumentServer(config, registry)

    app = Flask(__name__, static_folder=None)
    app.extensions["minidoc"] = server

    @app.route("/", defaults={"path": ""})
    @app.route("/<path:path>")
    def dispatch(path: str) -> BaseResponse:
        return server.handle(request.path, request.query_string.decode())

    return app


__all__ = ["DocumentServer", "create_app"]
