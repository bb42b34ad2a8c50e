"""Cyclopts CLI entrypoint for serving and rendering present document trees.

The ``minidoc`` console script defined here can serve a directory of slide
decks, articles and HTML pages over HTTP, render a single document to a file,
and print the classified listing of a directory. Every option can also be set
through a ``MINIDOC_*`` environment variable or a YAML configuration file.

Examples
--------
Serve the current directory on the default address:

>>> from minidoc.cli import main
>>> main()  # doctest: +SKIP

Render one deck into a file:

>>> from minidoc.cli import app
>>> app(["render", "talks/intro.slide", "--output", "dist/intro.html"])  # doctest: +SKIP
"""

from __future__ import annotations

import io
import logging
import posixpath
import sys
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from ._constants import HTML_EXTENSION
from .config import ServerConfig, configure_logging, load_server_config
from .listing import DirListing, IndexPage, scan_directory
from .render import render_document, render_html_page
from .server import create_app
from .templates import TemplateRegistry, load_templates

logger = logging.getLogger(__name__)

app = App(name="minidoc", config=cyclopts.config.Env("MINIDOC_", command=False))  # type: ignore[unknown-argument]

ConfigOption = typ.Annotated[
    Path | None, Parameter(help="Path to a YAML config file", env_var="MINIDOC_CONFIG")
]
RootOption = typ.Annotated[
    Path | None, Parameter(help="Directory to serve", env_var="MINIDOC_ROOT")
]
BaseOption = typ.Annotated[
    Path | None,
    Parameter(help="Directory holding the templates", env_var="MINIDOC_BASE"),
]
PlayOption = typ.Annotated[
    bool | None,
    Parameter(help="Mark .play excerpts as executable", env_var="MINIDOC_PLAY"),
]


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _registry(config: ServerConfig) -> TemplateRegistry:
    return load_templates(
        config.templates_dir,
        play_enabled=config.play_enabled,
        executable_extensions=config.executable_extensions,
    )


@app.command(help="Serve a document tree over HTTP.")
def serve(
    *,
    config: ConfigOption = None,
    root: RootOption = None,
    base: BaseOption = None,
    http: typ.Annotated[
        str | None,
        Parameter(help="Listen address as host:port", env_var="MINIDOC_HTTP"),
    ] = None,
    play: PlayOption = None,
    log_level: typ.Annotated[
        str | None, Parameter(help="Logging level", env_var="MINIDOC_LOG_LEVEL")
    ] = None,
) -> None:
    """Start the HTTP server for the configured document root.

    Parameters
    ----------
    config : Path or None, optional
        YAML configuration file; CLI options override its values.
    root : Path or None, optional
        Directory to serve; defaults to the current directory.
    base : Path or None, optional
        Template directory; defaults to the templates shipped with minidoc.
    http : str or None, optional
        Listen address such as ``127.0.0.1:8080``.
    play : bool or None, optional
        Allow ``.play`` excerpts to be marked executable.
    log_level : str or None, optional
        Logging level name, ``INFO`` by default.

    Raises
    ------
    ServerConfigError
        If the configuration is invalid.
    jinja2.TemplateError
        If the templates fail to load; the server never starts.
    """
    server_config = load_server_config(
        config,
        root=root,
        templates_dir=base,
        http=http,
        play=play,
        log_level=log_level,
    )
    configure_logging(server_config)
    flask_app = create_app(server_config, _registry(server_config))
    logger.info(
        "serving %s on http://%s", server_config.root, server_config.address
    )
    flask_app.run(host=server_config.host, port=server_config.port, threaded=True)


@app.command(help="Render a single document or HTML page.")
def render(
    name: str,
    *,
    output: typ.Annotated[
        Path | None, Parameter(help="Write HTML here instead of stdout")
    ] = None,
    config: ConfigOption = None,
    root: RootOption = None,
    base: BaseOption = None,
    play: PlayOption = None,
) -> None:
    """Render ``name`` (relative to the root) the way the server would.

    Raises
    ------
    ValueError
        If ``name`` is neither a registered document kind nor an HTML page.
    """
    server_config = load_server_config(
        config, root=root, templates_dir=base, play=play
    )
    registry = _registry(server_config)
    name = posixpath.normpath(name.lstrip("/"))
    buffer = io.StringIO()
    if registry.is_document(name):
        render_document(registry, server_config.root, name, buffer)
    elif posixpath.splitext(name)[1] == HTML_EXTENSION:
        render_html_page(registry, server_config.root, name, buffer)
    else:
        msg = f"'{name}' is neither a document nor an HTML page."
        raise ValueError(msg)

    if output is None:
        sys.stdout.write(buffer.getvalue())
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(buffer.getvalue(), encoding="utf-8")
    print(f"wrote {_format_path(output)}")


@app.command(name="ls", help="Print how a directory would be listed.")
def list_dir(
    path: str = "",
    *,
    config: ConfigOption = None,
    root: RootOption = None,
) -> None:
    """Print one ``category<TAB>path<TAB>title`` line per listed entry."""
    server_config = load_server_config(config, root=root)
    registry = _registry(server_config)
    name = posixpath.normpath(path.strip("/") or ".")
    name = "" if name == "." else name
    match scan_directory(registry, server_config.root, name):
        case None:
            print(f"{name}: not a directory")
        case IndexPage(path=index_path):
            print(f"index\t{index_path}")
        case DirListing() as listing:
            for category, entries in (
                ("dir", listing.dirs),
                ("slide", listing.slides),
                ("article", listing.articles),
                ("other", listing.other),
            ):
                for entry in entries:
                    print(f"{category}\t{entry.path}\t{entry.title}".rstrip())


def main() -> None:
    """Invoke the Cyclopts application that powers the ``minidoc`` command."""
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
