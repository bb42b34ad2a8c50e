"""Serve a browsable tree of present slide decks, articles and HTML pages.

This package exposes the ``minidoc`` CLI used to run the document server and
the Flask application factory behind it.

Exports
-------
- ``app``: Cyclopts application entry for subcommands.
- ``main``: Convenience function that invokes the Cyclopts app.
- ``create_app``: Flask application factory.

Examples
--------
>>> from minidoc import app
>>> app(["serve", "--root", "docs"])  # doctest: +SKIP
>>> from minidoc import create_app
>>> create_app  # doctest: +ELLIPSIS
<function create_app at ...>
"""

from __future__ import annotations

from .cli import app, main
from .server import create_app

__all__ = ["app", "create_app", "main"]
