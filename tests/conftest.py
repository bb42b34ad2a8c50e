"""Shared fixtures for the minidoc test suite.

The fixtures build a small serving root under ``tmp_path`` containing a slide
deck, an article, a Go source referenced by ``.code``, and assorted plain
files, then expose the compiled default templates and a Flask test client
bound to that root.
"""

from __future__ import annotations

import typing as typ
from pathlib import Path

import pytest

from minidoc.config import ServerConfig
from minidoc.server import create_app
from minidoc.templates import DEFAULT_TEMPLATES_DIR, TemplateRegistry, load_templates

if typ.TYPE_CHECKING:
    from flask import Flask
    from flask.testing import FlaskClient

SAMPLE_SLIDE = """\
Intro to minidoc
A guided tour
15:04 2 Jan 2020
Tags: docs, present

Jane Doe
Documentation Team
jane@example.com

* First slide

Hello *world* & friends.

- one
- two

.play hello.go /^func main/,/^}/

* Second slide

  indented text
"""

SAMPLE_ARTICLE = """\
Writing articles

* Background

Articles nest sections.

** Details

More text.

* Summary

Done.
"""

HELLO_GO = """\
package main

import "fmt"

func main() {
\tfmt.Println("draft") // OMIT
\tfmt.Println("hello")
}
"""


@pytest.fixture(scope="session")
def sample_slide() -> str:
    """Return a slide deck exercising header, authors, lists and code."""
    return SAMPLE_SLIDE


@pytest.fixture(scope="session")
def sample_article() -> str:
    """Return an article with a nested section."""
    return SAMPLE_ARTICLE


@pytest.fixture(scope="session")
def hello_go() -> str:
    return HELLO_GO


@pytest.fixture(scope="session")
def registry() -> TemplateRegistry:
    """Return the default template set with play enabled."""
    return load_templates(DEFAULT_TEMPLATES_DIR, play_enabled=True)


@pytest.fixture
def doc_root(tmp_path: Path) -> Path:
    """Create a serving root with documents, pages and plain files."""
    root = tmp_path / "site"
    talks = root / "talks"
    talks.mkdir(parents=True)
    (talks / "intro.slide").write_text(SAMPLE_SLIDE, encoding="utf-8")
    (talks / "hello.go").write_text(HELLO_GO, encoding="utf-8")
    (talks / "writing.article").write_text(SAMPLE_ARTICLE, encoding="utf-8")
    (root / "notes.txt").write_text("plain notes\n", encoding="utf-8")
    (root / "page.html").write_text(
        "{% block title %}Page{% endblock %}"
        "{% block content %}<p>first version</p>{% endblock %}",
        encoding="utf-8",
    )
    return root


@pytest.fixture
def server_config(doc_root: Path) -> ServerConfig:
    return ServerConfig(root=doc_root)


@pytest.fixture
def flask_app(server_config: ServerConfig, registry: TemplateRegistry) -> Flask:
    return create_app(server_config, registry)


@pytest.fixture
def client(flask_app: Flask) -> FlaskClient:
    """Return a Flask test client for the sample serving root."""
    return flask_app.test_client()
