"""Tests for loading and composing the shared template set."""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest
from jinja2 import TemplateNotFound, TemplateSyntaxError
from markupsafe import Markup

from minidoc.listing import DirListing
from minidoc.present import Code
from minidoc.templates import (
    DEFAULT_TEMPLATES_DIR,
    DOCUMENT_KINDS,
    TemplateRegistry,
    load_templates,
    make_playable,
)


def _code(*, play: bool = True, ext: str = ".go") -> Code:
    return Code(text="", html=Markup(""), filename=f"x{ext}", ext=ext, play=play)


@pytest.fixture
def template_copy(tmp_path: Path) -> Path:
    """Copy the default templates somewhere they can be broken."""
    target = tmp_path / "templates"
    shutil.copytree(DEFAULT_TEMPLATES_DIR, target)
    return target


def test_registry_covers_document_kinds(registry: TemplateRegistry) -> None:
    assert set(registry.content) == {".slide", ".article"}
    for extension, entry in registry.content.items():
        assert entry.kind is DOCUMENT_KINDS[extension]
        assert entry.template.name == entry.kind.template_name
    assert registry.layout.name == "layout.tmpl"
    assert registry.dir_listing.name == "dir.tmpl"


def test_kind_lookup(registry: TemplateRegistry) -> None:
    assert registry.kind_for("talks/intro.slide").category == "slides"
    assert registry.kind_for("notes.article").category == "articles"
    assert registry.kind_for("page.html") is None
    assert registry.is_document("a.slide")
    assert not registry.is_document("slide")


def test_content_registry_is_read_only(registry: TemplateRegistry) -> None:
    with pytest.raises(TypeError):
        registry.content[".md"] = registry.content[".slide"]  # type: ignore[index]


def test_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_templates(tmp_path / "nowhere")


@pytest.mark.parametrize(
    "name", ["action.tmpl", "slides.tmpl", "article.tmpl", "layout.tmpl", "dir.tmpl"]
)
def test_missing_template_is_fatal(template_copy: Path, name: str) -> None:
    (template_copy / name).unlink()
    with pytest.raises(TemplateNotFound):
        load_templates(template_copy)


def test_syntax_error_is_fatal(template_copy: Path) -> None:
    (template_copy / "layout.tmpl").write_text("{% block %}", encoding="utf-8")
    with pytest.raises(TemplateSyntaxError):
        load_templates(template_copy)


def test_playable_requires_play_flag_and_extension() -> None:
    playable = make_playable(play_enabled=True, executable_extensions=[".go"])
    assert playable(_code())
    assert not playable(_code(play=False))
    assert not playable(_code(ext=".py"))
    disabled = make_playable(play_enabled=False, executable_extensions=[".go"])
    assert not disabled(_code())


def test_playable_is_available_to_content_templates(template_copy: Path) -> None:
    """The helper registered per kind is callable from the slide template."""
    (template_copy / "slides.tmpl").write_text(
        "{{ playable(code) }}|{{ action.elem(code) }}", encoding="utf-8"
    )
    registry = load_templates(template_copy, play_enabled=True)
    rendered = registry.content[".slide"].template.render(code=_code())
    flag, markup = rendered.split("|", 1)
    assert flag == "True"
    assert "playground" in markup


def test_dir_listing_extends_layout(registry: TemplateRegistry) -> None:
    html = registry.dir_listing.render(listing=DirListing(path="talks"))
    assert html.startswith("<!DOCTYPE html>")
    assert "/talks" in html
    assert "Nothing to show here." in html
