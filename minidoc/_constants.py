"""Common literal values used across minidoc.

These constants keep template filenames, reserved names, and URL prefixes
centralized so the registry, lister, router, and tests can import the same
values without drifting. Intended for internal use within the minidoc package.

Examples
--------
>>> from minidoc import _constants
>>> _constants.INDEX_PAGE
'index.html'
>>> ".pdf" in _constants.ALWAYS_VISIBLE_EXTENSIONS
True
"""

ACTION_TEMPLATE = "action.tmpl"
SLIDES_TEMPLATE = "slides.tmpl"
ARTICLE_TEMPLATE = "article.tmpl"
LAYOUT_TEMPLATE = "layout.tmpl"
DIR_TEMPLATE = "dir.tmpl"

HTML_EXTENSION = ".html"
INDEX_PAGE = "index.html"
FAVICON_PATH = "/favicon.ico"

# Skipped only when listing the serving root.
ROOT_EXCLUDED_ENTRY = "pkg"
RESERVED_DIR = "present"

ALWAYS_VISIBLE_EXTENSIONS = frozenset({".pdf", HTML_EXTENSION, ".go"})

DEFAULT_LEGACY_PREFIX = "/minimega.git"
DEFAULT_REDIRECT_BASE = "https://github.com/sandia-minimega"
DEFAULT_EXECUTABLE_EXTENSIONS = (".go",)
