"""Typed dataclasses describing minidoc server configuration."""

from __future__ import annotations

import dataclasses as dc
from pathlib import Path

from .._constants import (
    DEFAULT_EXECUTABLE_EXTENSIONS,
    DEFAULT_LEGACY_PREFIX,
    DEFAULT_REDIRECT_BASE,
)
from ..templates import DEFAULT_TEMPLATES_DIR


class ServerConfigError(ValueError):
    """Raised when the server configuration is invalid or incomplete."""


@dc.dataclass(slots=True)
class ServerConfig:
    """Settings for serving a document tree.

    Attributes
    ----------
    root : Path
        Directory whose contents are served.
    templates_dir : Path
        Directory holding the fixed template set.
    host : str
        Interface the HTTP server binds to.
    port : int
        TCP port the HTTP server listens on.
    play_enabled : bool
        Allow ``.play`` excerpts to be marked executable.
    executable_extensions : tuple[str, ...]
        Source extensions that may be played.
    legacy_prefix : str
        Request paths starting with this prefix are redirected.
    redirect_base : str
        Scheme, host and path prefix the legacy paths are redirected to.
    log_level : str
        Name of the logging level configured by ``minidoc serve``.
    """

    root: Path = dc.field(default_factory=Path.cwd)
    templates_dir: Path = DEFAULT_TEMPLATES_DIR
    host: str = "127.0.0.1"
    port: int = 8080
    play_enabled: bool = False
    executable_extensions: tuple[str, ...] = DEFAULT_EXECUTABLE_EXTENSIONS
    legacy_prefix: str = DEFAULT_LEGACY_PREFIX
    redirect_base: str = DEFAULT_REDIRECT_BASE
    log_level: str = "INFO"

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


__all__ = ["ServerConfig", "ServerConfigError"]
