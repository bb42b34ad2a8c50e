"""Load server configuration YAML into typed dataclasses."""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from .models import ServerConfig, ServerConfigError

LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def parse_address(value: str) -> tuple[str, int]:
    """Split a ``host:port`` listen address.

    An empty host (``":8080"``) binds every interface.

    >>> parse_address("127.0.0.1:3999")
    ('127.0.0.1', 3999)
    >>> parse_address(":8080")
    ('0.0.0.0', 8080)
    """
    host, sep, port_text = value.rpartition(":")
    if not sep:
        msg = f"Listen address {value!r} must look like 'host:port'."
        raise ServerConfigError(msg)
    return host or "0.0.0.0", _port(port_text)  # noqa: S104 - explicit bind-all


def _port(value: object) -> int:
    try:
        port = int(str(value))
    except ValueError:
        msg = f"Port {value!r} is not a number."
        raise ServerConfigError(msg) from None
    if not 0 < port < 65536:
        msg = f"Port {port} is out of range."
        raise ServerConfigError(msg)
    return port


def _extensions(value: object) -> tuple[str, ...]:
    match value:
        case str():
            items = [value]
        case list() | tuple():
            items = [str(item) for item in value]
        case _:
            msg = "executable_extensions must be a string or a list of strings."
            raise ServerConfigError(msg)
    return tuple(item if item.startswith(".") else f".{item}" for item in items)


def _log_level(value: object) -> str:
    level = str(value).upper()
    if level not in LOG_LEVELS:
        msg = f"Unknown log level {value!r}."
        raise ServerConfigError(msg)
    return level


def _read_yaml(path: Path) -> dict[str, typ.Any]:
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)
    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise ServerConfigError(msg)
    return dict(loaded)


def load_server_config(
    path: Path | None = None, **overrides: typ.Any
) -> ServerConfig:
    """Build a :class:`ServerConfig` from an optional YAML file and overrides.

    Parameters
    ----------
    path : Path, optional
        YAML file with any of the keys ``root``, ``templates_dir``, ``http``
        (``host:port``), ``host``, ``port``, ``play``,
        ``executable_extensions``, ``legacy_prefix``, ``redirect_base`` and
        ``log_level``. When ``None`` only defaults and overrides apply.
    **overrides
        Values that take precedence over the file, typically CLI options.
        ``None`` values are ignored so unset options fall back to the file.

    Returns
    -------
    ServerConfig
        Validated configuration. Relative paths in the file resolve against
        the file's directory.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    ServerConfigError
        If a value is invalid.
    YAMLError
        If the YAML content cannot be parsed.
    """
    raw: dict[str, typ.Any] = {}
    if path is not None:
        raw = _read_yaml(path)
        for key in ("root", "templates_dir"):
            if key in raw:
                raw[key] = path.parent / Path(raw[key])
    raw.update({key: value for key, value in overrides.items() if value is not None})

    config = ServerConfig()
    if "http" in raw:
        config.host, config.port = parse_address(str(raw["http"]))
    if "host" in raw:
        config.host = str(raw["host"])
    if "port" in raw:
        config.port = _port(raw["port"])
    if "root" in raw:
        config.root = Path(raw["root"])
    if "templates_dir" in raw:
        config.templates_dir = Path(raw["templates_dir"])
    if "play" in raw:
        config.play_enabled = bool(raw["play"])
    if "executable_extensions" in raw:
        config.executable_extensions = _extensions(raw["executable_extensions"])
    if "legacy_prefix" in raw:
        prefix = str(raw["legacy_prefix"])
        if not prefix.startswith("/"):
            msg = f"legacy_prefix {prefix!r} must start with '/'."
            raise ServerConfigError(msg)
        config.legacy_prefix = prefix
    if "redirect_base" in raw:
        config.redirect_base = str(raw["redirect_base"]).rstrip("/")
    if "log_level" in raw:
        config.log_level = _log_level(raw["log_level"])

    if not config.root.is_dir():
        msg = f"Serving root '{config.root}' is not a directory."
        raise ServerConfigError(msg)
    return config


def configure_logging(config: ServerConfig) -> None:
    """Send log records to stderr at the configured level."""
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


__all__ = ["configure_logging", "load_server_config", "parse_address"]
