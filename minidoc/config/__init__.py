"""Load and validate minidoc server configuration.

This subpackage reads an optional YAML file, layers command-line overrides on
top, and produces a :class:`ServerConfig` that the CLI and the Flask app
consume. The primary entry point is :func:`load_server_config`.

Examples
--------
>>> from pathlib import Path
>>> from minidoc.config import load_server_config
>>> config = load_server_config(Path("minidoc.yaml"))  # doctest: +SKIP
>>> config.address  # doctest: +SKIP
'127.0.0.1:8080'
"""

from .loader import configure_logging, load_server_config, parse_address
from .models import ServerConfig, ServerConfigError

__all__ = [
    "ServerConfig",
    "ServerConfigError",
    "configure_logging",
    "load_server_config",
    "parse_address",
]
