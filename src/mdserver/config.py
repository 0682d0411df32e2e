"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized, immutable configuration for the server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   settings.yaml ──► load_settings() ──► ServerConfig (frozen)       │
    │                         │                                            │
    │                         ├── relative paths → settings file dir      │
    │                         ├── template file read + syntax checked     │
    │                         ├── ttl minutes → seconds                   │
    │                         └── tls.required → EnforcementLevel         │
    │                                                                      │
    │   Command-line flags (--port, --log-level, ...) override the file   │
    │   through dataclasses.replace() before the server is built.         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The resulting ServerConfig is built once at startup and never mutated;
every component receives it (or the piece it needs) explicitly.

=============================================================================
SETTINGS FILE
=============================================================================

    host: example.com        # default: kernel hostname, else "localhost"
    dir: site                # default: directory holding the settings file
    port: 80                 # default: 80
    template: page.html      # default: built-in page
    log: server.log          # default: stderr
    secrets:
      private: hunter2       # /private/... requires Digest auth
    ttl: 5                   # minutes; 0 = no cache, negative = never expire
    tls:
      only: false            # true = no plain HTTP listener
      required: secrets      # none | secrets | all
      port: 443
      cert: cert.pem
      privkey: key.pem

=============================================================================
"""

import logging
import os
import socket
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

import jinja2
import yaml


logger = logging.getLogger(__name__)


DEFAULT_TEMPLATE = """<!doctype html><html>
<head><meta http-equiv="content-type" content="text/html; charset=utf-8"></head>
<body>{{ content }}</body>
</html>"""


class ConfigError(Exception):
    """
    Fatal startup error.

    exit_code is what the CLI exits with:
        1  no settings file given
        2  settings file unreadable
        3  settings file unparsable
        4  template unreadable
        5  template unparsable
        6  bad tls.required value (or other invalid setting)
        7  TLS certificate or key can't be loaded
    """

    def __init__(self, message: str, exit_code: int = 6):
        super().__init__(message)
        self.exit_code = exit_code


class EnforcementLevel(Enum):
    """When a plain-HTTP request must be sent to the HTTPS listener."""

    NONE = "none"
    SECRETS = "secrets"
    ALL = "all"

    @classmethod
    def parse(cls, value: Optional[str]) -> "EnforcementLevel":
        if value is None or value == "":
            return cls.NONE
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ConfigError(f"bad 'tls.required' field: {value!r}", exit_code=6)


@dataclass(frozen=True)
class TLSConfig:
    """Settings for the supplementary HTTPS listener."""

    cert: str
    key: str
    port: int = 443
    level: EnforcementLevel = EnforcementLevel.NONE


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    SITE
    - root, host, template, secrets

    CACHING
    - ttl, sweep_interval

    LISTENERS
    - bind, port, tls, backlog, buffer_size, timeout

    HTTP
    - keep_alive, keep_alive_timeout, max_request_size, server_name

    THREADING
    - min_workers, max_workers

    LOGGING
    - log_file, log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # SITE
    # ─────────────────────────────────────────────────────────────────────

    root: str = "."
    """Absolute path of the directory being served."""

    host: str = "localhost"
    """
    Public hostname. Used in the Digest realm ("<host>-<route>") and as
    the target of HTTPS upgrade redirects.
    """

    template: str = DEFAULT_TEMPLATE
    """Jinja2 source wrapping rendered Markdown at {{ content }}."""

    secrets: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    """Route (first path segment) → Digest password."""

    # ─────────────────────────────────────────────────────────────────────
    # CACHING
    # ─────────────────────────────────────────────────────────────────────

    ttl: Optional[float] = None
    """
    Response cache lifetime in seconds.
    None     - caching disabled
    > 0      - entries expire this long after being stored
    < 0      - entries never expire (only a flush removes them)
    """

    sweep_interval: float = 60.0
    """How often the cache janitor removes expired entries."""

    # ─────────────────────────────────────────────────────────────────────
    # LISTENERS
    # ─────────────────────────────────────────────────────────────────────

    bind: str = "0.0.0.0"
    """Interface address both listeners bind to."""

    port: Optional[int] = 80
    """Plain HTTP port. None when tls.only is set."""

    tls: Optional[TLSConfig] = None
    """HTTPS listener; None means no TLS and no enforcement."""

    backlog: int = 128
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0

    # ─────────────────────────────────────────────────────────────────────
    # HTTP
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024
    server_name: str = "mdserver/1.0"

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_file: Optional[str] = None
    log_level: str = "INFO"
    log_format: str = "text"

    @property
    def enforcement(self) -> EnforcementLevel:
        """Effective enforcement level; NONE whenever TLS is not configured."""
        if self.tls is None:
            return EnforcementLevel.NONE
        return self.tls.level

    @property
    def caching_enabled(self) -> bool:
        return self.ttl is not None

    def validate(self) -> None:
        """
        Validate configuration values at startup (fail fast).

        Raises:
            ConfigError: On the first invalid value.
        """
        if not os.path.isabs(self.root):
            raise ConfigError(f"root must be an absolute path: {self.root}")

        if not os.path.isdir(self.root):
            raise ConfigError(f"root is not a directory: {self.root}")

        if self.port is None and self.tls is None:
            raise ConfigError("no listener configured: tls.only requires tls.cert and tls.privkey")

        for port in (self.port, self.tls.port if self.tls else None):
            if port is not None and not 0 <= port < 65536:
                raise ConfigError(f"Invalid port: {port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ConfigError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ConfigError("max_workers must be >= min_workers")

        if self.sweep_interval <= 0:
            raise ConfigError("sweep_interval must be > 0")

        if self.log_format not in ("text", "json"):
            raise ConfigError(f"log_format must be 'text' or 'json', not {self.log_format!r}")


# =============================================================================
# SETTINGS FILE LOADING
# =============================================================================

def load_settings(path: str | Path) -> ServerConfig:
    """
    Build a ServerConfig from a YAML settings file.

    Raises:
        ConfigError: With the exit code the CLI should use.
    """
    settings_path = Path(path)

    try:
        raw_text = settings_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"couldn't open settings file {path}: {e}", exit_code=2)

    try:
        settings = yaml.safe_load(raw_text) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"couldn't parse settings file {path}: {e}", exit_code=3)

    if not isinstance(settings, dict):
        raise ConfigError(f"settings file {path} must contain a mapping", exit_code=3)

    base_dir = settings_path.resolve().parent
    return settings_to_config(settings, base_dir)


def settings_to_config(settings: Mapping[str, Any], base_dir: Path) -> ServerConfig:
    """Translate a parsed settings mapping into a ServerConfig."""

    def resolve(value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        return str(base_dir / value) if not os.path.isabs(value) else str(value)

    root = resolve(settings.get("dir")) or str(base_dir)

    host = settings.get("host") or _default_hostname()

    template = DEFAULT_TEMPLATE
    template_path = resolve(settings.get("template"))
    if template_path:
        template = _read_template(template_path)

    secrets = settings.get("secrets") or {}
    if not isinstance(secrets, dict):
        raise ConfigError("'secrets' must be a mapping of route to password")
    secrets = MappingProxyType({str(k): str(v) for k, v in secrets.items()})

    tls_settings = settings.get("tls") or {}
    if not isinstance(tls_settings, dict):
        raise ConfigError("'tls' must be a mapping of TLS settings", exit_code=6)
    tls = None
    cert = resolve(tls_settings.get("cert"))
    key = resolve(tls_settings.get("privkey"))
    if cert and key:
        tls = TLSConfig(
            cert=cert,
            key=key,
            port=_integer("tls.port", tls_settings.get("port"), 443),
            level=EnforcementLevel.parse(tls_settings.get("required")),
        )

    port: Optional[int] = _integer("port", settings.get("port"), 80)
    if tls_settings.get("only"):
        port = None

    workers = _integer("workers", settings.get("workers"), 4)

    return ServerConfig(
        root=str(Path(root).resolve()),
        host=str(host),
        template=template,
        secrets=secrets,
        ttl=ttl_from_minutes(settings.get("ttl")),
        bind=str(settings.get("bind") or "0.0.0.0"),
        port=port,
        tls=tls,
        min_workers=workers,
        max_workers=workers * 2,
        log_file=resolve(settings.get("log")),
        log_level=str(settings.get("log_level") or "INFO").upper(),
        log_format=str(settings.get("log_format") or "text"),
    )


def _integer(name: str, value: Any, default: int) -> int:
    if not value:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{name}' must be an integer, not {value!r}", exit_code=6)

def ttl_from_minutes(minutes: Any) -> Optional[float]:
    """
    Convert the settings-file TTL (minutes) to the config TTL (seconds).

        None / 0  → None   (caching disabled)
        5         → 300.0
        -1        → -1.0   (never expire)
    """
    if minutes is None:
        return None
    try:
        minutes = int(minutes)
    except (TypeError, ValueError):
        raise ConfigError(f"'ttl' must be an integer number of minutes, not {minutes!r}")
    if minutes == 0:
        return None
    if minutes < 0:
        return -1.0
    return minutes * 60.0


def _read_template(path: str) -> str:
    try:
        source = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"couldn't load template {path}: {e}", exit_code=4)

    try:
        jinja2.Environment().parse(source)
    except jinja2.TemplateSyntaxError as e:
        raise ConfigError(f"couldn't parse template {path}: {e}", exit_code=5)

    return source


def _default_hostname() -> str:
    try:
        return socket.gethostname() or "localhost"
    except OSError:
        return "localhost"


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. ServerConfig is frozen: read-only after startup, safe to share across
#    worker threads without locks.
# 2. load_settings() maps every startup failure to a ConfigError carrying
#    the process exit code.
# 3. enforcement is derived, so "no TLS ⇒ no enforcement" can't be violated.
# =============================================================================
