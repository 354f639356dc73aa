"""
config.py

Responsibility: Loads the immutable runtime Settings and BuildInfo from
environment variables.
Does NOT: contact Kubernetes or PowerDNS, or configure logging.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field

from exceptions import ConfigLoadError
from services.dns_service import normalize_fqdn
from services.kubernetes_service import DEFAULT_ANNOTATION

logger = logging.getLogger(__name__)

DEFAULT_SYNC_INTERVAL = 30.0
DEFAULT_TTL = 300
DEFAULT_HTTP_TIMEOUT = 30.0

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Go time.ParseDuration units, in seconds
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> float:
    """
    Parses a Go-style duration such as "30s", "5m" or "1h30m" into seconds.

    A bare integer is read as seconds.

    Args:
        value: The duration text.

    Returns:
        The duration in seconds.

    Raises:
        ValueError: If the text is not a valid duration.
    """
    text = value.strip()
    if text.isdigit():
        return float(text)

    sign = 1.0
    if text[:1] in ("+", "-"):
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if text == "0":
        return 0.0

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            raise ValueError(f"invalid duration: {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0:
        raise ValueError(f"invalid duration: {value!r}")
    return sign * total


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BuildInfo:
    """Version metadata injected at image build time."""

    version: str = "dev"
    commit: str = "unknown"
    build_date: str = "unknown"


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration. Zone and record are already normalized to FQDN.
    """

    powerdns_url: str
    powerdns_api_key: str = field(repr=False)
    dns_zone: str
    dns_record: str
    powerdns_vhost: str = "localhost"
    dns_ttl: int = DEFAULT_TTL
    sync_interval: float = DEFAULT_SYNC_INTERVAL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    kubeconfig: str = ""
    node_selector: str = ""
    annotation_key: str = DEFAULT_ANNOTATION
    log_level: str = "INFO"
    http_host: str = "0.0.0.0"
    http_port: int = 8080
    build: BuildInfo = field(default_factory=BuildInfo)

    def describe(self) -> Iterator[str]:
        """Yields the startup configuration summary; the API key is never included."""
        yield f"PowerDNS URL: {self.powerdns_url}"
        yield f"PowerDNS VHost: {self.powerdns_vhost}"
        yield f"DNS Zone: {self.dns_zone}"
        yield f"DNS Record: {self.dns_record}"
        yield f"DNS TTL: {self.dns_ttl} seconds"
        yield f"Sync Interval: {self.sync_interval:g}s"
        yield f"Annotation: {self.annotation_key}"
        yield f"Node Selector: {self.node_selector or '(all nodes)'}"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """
    Builds Settings from environment variables.

    Args:
        environ: Variables to read; defaults to os.environ.

    Returns:
        The validated Settings.

    Raises:
        ConfigLoadError: If a required variable is missing or HTTP_PORT /
            LOG_LEVEL is invalid. Bad durations fall back to their default
            with a warning instead.
    """
    env = os.environ if environ is None else environ

    log_level = env.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    if log_level not in _LOG_LEVELS:
        raise ConfigLoadError(f"LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}, got {log_level!r}")

    port_text = env.get("HTTP_PORT", "8080").strip()
    try:
        http_port = int(port_text)
    except ValueError:
        raise ConfigLoadError(f"HTTP_PORT must be an integer, got {port_text!r}") from None
    if not 0 < http_port < 65536:
        raise ConfigLoadError(f"HTTP_PORT out of range: {http_port}")

    return Settings(
        powerdns_url=_required(env, "POWERDNS_URL"),
        powerdns_api_key=_required(env, "POWERDNS_API_KEY"),
        powerdns_vhost=env.get("POWERDNS_VHOST", "").strip() or "localhost",
        dns_zone=normalize_fqdn(_required(env, "DNS_ZONE")),
        dns_record=normalize_fqdn(_required(env, "DNS_RECORD")),
        dns_ttl=int(_duration(env, "DNS_TTL", DEFAULT_TTL)),
        sync_interval=_duration(env, "SYNC_INTERVAL", DEFAULT_SYNC_INTERVAL),
        http_timeout=_duration(env, "POWERDNS_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        kubeconfig=env.get("KUBECONFIG", "").strip(),
        node_selector=env.get("NODE_SELECTOR", "").strip(),
        annotation_key=env.get("EXTERNAL_IP_ANNOTATION", "").strip() or DEFAULT_ANNOTATION,
        log_level=log_level,
        http_host=env.get("HTTP_HOST", "").strip() or "0.0.0.0",
        http_port=http_port,
        build=BuildInfo(
            version=env.get("VERSION", "").strip() or "dev",
            commit=env.get("COMMIT", "").strip() or "unknown",
            build_date=env.get("BUILD_DATE", "").strip() or "unknown",
        ),
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _required(env: Mapping[str, str], name: str) -> str:
    value = env.get(name, "").strip()
    if not value:
        raise ConfigLoadError(f"{name} environment variable is required")
    return value


def _duration(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        seconds = parse_duration(raw)
    except ValueError:
        logger.warning("Invalid %s format %r, using default: %gs", name, raw, default)
        return default
    if seconds < 1:
        logger.warning("%s must be at least 1s, got %r; using default: %gs", name, raw, default)
        return default
    return seconds
