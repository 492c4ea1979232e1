# Exitwatch
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Exitwatch.
#
# Exitwatch is dual-licensed:
#
# 1. Open Source: GNU Affero General Public License v3.0 (AGPL-3.0)
#    You may use, modify, and distribute this file under AGPL-3.0.
#    See LICENSE for the full text.
#
# 2. Commercial: Available from Phoenix Link (Pty) Ltd
#    For proprietary use, SaaS deployment, or enterprise licensing.
#    See LICENSE-ENTERPRISE.md or contact info@phoenixlink.co.za
#
# Contributions require a signed CLA. See COPYRIGHT.md and CLA.md.
"""Probe configuration schema.

The configuration holds the endpoints each probe talks to, the per-request
timeout and the history size. It is read once at the start of every check
cycle, so edits never affect a cycle that is already in flight.

Config location: ~/.exitwatch/config.yaml  (override home with EXITWATCH_HOME)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("exitwatch.config")

# ---------------------------------------------------------------------------
# Default paths
# ---------------------------------------------------------------------------
EXITWATCH_HOME = Path(os.environ.get("EXITWATCH_HOME", Path.home() / ".exitwatch"))
DEFAULT_CONFIG_PATH = EXITWATCH_HOME / "config.yaml"

# ---------------------------------------------------------------------------
# Default endpoints
# ---------------------------------------------------------------------------
DEFAULT_EGRESS_ENDPOINT = "https://am.i.mullvad.net/json"
DEFAULT_PUBLIC_IP_ENDPOINT = "https://api.ipify.org?format=json"

# Tried in order when the primary public address endpoint fails.
DEFAULT_ALTERNATIVE_ENDPOINTS: tuple[str, ...] = (
    "https://httpbin.org/ip",
    "https://ipapi.co/json/",
    "https://api.my-ip.io/ip.json",
)

# Known-good hosts used to exercise name resolution, tried in order.
DEFAULT_RESOLUTION_HOSTS: tuple[str, ...] = (
    "https://httpbin.org/ip",
    "https://api.ipify.org?format=json",
    "https://am.i.mullvad.net/json",
)

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_CONNECTIONS = 10
DEFAULT_HISTORY_SIZE = 10

# "prefix": legacy literal-prefix exclusion ("10.", "172.", "192.168.")
# "cidr":   RFC 1918 / RFC 4193 network membership
PRIVATE_FILTER_MODES: frozenset[str] = frozenset({"prefix", "cidr"})


@dataclass(frozen=True)
class ProbeConfig:
    """Full probe configuration.

    Frozen so a cycle can hold a snapshot that later edits cannot touch.
    Use ``with_updates()`` to derive a modified copy.
    """

    # Exit-network identity endpoint (returns ip/country/city/exit flag)
    egress_endpoint: str = DEFAULT_EGRESS_ENDPOINT

    # Primary public address endpoint (returns {"ip": ...})
    public_ip_endpoint: str = DEFAULT_PUBLIC_IP_ENDPOINT

    alternative_endpoints: tuple[str, ...] = DEFAULT_ALTERNATIVE_ENDPOINTS
    resolution_hosts: tuple[str, ...] = DEFAULT_RESOLUTION_HOSTS

    # Per-request budget, not a cycle-wide deadline
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    # Connection pool cap shared by all probes of a cycle
    max_connections: int = DEFAULT_MAX_CONNECTIONS

    private_filter: str = "prefix"

    history_size: int = DEFAULT_HISTORY_SIZE

    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    def with_updates(self, **changes: Any) -> ProbeConfig:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


def load_config(path: Path | str | None = None) -> ProbeConfig:
    """Load probe configuration from a YAML file.

    If the file does not exist or cannot be parsed, returns the defaults.
    """
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        logger.info("No config at %s -- using defaults", config_path)
        return ProbeConfig()

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        if raw is None:
            return ProbeConfig()
        if not isinstance(raw, dict):
            logger.warning("Invalid config (not a dict) -- using defaults")
            return ProbeConfig()
        return _parse_config(raw)
    except Exception as exc:
        logger.error("Failed to load config: %s -- using defaults", exc)
        return ProbeConfig()


def save_config(config: ProbeConfig, path: Path | str | None = None) -> None:
    """Save probe configuration to a YAML file."""
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(
        yaml.dump(config_to_dict(config), default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    logger.info("Saved config to %s", config_path)


def config_to_dict(config: ProbeConfig) -> dict[str, Any]:
    data: dict[str, Any] = {
        "endpoints": {
            "egress": config.egress_endpoint,
            "public_ip": config.public_ip_endpoint,
            "alternatives": list(config.alternative_endpoints),
            "resolution_hosts": list(config.resolution_hosts),
        },
        "timeout_seconds": config.timeout_seconds,
        "max_connections": config.max_connections,
        "private_filter": config.private_filter,
        "history_size": config.history_size,
    }
    data.update(config.extra)
    return data


def _url_list(value: Any, default: tuple[str, ...]) -> tuple[str, ...]:
    if not isinstance(value, list):
        return default
    urls = tuple(v.strip() for v in value if isinstance(v, str) and v.strip())
    return urls or default


def _positive(value: Any, default: float, kind: type) -> Any:
    try:
        number = kind(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _parse_config(raw: dict) -> ProbeConfig:
    """Parse raw YAML dict into ProbeConfig."""
    endpoints = raw.get("endpoints", {})
    if not isinstance(endpoints, dict):
        endpoints = {}

    private_filter = raw.get("private_filter", "prefix")
    if private_filter not in PRIVATE_FILTER_MODES:
        logger.warning("Unknown private_filter %r -- using 'prefix'", private_filter)
        private_filter = "prefix"

    known = {
        "endpoints",
        "timeout_seconds",
        "max_connections",
        "private_filter",
        "history_size",
    }

    return ProbeConfig(
        egress_endpoint=endpoints.get("egress") or DEFAULT_EGRESS_ENDPOINT,
        public_ip_endpoint=endpoints.get("public_ip") or DEFAULT_PUBLIC_IP_ENDPOINT,
        alternative_endpoints=_url_list(
            endpoints.get("alternatives"), DEFAULT_ALTERNATIVE_ENDPOINTS
        ),
        resolution_hosts=_url_list(endpoints.get("resolution_hosts"), DEFAULT_RESOLUTION_HOSTS),
        timeout_seconds=_positive(raw.get("timeout_seconds"), DEFAULT_TIMEOUT_SECONDS, float),
        max_connections=_positive(raw.get("max_connections"), DEFAULT_MAX_CONNECTIONS, int),
        private_filter=private_filter,
        history_size=_positive(raw.get("history_size"), DEFAULT_HISTORY_SIZE, int),
        extra={k: v for k, v in raw.items() if k not in known},
    )
