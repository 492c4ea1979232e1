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
"""
Exitwatch -- settings CLI module

View and edit the probe configuration from the terminal.

Provides:
  - View all current settings grouped by category
  - Set one setting (validated against its type and range)
  - Reset to defaults

Lists (alternative endpoints, resolution hosts) are edited directly in
~/.exitwatch/config.yaml.

Usage:
    from exitwatch.cli.settings_manager import run_settings
    run_settings(action="set", key="egress_endpoint", value="https://...")
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any

from exitwatch.config import (
    DEFAULT_CONFIG_PATH,
    PRIVATE_FILTER_MODES,
    ProbeConfig,
    load_config,
    save_config,
)
from exitwatch.core.logging import get_logger

# Setting definitions with metadata for display and validation
SETTING_CATEGORIES = {
    "Endpoints": {
        "egress_endpoint": {
            "label": "Egress Identity Endpoint",
            "type": "url",
            "description": "Reports the observed exit address and whether it is the expected network",
        },
        "public_ip_endpoint": {
            "label": "Public IP Endpoint",
            "type": "url",
            "description": "Primary public address lookup; alternatives are tried when it fails",
        },
    },
    "Network": {
        "timeout_seconds": {
            "label": "Request Timeout",
            "type": "float",
            "min": 1.0,
            "max": 120.0,
            "description": "Budget for each individual request (seconds)",
        },
        "max_connections": {
            "label": "Max Connections",
            "type": "int",
            "min": 1,
            "max": 100,
            "description": "Connection pool size shared by all probes",
        },
        "private_filter": {
            "label": "Private Address Filter",
            "type": "choice",
            "choices": sorted(PRIVATE_FILTER_MODES),
            "description": "prefix: legacy '10.'/'172.'/'192.168.' match, cidr: exact private ranges",
        },
    },
    "History": {
        "history_size": {
            "label": "History Size",
            "type": "int",
            "min": 1,
            "max": 100,
            "description": "Number of reports kept in the encrypted history",
        },
    },
}

_DEFAULTS = {f.name: f.default for f in fields(ProbeConfig) if f.name != "extra"}


def _find_meta(key: str) -> dict[str, Any]:
    for settings in SETTING_CATEGORIES.values():
        if key in settings:
            return settings[key]
    known = ", ".join(k for s in SETTING_CATEGORIES.values() for k in s)
    raise ValueError(f"Unknown setting '{key}' (known: {known})")


def parse_setting(key: str, raw: str) -> Any:
    """Convert and validate a raw CLI value for ``key``."""
    meta = _find_meta(key)
    kind = meta["type"]
    raw = (raw or "").strip()

    if kind == "url":
        if not raw.startswith(("http://", "https://")):
            raise ValueError(f"{meta['label']} must be an http(s) URL")
        return raw
    if kind == "choice":
        if raw not in meta["choices"]:
            raise ValueError(f"{meta['label']} must be one of: {', '.join(meta['choices'])}")
        return raw

    number_type = float if kind == "float" else int
    try:
        value = number_type(raw)
    except ValueError:
        raise ValueError(f"{meta['label']} must be a number") from None
    if not meta["min"] <= value <= meta["max"]:
        raise ValueError(f"{meta['label']} must be between {meta['min']} and {meta['max']}")
    return value


def run_settings(
    action: str = "view",
    key: str | None = None,
    value: str | None = None,
    path: Path | str | None = None,
    console=None,
) -> ProbeConfig:
    """
    Run the settings manager.

    Args:
        action: "view", "set", or "reset"
        key, value: setting to change when action is "set"
        path: config file (default ~/.exitwatch/config.yaml)
        console: object with ``print(text, style=...)``, or None for stdout

    Returns:
        The configuration after the action.

    Raises:
        ValueError: unknown key or invalid value for "set"
    """
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    config = load_config(config_path)

    def _print(text: str, style: str = ""):
        if console and hasattr(console, "print"):
            console.print(text, style=style)
        else:
            print(text)

    if action == "reset":
        config = ProbeConfig(extra=config.extra)
        save_config(config, config_path)
        get_logger().settings_change(list(_DEFAULTS))
        _print("  Settings reset to defaults.", "green")
        return config

    if action == "set":
        if not key or value is None:
            raise ValueError("Usage: settings set KEY VALUE")
        config = config.with_updates(**{key: parse_setting(key, value)})
        save_config(config, config_path)
        get_logger().settings_change([key])
        _print(f"  {_find_meta(key)['label']} set to {getattr(config, key)}", "green")
        return config

    # View mode -- display all settings grouped by category
    _print("\n  Exitwatch Settings\n", "bold cyan")
    _print("  " + "─" * 50)

    for category, category_settings in SETTING_CATEGORIES.items():
        _print(f"\n  [{category}]", "bold")
        for name, meta in category_settings.items():
            current = getattr(config, name)
            default_marker = " (default)" if current == _DEFAULTS[name] else ""
            _print(f"    {meta['label']}: {_format_value(current, meta)}{default_marker}")
            _print(f"      {meta['description']}", "dim")

    _print("\n  [Fallback Chain]", "bold")
    for i, url in enumerate(config.alternative_endpoints, 1):
        _print(f"    {i}. {url}")

    _print("\n  " + "─" * 50)
    _print(f"  Tip: edit lists directly in {config_path}\n", "dim")
    return config


def _format_value(value: Any, meta: dict) -> str:
    """Format a setting value for display."""
    if meta["type"] == "float":
        return f"{value:.1f}s"
    return str(value)
