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
"""Plain-text report export.

``export_report`` is a pure function: the same report always renders to
the same string, byte for byte.
"""

from __future__ import annotations

from datetime import datetime, timezone

from exitwatch.models import CheckReport

NO_RESULTS = "No results available"


def _seconds(value: float) -> str:
    return f"{value:.2f}s"


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def _timestamp(ts: datetime) -> str:
    if ts.tzinfo is None:
        return ts.strftime("%Y-%m-%d %H:%M:%S")
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def export_report(report: CheckReport | None) -> str:
    """Render a report as a fixed-format, human-readable summary."""
    if report is None:
        return NO_RESULTS

    egress = report.egress_check
    public_ip = report.public_ip_check
    resolution = report.resolution_check
    device = report.device_metadata

    lines = [
        "OPSEC Check Report",
        f"Generated: {_timestamp(report.timestamp)}",
        f"Overall Status: {report.overall_status.display_name}",
        f"Total Latency: {_seconds(report.latency)}",
        "",
        "=== EGRESS IDENTITY CHECK ===",
        f"Detected: {_yes_no(egress.is_detected)}",
        f"Exit IP: {egress.exit_ip}",
        f"Country: {egress.country}",
        f"City: {egress.city}",
        f"Latency: {_seconds(egress.latency)}",
        f"Error: {egress.error or 'None'}",
        "",
        "=== PUBLIC IP CHECK ===",
        f"IP: {public_ip.ip}",
        f"Latency: {_seconds(public_ip.latency)}",
        f"Error: {public_ip.error or 'None'}",
        "",
        "=== DEVICE METADATA ===",
        f"Device Name: {device.device_name}",
        f"Model: {device.model_identifier}",
        f"OS Version: {device.os_version}",
        f"Locale: {device.locale}",
        f"Region: {device.region}",
        f"Language: {device.language}",
        f"Device ID: {device.device_id}",
        "",
        "=== LOCAL NETWORK ===",
    ]

    for iface in report.local_network:
        header = f"{iface.name}:"
        if iface.is_loopback:
            header += " (Loopback)"
        lines.append(header)
        if iface.ipv4_address:
            lines.append(f"  IPv4: {iface.ipv4_address}")
        if iface.ipv6_address:
            lines.append(f"  IPv6: {iface.ipv6_address}")

    lines.extend(
        [
            "",
            "=== DNS CHECK ===",
            f"Resolving Correctly: {_yes_no(resolution.is_resolving_correctly)}",
            f"Latency: {_seconds(resolution.latency)}",
            f"Error: {resolution.error or 'None'}",
        ]
    )
    return "\n".join(lines)
