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
"""Local network interface snapshot.

Reads the host's interfaces through ``psutil`` and returns one
``NetworkInterface`` per interface name carrying its first IPv4 and first
IPv6 address. Order follows what the OS reports and carries no meaning.
"""

from __future__ import annotations

import ipaddress
import logging
import socket

import psutil

from exitwatch.models import NetworkInterface

logger = logging.getLogger("exitwatch.probes.interfaces")


def _is_loopback(name: str, addresses: list[str], flags: str) -> bool:
    if "loopback" in flags.split(","):
        return True
    if not addresses:
        return name == "lo" or name.startswith("lo0")
    try:
        return all(ipaddress.ip_address(a).is_loopback for a in addresses)
    except ValueError:
        return False


def get_local_interfaces() -> list[NetworkInterface]:
    """Return a fresh snapshot of the host's network interfaces."""
    try:
        if_addrs = psutil.net_if_addrs()
        if_stats = psutil.net_if_stats()
    except (OSError, psutil.Error) as e:
        logger.warning("Interface enumeration failed: %s", e)
        return []

    interfaces = []
    for name, addrs in if_addrs.items():
        ipv4 = None
        ipv6 = None
        for addr in addrs:
            if addr.family == socket.AF_INET and ipv4 is None:
                ipv4 = addr.address
            elif addr.family == socket.AF_INET6 and ipv6 is None:
                # Link-local addresses carry a zone suffix ("fe80::1%en0")
                ipv6 = addr.address.split("%", 1)[0]

        stats = if_stats.get(name)
        flags = getattr(stats, "flags", "") or ""
        present = [a for a in (ipv4, ipv6) if a]

        interfaces.append(
            NetworkInterface(
                name=name,
                ipv4_address=ipv4,
                ipv6_address=ipv6,
                is_loopback=_is_loopback(name, present, flags),
            )
        )

    logger.debug("Enumerated %d interfaces", len(interfaces))
    return interfaces


def has_non_loopback(interfaces: list[NetworkInterface]) -> bool:
    """True if any interface in the snapshot is not a loopback."""
    return any(not iface.is_loopback for iface in interfaces)
