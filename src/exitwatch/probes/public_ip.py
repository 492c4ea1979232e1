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
"""Public-address probe.

Determines the device's externally visible address in three stages:

  1. PRIMARY      -- GET the configured endpoint, parse {"ip": ...}
  2. ALTERNATIVES -- walk a fixed, ordered list of endpoints; each body is
                     tried against every known response shape in order and
                     the first endpoint that yields an address wins
  3. LOCAL        -- if every external endpoint failed, pick a non-private
                     address from the local interface snapshot

Stage 3 success is a *soft success*: the address is reported together with
an advisory error so the status policy can tell it apart from a clean
result. Endpoints are tried one after another, never raced.
"""

from __future__ import annotations

import ipaddress
import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

import httpx

from exitwatch.models import NetworkInterface, PublicIPCheckResult
from exitwatch.probes._address import clean_address
from exitwatch.probes._http import ProbeFailure, describe_error, get_json

logger = logging.getLogger("exitwatch.probes.public_ip")

LOCAL_FALLBACK_ERROR = "External endpoints failed, using local network IP"
TOTAL_FAILURE_PREFIX = "All IP endpoints failed"

# Literal prefixes excluded in "prefix" mode. "172." is wider than the
# 172.16.0.0/12 private block; kept for compatibility with existing reports.
PRIVATE_PREFIXES = ("192.168.", "10.", "172.")

AddressParser = Callable[[Any], str | None]
InterfaceSource = Callable[[], Sequence[NetworkInterface]]


# =============================================================================
# Response shapes
# =============================================================================


def parse_ip_field(body: Any) -> str | None:
    """{"ip": "1.2.3.4"} -- ipify, ipapi.co, my-ip.io"""
    if isinstance(body, dict):
        return clean_address(body.get("ip"))
    return None


def parse_origin_field(body: Any) -> str | None:
    """{"origin": "1.2.3.4"} -- httpbin

    Behind a proxy httpbin reports a chain ("1.2.3.4, 10.0.0.1"); the
    first entry is the client.
    """
    if isinstance(body, dict):
        value = body.get("origin")
        if isinstance(value, str):
            return clean_address(value.split(",", 1)[0])
    return None


# Shapes tried, in order, against every alternative endpoint's body
ALTERNATIVE_PARSERS: tuple[AddressParser, ...] = (parse_ip_field, parse_origin_field)


def build_strategy(
    endpoints: Sequence[str],
    parsers: Sequence[AddressParser] = ALTERNATIVE_PARSERS,
) -> list[tuple[str, tuple[AddressParser, ...]]]:
    """Pair each alternative endpoint with the parser attempts to run on it."""
    return [(url, tuple(parsers)) for url in endpoints]


# =============================================================================
# Private-address filters
# =============================================================================


def is_private_prefix(address: str) -> bool:
    """Legacy literal-prefix check ("192.168.", "10.", "172.")."""
    return address.startswith(PRIVATE_PREFIXES)


_PRIVATE_V4_NETWORKS = (
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
)


def is_private_cidr(address: str) -> bool:
    """True network-membership check for RFC 1918 and non-global IPv6."""
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return True
    if ip.version == 4:
        return any(ip in net for net in _PRIVATE_V4_NETWORKS)
    return ip.is_private or ip.is_link_local or ip.is_loopback


PRIVATE_FILTERS: dict[str, Callable[[str], bool]] = {
    "prefix": is_private_prefix,
    "cidr": is_private_cidr,
}


def local_fallback_candidates(
    interfaces: Sequence[NetworkInterface],
    is_private: Callable[[str], bool] = is_private_prefix,
) -> list[str]:
    """Non-loopback interface addresses that might be public, in OS order."""
    candidates = []
    for iface in interfaces:
        if iface.is_loopback:
            continue
        address = iface.preferred_address
        if address and not is_private(address):
            candidates.append(address)
    return candidates


# =============================================================================
# Probe
# =============================================================================


async def _try_alternative(
    client: httpx.AsyncClient,
    url: str,
    parsers: Sequence[AddressParser],
    timeout: float,
) -> str:
    body = await get_json(client, url, timeout)
    for parse in parsers:
        address = parse(body)
        if address:
            return address
    raise ProbeFailure(f"Malformed response from {httpx.URL(url).host}: no address field")


async def check_public_ip(
    client: httpx.AsyncClient,
    primary_endpoint: str,
    alternative_endpoints: Sequence[str],
    interfaces_source: InterfaceSource,
    timeout: float,
    private_filter: str = "prefix",
) -> PublicIPCheckResult:
    """Run the public-address probe. Never raises."""
    start = time.monotonic()

    # 1. Primary endpoint
    try:
        body = await get_json(client, primary_endpoint, timeout)
        address = parse_ip_field(body)
        if not address:
            raise ProbeFailure("Malformed response: missing or invalid 'ip'")
        return PublicIPCheckResult(ip=address, error=None, latency=time.monotonic() - start)
    except Exception as e:
        last_error = describe_error(e)
        logger.info("Public IP: primary endpoint failed - %s", last_error)

    # 2. Alternatives, strictly in order
    for url, parsers in build_strategy(alternative_endpoints):
        try:
            address = await _try_alternative(client, url, parsers, timeout)
        except Exception as e:
            last_error = describe_error(e)
            logger.debug("Public IP: alternative %s failed - %s", url, last_error)
            continue
        logger.info("Public IP: resolved via alternative %s", url)
        return PublicIPCheckResult(ip=address, error=None, latency=time.monotonic() - start)

    # 3. Local interfaces
    is_private = PRIVATE_FILTERS.get(private_filter, is_private_prefix)
    try:
        interfaces = list(interfaces_source())
    except Exception as e:
        logger.warning("Public IP: interface snapshot failed - %s", e)
        interfaces = []

    candidates = local_fallback_candidates(interfaces, is_private)
    latency = time.monotonic() - start

    if candidates:
        logger.warning("Public IP: all external endpoints failed, using local %s", candidates[0])
        return PublicIPCheckResult(ip=candidates[0], error=LOCAL_FALLBACK_ERROR, latency=latency)

    logger.warning("Public IP: all endpoints failed - %s", last_error)
    return PublicIPCheckResult(
        ip="",
        error=f"{TOTAL_FAILURE_PREFIX}: {last_error}",
        latency=latency,
    )
