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
"""Egress-identity probe.

Asks the exit-network identity endpoint who we look like from outside:
the observed address, its location, and whether that address belongs to
the expected exit network. One endpoint, one attempt, no fallback -- a
failure here is decisive for the overall verdict.

Expected body:
    {"ip": "1.2.3.4", "country": "Sweden", "city": "Stockholm",
     "mullvad_exit_ip": true}
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from exitwatch.models import EgressCheckResult
from exitwatch.probes._address import clean_address
from exitwatch.probes._http import ProbeFailure, describe_error, get_json

logger = logging.getLogger("exitwatch.probes.egress")

# Accepted names for the "is this the expected exit network" flag
EXIT_FLAG_KEYS = ("mullvad_exit_ip", "is_exit")


def parse_egress_identity(body: Any) -> tuple[str, str, str, bool]:
    """Validate an identity body and return (ip, country, city, is_exit).

    Raises:
        ProbeFailure: if any field is missing or has the wrong type.
    """
    if not isinstance(body, dict):
        raise ProbeFailure("Malformed response: expected a JSON object")

    raw_ip = body.get("ip")
    if not isinstance(raw_ip, str) or not raw_ip.strip():
        raise ProbeFailure("Malformed response: missing 'ip'")
    ip = clean_address(raw_ip)
    if ip is None:
        raise ProbeFailure(f"Malformed response: 'ip' is not an IP address ({raw_ip!r})")

    country = body.get("country")
    city = body.get("city")
    if not isinstance(country, str) or not isinstance(city, str):
        raise ProbeFailure("Malformed response: missing 'country' or 'city'")
    country, city = country.strip(), city.strip()
    if not country or not city:
        raise ProbeFailure("Malformed response: empty 'country' or 'city'")

    for key in EXIT_FLAG_KEYS:
        if key in body:
            flag = body[key]
            if not isinstance(flag, bool):
                raise ProbeFailure(f"Malformed response: '{key}' is not a boolean")
            return ip, country, city, flag

    raise ProbeFailure("Malformed response: missing exit-network flag")


async def check_egress(
    client: httpx.AsyncClient,
    endpoint: str,
    timeout: float,
) -> EgressCheckResult:
    """Run the egress-identity probe. Never raises."""
    start = time.monotonic()
    try:
        body = await get_json(client, endpoint, timeout)
        ip, country, city, is_exit = parse_egress_identity(body)
    except ProbeFailure as e:
        latency = time.monotonic() - start
        logger.info("Egress identity check failed: %s", e)
        return EgressCheckResult.failed(error=str(e), latency=latency)
    except Exception as e:
        latency = time.monotonic() - start
        logger.warning("Egress identity check crashed: %s", e)
        return EgressCheckResult.failed(error=describe_error(e), latency=latency)

    latency = time.monotonic() - start
    logger.debug("Egress identity: ip=%s exit=%s (%.2fs)", ip, is_exit, latency)
    return EgressCheckResult(
        is_detected=is_exit,
        exit_ip=ip,
        country=country,
        city=city,
        error=None,
        latency=latency,
    )
