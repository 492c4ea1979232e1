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
"""Name-resolution probe.

Exercises DNS by fetching a few known-good hosts in a fixed order. Any
HTTP response at all proves the name resolved and a connection was made,
so the status code is not inspected. When every host fails, the local
interface snapshot tells "network up, external resolution broken" apart
from "no network at all".
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

import httpx

from exitwatch.models import NetworkInterface, ResolutionCheckResult
from exitwatch.probes._http import describe_error
from exitwatch.probes.interfaces import has_non_loopback

logger = logging.getLogger("exitwatch.probes.resolution")

EXTERNAL_FAILURE_ERROR = "External DNS resolution failed, but local network detected"
NO_CONNECTIVITY_ERROR = "No network connectivity detected"

MAX_ATTEMPTS = 3


async def check_resolution(
    client: httpx.AsyncClient,
    hosts: Sequence[str],
    interfaces_source: Callable[[], Sequence[NetworkInterface]],
    timeout: float,
) -> ResolutionCheckResult:
    """Run the resolution probe. Never raises."""
    start = time.monotonic()

    for url in list(hosts)[:MAX_ATTEMPTS]:
        try:
            await client.get(url, timeout=timeout)
        except Exception as e:
            logger.debug("Resolution probe %s failed - %s", url, describe_error(e))
            continue
        return ResolutionCheckResult(
            is_resolving_correctly=True,
            error=None,
            latency=time.monotonic() - start,
        )

    try:
        interfaces = list(interfaces_source())
    except Exception as e:
        logger.warning("Resolution: interface snapshot failed - %s", e)
        interfaces = []

    error = EXTERNAL_FAILURE_ERROR if has_non_loopback(interfaces) else NO_CONNECTIVITY_ERROR
    logger.warning("Resolution: all probes failed - %s", error)
    return ResolutionCheckResult(
        is_resolving_correctly=False,
        error=error,
        latency=time.monotonic() - start,
    )
