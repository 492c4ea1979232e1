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
"""HTTP helpers shared by the probes.

Every probe turns transport failures, non-2xx statuses and malformed
bodies into a single human-readable string. Nothing here raises past the
probe boundary except ``ProbeFailure``, which the probes catch.
"""

from __future__ import annotations

import json
from typing import Any

import httpx


class ProbeFailure(Exception):
    """One attempt failed; ``str(exc)`` is the description for the report."""


def describe_error(exc: BaseException) -> str:
    """Human-readable description of a failed request."""
    if isinstance(exc, ProbeFailure):
        return str(exc)
    if isinstance(exc, httpx.TimeoutException):
        host = _request_host(exc)
        return f"The request timed out ({host})" if host else "The request timed out"
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code} from {exc.request.url.host}"
    if isinstance(exc, httpx.InvalidURL):
        return f"Invalid URL: {exc}"
    if isinstance(exc, httpx.RequestError):
        detail = str(exc) or type(exc).__name__
        return f"Network error: {detail}"
    if isinstance(exc, (json.JSONDecodeError, UnicodeDecodeError)):
        return "Malformed response: body is not valid JSON"
    return str(exc) or type(exc).__name__


def _request_host(exc: httpx.RequestError) -> str:
    # .request raises RuntimeError when the exception was built without one
    try:
        return exc.request.url.host
    except RuntimeError:
        return ""


async def get(client: httpx.AsyncClient, url: str, timeout: float) -> httpx.Response:
    """GET ``url`` and raise ``ProbeFailure`` on any transport or status error."""
    try:
        resp = await client.get(url, timeout=timeout)
        resp.raise_for_status()
        return resp
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise ProbeFailure(describe_error(exc)) from exc


async def get_json(client: httpx.AsyncClient, url: str, timeout: float) -> Any:
    """GET ``url`` and decode its JSON body, raising ``ProbeFailure`` on failure."""
    resp = await get(client, url, timeout)
    try:
        return resp.json()
    except ValueError as exc:
        raise ProbeFailure(describe_error(exc)) from exc
