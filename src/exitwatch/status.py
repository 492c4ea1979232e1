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
"""Overall status policy.

Combines the three probe results into one verdict. Rules are evaluated in
order and the first match wins:

  1. Egress identity failed                                  -> FAIL
  2. Network degraded and an exit address was observed       -> WARNING
  3. No public address at all and no connectivity            -> FAIL
  4. Exit network detected and exit address == public address -> PASS
  5. Exit network not detected and the addresses differ      -> WARNING
  6. Anything else                                           -> FAIL

Rule 6 also catches "exit network detected but addresses differ", which
ends up with the same verdict as total disconnection.
"""

from __future__ import annotations

from exitwatch.models import (
    EgressCheckResult,
    OverallStatus,
    PublicIPCheckResult,
    ResolutionCheckResult,
)

# Substrings the resolution probe puts in its error text
_RESOLUTION_EXTERNAL_MARKER = "External"
_RESOLUTION_OFFLINE_MARKER = "No network connectivity"


def is_public_ip_fallback(public_ip: PublicIPCheckResult) -> bool:
    """The external endpoint chain failed (soft success or hard failure).

    The probe only sets an error after the primary endpoint and every
    alternative have failed, so any error means the fallback path ran.
    """
    return public_ip.error is not None


def is_public_ip_total_failure(public_ip: PublicIPCheckResult) -> bool:
    """Every endpoint failed and no local candidate was found."""
    return public_ip.is_hard_failure


def is_resolution_external_failure(resolution: ResolutionCheckResult) -> bool:
    return resolution.error is not None and _RESOLUTION_EXTERNAL_MARKER in resolution.error


def is_resolution_disconnected(resolution: ResolutionCheckResult) -> bool:
    return resolution.error is not None and _RESOLUTION_OFFLINE_MARKER in resolution.error


def is_network_degraded(
    public_ip: PublicIPCheckResult,
    resolution: ResolutionCheckResult,
) -> bool:
    return is_public_ip_fallback(public_ip) or is_resolution_external_failure(resolution)


def evaluate_status(
    egress: EgressCheckResult,
    public_ip: PublicIPCheckResult,
    resolution: ResolutionCheckResult,
) -> tuple[OverallStatus, str]:
    """Apply the ordered rules and return (status, reason)."""
    if egress.error is not None:
        return OverallStatus.FAIL, f"Egress identity check failed: {egress.error}"

    if is_network_degraded(public_ip, resolution) and egress.exit_ip:
        return OverallStatus.WARNING, "Network degraded, exit address observed"

    if is_public_ip_total_failure(public_ip) and is_resolution_disconnected(resolution):
        return OverallStatus.FAIL, "No network connectivity"

    if egress.is_detected and egress.exit_ip == public_ip.ip:
        return OverallStatus.PASS, "Traffic exits through the expected network"

    if not egress.is_detected and egress.exit_ip != public_ip.ip:
        return OverallStatus.WARNING, "Exit network not detected and addresses differ"

    if egress.is_detected:
        return OverallStatus.FAIL, "Exit network detected but public address differs"
    return OverallStatus.FAIL, "Exit network not detected"


def determine_overall_status(
    egress: EgressCheckResult,
    public_ip: PublicIPCheckResult,
    resolution: ResolutionCheckResult,
) -> OverallStatus:
    """Return the overall verdict for one check cycle."""
    return evaluate_status(egress, public_ip, resolution)[0]


def explain_status(
    egress: EgressCheckResult,
    public_ip: PublicIPCheckResult,
    resolution: ResolutionCheckResult,
) -> str:
    """Short reason naming the rule that produced the verdict."""
    return evaluate_status(egress, public_ip, resolution)[1]
