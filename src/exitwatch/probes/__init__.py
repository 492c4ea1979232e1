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
"""Network probes run by a check cycle.

Each probe converts every failure into its result's ``error`` field;
none of them raise.
"""

from exitwatch.probes.device import get_device_metadata
from exitwatch.probes.egress import check_egress
from exitwatch.probes.interfaces import get_local_interfaces
from exitwatch.probes.public_ip import check_public_ip
from exitwatch.probes.resolution import check_resolution

__all__ = [
    "check_egress",
    "check_public_ip",
    "check_resolution",
    "get_device_metadata",
    "get_local_interfaces",
]
