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
Exitwatch -- on-device egress self-check.

Runs three concurrent network probes (exit-network identity, public
address, name resolution) and reduces them to a single PASS / WARNING /
FAIL verdict telling whether traffic leaves through the expected exit
network.
"""

__version__ = "1.0.0"
__author__ = "Exitwatch Team"
