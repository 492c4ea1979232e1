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
"""Device metadata snapshot.

A static read of host, OS and locale properties. Nothing here touches the
network; every field degrades to "Unknown" rather than failing.
"""

from __future__ import annotations

import hashlib
import locale
import platform
import socket
import uuid

from exitwatch.models import DeviceMetadata


def _device_name() -> str:
    hostname = socket.gethostname() or platform.node()
    # First label only ("living-room.local" -> "living-room")
    name = hostname.split(".")[0] if hostname else ""
    if name:
        return name
    return f"{platform.system() or 'Unknown'} Device"


def _model_identifier() -> str:
    return platform.machine() or "Unknown"


def _os_version() -> str:
    system = platform.system() or "Unknown"
    release = platform.release()
    return f"{system} {release}".strip()


def _locale_parts() -> tuple[str, str, str]:
    """Return (identifier, region, language) for the current locale."""
    try:
        identifier = locale.getlocale()[0] or ""
    except ValueError:
        identifier = ""
    if not identifier:
        return "Unknown", "Unknown", "Unknown"

    # "en_US" / "en-US" / "English_United States" (Windows)
    tag = identifier.replace("-", "_")
    language, _, region = tag.partition("_")
    return identifier, region or "Unknown", language or "Unknown"


def _device_id(model: str, hostname: str) -> str:
    """Stable pseudo-identifier bound to this machine."""
    seed = f"{model}-{hostname}-{uuid.getnode():012x}"
    digest = hashlib.sha256(seed.encode()).digest()
    return str(uuid.UUID(bytes=digest[:16]))


def get_device_metadata() -> DeviceMetadata:
    """Collect a fresh DeviceMetadata snapshot for this host."""
    model = _model_identifier()
    identifier, region, language = _locale_parts()
    return DeviceMetadata(
        device_name=_device_name(),
        model_identifier=model,
        os_version=_os_version(),
        locale=identifier,
        region=region,
        language=language,
        device_id=_device_id(model, platform.node()),
    )
