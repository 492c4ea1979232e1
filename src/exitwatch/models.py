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
Exitwatch -- Check Result Models

Immutable value objects produced by one check cycle:

  - EgressCheckResult     -- exit-network identity probe
  - PublicIPCheckResult   -- public address probe (with fallback states)
  - ResolutionCheckResult -- name resolution probe
  - NetworkInterface      -- one local interface snapshot
  - DeviceMetadata        -- static host/OS/locale properties
  - CheckReport           -- the aggregate of one cycle

Every model round-trips through ``to_dict()`` / ``from_dict()`` so the
history store can persist reports as JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class OverallStatus(Enum):
    """Categorical verdict of a check cycle. No severity order is implied."""

    PASS = "pass"
    WARNING = "warning"
    FAIL = "fail"

    @property
    def display_name(self) -> str:
        return self.name

    @property
    def color(self) -> str:
        return {"pass": "green", "warning": "yellow", "fail": "red"}[self.value]

    @property
    def icon(self) -> str:
        return {"pass": "✓", "warning": "⚠", "fail": "✗"}[self.value]


@dataclass(frozen=True)
class EgressCheckResult:
    """Result of the exit-network identity probe."""

    is_detected: bool
    exit_ip: str
    country: str
    city: str
    error: str | None = None
    latency: float = 0.0

    @classmethod
    def failed(cls, error: str, latency: float) -> EgressCheckResult:
        return cls(is_detected=False, exit_ip="", country="", city="", error=error, latency=latency)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_detected": self.is_detected,
            "exit_ip": self.exit_ip,
            "country": self.country,
            "city": self.city,
            "error": self.error,
            "latency": self.latency,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EgressCheckResult:
        return cls(
            is_detected=bool(data.get("is_detected", False)),
            exit_ip=data.get("exit_ip", ""),
            country=data.get("country", ""),
            city=data.get("city", ""),
            error=data.get("error"),
            latency=float(data.get("latency", 0.0)),
        )


@dataclass(frozen=True)
class PublicIPCheckResult:
    """Result of the public address probe.

    ``error`` set together with a non-empty ``ip`` is a soft success: the
    address came from the local-interface fallback. ``error`` set with an
    empty ``ip`` is a hard failure. The two states are distinct.
    """

    ip: str
    error: str | None = None
    latency: float = 0.0

    @property
    def is_soft_success(self) -> bool:
        return self.error is not None and bool(self.ip)

    @property
    def is_hard_failure(self) -> bool:
        return self.error is not None and not self.ip

    def to_dict(self) -> dict[str, Any]:
        return {"ip": self.ip, "error": self.error, "latency": self.latency}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PublicIPCheckResult:
        return cls(
            ip=data.get("ip", ""),
            error=data.get("error"),
            latency=float(data.get("latency", 0.0)),
        )


@dataclass(frozen=True)
class ResolutionCheckResult:
    """Result of the name resolution probe."""

    is_resolving_correctly: bool
    error: str | None = None
    latency: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_resolving_correctly": self.is_resolving_correctly,
            "error": self.error,
            "latency": self.latency,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResolutionCheckResult:
        return cls(
            is_resolving_correctly=bool(data.get("is_resolving_correctly", False)),
            error=data.get("error"),
            latency=float(data.get("latency", 0.0)),
        )


@dataclass(frozen=True)
class NetworkInterface:
    """A local network interface as seen at snapshot time."""

    name: str
    ipv4_address: str | None = None
    ipv6_address: str | None = None
    is_loopback: bool = False

    @property
    def preferred_address(self) -> str | None:
        """IPv4 address if present, else IPv6."""
        return self.ipv4_address or self.ipv6_address

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "ipv4_address": self.ipv4_address,
            "ipv6_address": self.ipv6_address,
            "is_loopback": self.is_loopback,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NetworkInterface:
        return cls(
            name=data.get("name", ""),
            ipv4_address=data.get("ipv4_address"),
            ipv6_address=data.get("ipv6_address"),
            is_loopback=bool(data.get("is_loopback", False)),
        )


@dataclass(frozen=True)
class DeviceMetadata:
    """Static host, OS and locale properties."""

    device_name: str
    model_identifier: str
    os_version: str
    locale: str
    region: str
    language: str
    device_id: str

    @classmethod
    def unknown(cls) -> DeviceMetadata:
        """Placeholder used when the host cannot be read."""
        return cls(
            device_name="Unknown",
            model_identifier="Unknown",
            os_version="Unknown",
            locale="Unknown",
            region="Unknown",
            language="Unknown",
            device_id="",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_name": self.device_name,
            "model_identifier": self.model_identifier,
            "os_version": self.os_version,
            "locale": self.locale,
            "region": self.region,
            "language": self.language,
            "device_id": self.device_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeviceMetadata:
        return cls(
            device_name=data.get("device_name", "Unknown"),
            model_identifier=data.get("model_identifier", "Unknown"),
            os_version=data.get("os_version", "Unknown"),
            locale=data.get("locale", "Unknown"),
            region=data.get("region", "Unknown"),
            language=data.get("language", "Unknown"),
            device_id=data.get("device_id", ""),
        )


@dataclass(frozen=True)
class CheckReport:
    """Aggregate result of one check cycle."""

    overall_status: OverallStatus
    egress_check: EgressCheckResult
    public_ip_check: PublicIPCheckResult
    resolution_check: ResolutionCheckResult
    device_metadata: DeviceMetadata
    local_network: tuple[NetworkInterface, ...] = ()
    latency: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "overall_status": self.overall_status.value,
            "egress_check": self.egress_check.to_dict(),
            "public_ip_check": self.public_ip_check.to_dict(),
            "resolution_check": self.resolution_check.to_dict(),
            "device_metadata": self.device_metadata.to_dict(),
            "local_network": [iface.to_dict() for iface in self.local_network],
            "latency": self.latency,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CheckReport:
        timestamp = data.get("timestamp")
        return cls(
            timestamp=(
                datetime.fromisoformat(timestamp) if timestamp else datetime.now(timezone.utc)
            ),
            overall_status=OverallStatus(data.get("overall_status", "fail")),
            egress_check=EgressCheckResult.from_dict(data.get("egress_check", {})),
            public_ip_check=PublicIPCheckResult.from_dict(data.get("public_ip_check", {})),
            resolution_check=ResolutionCheckResult.from_dict(data.get("resolution_check", {})),
            device_metadata=DeviceMetadata.from_dict(data.get("device_metadata", {})),
            local_network=tuple(
                NetworkInterface.from_dict(item) for item in data.get("local_network", [])
            ),
            latency=float(data.get("latency", 0.0)),
        )
