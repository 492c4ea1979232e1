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
Exitwatch -- Check Service

Runs one check cycle:

    config snapshot
        |
    +---------------+------------------+------------------+
    | egress probe  | public-IP probe  | resolution probe |   (concurrent)
    +---------------+------------------+------------------+
        |                 interface + device snapshots       (synchronous)
    ordered status policy
        |
    CheckReport  -->  history store (optional)

The service keeps no "last result": ``run_checks()`` returns a fresh,
immutable report. Only one cycle may be in flight per service; a second
call while one is running raises ``CheckInProgressError``.

Usage:
    service = CheckService(load_config())
    report = await service.run_checks()
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any

import httpx

from exitwatch.config import ProbeConfig
from exitwatch.core.logging import CheckLogger
from exitwatch.history import HistoryStore
from exitwatch.models import (
    CheckReport,
    DeviceMetadata,
    EgressCheckResult,
    NetworkInterface,
    PublicIPCheckResult,
    ResolutionCheckResult,
)
from exitwatch.probes import (
    check_egress,
    check_public_ip,
    check_resolution,
    get_device_metadata,
    get_local_interfaces,
)
from exitwatch.probes._http import describe_error
from exitwatch.status import evaluate_status

logger = logging.getLogger("exitwatch.service")


class CheckInProgressError(RuntimeError):
    """A check cycle is already running on this service."""


class CheckService:
    """Orchestrates the three probes and builds the report."""

    def __init__(
        self,
        config: ProbeConfig | None = None,
        history: HistoryStore | None = None,
        interfaces_source: Callable[[], Sequence[NetworkInterface]] = get_local_interfaces,
        device_source: Callable[[], DeviceMetadata] = get_device_metadata,
        transport: httpx.AsyncBaseTransport | None = None,
        check_logger: CheckLogger | None = None,
    ):
        self._config = config or ProbeConfig()
        self._history = history
        self._interfaces_source = interfaces_source
        self._device_source = device_source
        self._transport = transport
        self._log = check_logger
        self._running = False

    # =========================================================================
    # Configuration
    # =========================================================================

    @property
    def config(self) -> ProbeConfig:
        return self._config

    @config.setter
    def config(self, value: ProbeConfig) -> None:
        self._config = value

    def update_endpoints(
        self,
        egress_endpoint: str | None = None,
        public_ip_endpoint: str | None = None,
    ) -> ProbeConfig:
        """Change the two user-configurable endpoints for the next cycle."""
        changes: dict[str, Any] = {}
        if egress_endpoint:
            changes["egress_endpoint"] = egress_endpoint.strip()
        if public_ip_endpoint:
            changes["public_ip_endpoint"] = public_ip_endpoint.strip()
        if changes:
            self._config = self._config.with_updates(**changes)
            if self._log:
                self._log.settings_change(sorted(changes))
        return self._config

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # Check cycle
    # =========================================================================

    async def run_checks(self) -> CheckReport:
        """Run one full check cycle and return its report."""
        if self._running:
            raise CheckInProgressError("A check cycle is already running")
        self._running = True
        try:
            return await self._run_cycle(self._config)
        finally:
            self._running = False

    async def _run_cycle(self, config: ProbeConfig) -> CheckReport:
        start = time.monotonic()
        logger.info("Check cycle started (timeout=%.1fs)", config.timeout_seconds)

        # Host snapshots are synchronous reads; take them before the probes start
        device_metadata = self._snapshot_device()
        local_network = self._snapshot_interfaces()

        limits = httpx.Limits(max_connections=config.max_connections)
        async with httpx.AsyncClient(
            timeout=config.timeout_seconds,
            limits=limits,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            tasks: dict[str, asyncio.Task] = {
                "egress": asyncio.create_task(
                    check_egress(client, config.egress_endpoint, config.timeout_seconds)
                ),
                "public_ip": asyncio.create_task(
                    check_public_ip(
                        client,
                        config.public_ip_endpoint,
                        config.alternative_endpoints,
                        self._interfaces_source,
                        config.timeout_seconds,
                        config.private_filter,
                    )
                ),
                "resolution": asyncio.create_task(
                    check_resolution(
                        client,
                        config.resolution_hosts,
                        self._interfaces_source,
                        config.timeout_seconds,
                    )
                ),
            }

            await asyncio.gather(*tasks.values(), return_exceptions=True)

        latency = time.monotonic() - start
        egress = self._settle(tasks["egress"], _egress_crash)
        public_ip = self._settle(tasks["public_ip"], _public_ip_crash)
        resolution = self._settle(tasks["resolution"], _resolution_crash)

        status, reason = evaluate_status(egress, public_ip, resolution)
        report = CheckReport(
            timestamp=datetime.now(timezone.utc),
            overall_status=status,
            egress_check=egress,
            public_ip_check=public_ip,
            resolution_check=resolution,
            device_metadata=device_metadata,
            local_network=local_network,
            latency=latency,
        )

        logger.info("Check cycle finished: %s (%s) in %.2fs", status.display_name, reason, latency)
        self._record(report, reason)
        return report

    def _snapshot_device(self) -> DeviceMetadata:
        try:
            return self._device_source()
        except Exception as e:
            logger.warning("Device metadata snapshot failed: %s", e)
            return DeviceMetadata.unknown()

    def _snapshot_interfaces(self) -> tuple[NetworkInterface, ...]:
        try:
            return tuple(self._interfaces_source())
        except Exception as e:
            logger.warning("Interface snapshot failed: %s", e)
            return ()

    @staticmethod
    def _settle(task: asyncio.Task, on_crash: Callable[[str], Any]) -> Any:
        """Task result, or the probe's failure result if the task raised."""
        if task.cancelled():
            return on_crash("Check was cancelled")
        exc = task.exception()
        if exc is not None:
            logger.error("Probe task raised: %s", exc)
            return on_crash(describe_error(exc))
        return task.result()

    def _record(self, report: CheckReport, reason: str) -> None:
        if self._log:
            self._log.probe(
                "egress",
                success=report.egress_check.error is None,
                latency_ms=int(report.egress_check.latency * 1000),
                exit_ip=report.egress_check.exit_ip,
                detected=report.egress_check.is_detected,
                error=report.egress_check.error or "",
            )
            self._log.probe(
                "public_ip",
                success=report.public_ip_check.error is None,
                latency_ms=int(report.public_ip_check.latency * 1000),
                ip=report.public_ip_check.ip,
                error=report.public_ip_check.error or "",
            )
            self._log.probe(
                "resolution",
                success=report.resolution_check.is_resolving_correctly,
                latency_ms=int(report.resolution_check.latency * 1000),
                error=report.resolution_check.error or "",
            )
            self._log.cycle(
                report.overall_status.value,
                latency_ms=int(report.latency * 1000),
                reason=reason,
            )

        if self._history is not None:
            try:
                self._history.add(report)
            except OSError as e:
                logger.error("Failed to store report in history: %s", e)


def _egress_crash(error: str) -> EgressCheckResult:
    return EgressCheckResult.failed(error=error, latency=0.0)


def _public_ip_crash(error: str) -> PublicIPCheckResult:
    return PublicIPCheckResult(ip="", error=error, latency=0.0)


def _resolution_crash(error: str) -> ResolutionCheckResult:
    return ResolutionCheckResult(is_resolving_correctly=False, error=error, latency=0.0)
