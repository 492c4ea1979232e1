"""Pytest configuration for exitwatch tests."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import httpx
import pytest

# Ensure src/exitwatch is importable
src_path = str(Path(__file__).parent.parent / "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from exitwatch.models import (  # noqa: E402
    CheckReport,
    DeviceMetadata,
    EgressCheckResult,
    NetworkInterface,
    OverallStatus,
    PublicIPCheckResult,
    ResolutionCheckResult,
)


class FakeNetwork:
    """httpx.MockTransport handler keyed by host.

    A route is either ``(status, body)`` -- a dict/list body is sent as JSON,
    a str body as text -- or an exception class to raise. Hosts without a
    route refuse the connection. Every request URL is recorded in order.
    """

    def __init__(self, routes: dict | None = None):
        self.routes = dict(routes or {})
        self.calls: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(str(request.url))
        return self.respond(request)

    def respond(self, request: httpx.Request) -> httpx.Response:
        route = self.routes.get(request.url.host)
        if route is None:
            raise httpx.ConnectError("Connection refused", request=request)
        if isinstance(route, type) and issubclass(route, Exception):
            raise route("simulated failure", request=request)
        status, body = route
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def hosts_called(self) -> list[str]:
        return [httpx.URL(u).host for u in self.calls]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


MULLVAD_OK = {"ip": "1.2.3.4", "country": "Sweden", "city": "Stockholm", "mullvad_exit_ip": True}

WIFI = NetworkInterface(name="en0", ipv4_address="192.168.1.100", ipv6_address=None)
LOOPBACK = NetworkInterface(
    name="lo0", ipv4_address="127.0.0.1", ipv6_address="::1", is_loopback=True
)
PUBLIC_IFACE = NetworkInterface(name="wg0", ipv4_address="185.65.134.7")


@pytest.fixture
def device_metadata() -> DeviceMetadata:
    return DeviceMetadata(
        device_name="Test Device",
        model_identifier="TestModel",
        os_version="Linux 6.8",
        locale="en_US",
        region="US",
        language="en",
        device_id="test-uuid",
    )


@pytest.fixture
def sample_report(device_metadata) -> CheckReport:
    return CheckReport(
        timestamp=datetime(2025, 9, 26, 12, 30, 0, tzinfo=timezone.utc),
        overall_status=OverallStatus.PASS,
        egress_check=EgressCheckResult(
            is_detected=True,
            exit_ip="1.2.3.4",
            country="Sweden",
            city="Stockholm",
            error=None,
            latency=1.0,
        ),
        public_ip_check=PublicIPCheckResult(ip="1.2.3.4", error=None, latency=1.0),
        resolution_check=ResolutionCheckResult(is_resolving_correctly=True, error=None, latency=1.0),
        device_metadata=device_metadata,
        local_network=(WIFI,),
        latency=3.0,
    )
