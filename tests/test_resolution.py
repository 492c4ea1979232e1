# Exitwatch
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
"""Tests for the name-resolution probe."""

import pytest
from conftest import LOOPBACK, WIFI, FakeNetwork

from exitwatch.probes.resolution import (
    EXTERNAL_FAILURE_ERROR,
    MAX_ATTEMPTS,
    NO_CONNECTIVITY_ERROR,
    check_resolution,
)

HOSTS = [
    "https://httpbin.org/ip",
    "https://api.ipify.org?format=json",
    "https://am.i.mullvad.net/json",
]


class TestCheckResolution:
    @pytest.mark.asyncio
    async def test_first_host_succeeds(self):
        net = FakeNetwork({"httpbin.org": (200, {"origin": "1.2.3.4"})})
        async with net.client() as client:
            result = await check_resolution(client, HOSTS, lambda: [WIFI], timeout=5.0)
        assert result.is_resolving_correctly is True
        assert result.error is None
        assert net.hosts_called() == ["httpbin.org"]

    @pytest.mark.asyncio
    async def test_any_status_counts_as_resolved(self):
        net = FakeNetwork({"httpbin.org": (500, "oops")})
        async with net.client() as client:
            result = await check_resolution(client, HOSTS, lambda: [WIFI], timeout=5.0)
        assert result.is_resolving_correctly is True

    @pytest.mark.asyncio
    async def test_falls_through_in_order(self):
        net = FakeNetwork({"am.i.mullvad.net": (200, {})})
        async with net.client() as client:
            result = await check_resolution(client, HOSTS, lambda: [WIFI], timeout=5.0)
        assert result.is_resolving_correctly is True
        assert net.hosts_called() == ["httpbin.org", "api.ipify.org", "am.i.mullvad.net"]

    @pytest.mark.asyncio
    async def test_all_fail_with_local_network(self):
        net = FakeNetwork()
        async with net.client() as client:
            result = await check_resolution(client, HOSTS, lambda: [LOOPBACK, WIFI], timeout=5.0)
        assert result.is_resolving_correctly is False
        assert result.error == EXTERNAL_FAILURE_ERROR

    @pytest.mark.asyncio
    async def test_all_fail_loopback_only(self):
        net = FakeNetwork()
        async with net.client() as client:
            result = await check_resolution(client, HOSTS, lambda: [LOOPBACK], timeout=5.0)
        assert result.error == NO_CONNECTIVITY_ERROR

    @pytest.mark.asyncio
    async def test_all_fail_and_snapshot_crashes(self):
        def broken():
            raise OSError("no netlink")

        net = FakeNetwork()
        async with net.client() as client:
            result = await check_resolution(client, HOSTS, broken, timeout=5.0)
        assert result.error == NO_CONNECTIVITY_ERROR

    @pytest.mark.asyncio
    async def test_attempts_are_bounded(self):
        hosts = HOSTS + ["https://example.org/"]
        net = FakeNetwork()
        async with net.client() as client:
            await check_resolution(client, hosts, lambda: [], timeout=5.0)
        assert len(net.calls) == MAX_ATTEMPTS
