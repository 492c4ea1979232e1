# Exitwatch
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
"""Tests for the public-address probe and its fallback chain."""

import pytest
from conftest import LOOPBACK, PUBLIC_IFACE, WIFI, FakeNetwork

from exitwatch.models import NetworkInterface
from exitwatch.probes.public_ip import (
    LOCAL_FALLBACK_ERROR,
    TOTAL_FAILURE_PREFIX,
    build_strategy,
    check_public_ip,
    is_private_cidr,
    is_private_prefix,
    local_fallback_candidates,
    parse_ip_field,
    parse_origin_field,
)

PRIMARY = "https://api.ipify.org?format=json"
ALTERNATIVES = [
    "https://httpbin.org/ip",
    "https://ipapi.co/json/",
    "https://api.my-ip.io/ip.json",
]


async def _run(net, interfaces=(), private_filter="prefix"):
    async with net.client() as client:
        return await check_public_ip(
            client,
            PRIMARY,
            ALTERNATIVES,
            lambda: list(interfaces),
            timeout=5.0,
            private_filter=private_filter,
        )


class TestParsers:
    def test_ip_field(self):
        assert parse_ip_field({"ip": " 1.2.3.4 "}) == "1.2.3.4"
        assert parse_ip_field({"origin": "1.2.3.4"}) is None
        assert parse_ip_field("1.2.3.4") is None

    def test_origin_field(self):
        assert parse_origin_field({"origin": "1.2.3.4"}) == "1.2.3.4"
        assert parse_origin_field({"origin": 7}) is None

    def test_origin_chain_uses_first_entry(self):
        assert parse_origin_field({"origin": "1.2.3.4, 10.0.0.1"}) == "1.2.3.4"
        assert parse_origin_field({"origin": "proxy, 1.2.3.4"}) is None

    def test_invalid_addresses_rejected(self):
        assert parse_ip_field({"ip": "hello world"}) is None
        assert parse_ip_field({"ip": ""}) is None
        assert parse_ip_field({"ip": "256.0.0.1"}) is None
        assert parse_ip_field({"ip": "2a03:1b20::1"}) == "2a03:1b20::1"

    def test_strategy_keeps_endpoint_order(self):
        strategy = build_strategy(ALTERNATIVES)
        assert [url for url, _ in strategy] == ALTERNATIVES
        assert strategy[0][1] == (parse_ip_field, parse_origin_field)


class TestPrivateFilters:
    def test_prefix_mode_is_literal(self):
        assert is_private_prefix("192.168.1.1")
        assert is_private_prefix("10.0.0.1")
        # Outside 172.16.0.0/12 but still matched by the literal prefix
        assert is_private_prefix("172.64.0.1")
        assert not is_private_prefix("185.65.134.7")

    def test_cidr_mode_uses_network_membership(self):
        assert is_private_cidr("172.16.5.4")
        assert not is_private_cidr("172.64.0.1")
        assert is_private_cidr("fe80::1")
        assert not is_private_cidr("2a03:1b20::1")
        assert is_private_cidr("not-an-address")

    def test_fallback_candidates_skip_loopback_and_private(self):
        candidates = local_fallback_candidates([LOOPBACK, WIFI, PUBLIC_IFACE])
        assert candidates == ["185.65.134.7"]

    def test_fallback_candidate_uses_ipv6_when_no_ipv4(self):
        v6_only = NetworkInterface(name="utun3", ipv4_address=None, ipv6_address="2a03:1b20::1")
        assert local_fallback_candidates([v6_only]) == ["2a03:1b20::1"]


class TestPrimary:
    @pytest.mark.asyncio
    async def test_primary_success(self):
        net = FakeNetwork({"api.ipify.org": (200, {"ip": "1.2.3.4"})})
        result = await _run(net)
        assert result.ip == "1.2.3.4"
        assert result.error is None
        assert net.hosts_called() == ["api.ipify.org"]

    @pytest.mark.asyncio
    async def test_primary_missing_ip_falls_through(self):
        net = FakeNetwork(
            {
                "api.ipify.org": (200, {"address": "1.2.3.4"}),
                "httpbin.org": (200, {"origin": "5.6.7.8"}),
            }
        )
        result = await _run(net)
        assert result.ip == "5.6.7.8"


class TestAlternatives:
    @pytest.mark.asyncio
    async def test_alternative_success_has_no_error(self):
        net = FakeNetwork({"httpbin.org": (200, {"origin": "5.6.7.8"})})
        result = await _run(net)
        assert result.ip == "5.6.7.8"
        assert result.error is None
        assert not result.is_soft_success
        assert not result.is_hard_failure

    @pytest.mark.asyncio
    async def test_alternatives_tried_sequentially_in_order(self):
        net = FakeNetwork({"api.my-ip.io": (200, {"ip": "9.9.9.9"})})
        result = await _run(net)
        assert result.ip == "9.9.9.9"
        assert net.hosts_called() == [
            "api.ipify.org",
            "httpbin.org",
            "ipapi.co",
            "api.my-ip.io",
        ]

    @pytest.mark.asyncio
    async def test_first_successful_alternative_wins(self):
        net = FakeNetwork(
            {
                "ipapi.co": (200, {"ip": "7.7.7.7"}),
                "api.my-ip.io": (200, {"ip": "9.9.9.9"}),
            }
        )
        result = await _run(net)
        assert result.ip == "7.7.7.7"
        assert "api.my-ip.io" not in net.hosts_called()

    @pytest.mark.asyncio
    async def test_malformed_alternative_is_skipped(self):
        net = FakeNetwork(
            {
                "api.ipify.org": (200, {"ip": "hello world"}),
                "httpbin.org": (200, {"origin": "not-an-ip"}),
                "ipapi.co": (200, "not json"),
                "api.my-ip.io": (200, {"ip": "9.9.9.9"}),
            }
        )
        result = await _run(net)
        assert result.ip == "9.9.9.9"
        assert result.error is None

    @pytest.mark.asyncio
    async def test_garbage_everywhere_is_not_a_clean_result(self):
        net = FakeNetwork(
            {
                "api.ipify.org": (200, {"ip": "hello world"}),
                "httpbin.org": (200, {"unexpected": True}),
                "ipapi.co": (200, {"ip": ""}),
                "api.my-ip.io": (200, {"ip": "999.1.1.1"}),
            }
        )
        result = await _run(net, interfaces=[LOOPBACK, WIFI])
        assert result.is_hard_failure
        assert result.error.startswith(TOTAL_FAILURE_PREFIX)


class TestLocalFallback:
    @pytest.mark.asyncio
    async def test_soft_success_from_public_interface(self):
        result = await _run(FakeNetwork(), interfaces=[LOOPBACK, WIFI, PUBLIC_IFACE])
        assert result.ip == "185.65.134.7"
        assert result.error == LOCAL_FALLBACK_ERROR
        assert result.is_soft_success

    @pytest.mark.asyncio
    async def test_hard_failure_reports_last_error(self):
        net = FakeNetwork({"api.my-ip.io": (502, {})})
        result = await _run(net, interfaces=[LOOPBACK, WIFI])
        assert result.ip == ""
        assert result.is_hard_failure
        assert result.error == f"{TOTAL_FAILURE_PREFIX}: HTTP 502 from api.my-ip.io"

    @pytest.mark.asyncio
    async def test_cidr_filter_accepts_public_172_address(self):
        iface = NetworkInterface(name="eth0", ipv4_address="172.64.0.1")
        prefix_result = await _run(FakeNetwork(), interfaces=[iface])
        cidr_result = await _run(FakeNetwork(), interfaces=[iface], private_filter="cidr")
        assert prefix_result.is_hard_failure
        assert cidr_result.ip == "172.64.0.1"
        assert cidr_result.is_soft_success

    @pytest.mark.asyncio
    async def test_snapshot_crash_is_hard_failure(self):
        def broken():
            raise OSError("no netlink")

        async with FakeNetwork().client() as client:
            result = await check_public_ip(client, PRIMARY, ALTERNATIVES, broken, timeout=5.0)
        assert result.is_hard_failure
