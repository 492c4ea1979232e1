# Exitwatch
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
"""Tests for the plain-text report export."""

from dataclasses import replace
from datetime import datetime, timezone

from conftest import LOOPBACK, WIFI

from exitwatch.export import NO_RESULTS, export_report
from exitwatch.models import OverallStatus, PublicIPCheckResult
from exitwatch.probes.public_ip import LOCAL_FALLBACK_ERROR


class TestExportReport:
    def test_no_report(self):
        assert export_report(None) == NO_RESULTS == "No results available"

    def test_header(self, sample_report):
        lines = export_report(sample_report).split("\n")
        assert lines[0] == "OPSEC Check Report"
        assert lines[1] == "Generated: 2025-09-26 12:30:00 UTC"
        assert lines[2] == "Overall Status: PASS"
        assert lines[3] == "Total Latency: 3.00s"

    def test_sections_in_order(self, sample_report):
        text = export_report(sample_report)
        sections = [
            "=== EGRESS IDENTITY CHECK ===",
            "=== PUBLIC IP CHECK ===",
            "=== DEVICE METADATA ===",
            "=== LOCAL NETWORK ===",
            "=== DNS CHECK ===",
        ]
        positions = [text.index(s) for s in sections]
        assert positions == sorted(positions)

    def test_probe_fields(self, sample_report):
        text = export_report(sample_report)
        assert "Detected: Yes" in text
        assert "Exit IP: 1.2.3.4" in text
        assert "Country: Sweden" in text
        assert "City: Stockholm" in text
        assert "IP: 1.2.3.4" in text
        assert "Resolving Correctly: Yes" in text
        assert "Latency: 1.00s" in text
        assert "Error: None" in text

    def test_device_fields(self, sample_report):
        text = export_report(sample_report)
        assert "Device Name: Test Device" in text
        assert "Model: TestModel" in text
        assert "OS Version: Linux 6.8" in text
        assert "Device ID: test-uuid" in text

    def test_interfaces(self, sample_report):
        report = replace(sample_report, local_network=(WIFI, LOOPBACK))
        lines = export_report(report).split("\n")
        assert "en0:" in lines
        assert "  IPv4: 192.168.1.100" in lines
        assert "lo0: (Loopback)" in lines
        assert "  IPv6: ::1" in lines

    def test_local_network_block(self, sample_report):
        report = replace(sample_report, local_network=(WIFI, LOOPBACK))
        text = export_report(report)
        block = text.split("=== LOCAL NETWORK ===\n", 1)[1].split("\n\n=== DNS CHECK", 1)[0]
        assert block == "\n".join(
            [
                "en0:",
                "  IPv4: 192.168.1.100",
                "lo0: (Loopback)",
                "  IPv4: 127.0.0.1",
                "  IPv6: ::1",
            ]
        )

    def test_errors_rendered(self, sample_report):
        report = replace(
            sample_report,
            overall_status=OverallStatus.WARNING,
            public_ip_check=PublicIPCheckResult(ip="185.65.134.7", error=LOCAL_FALLBACK_ERROR),
        )
        text = export_report(report)
        assert "Overall Status: WARNING" in text
        assert f"Error: {LOCAL_FALLBACK_ERROR}" in text

    def test_deterministic(self, sample_report):
        assert export_report(sample_report) == export_report(sample_report)

    def test_timestamp_normalised_to_utc(self, sample_report):
        from datetime import timedelta

        local = datetime(2025, 9, 26, 14, 30, 0, tzinfo=timezone(timedelta(hours=2)))
        text = export_report(replace(sample_report, timestamp=local))
        assert "Generated: 2025-09-26 12:30:00 UTC" in text
