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
Exitwatch CLI -- Main entry point.

Usage:
    exitwatch run                   # Run one check cycle
    exitwatch run --json            # Same, report as JSON
    exitwatch export                # Plain-text export of the newest report
    exitwatch history [--limit N]   # Stored reports, newest first
    exitwatch history --clear       # Forget all stored reports
    exitwatch settings [view|set KEY VALUE|reset]
    exitwatch --version

Exit codes for ``run``: 0 PASS, 1 WARNING, 2 FAIL.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from exitwatch import __version__
from exitwatch.config import load_config
from exitwatch.core.logging import get_logger
from exitwatch.export import export_report
from exitwatch.history import HistoryStore
from exitwatch.models import CheckReport, OverallStatus
from exitwatch.service import CheckService
from exitwatch.status import explain_status

logger = logging.getLogger("exitwatch.cli")

EXIT_CODES = {
    OverallStatus.PASS: 0,
    OverallStatus.WARNING: 1,
    OverallStatus.FAIL: 2,
}


# =============================================================================
# Rendering
# =============================================================================


def render_summary(report: CheckReport, console=None) -> None:
    """Print a doctor-style summary of one report."""

    def _print(text: str, style: str = ""):
        if console and hasattr(console, "print"):
            console.print(text, style=style)
        else:
            print(text)

    egress = report.egress_check
    public_ip = report.public_ip_check
    resolution = report.resolution_check

    _print("\n  Exitwatch -- Egress Check\n", "bold cyan")
    _print("  " + "─" * 50)

    rows = []
    if egress.error:
        rows.append(("✗", "Egress Identity", egress.error, "Check the egress endpoint or your tunnel"))
    else:
        icon = "✓" if egress.is_detected else "⚠"
        where = ", ".join(p for p in (egress.city, egress.country) if p)
        label = "exit network detected" if egress.is_detected else "exit network NOT detected"
        rows.append((icon, "Egress Identity", f"{egress.exit_ip} ({where}) -- {label}", ""))

    if public_ip.is_hard_failure:
        rows.append(("✗", "Public IP", public_ip.error, "No external lookup succeeded"))
    elif public_ip.is_soft_success:
        rows.append(("⚠", "Public IP", f"{public_ip.ip} -- {public_ip.error}", ""))
    else:
        rows.append(("✓", "Public IP", public_ip.ip, ""))

    if resolution.is_resolving_correctly:
        rows.append(("✓", "DNS", "Resolving correctly", ""))
    else:
        rows.append(("✗", "DNS", resolution.error or "Not resolving", "Check DNS settings"))

    for icon, name, message, remedy in rows:
        _print(f"\n  {icon} {name}", "bold")
        _print(f"    {message}")
        if remedy:
            _print(f"    -> {remedy}", "yellow")

    reason = explain_status(egress, public_ip, resolution)
    _print("\n  " + "─" * 50)
    _print(
        f"  Status: {report.overall_status.icon} {report.overall_status.display_name}"
        f" -- {reason} ({report.latency:.2f}s)\n",
        f"bold {report.overall_status.color}",
    )


def render_history(reports: list[CheckReport]) -> None:
    if not reports:
        print("  No reports stored")
        return
    for i, report in enumerate(reports, 1):
        print(
            f"  {i:>2}. {report.timestamp.strftime('%Y-%m-%d %H:%M:%S')}  "
            f"{report.overall_status.display_name:<7}  "
            f"exit={report.egress_check.exit_ip or '-'}  "
            f"public={report.public_ip_check.ip or '-'}"
        )


# =============================================================================
# Commands
# =============================================================================


def _open_history(config) -> HistoryStore:
    return HistoryStore(max_entries=config.history_size)


def cmd_run(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    history = None if args.no_history else _open_history(config)
    service = CheckService(config=config, history=history, check_logger=get_logger())

    report = asyncio.run(service.run_checks())

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        render_summary(report)
    return EXIT_CODES[report.overall_status]


def cmd_export(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    report = _open_history(config).latest()
    print(export_report(report))
    return 0 if report else 1


def cmd_history(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    store = _open_history(config)
    if args.clear:
        store.clear()
        get_logger().note("history", "History cleared", path=str(store.path))
        print("  History cleared")
        return 0
    render_history(store.list(limit=args.limit))
    return 0


def cmd_settings(args: argparse.Namespace) -> int:
    from exitwatch.cli.settings_manager import run_settings

    try:
        run_settings(action=args.action, key=args.key, value=args.value, path=args.config)
    except ValueError as e:
        print(f"  [error] {e}", file=sys.stderr)
        return 2
    return 0


# =============================================================================
# Parser
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="exitwatch",
        description="Exitwatch -- check that your traffic leaves through the expected exit network",
    )
    parser.add_argument("--version", action="version", version=f"exitwatch {__version__}")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console logging level (default: WARNING)",
    )
    # Bare "exitwatch" runs a check
    parser.set_defaults(func=cmd_run, config=None, json=False, no_history=False)
    sub = parser.add_subparsers(dest="command")

    def _with_config(p: argparse.ArgumentParser) -> argparse.ArgumentParser:
        p.add_argument(
            "--config",
            default=None,
            help="Path to config.yaml (default: ~/.exitwatch/config.yaml)",
        )
        return p

    run = _with_config(sub.add_parser("run", help="Run one check cycle"))
    run.add_argument("--json", action="store_true", help="Print the report as JSON")
    run.add_argument("--no-history", action="store_true", help="Do not store the report")
    run.set_defaults(func=cmd_run)

    export = _with_config(sub.add_parser("export", help="Export the newest stored report"))
    export.set_defaults(func=cmd_export)

    history = _with_config(sub.add_parser("history", help="List stored reports"))
    history.add_argument("--limit", type=int, default=None, help="Show at most N reports")
    history.add_argument("--clear", action="store_true", help="Delete all stored reports")
    history.set_defaults(func=cmd_history)

    settings = _with_config(sub.add_parser("settings", help="View or change settings"))
    settings.add_argument("action", nargs="?", default="view", choices=["view", "set", "reset"])
    settings.add_argument("key", nargs="?", default=None)
    settings.add_argument("value", nargs="?", default=None)
    settings.set_defaults(func=cmd_settings)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
