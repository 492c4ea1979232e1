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
Exitwatch -- Live Check Log

Each probe outcome and each finished cycle is appended to a rotating file,
so the outcome of past runs can be read back with ``tail``.

Files:
    ~/.exitwatch/logs/exitwatch.log      current
    ~/.exitwatch/logs/exitwatch.log.N    rotated (up to 5, 10 MB each)

Line layout:
    2026-02-09T17:30:45.123Z | PROBE | egress       | Probe complete | success=True latency_ms=312
    2026-02-09T17:30:46.500Z | CYCLE | service      | Cycle complete | status="warning" cycle=3

Usage:
    from exitwatch.core.logging import get_logger
    log = get_logger()
    log.probe("egress", success=True, latency_ms=312, exit_ip="1.2.3.4")
    log.cycle("pass", latency_ms=640, reason="exit network detected")
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from exitwatch.config import EXITWATCH_HOME

LOG_DIR = EXITWATCH_HOME / "logs"
LOG_FILE = LOG_DIR / "exitwatch.log"
ROTATE_BYTES = 10 * 1024 * 1024
ROTATE_KEEP = 5


def _render_field(key: str, value: Any) -> str:
    if isinstance(value, str):
        return f'{key}="{value}"'
    if isinstance(value, float):
        return f"{key}={value:.3f}"
    return f"{key}={value}"


class CheckLogFormatter(logging.Formatter):
    """``TIMESTAMP | TAG | COMPONENT | MESSAGE | key=value ...``

    ``tag``, ``component`` and ``fields`` come from the record's ``extra``;
    plain records fall back to the level name and "system".
    """

    TAG_WIDTH = 5
    COMPONENT_WIDTH = 12

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        when = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return when.strftime("%Y-%m-%dT%H:%M:%S.") + f"{int(record.msecs):03d}Z"

    def format(self, record: logging.LogRecord) -> str:
        tag = getattr(record, "tag", record.levelname)
        component = getattr(record, "component", "system")
        line = " | ".join(
            [
                self.formatTime(record),
                f"{tag:<{self.TAG_WIDTH}}",
                f"{component:<{self.COMPONENT_WIDTH}}",
                record.getMessage(),
            ]
        )
        fields = getattr(record, "fields", None)
        if fields:
            line += " | " + " ".join(_render_field(k, v) for k, v in fields.items())
        return line


class CheckLogger:
    """Writes probe and cycle outcomes to ``log_file``.

    WARNING and above (failed probes, FAIL cycles) are mirrored to stderr
    unless ``stderr`` is False.
    """

    def __init__(self, log_file: Path | str | None = None, stderr: bool = True):
        self._log_file = Path(log_file) if log_file else LOG_FILE
        self._log_file.parent.mkdir(parents=True, exist_ok=True)
        self._session = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        self._cycles = 0

        # One logger per instance so tests and parallel services don't share files
        self._logger = logging.getLogger(f"exitwatch.live.{id(self)}")
        self._logger.setLevel(logging.DEBUG)
        self._logger.propagate = False
        self._logger.handlers.clear()

        formatter = CheckLogFormatter()
        rotating = logging.handlers.RotatingFileHandler(
            self._log_file, maxBytes=ROTATE_BYTES, backupCount=ROTATE_KEEP, encoding="utf-8"
        )
        rotating.setFormatter(formatter)
        self._logger.addHandler(rotating)

        if stderr:
            console = logging.StreamHandler(sys.stderr)
            console.setLevel(logging.WARNING)
            console.setFormatter(formatter)
            self._logger.addHandler(console)

    def _emit(self, level: int, tag: str, component: str, message: str, fields: dict) -> None:
        fields["session"] = self._session
        self._logger.log(
            level, message, extra={"tag": tag, "component": component, "fields": fields}
        )

    def note(self, component: str, message: str, **fields: Any) -> None:
        """Free-form informational entry."""
        self._emit(logging.INFO, "INFO", component, message, fields)

    def probe(self, name: str, success: bool = True, latency_ms: int = 0, **fields: Any) -> None:
        fields.update(success=success, latency_ms=latency_ms)
        level = logging.INFO if success else logging.WARNING
        self._emit(level, "PROBE", name, "Probe complete", fields)

    def cycle(self, status: str, latency_ms: int = 0, **fields: Any) -> None:
        self._cycles += 1
        fields.update(status=status, latency_ms=latency_ms, cycle=self._cycles)
        level = logging.WARNING if status == "fail" else logging.INFO
        self._emit(level, "CYCLE", "service", "Cycle complete", fields)

    def settings_change(self, changed_keys: list[str] | None = None, **fields: Any) -> None:
        fields["changed"] = ",".join(changed_keys or [])
        self._emit(logging.INFO, "CFG", "settings", "Settings updated", fields)

    @property
    def log_file(self) -> str:
        return str(self._log_file)

    def stats(self) -> dict[str, Any]:
        """Size of the log folder and counters for this session."""
        try:
            files = [p for p in self._log_file.parent.iterdir() if p.is_file()]
            size = sum(p.stat().st_size for p in files)
        except OSError:
            return {"log_file": self.log_file, "error": "could not stat"}
        return {
            "log_file": self.log_file,
            "file_count": len(files),
            "size_mb": round(size / (1024 * 1024), 2),
            "session": self._session,
            "cycles_logged": self._cycles,
        }


_instance: CheckLogger | None = None


def get_logger() -> CheckLogger:
    """Process-wide CheckLogger, created on first use."""
    global _instance
    if _instance is None:
        _instance = CheckLogger()
    return _instance
