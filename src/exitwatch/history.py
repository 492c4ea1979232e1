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
Exitwatch -- Encrypted Report History

Keeps the most recent check reports, newest first, in a single encrypted
file. Reports are appended and never edited; once the bound is reached the
oldest one drops off.

Encryption: Fernet (AES-128-CBC + HMAC-SHA256). Key resolution, in order:

  1. Explicit key passed by the caller
  2. OS keyring (Windows Credential Locker / macOS Keychain / SecretService)
  3. PBKDF2-HMAC-SHA256 key derived from a machine-bound seed + install salt

Usage:
    store = HistoryStore()
    store.add(report)
    for report in store.list(limit=5): ...
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import os
import platform
import threading
from pathlib import Path

import keyring
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from exitwatch.config import DEFAULT_HISTORY_SIZE, EXITWATCH_HOME
from exitwatch.models import CheckReport

logger = logging.getLogger("exitwatch.history")

DEFAULT_HISTORY_PATH = EXITWATCH_HOME / "history.enc"
KEYRING_SERVICE = "exitwatch"
KEYRING_ACCOUNT = "history_key"


class HistoryStoreError(Exception):
    """The history file exists but cannot be decrypted or decoded."""


# =============================================================================
# Key resolution
# =============================================================================


def _keyring_key() -> bytes | None:
    """Fetch (or create and store) the history key in the OS keyring."""
    backend_name = str(keyring.get_keyring())
    if "fail" in backend_name.lower() or "null" in backend_name.lower():
        logger.debug("Keyring backend is non-functional: %s", backend_name)
        return None
    try:
        stored = keyring.get_password(KEYRING_SERVICE, KEYRING_ACCOUNT)
        if stored:
            return stored.encode()
        key = Fernet.generate_key()
        keyring.set_password(KEYRING_SERVICE, KEYRING_ACCOUNT, key.decode())
        return key
    except Exception as e:
        logger.debug("Keyring unavailable for history key: %s", e)
        return None


def _machine_seed() -> bytes:
    """Seed bound to this user and machine."""
    parts = [os.environ.get("USER") or os.environ.get("USERNAME") or "exitwatch", platform.node()]
    if platform.system() == "Linux":
        for path in ["/etc/machine-id", "/var/lib/dbus/machine-id"]:
            try:
                parts.append(Path(path).read_text().strip())
                break
            except OSError:
                pass
    return hashlib.sha256("|".join(parts).encode()).digest()


def _derived_key(salt_path: Path) -> bytes:
    """PBKDF2 key from the machine seed and a per-install salt."""
    if salt_path.exists():
        salt = salt_path.read_bytes()
    else:
        salt = os.urandom(32)
        salt_path.parent.mkdir(parents=True, exist_ok=True)
        salt_path.write_bytes(salt)

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=600_000,
    )
    return base64.urlsafe_b64encode(kdf.derive(_machine_seed()))


def resolve_history_key(salt_path: Path, use_keyring: bool = True) -> bytes:
    if use_keyring:
        key = _keyring_key()
        if key:
            return key
    return _derived_key(salt_path)


# =============================================================================
# History store
# =============================================================================


class HistoryStore:
    """Bounded, newest-first, encrypted history of check reports."""

    def __init__(
        self,
        path: Path | str | None = None,
        key: bytes | None = None,
        max_entries: int = DEFAULT_HISTORY_SIZE,
        use_keyring: bool = True,
    ):
        self._path = Path(path) if path else DEFAULT_HISTORY_PATH
        self._salt_path = self._path.with_suffix(".salt")
        self._max_entries = max(1, max_entries)
        self._lock = threading.Lock()
        self._fernet = Fernet(key or resolve_history_key(self._salt_path, use_keyring))
        self._reports: list[CheckReport] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def __len__(self) -> int:
        return len(self._reports)

    # =========================================================================
    # Public API
    # =========================================================================

    def add(self, report: CheckReport) -> None:
        """Store a report as the newest entry."""
        with self._lock:
            reports = [report] + self._reports[: self._max_entries - 1]
            self._save(reports)
            self._reports = reports
        logger.debug("Stored report %s (%d in history)", report.timestamp, len(self._reports))

    def list(self, limit: int | None = None) -> list[CheckReport]:
        """Stored reports, newest first."""
        with self._lock:
            reports = list(self._reports)
        return reports if limit is None else reports[: max(0, limit)]

    def latest(self) -> CheckReport | None:
        with self._lock:
            return self._reports[0] if self._reports else None

    def clear(self) -> None:
        with self._lock:
            self._save([])
            self._reports = []
        logger.info("History cleared")

    # =========================================================================
    # Persistence
    # =========================================================================

    def _decode(self, encrypted: bytes) -> list[CheckReport]:
        try:
            payload = json.loads(self._fernet.decrypt(encrypted).decode())
        except InvalidToken as e:
            raise HistoryStoreError("History file could not be decrypted") from e
        except ValueError as e:
            raise HistoryStoreError(f"History file is not valid JSON: {e}") from e
        if not isinstance(payload, list):
            raise HistoryStoreError("History file does not contain a list")
        try:
            return [CheckReport.from_dict(item) for item in payload]
        except (TypeError, ValueError, AttributeError) as e:
            raise HistoryStoreError(f"History entry is invalid: {e}") from e

    def _load(self) -> list[CheckReport]:
        if not self._path.exists():
            return []
        try:
            reports = self._decode(self._path.read_bytes())
        except (HistoryStoreError, OSError) as e:
            logger.error("Failed to load history from %s: %s", self._path, e)
            return []
        return reports[: self._max_entries]

    def _save(self, reports: list[CheckReport]) -> None:
        """Encrypt ``reports`` and atomically replace the history file."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        plaintext = json.dumps([r.to_dict() for r in reports]).encode()
        token = self._fernet.encrypt(plaintext)

        tmp = self._path.with_name(self._path.name + ".tmp")
        with open(tmp, "wb") as f:
            f.write(token)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, self._path)
