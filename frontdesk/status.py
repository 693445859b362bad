# frontdesk/status.py
"""
Front Desk Visitor Log - System Status Tracker

Holds the health fields shown by the front-desk status widget. One
instance is created per application (see api.main.create_app) and handed
to whoever needs to report into it.
"""

from __future__ import annotations

import threading
from typing import Any

STATUS_FIELDS = ("db_ready", "last_backup", "last_cleanup", "last_error")


class StatusTracker:
    """
    Thread-safe holder for startup/maintenance status.

    Fields:
        db_ready: True once the integrity check passed and the connection is open
        last_backup: ISO timestamp of the latest successful daily backup, or "N/A"
        last_cleanup: ISO timestamp of the latest successful cleanup run, or "N/A"
        last_error: Latest severe error message, None if OK
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._status: dict[str, Any] = {
            "db_ready": False,
            "last_backup": "N/A",
            "last_cleanup": "N/A",
            "last_error": None,
        }

    def update(self, key: str, value: Any) -> None:
        if key not in STATUS_FIELDS:
            raise KeyError(f"Unknown status field: {key}")
        with self._lock:
            self._status[key] = value

    def get(self, key: str) -> Any:
        with self._lock:
            return self._status[key]

    def snapshot(self) -> dict[str, Any]:
        """Copy of all fields (safe to serialize or mutate)."""
        with self._lock:
            return dict(self._status)
