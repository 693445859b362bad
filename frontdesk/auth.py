# frontdesk/auth.py
"""
Front Desk Visitor Log - Admin Password Gate

Master-password checks for unban and history access, with a sliding-window
lockout on repeated wrong passwords per client address.

Features:
- Constant-time comparison (hmac.compare_digest)
- Thread-safe with RLock
- Only failures are counted; a correct password clears the client's record
- Retry-After calculation for 429 responses
"""

from __future__ import annotations

import hmac
import logging
import threading
import time

from .config import AUTH_LOCKOUT_WINDOW, AUTH_MAX_FAILURES

logger = logging.getLogger(__name__)


class AdminGate:
    """
    Password gate for one admin action.

    Usage:
        gate = AdminGate(MASTER_PASSWORD)

        if gate.is_locked("192.168.1.1"):
            # Return 429 with gate.retry_after("192.168.1.1")
            ...
        elif not gate.verify("192.168.1.1", supplied_password):
            # Return 403
            ...
    """

    def __init__(
        self,
        password: str | None,
        name: str = "admin",
        max_failures: int = AUTH_MAX_FAILURES,
        window_seconds: int = AUTH_LOCKOUT_WINDOW,
    ):
        self._password = password
        self.name = name
        self.max_failures = max_failures
        self.window_seconds = window_seconds
        # client -> failure timestamps
        self._failures: dict[str, list[float]] = {}
        self._lock = threading.RLock()

    @property
    def configured(self) -> bool:
        return bool(self._password)

    def _prune(self, client: str, now: float) -> list[float]:
        """Drop expired failures; a client with none left loses its entry."""
        cutoff = now - self.window_seconds
        recent = [ts for ts in self._failures.get(client, ()) if ts > cutoff]
        if recent:
            self._failures[client] = recent
        else:
            self._failures.pop(client, None)
        return recent

    def is_locked(self, client: str) -> bool:
        """True if the client used up its wrong-password allowance."""
        with self._lock:
            return len(self._prune(client, time.time())) >= self.max_failures

    def retry_after(self, client: str) -> int:
        """Seconds until the oldest failure in the window expires (0 if not locked)."""
        with self._lock:
            now = time.time()
            recent = self._prune(client, now)
            if len(recent) < self.max_failures:
                return 0
            return max(1, int(recent[0] + self.window_seconds - now) + 1)

    def verify(self, client: str, password: str | None) -> bool:
        """
        Check a supplied password and record the outcome.

        An unconfigured gate (no password in .env) rejects everything.
        """
        if not self.configured:
            logger.warning("%s password is not configured; rejecting request from %s", self.name, client)
            return False

        supplied = (password or "").strip()
        ok = hmac.compare_digest(supplied.encode("utf-8"), self._password.encode("utf-8"))

        with self._lock:
            if ok:
                self._failures.pop(client, None)
            else:
                now = time.time()
                recent = self._prune(client, now)
                recent.append(now)
                self._failures[client] = recent
                logger.warning(
                    "Wrong %s password from %s (%d/%d)",
                    self.name, client, len(recent), self.max_failures,
                )
        return ok

    def reset(self, client: str | None = None) -> None:
        """Forget failures for one client, or for everyone."""
        with self._lock:
            if client is None:
                self._failures.clear()
            else:
                self._failures.pop(client, None)
