"""Login brute-force protection stored in the CRM database."""

from __future__ import annotations

import time
from typing import Callable

from lexdesk.api.errors import ApiError, ApiErrorCode
from lexdesk.core.database import Database

_SELECT_ATTEMPTS = """
    SELECT failed_attempts, first_failed_at, locked_until
    FROM auth_login_attempts
    WHERE email = ? AND client_ip = ?
"""
_DELETE_ATTEMPTS = "DELETE FROM auth_login_attempts WHERE email = ? AND client_ip = ?"


class LoginRateLimiter:
    """Counts failed logins per (email, client ip) and locks after a threshold."""

    def __init__(
        self,
        *,
        database: Database,
        max_attempts: int,
        window_seconds: int,
        lock_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._database = database
        self._max_attempts = max(1, int(max_attempts))
        self._window_seconds = max(1, int(window_seconds))
        self._lock_seconds = max(1, int(lock_seconds))
        self._clock = clock

    @staticmethod
    def _key(email: str, client_ip: str) -> tuple[str, str]:
        return email.strip().lower(), client_ip.strip() or "unknown"

    def assert_allowed(self, *, email: str, client_ip: str) -> None:
        """Raise 429 while the principal is locked out."""
        now = int(self._clock())
        key = self._key(email, client_ip)
        with self._database.transaction() as connection:
            row = connection.execute(_SELECT_ATTEMPTS, key).fetchone()
            if row is None:
                return

            locked_until = int(row["locked_until"] or 0)
            if locked_until > now:
                raise ApiError(
                    status_code=429,
                    error_code=ApiErrorCode.AUTH_RATE_LIMITED,
                    message=(
                        "Too many login attempts. "
                        f"Retry after {locked_until - now} seconds."
                    ),
                )

            first_failed_at = int(row["first_failed_at"] or 0)
            if first_failed_at and (now - first_failed_at) > self._window_seconds:
                connection.execute(_DELETE_ATTEMPTS, key)

    def record_success(self, *, email: str, client_ip: str) -> None:
        with self._database.transaction() as connection:
            connection.execute(_DELETE_ATTEMPTS, self._key(email, client_ip))

    def record_failure(self, *, email: str, client_ip: str) -> None:
        """Count a failed login and start a lock once the threshold is reached."""
        now = int(self._clock())
        key = self._key(email, client_ip)
        with self._database.transaction() as connection:
            row = connection.execute(_SELECT_ATTEMPTS, key).fetchone()
            previous_first = int(row["first_failed_at"] or 0) if row else 0
            if row is None or (
                previous_first and (now - previous_first) > self._window_seconds
            ):
                failed_attempts = 1
                first_failed_at = now
            else:
                failed_attempts = int(row["failed_attempts"] or 0) + 1
                first_failed_at = previous_first or now

            locked_until = (
                now + self._lock_seconds if failed_attempts >= self._max_attempts else 0
            )
            connection.execute(
                """
                INSERT INTO auth_login_attempts(
                  email, client_ip, failed_attempts, first_failed_at, last_failed_at, locked_until
                ) VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(email, client_ip) DO UPDATE SET
                  failed_attempts = excluded.failed_attempts,
                  first_failed_at = excluded.first_failed_at,
                  last_failed_at = excluded.last_failed_at,
                  locked_until = excluded.locked_until
                """,
                (*key, failed_attempts, first_failed_at, now, locked_until),
            )
