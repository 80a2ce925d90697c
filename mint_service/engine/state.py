"""In-memory status state: started_at, last_success_time, invocation_count."""

import logging
import math
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class StatusSnapshot:
    """Consistent read of StatusState for the status endpoint."""

    started_at: datetime
    last_success_time: datetime
    invocation_count: int

    def seconds_since_last_success(self, now: Optional[datetime] = None) -> int:
        now = now or utc_now()
        return math.floor((now - self.last_success_time).total_seconds())


class StatusState:
    """Thread-safe record written by InvocationRoutine, read by the status server.

    invocation_count never decreases; last_success_time never moves backwards.
    """

    def __init__(self, started_at: Optional[datetime] = None):
        self._lock = threading.Lock()
        self._started_at = started_at or utc_now()
        self._last_success_time = self._started_at
        self._invocation_count = 0

    @property
    def started_at(self) -> datetime:
        return self._started_at

    @property
    def last_success_time(self) -> datetime:
        with self._lock:
            return self._last_success_time

    @property
    def invocation_count(self) -> int:
        with self._lock:
            return self._invocation_count

    def record_success(self, now: Optional[datetime] = None) -> int:
        """Advance last_success_time and increment the count. Returns the new count."""
        now = now or utc_now()
        with self._lock:
            if now > self._last_success_time:
                self._last_success_time = now
            self._invocation_count += 1
            return self._invocation_count

    def snapshot(self) -> StatusSnapshot:
        with self._lock:
            return StatusSnapshot(
                started_at=self._started_at,
                last_success_time=self._last_success_time,
                invocation_count=self._invocation_count,
            )
