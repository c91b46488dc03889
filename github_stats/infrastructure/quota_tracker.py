"""Rate limit tracking fed from GitHub response headers.

Implements the checks described in
https://docs.github.com/en/rest/using-the-rest-api/rate-limits-for-the-rest-api
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Mapping, Optional

from github_stats.domain.errors import QuotaExceededError
from github_stats.domain.events import EventSink, emit, logging_sink
from github_stats.domain.models import QuotaSnapshot


logger = logging.getLogger(__name__)

LOW_QUOTA_THRESHOLD = 100

QUOTA_HEADERS = {
    "limit": "x-ratelimit-limit",
    "remaining": "x-ratelimit-remaining",
    "used": "x-ratelimit-used",
    "reset": "x-ratelimit-reset",
    "resource": "x-ratelimit-resource",
}


def parse_quota_headers(headers: Mapping[str, str]) -> Optional[QuotaSnapshot]:
    """Build a snapshot from rate limit headers.

    Returns None unless all five headers are present, since not every
    response type carries them.
    """
    lowered = {key.lower(): value for key, value in headers.items()}
    values = {field: lowered.get(header) for field, header in QUOTA_HEADERS.items()}
    if any(value in (None, "") for value in values.values()):
        return None

    try:
        return QuotaSnapshot(
            resource=str(values["resource"]),
            limit=int(values["limit"]),
            remaining=int(values["remaining"]),
            used=int(values["used"]),
            reset=int(values["reset"]),
        )
    except ValueError:
        logger.warning(f"Ignoring unparseable rate limit headers: {values}")
        return None


class QuotaTracker:
    """Latest observed quota per resource class.

    One instance is shared per process and handed to every client. A new
    snapshot for a resource replaces the previous one and leaves other
    resources untouched.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        events: Optional[EventSink] = None,
    ):
        """Initialize the tracker.

        Args:
            clock: Returns the current time in epoch seconds
            sleep: Coroutine used when the request gate has to wait
            events: Sink for structured quota events
        """
        self._clock = clock
        self._sleep = sleep
        self._events = events or logging_sink
        self._snapshots: Dict[str, QuotaSnapshot] = {}

    def record_observation(self, headers: Mapping[str, str]) -> Optional[QuotaSnapshot]:
        snapshot = parse_quota_headers(headers)
        if snapshot is None:
            return None
        self.record_snapshot(snapshot)
        return snapshot

    def record_snapshot(self, snapshot: QuotaSnapshot) -> None:
        self._snapshots[snapshot.resource] = snapshot

        reset_at = snapshot.reset_at.isoformat()
        emit(
            self._events, "quota.updated", logging.DEBUG,
            resource=snapshot.resource, remaining=snapshot.remaining,
            limit=snapshot.limit, reset_at=reset_at,
        )
        if snapshot.remaining < LOW_QUOTA_THRESHOLD:
            emit(
                self._events, "quota.low", logging.WARNING,
                resource=snapshot.resource, remaining=snapshot.remaining,
                reset_at=reset_at,
            )

    def snapshot(self, resource: str = "core") -> Optional[QuotaSnapshot]:
        return self._snapshots.get(resource)

    def is_blocked(self, resource: str = "core") -> bool:
        """True while the resource is exhausted and its reset is still ahead.

        Once the reset instant passes the resource counts as open again,
        even before a fresh snapshot arrives.
        """
        snapshot = self._snapshots.get(resource)
        if snapshot is None or snapshot.remaining > 0:
            return False
        return self._clock() < snapshot.reset

    def time_until_reset(self, resource: str = "core") -> float:
        """Seconds until the resource's quota resets, never negative."""
        snapshot = self._snapshots.get(resource)
        if snapshot is None:
            return 0.0
        return max(0.0, snapshot.reset - self._clock())

    async def wait_if_blocked(self, resource: str = "core") -> None:
        """Request gate: sleep through an exhausted quota window.

        Raises:
            QuotaExceededError: When blocked but no wait time can be derived
        """
        if not self.is_blocked(resource):
            return

        wait_time = self.time_until_reset(resource)
        reset_at = datetime.fromtimestamp(self._clock() + wait_time, tz=timezone.utc)
        reason = f"Rate limit exceeded for {resource}. Reset at {reset_at.isoformat()}"
        if wait_time <= 0:
            raise QuotaExceededError(reason)

        emit(
            self._events, "quota.wait", logging.WARNING,
            resource=resource, wait_seconds=round(wait_time), reason=reason,
        )
        await self._sleep(wait_time)
