"""Rate-limit-aware sizing of influencer analysis."""
import logging
from typing import Optional

from github_stats.domain.errors import GitHubStatsError
from github_stats.domain.events import EventSink, emit, logging_sink
from github_stats.domain.github_interface import IGitHubClient
from github_stats.domain.models import ScopePlan


logger = logging.getLogger(__name__)

MINIMUM_ANALYSIS_LIMIT = 10


def plan_for_quota(remaining: int, has_token: bool) -> ScopePlan:
    """Pick an analysis scope for the remaining core quota.

    Each profile costs one request, and walking the stargazers costs
    roughly one request per hundred, so the limits keep a reserve back.
    """
    if not has_token:
        limit, exhaustive = min(25, remaining - 10), False
    elif remaining > 2000:
        limit, exhaustive = min(remaining - 100, 50000), True
    elif remaining > 500:
        limit, exhaustive = min(remaining - 100, 10000), True
    elif remaining > 100:
        limit, exhaustive = min(100, remaining - 20), False
    else:
        limit, exhaustive = max(10, remaining - 5), False

    return ScopePlan(
        analysis_limit=max(MINIMUM_ANALYSIS_LIMIT, limit),
        use_exhaustive_fetch=exhaustive,
    )


def fallback_plan(has_token: bool) -> ScopePlan:
    """Safe scope when the quota cannot be read."""
    if has_token:
        return ScopePlan(analysis_limit=5000, use_exhaustive_fetch=True)
    return ScopePlan(analysis_limit=50, use_exhaustive_fetch=False)


class AdaptiveScopePlanner:
    """Decides how many stargazers to profile from the live core quota."""

    def __init__(self, client: IGitHubClient, events: Optional[EventSink] = None):
        self._client = client
        self._events = events or logging_sink

    async def plan_scope(self) -> ScopePlan:
        """Plan from a fresh ``/rate_limit`` lookup; never raises."""
        has_token = self._client.has_token
        try:
            response = await self._client.request("/rate_limit")
            core = response.data["resources"]["core"]
            remaining = int(core["remaining"])
        except (GitHubStatsError, KeyError, TypeError, ValueError) as e:
            plan = fallback_plan(has_token)
            emit(
                self._events, "scope.fallback", logging.WARNING,
                error=str(e), analysis_limit=plan.analysis_limit,
            )
            return plan

        plan = plan_for_quota(remaining, has_token)
        emit(
            self._events, "scope.planned", logging.INFO,
            remaining=remaining, limit=core.get("limit"), has_token=has_token,
            analysis_limit=plan.analysis_limit, exhaustive=plan.use_exhaustive_fetch,
        )
        return plan
