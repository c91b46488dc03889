"""Stats service orchestrating GitHub fetches and analytics."""
import asyncio
import functools
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from github_stats.application.polling import poll_until_valid
from github_stats.application.scope_planner import AdaptiveScopePlanner
from github_stats.domain.errors import (
    GitHubStatsError,
    MalformedInputError,
    NotFoundError,
    PollTimeoutError,
    QuotaExceededError,
    UpstreamError,
)
from github_stats.domain.github_interface import IGitHubClient, IRepositorySearch
from github_stats.domain.influence import analyze_influencers, build_influencer_profile
from github_stats.domain.models import (
    DownloadStats,
    InfluencerAnalytics,
    InfluencerProfile,
    ReleaseAnalytics,
    RepositoryRef,
    StarHistoryAnalytics,
    Stargazer,
)
from github_stats.domain.release_metrics import calculate_download_stats, calculate_release_metrics
from github_stats.domain.repository_metrics import (
    analyze_commit_activity,
    calculate_language_breakdown,
)
from github_stats.domain.star_history import calculate_star_history, simple_star_history
from github_stats.infrastructure import resources
from github_stats.infrastructure.pagination import PaginatedFetcher
from github_stats.infrastructure.profile_enricher import BatchProfileEnricher


logger = logging.getLogger(__name__)

STAR_HISTORY_SAMPLE = 1000


def with_error_context(message: str):
    """Prefix upstream failures with the operation that hit them.

    Malformed input and quota errors pass through untouched so their
    details (and retry hints) reach the caller.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except (MalformedInputError, QuotaExceededError):
                raise
            except GitHubStatsError as e:
                raise UpstreamError(f"{message}: {e}", status=getattr(e, "status", None)) from e
        return wrapper
    return decorator


async def gather_or_cancel(*aws: Awaitable[Any]) -> List[Any]:
    """Run awaitables concurrently; on the first failure cancel the rest.

    The remaining tasks are awaited after cancellation so none outlives
    the call, e.g. when the caller closes the HTTP session next.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class GitHubStatsService:
    """Application service for repository statistics.

    Orchestrates the interaction between the GitHub API adapters and the
    pure analytics functions. One instance serves every tool invocation;
    the only state shared between calls is the client's quota tracker.
    """

    def __init__(
        self,
        client: IGitHubClient,
        fetcher: Optional[PaginatedFetcher] = None,
        planner: Optional[AdaptiveScopePlanner] = None,
        search: Optional[IRepositorySearch] = None,
        batch_size: int = 10,
        delay_between_batches: float = 1.0,
        enricher_factory: Optional[Callable[..., BatchProfileEnricher]] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize stats service.

        Args:
            client: GitHub REST API client implementation
            fetcher: Paginated fetcher over ``client``
            planner: Influencer analysis scope planner
            search: GraphQL search; REST search is used when None
            batch_size: Profiles fetched concurrently per batch
            delay_between_batches: Seconds between profile batches
            enricher_factory: Builds the profile enricher (tests)
            clock: Returns the current time
            sleep: Coroutine used between commit activity polls
        """
        self._client = client
        self._fetcher = fetcher or PaginatedFetcher(client)
        self._planner = planner or AdaptiveScopePlanner(client)
        self._search = search
        self._batch_size = batch_size
        self._delay = delay_between_batches
        self._enricher_factory = enricher_factory or BatchProfileEnricher
        self._clock = clock
        self._sleep = sleep

    # Repository operations

    @with_error_context("Failed to fetch repository")
    async def get_repository(self, identifier: str) -> Dict[str, Any]:
        repo = RepositoryRef.parse(identifier)
        response = await self._client.request(repo.api_path)
        return response.data

    @with_error_context("Failed to fetch languages")
    async def get_languages(self, identifier: str) -> Dict[str, int]:
        repo = RepositoryRef.parse(identifier)
        response = await self._client.request(f"{repo.api_path}/languages")
        return response.data or {}

    async def get_language_breakdown(self, identifier: str) -> List[Dict[str, Any]]:
        return calculate_language_breakdown(await self.get_languages(identifier))

    @with_error_context("Failed to fetch contributors")
    async def get_contributors(self, identifier: str, limit: int = 30) -> List[Dict[str, Any]]:
        repo = RepositoryRef.parse(identifier)
        return await self._fetcher.fetch_all(
            resources.contributors(repo), page_size=min(100, limit), hard_cap=limit
        )

    @with_error_context("Failed to fetch commit activity")
    async def get_commit_activity(self, identifier: str) -> List[Dict[str, Any]]:
        """Weekly commit totals for the last year.

        GitHub answers 202 with no body while it computes these stats, so
        the call is polled a few times before giving up with an empty list.
        """
        repo = RepositoryRef.parse(identifier)
        path = f"{repo.api_path}/stats/commit_activity"

        try:
            response = await poll_until_valid(
                lambda: self._client.request(path),
                lambda r: r.status != 202,
                max_attempts=3,
                delay=1.0,
                sleep=self._sleep,
            )
        except PollTimeoutError:
            logger.warning(f"Commit activity for {repo.full_name} is still being computed")
            return []

        return response.data if isinstance(response.data, list) else []

    async def get_commit_activity_summary(self, identifier: str) -> Dict[str, Any]:
        return analyze_commit_activity(await self.get_commit_activity(identifier))

    @with_error_context("Failed to fetch issues")
    async def get_open_issues(self, identifier: str, limit: int = 30) -> List[Dict[str, Any]]:
        repo = RepositoryRef.parse(identifier)
        return await self._fetcher.fetch_all(
            resources.open_issues(repo), page_size=min(100, limit), hard_cap=limit
        )

    @with_error_context("Failed to fetch pull requests")
    async def get_open_pull_requests(self, identifier: str, limit: int = 30) -> List[Dict[str, Any]]:
        repo = RepositoryRef.parse(identifier)
        return await self._fetcher.fetch_all(
            resources.open_pull_requests(repo), page_size=min(100, limit), hard_cap=limit
        )

    @with_error_context("Failed to search repositories")
    async def search_repositories(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        if not query or not query.strip():
            raise MalformedInputError("Search query must not be empty")

        if self._search is not None:
            return await self._search.search_repositories(query, limit)

        response = await self._client.request(
            "/search/repositories",
            params={"q": query, "sort": "stars", "order": "desc", "per_page": min(limit, 100)},
        )
        return (response.data or {}).get("items", [])

    @with_error_context("Failed to fetch traffic referrers")
    async def get_traffic_referrers(self, identifier: str) -> List[Dict[str, Any]]:
        """Top referrers; empty without push access or for unknown repos."""
        repo = RepositoryRef.parse(identifier)
        try:
            response = await self._client.request(f"{repo.api_path}/traffic/popular/referrers")
        except QuotaExceededError:
            raise
        except UpstreamError as e:
            if e.status == 403:
                logger.warning(
                    f"Insufficient permissions to access traffic data for {repo.full_name}. "
                    f"Repository owner/admin access required."
                )
                return []
            if e.status == 404:
                logger.warning(f"Repository {repo.full_name} not found or not accessible")
                return []
            raise
        return response.data or []

    # Release operations

    @with_error_context("Failed to fetch releases")
    async def get_releases(self, identifier: str, limit: int = 10) -> List[Dict[str, Any]]:
        repo = RepositoryRef.parse(identifier)
        return await self._fetcher.fetch_all(
            resources.releases(repo), page_size=min(100, limit), hard_cap=limit
        )

    @with_error_context("Failed to fetch all releases")
    async def get_all_releases(self, identifier: str) -> List[Dict[str, Any]]:
        repo = RepositoryRef.parse(identifier)
        return await self._fetcher.fetch_all(resources.releases(repo))

    @with_error_context("Failed to fetch latest release")
    async def get_latest_release(self, identifier: str) -> Optional[Dict[str, Any]]:
        repo = RepositoryRef.parse(identifier)
        try:
            response = await self._client.request(f"{repo.api_path}/releases/latest")
        except NotFoundError:
            return None
        return response.data

    async def get_release_analytics(self, identifier: str) -> ReleaseAnalytics:
        return calculate_release_metrics(await self.get_all_releases(identifier))

    async def get_download_stats(self, identifier: str) -> DownloadStats:
        return calculate_download_stats(await self.get_all_releases(identifier))

    # Star operations

    @with_error_context("Failed to fetch stargazers")
    async def get_stargazers(self, identifier: str, limit: int = 100) -> List[Stargazer]:
        repo = RepositoryRef.parse(identifier)
        logger.info(f"Fetching up to {limit} stargazers for {repo.full_name}")
        return await self._fetcher.fetch_all(
            resources.stargazers(repo), page_size=min(100, limit), hard_cap=limit
        )

    @with_error_context("Failed to fetch all stargazers")
    async def get_all_stargazers(self, identifier: str) -> List[Stargazer]:
        repo = RepositoryRef.parse(identifier)
        logger.info(f"Fetching ALL stargazers for {repo.full_name}")
        stargazers = await self._fetcher.fetch_all(resources.stargazers(repo))
        logger.info(f"Finished fetching stargazers. Total: {len(stargazers)}")
        return stargazers

    async def get_star_history(self, identifier: str) -> StarHistoryAnalytics:
        repository, stargazers = await gather_or_cancel(
            self.get_repository(identifier),
            self.get_stargazers(identifier, STAR_HISTORY_SAMPLE),
        )
        return calculate_star_history(repository, stargazers, now=self._clock())

    async def get_complete_star_history(self, identifier: str) -> StarHistoryAnalytics:
        repository, stargazers = await gather_or_cancel(
            self.get_repository(identifier),
            self.get_all_stargazers(identifier),
        )
        logger.info(f"Analyzing {len(stargazers)} total stargazers for complete history")
        return calculate_star_history(repository, stargazers, now=self._clock())

    async def get_simple_star_history(self, identifier: str) -> Dict[str, Any]:
        return simple_star_history(await self.get_repository(identifier), now=self._clock())

    async def _fetch_profile(self, stargazer: Stargazer) -> InfluencerProfile:
        response = await self._client.request(f"/users/{stargazer.login}")
        return build_influencer_profile(response.data, stargazer, now=self._clock())

    async def get_influencer_profiles(self, stargazers: List[Stargazer]) -> List[InfluencerProfile]:
        enricher = self._enricher_factory(
            self._fetch_profile,
            batch_size=self._batch_size,
            delay_between_batches=self._delay,
        )
        return await enricher.enrich(stargazers)

    async def get_influencer_analytics(
        self, identifier: str, return_limit: int = 100
    ) -> InfluencerAnalytics:
        """Profile the repository's stargazers and rank them by influence.

        How many stargazers get profiled depends on the remaining quota; in
        exhaustive mode the most recent ones are preferred.
        """
        repo = RepositoryRef.parse(identifier)
        plan = await self._planner.plan_scope()
        logger.info(
            f"Analyzing influencer stargazers for {repo.full_name}: "
            f"up to {plan.analysis_limit} profiles (token: {'yes' if self._client.has_token else 'no'})"
        )

        if plan.use_exhaustive_fetch:
            stargazers = await self.get_all_stargazers(identifier)
            stargazers = stargazers[-plan.analysis_limit:]
        else:
            stargazers = await self.get_stargazers(identifier, plan.analysis_limit)

        profiles = await self.get_influencer_profiles(stargazers)
        logger.info(f"Successfully analyzed {len(profiles)} influencer profiles")

        analytics = analyze_influencers(profiles)
        return replace(analytics, top_influencers=analytics.top_influencers[:return_limit])

    # Comprehensive operations

    async def get_comprehensive_stats(self, identifier: str) -> Dict[str, Any]:
        RepositoryRef.parse(identifier)
        (
            repository,
            languages,
            contributors,
            releases,
            commit_activity,
            open_issues,
            open_pull_requests,
            release_analytics,
            download_stats,
            star_history,
        ) = await gather_or_cancel(
            self.get_repository(identifier),
            self.get_languages(identifier),
            self.get_contributors(identifier, 30),
            self.get_releases(identifier, 10),
            self.get_commit_activity(identifier),
            self.get_open_issues(identifier, 30),
            self.get_open_pull_requests(identifier, 30),
            self.get_release_analytics(identifier),
            self.get_download_stats(identifier),
            self.get_star_history(identifier),
        )
        return {
            "repository": repository,
            "languages": languages,
            "contributors": contributors,
            "releases": releases,
            "commit_activity": commit_activity,
            "open_issues": open_issues,
            "open_pull_requests": open_pull_requests,
            "release_analytics": release_analytics,
            "download_stats": download_stats,
            "star_history": star_history,
        }

    async def close(self) -> None:
        """Close connections."""
        await self._client.close()
        if self._search is not None:
            await self._search.close()
