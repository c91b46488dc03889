"""GitHub REST API client implementation with rate limiting and retry logic."""
import asyncio
import json
import logging
from typing import Any, Dict, Mapping, Optional

import aiohttp
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
)

from github_stats.domain.errors import (
    FeatureUnavailableError,
    NotFoundError,
    QuotaExceededError,
    UpstreamError,
)
from github_stats.domain.github_interface import ApiResponse, IGitHubClient
from github_stats.infrastructure.quota_tracker import QuotaTracker


logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_ACCEPT = "application/vnd.github+json"
USER_AGENT = "github-stats/1.0.0"

# Statuses GitHub uses when it refuses a custom media type
MEDIA_TYPE_REJECTED = (406, 415, 422)


def _is_waitable_quota_error(error: BaseException) -> bool:
    return isinstance(error, QuotaExceededError) and error.wait_seconds() is not None


def _wait_for_quota(retry_state) -> float:
    """Wait exactly as long as GitHub told us to."""
    return retry_state.outcome.exception().wait_seconds() or 0.0


def _optional_int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value not in (None, "") else None
    except ValueError:
        return None


class GitHubRestClient(IGitHubClient):
    """GitHub REST API client with rate limiting and retry mechanisms.

    Implements the IGitHubClient port, providing an anti-corruption layer
    between the domain and GitHub's API. Every response is reported to the
    shared QuotaTracker, and every request first passes its gate.
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        quota: Optional[QuotaTracker] = None,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 30,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize GitHub client.

        Args:
            access_token: GitHub personal access token; unauthenticated when None
            quota: Shared quota tracker
            base_url: REST API root
            timeout: Total request timeout in seconds
            session: Pre-built session (tests); created lazily otherwise
        """
        self._access_token = access_token
        self._quota = quota or QuotaTracker()
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session

    @property
    def has_token(self) -> bool:
        return bool(self._access_token)

    @property
    def quota(self) -> QuotaTracker:
        return self._quota

    async def _init_client(self) -> None:
        """Initialize the HTTP session (lazy initialization)."""
        if self._session is None:
            headers = {"User-Agent": USER_AGENT}
            if self._access_token:
                headers["Authorization"] = f"Bearer {self._access_token}"
            self._session = aiohttp.ClientSession(
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            )

    @retry(
        retry=retry_if_exception(_is_waitable_quota_error),
        stop=stop_after_attempt(3),
        wait=_wait_for_quota,
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def request(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        accept: Optional[str] = None,
    ) -> ApiResponse:
        """Execute a GET request with retry logic.

        Quota errors are retried only when GitHub says how long to wait.

        Raises:
            NotFoundError: On 404
            QuotaExceededError: When rate limit is hit
            FeatureUnavailableError: When a custom ``accept`` is refused
            UpstreamError: On any other failure
        """
        await self._init_client()
        resource = "search" if path.startswith("/search/") else "core"
        await self._quota.wait_if_blocked(resource)

        url = f"{self._base_url}{path}"
        try:
            async with self._session.get(
                url,
                params=params,
                headers={"Accept": accept or DEFAULT_ACCEPT},
            ) as response:
                status = response.status
                headers = {key.lower(): value for key, value in response.headers.items()}
                body = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"GitHub API request failed for {path}: {e}")
            raise UpstreamError(f"Request to {path} failed: {e}") from e

        self._quota.record_observation(headers)

        if status >= 400:
            self._raise_for_status(path, status, headers, body, accept)

        data = json.loads(body) if body.strip() else None
        return ApiResponse(status=status, data=data, headers=headers)

    def _raise_for_status(
        self,
        path: str,
        status: int,
        headers: Mapping[str, str],
        body: str,
        accept: Optional[str],
    ) -> None:
        try:
            message = json.loads(body).get("message", body)
        except (ValueError, AttributeError):
            message = body[:200]

        if status == 404:
            raise NotFoundError(f"Not found: {path}")

        if status in (403, 429):
            retry_after = _optional_int(headers.get("retry-after"))
            exhausted = headers.get("x-ratelimit-remaining") == "0"
            if exhausted or retry_after is not None or "rate limit" in str(message).lower():
                logger.warning(f"GitHub rate limit exceeded on {path}: {message}")
                raise QuotaExceededError(
                    f"GitHub API rate limit exceeded: {message}",
                    status=status,
                    retry_after=retry_after,
                    reset_time=_optional_int(headers.get("x-ratelimit-reset")),
                )

        if accept and status in MEDIA_TYPE_REJECTED:
            raise FeatureUnavailableError(
                f"Media type {accept} not available for {path}: {message}", status=status
            )

        raise UpstreamError(f"GitHub API error {status}: {message}", status=status)

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None
