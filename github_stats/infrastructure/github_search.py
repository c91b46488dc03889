"""GitHub GraphQL repository search."""
import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from gql import Client, gql
from gql.transport.aiohttp import AIOHTTPTransport

from github_stats.domain.errors import UpstreamError
from github_stats.domain.github_interface import IRepositorySearch
from github_stats.domain.models import QuotaSnapshot
from github_stats.infrastructure.quota_tracker import QuotaTracker


logger = logging.getLogger(__name__)

DEFAULT_GRAPHQL_URL = "https://api.github.com/graphql"


class GitHubGraphQLSearch(IRepositorySearch):
    """Repository search over the GraphQL API.

    GraphQL requires authentication, so this is only wired in when a token
    is configured. Results are reshaped to match REST search items.
    """

    SEARCH_QUERY = gql("""
        query SearchRepositories($query: String!, $first: Int!) {
            search(query: $query, type: REPOSITORY, first: $first) {
                nodes {
                    ... on Repository {
                        name
                        nameWithOwner
                        owner {
                            login
                        }
                        description
                        url
                        stargazerCount
                        forkCount
                        primaryLanguage {
                            name
                        }
                    }
                }
            }
            rateLimit {
                limit
                remaining
                used
                resetAt
            }
        }
    """)

    def __init__(
        self,
        access_token: str,
        quota: Optional[QuotaTracker] = None,
        url: str = DEFAULT_GRAPHQL_URL,
    ):
        self._access_token = access_token
        self._quota = quota or QuotaTracker()
        self._url = url
        self._client: Optional[Client] = None
        self._session = None
        self._connect_lock = asyncio.Lock()

    def _build_client(self) -> Client:
        headers = {"Authorization": f"Bearer {self._access_token}"}
        transport = AIOHTTPTransport(url=self._url, headers=headers)
        return Client(transport=transport, fetch_schema_from_transport=False)

    async def _init_client(self) -> None:
        """Connect once and share the session (lazy initialization).

        Overlapping searches share one connected session.
        """
        async with self._connect_lock:
            if self._session is not None:
                return
            if self._client is None:
                self._client = self._build_client()
            self._session = await self._client.connect_async(reconnecting=False)

    async def search_repositories(self, query: str, limit: int) -> List[Dict[str, Any]]:
        """Search repositories, sorted by stars descending.

        Args:
            query: GitHub search qualifiers, e.g. ``language:python topic:cli``
            limit: Maximum results (GitHub caps a page at 100)
        """
        await self._quota.wait_if_blocked("graphql")
        search_query = f"{query} sort:stars-desc"

        try:
            await self._init_client()
            result = await self._session.execute(
                self.SEARCH_QUERY,
                variable_values={"query": search_query, "first": min(limit, 100)},
            )
        except Exception as e:
            logger.error(f"Error executing GraphQL search: {e}")
            raise UpstreamError(f"GraphQL search failed: {e}") from e

        self._record_rate_limit(result.get("rateLimit"))
        nodes = result.get("search", {}).get("nodes", [])
        return [self._to_search_item(node) for node in nodes if node]

    def _record_rate_limit(self, rate_limit: Optional[Dict[str, Any]]) -> None:
        if not rate_limit or not rate_limit.get("resetAt"):
            return
        reset_at = datetime.fromisoformat(rate_limit["resetAt"].replace("Z", "+00:00"))
        self._quota.record_snapshot(QuotaSnapshot(
            resource="graphql",
            limit=rate_limit.get("limit", 0),
            remaining=rate_limit.get("remaining", 0),
            used=rate_limit.get("used", 0),
            reset=int(reset_at.timestamp()),
        ))

    @staticmethod
    def _to_search_item(node: Dict[str, Any]) -> Dict[str, Any]:
        """Transform a GraphQL node into the REST search item shape."""
        language = node.get("primaryLanguage") or {}
        return {
            "name": node.get("name"),
            "full_name": node.get("nameWithOwner"),
            "owner": {"login": (node.get("owner") or {}).get("login")},
            "description": node.get("description"),
            "html_url": node.get("url"),
            "stargazers_count": node.get("stargazerCount", 0),
            "forks_count": node.get("forkCount", 0),
            "language": language.get("name"),
        }

    async def close(self) -> None:
        """Close the GraphQL session and transport."""
        if self._client is not None and self._session is not None:
            await self._client.close_async()
        self._session = None
        self._client = None
