"""GitHub API interface (port) for fetching repository data.

This is the anti-corruption layer that shields the domain from GitHub API specifics.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ApiResponse:
    """One decoded response: status, lower-cased headers and JSON body."""
    status: int
    data: Any = None
    headers: Dict[str, str] = field(default_factory=dict)


class IGitHubClient(ABC):
    """Abstract interface for GitHub API operations."""

    @property
    @abstractmethod
    def has_token(self) -> bool:
        """Whether requests are authenticated."""
        pass

    @abstractmethod
    async def request(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        accept: Optional[str] = None,
    ) -> ApiResponse:
        """Issue a GET request against the REST API.

        Args:
            path: API path, e.g. ``/repos/{owner}/{repo}/releases``
            params: Query parameters
            accept: Media type to negotiate instead of the default

        Raises:
            NotFoundError: On 404
            QuotaExceededError: When rate limited
            FeatureUnavailableError: When ``accept`` is rejected
            UpstreamError: On any other failure
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections."""
        pass


class IRepositorySearch(ABC):
    """Abstract interface for repository search."""

    @abstractmethod
    async def search_repositories(self, query: str, limit: int) -> List[Dict[str, Any]]:
        """Search repositories, most starred first."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections."""
        pass
