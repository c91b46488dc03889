"""Domain models representing core business entities."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from github_stats.domain.errors import MalformedInputError


@dataclass(frozen=True)
class RepositoryRef:
    """Immutable reference to a GitHub repository.

    Using frozen dataclass for immutability following clean architecture principles.
    """
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        """Returns the full repository name (owner/name)."""
        return f"{self.owner}/{self.name}"

    @property
    def api_path(self) -> str:
        return f"/repos/{self.owner}/{self.name}"

    @classmethod
    def parse(cls, identifier: str) -> 'RepositoryRef':
        """Parse ``owner/repo`` or a full GitHub URL.

        Raises:
            MalformedInputError: When the identifier has neither shape
        """
        if identifier is not None and not isinstance(identifier, str):
            raise MalformedInputError(
                f"Repository identifier must be a string, got {type(identifier).__name__}"
            )
        identifier = (identifier or "").strip()
        if identifier.startswith("http"):
            parts = [part for part in urlparse(identifier).path.split("/") if part]
            if len(parts) >= 2:
                return cls(owner=parts[0], name=parts[1])
            raise MalformedInputError("Invalid GitHub URL format")

        parts = identifier.split("/")
        if len(parts) == 2 and all(parts):
            return cls(owner=parts[0], name=parts[1])

        raise MalformedInputError(
            'Repository identifier must be in format "owner/repo" or a full GitHub URL'
        )


@dataclass(frozen=True)
class QuotaSnapshot:
    """Point-in-time request allowance for one API resource class."""
    resource: str
    limit: int
    remaining: int
    used: int
    reset: int  # UTC epoch seconds

    @property
    def reset_at(self) -> datetime:
        return datetime.fromtimestamp(self.reset, tz=timezone.utc)


@dataclass(frozen=True)
class ScopePlan:
    """How much of a repository's stargazer base to profile."""
    analysis_limit: int
    use_exhaustive_fetch: bool


@dataclass(frozen=True)
class Stargazer:
    """An account that starred a repository.

    ``starred_at`` is resolved once at the fetch boundary: it is ``None``
    when the listing was served without timestamps.
    """
    login: str
    starred_at: Optional[datetime] = None

    @property
    def has_timestamp(self) -> bool:
        return self.starred_at is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "login": self.login,
            "starred_at": format_timestamp(self.starred_at),
        }


@dataclass(frozen=True)
class StarHistoryPoint:
    """Cumulative stars at the end of one calendar day that had star events."""
    date: str
    stars: int
    change: int


@dataclass(frozen=True)
class InfluencerProfile:
    """A stargazer's public profile with a derived influence score."""
    login: str
    id: int
    name: Optional[str]
    avatar_url: Optional[str]
    html_url: Optional[str]
    followers: int
    following: int
    public_repos: int
    public_gists: int
    bio: Optional[str]
    company: Optional[str]
    location: Optional[str]
    blog: Optional[str]
    twitter_username: Optional[str]
    created_at: Optional[str]
    starred_at: Optional[str]
    influence_score: float


@dataclass(frozen=True)
class ReleaseAnalytics:
    total_releases: int
    total_downloads: int
    total_assets: int
    average_downloads_per_release: int
    most_downloaded_release: Optional[Dict[str, Any]]
    latest_release: Optional[Dict[str, Any]]
    release_frequency: Dict[str, float]
    download_trends: List[Dict[str, Any]]
    asset_types: Dict[str, Dict[str, Any]]
    prerelease_stats: Dict[str, Any]


@dataclass(frozen=True)
class DownloadStats:
    total_downloads: int
    downloads_by_release: List[Dict[str, Any]]
    top_assets: List[Dict[str, Any]]
    download_distribution: Dict[str, Dict[str, int]]


@dataclass(frozen=True)
class StarHistoryAnalytics:
    current_stars: int
    total_growth: int
    growth_rate_per_day: float
    growth_rate_per_month: float
    best_growth_day: Optional[Dict[str, Any]]
    worst_growth_day: Optional[Dict[str, Any]]
    history_points: List[StarHistoryPoint]
    growth_trends: Dict[str, int]
    milestones: List[Dict[str, Any]]


@dataclass(frozen=True)
class InfluencerAnalytics:
    total_stargazers_analyzed: int
    total_followers_reached: int
    average_followers_per_stargazer: int
    top_influencers: List[InfluencerProfile]
    influence_distribution: Dict[str, int]
    geographic_distribution: Dict[str, int]
    company_distribution: Dict[str, int]
    metrics: Dict[str, float]
    notable_stargazers: List[Dict[str, Any]] = field(default_factory=list)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a GitHub ISO 8601 timestamp (``2024-01-01T12:00:00Z``)."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
