"""Tool dispatch layer: named operations with input schemas.

Each tool validates its arguments, calls the stats service, condenses the
result and serializes it as JSON text, truncating the largest list when the
payload would exceed the character budget.
"""
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from github_stats.application.stats_service import GitHubStatsService
from github_stats.application.truncation import (
    DEFAULT_MAX_RESPONSE_CHARS,
    serialize,
    truncate_response,
)
from github_stats.domain.errors import GitHubStatsError, MalformedInputError
from github_stats.domain.repository_metrics import calculate_language_breakdown
from github_stats.domain.star_history import age_in_days
from github_stats.domain.traffic import analyze_referrers


logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
TOKEN_LIMIT_ARGUMENTS = ("max_tokens", "token_limit", "max_response_tokens")

REPOSITORY_PROPERTY = {
    "type": "string",
    "description": "Repository identifier (owner/repo format or full GitHub URL)",
}

Handler = Callable[[Dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    input_schema: Dict[str, Any]
    handler: Handler
    array_field: Optional[str] = None


def repository_schema(**extra_properties: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {"repository": REPOSITORY_PROPERTY, **extra_properties},
        "required": ["repository"],
    }


def limit_property(description: str, default: int) -> Dict[str, Any]:
    return {"type": "number", "description": description, "default": default}


def validate_arguments(tool: ToolDefinition, arguments: Dict[str, Any]) -> None:
    """Check required fields exist before the tool runs."""
    for field_name in tool.input_schema.get("required", []):
        if field_name not in arguments:
            raise MalformedInputError(f"Missing required field: {field_name}")


def resolve_max_chars(arguments: Dict[str, Any], default: int) -> int:
    """Character budget from a caller token hint, else the default."""
    for name in TOKEN_LIMIT_ARGUMENTS:
        token_limit = arguments.get(name)
        if token_limit:
            max_chars = int(token_limit) * CHARS_PER_TOKEN
            logger.info(f"Token limit hint provided: {token_limit} tokens (~{max_chars} chars)")
            return max_chars
    return default


def _limit(arguments: Dict[str, Any], default: int, maximum: Optional[int] = None) -> int:
    try:
        limit = int(arguments.get("limit") or default)
    except (TypeError, ValueError):
        raise MalformedInputError(f"Invalid limit: {arguments.get('limit')!r}")
    limit = max(1, limit)
    return min(limit, maximum) if maximum else limit


def _shorten(text: Optional[str], length: int) -> str:
    text = text or ""
    return text[:length] + "..." if len(text) > length else text


def _condense_release(release: Dict[str, Any]) -> Dict[str, Any]:
    assets = release.get("assets") or []
    return {
        "tag_name": release.get("tag_name"),
        "name": release.get("name"),
        "published_at": release.get("published_at"),
        "prerelease": release.get("prerelease"),
        "assets_count": len(assets),
        "total_downloads": sum(asset.get("download_count") or 0 for asset in assets),
    }


def _condense_issue(issue: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "number": issue.get("number"),
        "title": _shorten(issue.get("title"), 100),
        "user": (issue.get("user") or {}).get("login"),
        "state": issue.get("state"),
        "created_at": issue.get("created_at"),
        "labels": [label.get("name") for label in (issue.get("labels") or [])[:2]],
    }


def _condense_pull_request(pr: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "number": pr.get("number"),
        "title": _shorten(pr.get("title"), 80),
        "user": (pr.get("user") or {}).get("login"),
        "state": pr.get("state"),
        "created_at": pr.get("created_at"),
        "head_ref": (pr.get("head") or {}).get("ref"),
        "base_ref": (pr.get("base") or {}).get("ref"),
    }


def condense_comprehensive_stats(result: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    """Summaries only; the individual tools return the full data."""
    repository = result["repository"]
    languages = result["languages"]
    contributors = result["contributors"]
    releases = result["releases"]
    issues = result["open_issues"]
    pull_requests = result["open_pull_requests"]
    release_analytics = result["release_analytics"]
    star_history = result["star_history"]

    language_breakdown = [
        {"language": entry["language"], "percentage": entry["percentage"]}
        for entry in calculate_language_breakdown(languages)
    ]
    total_commits = sum((week or {}).get("total", 0) for week in result["commit_activity"])

    repository_summary = {
        key: repository.get(key)
        for key in (
            "name", "full_name", "size", "created_at", "updated_at", "pushed_at",
            "language", "license", "topics", "archived", "private",
        )
    }
    repository_summary.update(
        stars=repository.get("stargazers_count"),
        forks=repository.get("forks_count"),
        watchers=repository.get("watchers_count"),
        open_issues=repository.get("open_issues_count"),
    )

    return {
        "repository": repository_summary,
        "contributors_summary": {
            "total_contributors": len(contributors),
            "top_5_contributors": [
                {"login": c.get("login"), "contributions": c.get("contributions"), "type": c.get("type")}
                for c in contributors[:5]
            ],
        },
        "releases_summary": {
            "total_releases": len(releases),
            "latest_3_releases": [
                {
                    "tag_name": r.get("tag_name"),
                    "name": r.get("name"),
                    "published_at": r.get("published_at"),
                    "prerelease": r.get("prerelease"),
                }
                for r in releases[:3]
            ],
        },
        "issues_summary": {
            "total_open_issues": len(issues),
            "recent_3_issues": [
                {"number": i.get("number"), "title": _shorten(i.get("title"), 100), "created_at": i.get("created_at")}
                for i in issues[:3]
            ],
        },
        "pull_requests_summary": {
            "total_open_prs": len(pull_requests),
            "recent_3_prs": [
                {
                    "number": pr.get("number"),
                    "title": _shorten(pr.get("title"), 100),
                    "created_at": pr.get("created_at"),
                    "user": (pr.get("user") or {}).get("login"),
                }
                for pr in pull_requests[:3]
            ],
        },
        "release_analytics_summary": {
            "total_releases": release_analytics.total_releases,
            "total_downloads": release_analytics.total_downloads,
            "average_downloads_per_release": release_analytics.average_downloads_per_release,
            "most_downloaded_release": release_analytics.most_downloaded_release,
            "latest_release": release_analytics.latest_release,
        },
        "star_history_summary": {
            "current_stars": star_history.current_stars,
            "total_growth": star_history.total_growth,
            "daily_growth_rate": star_history.growth_rate_per_day,
            "monthly_growth_rate": star_history.growth_rate_per_month,
            "recent_growth_30_days": star_history.growth_trends["last_30_days"],
            "milestones_count": len(star_history.milestones),
        },
        "summary": {
            "total_stars": repository.get("stargazers_count"),
            "total_forks": repository.get("forks_count"),
            "total_watchers": repository.get("watchers_count"),
            "total_open_issues": repository.get("open_issues_count"),
            "total_contributors": len(contributors),
            "total_releases": release_analytics.total_releases,
            "total_downloads": release_analytics.total_downloads,
            "total_commits_last_year": total_commits,
            "primary_language": repository.get("language"),
            "language_breakdown": language_breakdown[:5],
            "repository_age_days": age_in_days(repository.get("created_at"), now),
            "last_updated": repository.get("updated_at"),
        },
        "metadata": {
            "note": "Condensed comprehensive stats. Use individual tools for detailed data.",
            "condensed_at": now.isoformat(),
        },
    }


def build_tools(service: GitHubStatsService) -> List[ToolDefinition]:
    """Bind every tool to the stats service."""

    async def get_repository_info(args):
        return await service.get_repository(args["repository"])

    async def get_language_stats(args):
        breakdown = await service.get_language_breakdown(args["repository"])
        return {
            "total_bytes": sum(entry["bytes"] for entry in breakdown),
            "languages": breakdown,
        }

    async def get_comprehensive_stats(args):
        result = await service.get_comprehensive_stats(args["repository"])
        return condense_comprehensive_stats(result, datetime.now(timezone.utc))

    async def get_contributors(args):
        contributors = await service.get_contributors(args["repository"], _limit(args, 30))
        condensed = [
            {"login": c.get("login"), "contributions": c.get("contributions"), "type": c.get("type")}
            for c in contributors
        ]
        return {"total_contributors": len(condensed), "contributors": condensed}

    async def get_commit_activity(args):
        return await service.get_commit_activity_summary(args["repository"])

    async def get_open_issues(args):
        issues = await service.get_open_issues(args["repository"], _limit(args, 30))
        condensed = [_condense_issue(issue) for issue in issues]
        return {"total_open_issues": len(condensed), "issues": condensed}

    async def get_open_pull_requests(args):
        pulls = await service.get_open_pull_requests(args["repository"], _limit(args, 30))
        condensed = [_condense_pull_request(pr) for pr in pulls]
        return {"total_open_prs": len(condensed), "pull_requests": condensed}

    async def search_repositories(args):
        return await service.search_repositories(args["query"], _limit(args, 10, 100))

    async def get_traffic_referrers(args):
        referrers = await service.get_traffic_referrers(args["repository"])
        return analyze_referrers(referrers, include_analysis=args.get("include_analysis", True) is not False)

    async def get_releases(args):
        releases = await service.get_releases(args["repository"], _limit(args, 10))
        condensed = [_condense_release(release) for release in releases]
        return {"total_releases": len(condensed), "releases": condensed}

    async def get_all_releases(args):
        releases = await service.get_all_releases(args["repository"])
        condensed = [_condense_release(release) for release in releases]
        return {"total_releases": len(condensed), "releases": condensed}

    async def get_latest_release(args):
        release = await service.get_latest_release(args["repository"])
        return release if release is not None else "No releases found"

    async def get_release_analytics(args):
        analytics = await service.get_release_analytics(args["repository"])
        return {
            "total_releases": analytics.total_releases,
            "total_downloads": analytics.total_downloads,
            "total_assets": analytics.total_assets,
            "average_downloads_per_release": analytics.average_downloads_per_release,
            "most_downloaded_release": analytics.most_downloaded_release,
            "latest_release": analytics.latest_release,
            "release_frequency": analytics.release_frequency,
            "asset_types": analytics.asset_types,
            "prerelease_stats": analytics.prerelease_stats,
            "top_10_download_trends": [
                {
                    "tag_name": trend["tag_name"],
                    "total_downloads": trend["total_downloads"],
                    "top_3_assets": trend["asset_breakdown"][:3],
                }
                for trend in analytics.download_trends[:10]
            ],
        }

    async def get_download_stats(args):
        stats = await service.get_download_stats(args["repository"])
        return {
            "total_downloads": stats.total_downloads,
            "top_10_releases": [
                {
                    "tag_name": release["tag_name"],
                    "total_downloads": release["total_downloads"],
                    "published_at": release["published_at"],
                    "top_assets": [
                        {"name": a["name"], "downloads": a["downloads"], "size_mb": a["size_mb"]}
                        for a in release["assets"][:3]
                    ],
                }
                for release in stats.downloads_by_release[:10]
            ],
            "top_10_assets": stats.top_assets[:10],
            "download_distribution": stats.download_distribution,
        }

    async def get_star_history(args):
        return asdict(await service.get_star_history(args["repository"]))

    async def get_complete_star_history(args):
        return asdict(await service.get_complete_star_history(args["repository"]))

    async def get_simple_star_history(args):
        return await service.get_simple_star_history(args["repository"])

    async def get_stargazers(args):
        limit = _limit(args, 100, 10000)
        stargazers = await service.get_stargazers(args["repository"], limit)
        return {
            "total_stargazers": len(stargazers),
            "requested_limit": limit,
            "stargazers": [s.to_dict() for s in stargazers],
        }

    async def get_all_stargazers(args):
        stargazers = await service.get_all_stargazers(args["repository"])
        return {
            "total_stargazers": len(stargazers),
            "note": "Complete dataset - all stargazers retrieved",
            "stargazers": [s.to_dict() for s in stargazers],
        }

    async def get_influencer_stargazers(args):
        analytics = await service.get_influencer_analytics(
            args["repository"], _limit(args, 100, 200)
        )
        return asdict(analytics)

    return [
        ToolDefinition(
            "get_repository_info",
            "Get basic information about a GitHub repository including stars, forks, description, etc.",
            repository_schema(),
            get_repository_info,
        ),
        ToolDefinition(
            "get_language_stats",
            "Get programming language statistics for a repository",
            repository_schema(),
            get_language_stats,
        ),
        ToolDefinition(
            "get_comprehensive_stats",
            "Get comprehensive statistics for a repository including all available data",
            repository_schema(),
            get_comprehensive_stats,
        ),
        ToolDefinition(
            "get_contributors",
            "Get list of contributors to a repository",
            repository_schema(limit=limit_property(
                "Maximum number of contributors to return (default: 30)", 30)),
            get_contributors,
            array_field="contributors",
        ),
        ToolDefinition(
            "get_releases",
            "Get list of releases for a repository",
            repository_schema(limit=limit_property(
                "Maximum number of releases to return (default: 10)", 10)),
            get_releases,
            array_field="releases",
        ),
        ToolDefinition(
            "get_all_releases",
            "Get all releases for a repository (not limited to recent ones)",
            repository_schema(),
            get_all_releases,
            array_field="releases",
        ),
        ToolDefinition(
            "get_latest_release",
            "Get the latest release information with full details",
            repository_schema(),
            get_latest_release,
        ),
        ToolDefinition(
            "get_release_analytics",
            "Get comprehensive release analytics including download stats, release frequency, and asset analysis",
            repository_schema(),
            get_release_analytics,
        ),
        ToolDefinition(
            "get_download_stats",
            "Get detailed download statistics for all releases and assets",
            repository_schema(),
            get_download_stats,
        ),
        ToolDefinition(
            "get_commit_activity",
            "Get commit activity statistics for a repository (weekly activity for the past year)",
            repository_schema(),
            get_commit_activity,
        ),
        ToolDefinition(
            "get_open_issues",
            "Get list of open issues for a repository",
            repository_schema(limit=limit_property(
                "Maximum number of issues to return (default: 30)", 30)),
            get_open_issues,
            array_field="issues",
        ),
        ToolDefinition(
            "get_open_pull_requests",
            "Get list of open pull requests for a repository",
            repository_schema(limit=limit_property(
                "Maximum number of pull requests to return (default: 30)", 30)),
            get_open_pull_requests,
            array_field="pull_requests",
        ),
        ToolDefinition(
            "search_repositories",
            "Search for repositories on GitHub",
            {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "Search query (GitHub search syntax, e.g. 'language:python topic:cli')",
                    },
                    "limit": limit_property("Maximum number of results (default: 10)", 10),
                },
                "required": ["query"],
            },
            search_repositories,
        ),
        ToolDefinition(
            "get_star_history",
            "Get comprehensive star history analytics inspired by star-history.com with growth trends and milestones",
            repository_schema(),
            get_star_history,
        ),
        ToolDefinition(
            "get_simple_star_history",
            "Get simplified star history metrics with star-history.com URL for visualization",
            repository_schema(),
            get_simple_star_history,
        ),
        ToolDefinition(
            "get_complete_star_history",
            "Get complete star history analytics using ALL stargazers data (more accurate than limited sampling)",
            repository_schema(),
            get_complete_star_history,
        ),
        ToolDefinition(
            "get_stargazers",
            "Get stargazers for a repository with customizable limit (efficient for smaller datasets)",
            repository_schema(limit=limit_property(
                "Maximum number of stargazers to return (default: 100, max: 10000)", 100)),
            get_stargazers,
            array_field="stargazers",
        ),
        ToolDefinition(
            "get_all_stargazers",
            "Get ALL stargazers for a repository (unlimited pagination through all 100-item pages)",
            repository_schema(),
            get_all_stargazers,
            array_field="stargazers",
        ),
        ToolDefinition(
            "get_influencer_stargazers",
            "Analyze influential developers who have starred the repository based on follower "
            "count and activity. Adaptively analyzes ALL stargazers when rate limits allow, or "
            "uses smart sampling when limits are tight.",
            repository_schema(limit=limit_property(
                "Number of top influencers to return (default: 100, max: 200)", 100)),
            get_influencer_stargazers,
        ),
        ToolDefinition(
            "get_traffic_referrers",
            "Get referral sources that drive traffic to the repository with comprehensive analytics",
            repository_schema(include_analysis={
                "type": "boolean",
                "description": "Include detailed traffic analysis and insights (default: true)",
                "default": True,
            }),
            get_traffic_referrers,
        ),
    ]


class ToolRegistry:
    """Looks up, validates and runs tools; always answers with text."""

    def __init__(
        self,
        tools: List[ToolDefinition],
        default_max_chars: int = DEFAULT_MAX_RESPONSE_CHARS,
    ):
        self._tools = {tool.name: tool for tool in tools}
        self._default_max_chars = default_max_chars

    @property
    def definitions(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    async def call(self, name: str, arguments: Optional[Dict[str, Any]]) -> str:
        """Run a tool and return its serialized result or ``Error: ...``."""
        logger.info(f"Tool called: {name}")
        try:
            if arguments is None:
                raise MalformedInputError("Arguments are required")
            tool = self._tools.get(name)
            if tool is None:
                raise MalformedInputError(f"Unknown tool: {name}")
            validate_arguments(tool, arguments)
            max_chars = resolve_max_chars(arguments, self._default_max_chars)

            data = await tool.handler(arguments)
            if tool.array_field:
                data = truncate_response(data, tool.array_field, max_chars).data
            return data if isinstance(data, str) else serialize(data)
        except GitHubStatsError as e:
            logger.error(f"Tool {name} failed: {e}")
            return f"Error: {e}"
        except Exception as e:
            logger.error(f"Tool {name} failed unexpectedly: {e}", exc_info=True)
            return f"Error: {e}"
