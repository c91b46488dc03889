"""Listing descriptors for the GitHub endpoints this service walks.

Record shapes are resolved here, once, so nothing downstream has to inspect
raw stargazer payloads.
"""
from typing import Any, Dict, Optional

from github_stats.domain.models import RepositoryRef, Stargazer, parse_timestamp
from github_stats.infrastructure.pagination import ResourceDescriptor


STAR_MEDIA_TYPE = "application/vnd.github.star+json"


def parse_plain_stargazer(item: Any) -> Optional[Stargazer]:
    """Plain listing: each item is a user object, no timestamp."""
    if isinstance(item, dict) and isinstance(item.get("login"), str) and item["login"]:
        return Stargazer(login=item["login"])
    return None


def parse_timestamped_stargazer(item: Any) -> Optional[Stargazer]:
    """Star listing: ``{"starred_at": ..., "user": {...}}``.

    Falls through to the plain shape when the server ignored the media type.
    """
    if isinstance(item, dict) and "user" in item:
        login = (item.get("user") or {}).get("login")
        if not login:
            return None
        return Stargazer(login=login, starred_at=parse_timestamp(item.get("starred_at")))
    return parse_plain_stargazer(item)


def skip_pull_requests(item: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """The issues endpoint also lists pull requests; keep only issues."""
    return None if item.get("pull_request") else item


def stargazers(repo: RepositoryRef) -> ResourceDescriptor:
    path = f"{repo.api_path}/stargazers"
    return ResourceDescriptor(
        path=path,
        accept=STAR_MEDIA_TYPE,
        parse=parse_timestamped_stargazer,
        fallback=ResourceDescriptor(path=path, parse=parse_plain_stargazer),
    )


def releases(repo: RepositoryRef) -> ResourceDescriptor:
    return ResourceDescriptor(path=f"{repo.api_path}/releases", optional=True)


def contributors(repo: RepositoryRef) -> ResourceDescriptor:
    return ResourceDescriptor(path=f"{repo.api_path}/contributors")


def open_issues(repo: RepositoryRef) -> ResourceDescriptor:
    return ResourceDescriptor(
        path=f"{repo.api_path}/issues",
        params={"state": "open"},
        parse=skip_pull_requests,
    )


def open_pull_requests(repo: RepositoryRef) -> ResourceDescriptor:
    return ResourceDescriptor(path=f"{repo.api_path}/pulls", params={"state": "open"})
