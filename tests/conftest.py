"""Shared fakes for service and tool tests."""
from datetime import datetime, timezone

import pytest

from github_stats.application.stats_service import GitHubStatsService
from github_stats.domain.errors import NotFoundError
from github_stats.domain.github_interface import ApiResponse, IGitHubClient


NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)


class RoutingClient(IGitHubClient):
    """Answers requests from a path -> response table.

    A route may be plain data, an ApiResponse, an exception, or a callable
    taking ``(params, accept)`` and returning any of those. Unrouted paths
    answer 404.
    """

    def __init__(self, routes, has_token=True):
        self.routes = routes
        self.calls = []
        self._has_token = has_token
        self.closed = False

    @property
    def has_token(self):
        return self._has_token

    async def request(self, path, params=None, accept=None):
        self.calls.append((path, params, accept))
        route = self.routes.get(path)
        if route is None:
            raise NotFoundError(f"Not found: {path}")
        if callable(route):
            route = route(params, accept)
        if isinstance(route, Exception):
            raise route
        if isinstance(route, ApiResponse):
            return route
        return ApiResponse(status=200, data=route)

    async def close(self):
        self.closed = True

    def paths(self):
        return [call[0] for call in self.calls]


def listing(records):
    """Route serving ``records`` page by page."""
    def route(params, accept):
        per_page, page = params["per_page"], params["page"]
        start = (page - 1) * per_page
        return records[start:start + per_page]
    return route


def replies(*items):
    """Route answering with each item in turn, repeating the last."""
    remaining = list(items)

    def route(params, accept):
        return remaining.pop(0) if len(remaining) > 1 else remaining[0]
    return route


async def no_sleep(seconds):
    return None


@pytest.fixture
def make_service():
    def factory(routes, has_token=True, **kwargs):
        client = RoutingClient(routes, has_token=has_token)
        kwargs.setdefault("delay_between_batches", 0)
        service = GitHubStatsService(
            client, clock=lambda: NOW, sleep=no_sleep, **kwargs
        )
        return service, client
    return factory
