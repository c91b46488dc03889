"""Tests for paginated listing walks."""
from datetime import datetime, timezone

import pytest

from github_stats.domain.errors import (
    FeatureUnavailableError,
    NotFoundError,
    QuotaExceededError,
    UpstreamError,
)
from github_stats.domain.github_interface import ApiResponse, IGitHubClient
from github_stats.domain.models import RepositoryRef, Stargazer
from github_stats.infrastructure import resources
from github_stats.infrastructure.pagination import PaginatedFetcher, ResourceDescriptor


class ListingClient(IGitHubClient):
    """Serves a fixed number of records, page by page."""

    def __init__(self, total, record=lambda i: {"id": i}, fail_accept=None, error=None):
        self.total = total
        self.record = record
        self.fail_accept = fail_accept
        self.error = error
        self.calls = []

    @property
    def has_token(self):
        return True

    async def request(self, path, params=None, accept=None):
        self.calls.append((path, dict(params or {}), accept))
        if self.error is not None:
            raise self.error
        if accept is not None and accept == self.fail_accept:
            raise FeatureUnavailableError("media type rejected", status=415)
        per_page, page = params["per_page"], params["page"]
        start = (page - 1) * per_page
        end = min(start + per_page, self.total)
        return ApiResponse(status=200, data=[self.record(i) for i in range(start, end)])

    async def close(self):
        pass


class FakeSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


def fetcher_for(client, events=None):
    sleep = FakeSleep()
    return PaginatedFetcher(client, sleep=sleep, events=(events if events is not None else []).append), sleep


@pytest.mark.asyncio
@pytest.mark.parametrize("total, expected_requests", [
    (0, 1),
    (1, 1),
    (99, 1),
    (100, 2),
    (101, 2),
    (250, 3),
    (300, 4),
])
async def test_fetch_all_request_count(total, expected_requests):
    """Test a full walk makes floor(N/100) + 1 requests."""
    client = ListingClient(total)
    fetcher, _ = fetcher_for(client)

    records = await fetcher.fetch_all(ResourceDescriptor(path="/things"))

    assert len(records) == total
    assert len(client.calls) == expected_requests
    assert [r["id"] for r in records] == list(range(total))


@pytest.mark.asyncio
async def test_fetch_all_stops_at_hard_cap():
    """Test the walk stops once the cap is reached and trims to it."""
    client = ListingClient(1000)
    fetcher, _ = fetcher_for(client)

    records = await fetcher.fetch_all(ResourceDescriptor(path="/things"), hard_cap=150)

    assert len(records) == 150
    assert len(client.calls) == 2


@pytest.mark.asyncio
async def test_fetch_all_uses_page_size():
    """Test per_page follows the requested page size, capped at 100."""
    client = ListingClient(5)
    fetcher, _ = fetcher_for(client)

    await fetcher.fetch_all(ResourceDescriptor(path="/things", params={"state": "open"}), page_size=30)
    await fetcher.fetch_all(ResourceDescriptor(path="/things"), page_size=500)

    assert client.calls[0][1] == {"state": "open", "per_page": 30, "page": 1}
    assert client.calls[1][1]["per_page"] == 100


@pytest.mark.asyncio
async def test_fetch_all_pauses_every_ten_pages():
    """Test the courtesy pause after pages 10 and 20."""
    client = ListingClient(2500)
    events = []
    fetcher, sleep = fetcher_for(client, events)

    records = await fetcher.fetch_all(ResourceDescriptor(path="/things"))

    assert len(records) == 2500
    assert sleep.calls == [1.0, 1.0]
    pauses = [e.data["page"] for e in events if e.name == "pagination.pause"]
    assert pauses == [10, 20]


@pytest.mark.asyncio
async def test_parse_drops_none_records():
    """Test records parsed to None are skipped without ending the walk."""
    client = ListingClient(150)
    fetcher, _ = fetcher_for(client)
    resource = ResourceDescriptor(
        path="/things", parse=lambda r: r if r["id"] % 2 == 0 else None
    )

    records = await fetcher.fetch_all(resource)

    assert len(records) == 75
    assert len(client.calls) == 2


@pytest.mark.asyncio
async def test_optional_resource_not_found_is_empty():
    """Test 404 on an optional listing yields an empty list."""
    events = []
    client = ListingClient(0, error=NotFoundError("Not Found"))
    fetcher, _ = fetcher_for(client, events)

    records = await fetcher.fetch_all(ResourceDescriptor(path="/releases", optional=True))

    assert records == []
    assert [e.name for e in events] == ["pagination.not_found"]


@pytest.mark.asyncio
async def test_required_resource_not_found_raises():
    """Test 404 propagates for required listings."""
    client = ListingClient(0, error=NotFoundError("Not Found"))
    fetcher, _ = fetcher_for(client)

    with pytest.raises(NotFoundError):
        await fetcher.fetch_all(ResourceDescriptor(path="/contributors"))


@pytest.mark.asyncio
async def test_quota_error_is_not_swallowed_by_fallback():
    """Test quota errors propagate even when a fallback exists."""
    client = ListingClient(0, error=QuotaExceededError("rate limited", retry_after=10))
    fetcher, _ = fetcher_for(client)
    resource = resources.stargazers(RepositoryRef("octocat", "hello"))

    with pytest.raises(QuotaExceededError):
        await fetcher.fetch_all(resource)
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_upstream_error_without_fallback_raises():
    """Test other upstream errors propagate when no fallback exists."""
    client = ListingClient(0, error=UpstreamError("boom", status=500))
    fetcher, _ = fetcher_for(client)

    with pytest.raises(UpstreamError):
        await fetcher.fetch_all(ResourceDescriptor(path="/things"))


@pytest.mark.asyncio
async def test_stargazers_fall_back_to_plain_listing():
    """Test a refused star media type restarts with the plain listing."""
    events = []
    client = ListingClient(
        120,
        record=lambda i: {"login": f"user{i}"},
        fail_accept=resources.STAR_MEDIA_TYPE,
    )
    fetcher, _ = fetcher_for(client, events)

    stargazers = await fetcher.fetch_all(resources.stargazers(RepositoryRef("octocat", "hello")))

    assert len(stargazers) == 120
    assert all(s == Stargazer(login=f"user{i}") for i, s in enumerate(stargazers))
    assert not any(s.has_timestamp for s in stargazers)
    assert [call[2] for call in client.calls] == [resources.STAR_MEDIA_TYPE, None, None]
    assert client.calls[1][1]["page"] == 1
    assert "pagination.fallback" in [e.name for e in events]


@pytest.mark.asyncio
async def test_timestamped_stargazers_parse():
    """Test the star listing shape yields timestamps."""
    client = ListingClient(
        2,
        record=lambda i: {"starred_at": f"2024-01-0{i + 1}T10:00:00Z", "user": {"login": f"u{i}"}},
    )
    fetcher, _ = fetcher_for(client)

    stargazers = await fetcher.fetch_all(resources.stargazers(RepositoryRef("octocat", "hello")))

    assert stargazers == [
        Stargazer("u0", datetime(2024, 1, 1, 10, tzinfo=timezone.utc)),
        Stargazer("u1", datetime(2024, 1, 2, 10, tzinfo=timezone.utc)),
    ]


def test_stargazer_parsers_skip_bad_records():
    """Test records without a login are dropped."""
    assert resources.parse_timestamped_stargazer({"starred_at": None, "user": None}) is None
    assert resources.parse_plain_stargazer({"id": 1}) is None
    assert resources.parse_plain_stargazer("octocat") is None
    assert resources.parse_timestamped_stargazer({"login": "octocat"}) == Stargazer("octocat")


def test_skip_pull_requests():
    """Test the issues listing drops pull requests."""
    assert resources.skip_pull_requests({"number": 1}) == {"number": 1}
    assert resources.skip_pull_requests({"number": 2, "pull_request": {"url": "x"}}) is None
