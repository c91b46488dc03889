"""Tests for the REST client against a fake aiohttp session."""
import json

import aiohttp
import pytest

from github_stats.domain.errors import (
    FeatureUnavailableError,
    NotFoundError,
    QuotaExceededError,
    UpstreamError,
)
from github_stats.infrastructure.github_client import DEFAULT_ACCEPT, GitHubRestClient
from github_stats.infrastructure.quota_tracker import QuotaTracker


class FakeResponse:
    def __init__(self, status=200, body="", headers=None):
        self.status = status
        self.headers = headers or {}
        self._body = body

    async def text(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class FakeSession:
    """Replays queued responses and records every GET."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.closed = False

    def get(self, url, params=None, headers=None):
        self.calls.append({"url": url, "params": params, "headers": headers})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self):
        self.closed = True


def json_response(data, status=200, headers=None):
    return FakeResponse(status=status, body=json.dumps(data), headers=headers)


def quota_headers(remaining, reset, resource="core"):
    return {
        "X-RateLimit-Limit": "5000",
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Used": str(5000 - remaining),
        "X-RateLimit-Reset": str(reset),
        "X-RateLimit-Resource": resource,
    }


def make_client(*responses, quota=None):
    session = FakeSession(*responses)
    client = GitHubRestClient(
        access_token="ghp_test",
        quota=quota or QuotaTracker(events=lambda e: None),
        base_url="https://api.example.test/",
        session=session,
    )
    return client, session


@pytest.mark.asyncio
async def test_request_decodes_json_and_sends_accept():
    """Test a successful GET returns decoded data and lower-cased headers."""
    client, session = make_client(
        json_response({"full_name": "octocat/hello"}, headers={"ETag": "abc"})
    )

    response = await client.request("/repos/octocat/hello", params={"page": 1})

    assert response.status == 200
    assert response.data == {"full_name": "octocat/hello"}
    assert response.headers == {"etag": "abc"}
    assert session.calls[0]["url"] == "https://api.example.test/repos/octocat/hello"
    assert session.calls[0]["params"] == {"page": 1}
    assert session.calls[0]["headers"] == {"Accept": DEFAULT_ACCEPT}


@pytest.mark.asyncio
async def test_request_custom_media_type():
    """Test a custom accept replaces the default media type."""
    client, session = make_client(json_response([]))

    await client.request("/repos/o/r/stargazers", accept="application/vnd.github.star+json")

    assert session.calls[0]["headers"] == {"Accept": "application/vnd.github.star+json"}


@pytest.mark.asyncio
async def test_accepted_without_body_is_none():
    """Test 202 with an empty body decodes to None."""
    client, _ = make_client(FakeResponse(status=202, body=""))

    response = await client.request("/repos/o/r/stats/commit_activity")

    assert response.status == 202
    assert response.data is None


@pytest.mark.asyncio
async def test_quota_headers_are_recorded():
    """Test every response feeds the quota tracker by resource."""
    quota = QuotaTracker(clock=lambda: 0, events=lambda e: None)
    client, _ = make_client(
        json_response({}, headers=quota_headers(4321, 100)),
        json_response({"items": []}, headers=quota_headers(29, 100, resource="search")),
        quota=quota,
    )

    await client.request("/repos/o/r")
    await client.request("/search/repositories", params={"q": "x"})

    assert quota.snapshot("core").remaining == 4321
    assert quota.snapshot("search").remaining == 29


@pytest.mark.asyncio
async def test_not_found():
    """Test 404 maps to NotFoundError."""
    client, _ = make_client(json_response({"message": "Not Found"}, status=404))

    with pytest.raises(NotFoundError) as excinfo:
        await client.request("/repos/o/missing")

    assert excinfo.value.status == 404


@pytest.mark.asyncio
async def test_rate_limited_without_hint_is_not_retried():
    """Test a rate limit message with no wait hint raises immediately."""
    client, session = make_client(
        json_response({"message": "API rate limit exceeded for user"}, status=403)
    )

    with pytest.raises(QuotaExceededError):
        await client.request("/repos/o/r")

    assert len(session.calls) == 1


@pytest.mark.asyncio
async def test_rate_limited_with_retry_after_is_retried():
    """Test a secondary limit with retry-after is retried."""
    client, session = make_client(
        json_response({"message": "secondary rate limit"}, status=429, headers={"Retry-After": "0"}),
        json_response({"ok": True}),
    )

    response = await client.request("/repos/o/r")

    assert response.data == {"ok": True}
    assert len(session.calls) == 2


@pytest.mark.asyncio
async def test_rate_limited_retries_are_bounded():
    """Test repeated quota errors give up after three attempts."""
    limited = [
        json_response({"message": "slow down"}, status=429, headers={"Retry-After": "0"})
        for _ in range(3)
    ]
    client, session = make_client(*limited)

    with pytest.raises(QuotaExceededError) as excinfo:
        await client.request("/repos/o/r")

    assert excinfo.value.retry_after == 0
    assert len(session.calls) == 3


@pytest.mark.asyncio
async def test_forbidden_without_quota_signal_is_upstream_error():
    """Test a plain 403 is not mistaken for a rate limit."""
    client, _ = make_client(
        json_response({"message": "Must have push access"}, status=403)
    )

    with pytest.raises(UpstreamError) as excinfo:
        await client.request("/repos/o/r/traffic/popular/referrers")

    assert not isinstance(excinfo.value, QuotaExceededError)
    assert excinfo.value.status == 403


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [406, 415, 422])
async def test_rejected_media_type(status):
    """Test a refused custom media type maps to FeatureUnavailableError."""
    client, _ = make_client(json_response({"message": "Unsupported"}, status=status))

    with pytest.raises(FeatureUnavailableError):
        await client.request("/repos/o/r/stargazers", accept="application/vnd.github.star+json")


@pytest.mark.asyncio
async def test_unprocessable_without_custom_media_type():
    """Test 422 on a default request is a generic upstream error."""
    client, _ = make_client(json_response({"message": "Validation Failed"}, status=422))

    with pytest.raises(UpstreamError) as excinfo:
        await client.request("/search/repositories")

    assert not isinstance(excinfo.value, FeatureUnavailableError)
    assert "422" in str(excinfo.value)


@pytest.mark.asyncio
async def test_server_error_with_plain_body():
    """Test non-JSON error bodies still produce a message."""
    client, _ = make_client(FakeResponse(status=502, body="Bad Gateway"))

    with pytest.raises(UpstreamError, match="502: Bad Gateway"):
        await client.request("/repos/o/r")


@pytest.mark.asyncio
async def test_transport_failure_is_upstream_error():
    """Test connection errors surface as UpstreamError."""
    client, _ = make_client(aiohttp.ClientConnectionError("connection reset"))

    with pytest.raises(UpstreamError, match="connection reset"):
        await client.request("/repos/o/r")


@pytest.mark.asyncio
async def test_gate_waits_for_blocked_resource():
    """Test an exhausted quota makes the next request wait for reset."""
    slept = []

    async def fake_sleep(seconds):
        slept.append(seconds)

    quota = QuotaTracker(clock=lambda: 1000.0, sleep=fake_sleep, events=lambda e: None)
    client, _ = make_client(
        json_response({}, headers=quota_headers(0, 1045)),
        json_response({}),
        quota=quota,
    )

    await client.request("/repos/o/r")
    await client.request("/repos/o/r")

    assert slept == [45.0]


@pytest.mark.asyncio
async def test_close_releases_session():
    """Test close closes the session once."""
    client, session = make_client()

    await client.close()
    await client.close()

    assert session.closed is True


def test_has_token():
    """Test authentication is derived from the token."""
    assert GitHubRestClient(access_token="ghp_x").has_token is True
    assert GitHubRestClient().has_token is False
