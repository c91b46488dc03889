"""Tests for server wiring."""
import mcp.types as types
import pytest

from github_stats.application.tools import ToolRegistry, build_tools
from github_stats.config import Settings
from github_stats.infrastructure.github_search import GitHubGraphQLSearch
from github_stats.server import create_registry, create_server, create_stats_service


def test_stats_service_without_token_uses_rest_search():
    """Test GraphQL search is only wired with a token."""
    service = create_stats_service(Settings())

    assert service._search is None
    assert service._client.has_token is False


def test_stats_service_shares_quota_tracker():
    """Test REST and GraphQL adapters report to the same tracker."""
    service = create_stats_service(Settings(token="ghp_x", batch_size=4, batch_delay_ms=250))

    assert isinstance(service._search, GitHubGraphQLSearch)
    assert service._search._quota is service._client.quota
    assert service._batch_size == 4
    assert service._delay == 0.25


def test_registry_uses_configured_budget():
    """Test the response budget comes from settings."""
    service = create_stats_service(Settings(max_response_chars=1234))

    registry = create_registry(service, Settings(max_response_chars=1234))

    assert registry._default_max_chars == 1234


@pytest.mark.asyncio
async def test_server_lists_every_tool():
    """Test the MCP server advertises the registry's tools."""
    service = create_stats_service(Settings())
    registry = ToolRegistry(build_tools(service))
    server = create_server(registry)

    handler = server.request_handlers[types.ListToolsRequest]
    result = await handler(types.ListToolsRequest(method="tools/list"))

    names = [tool.name for tool in result.root.tools]
    assert len(names) == 20
    assert "get_influencer_stargazers" in names
