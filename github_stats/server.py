"""Stdio tool server exposing the stats tools over MCP."""
import logging
from typing import List, Optional

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from github_stats.application.scope_planner import AdaptiveScopePlanner
from github_stats.application.stats_service import GitHubStatsService
from github_stats.application.tools import ToolRegistry, build_tools
from github_stats.config import Settings
from github_stats.domain.events import EventSink
from github_stats.infrastructure.github_client import GitHubRestClient
from github_stats.infrastructure.github_search import GitHubGraphQLSearch
from github_stats.infrastructure.pagination import PaginatedFetcher
from github_stats.infrastructure.quota_tracker import QuotaTracker


logger = logging.getLogger(__name__)

SERVER_NAME = "github-stats"


def create_stats_service(
    settings: Settings, events: Optional[EventSink] = None
) -> GitHubStatsService:
    """Wire the adapters and the service around one shared quota tracker."""
    quota = QuotaTracker(events=events)
    client = GitHubRestClient(
        access_token=settings.token,
        quota=quota,
        base_url=settings.api_url,
        timeout=settings.request_timeout,
    )
    # GraphQL search requires authentication
    search = (
        GitHubGraphQLSearch(settings.token, quota=quota, url=settings.graphql_url)
        if settings.has_token
        else None
    )
    return GitHubStatsService(
        client=client,
        fetcher=PaginatedFetcher(client, events=events),
        planner=AdaptiveScopePlanner(client, events=events),
        search=search,
        batch_size=settings.batch_size,
        delay_between_batches=settings.batch_delay_seconds,
    )


def create_registry(service: GitHubStatsService, settings: Settings) -> ToolRegistry:
    return ToolRegistry(build_tools(service), default_max_chars=settings.max_response_chars)


def create_server(registry: ToolRegistry) -> Server:
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return [
            types.Tool(
                name=tool.name,
                description=tool.description,
                inputSchema=tool.input_schema,
            )
            for tool in registry.definitions
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: Optional[dict]) -> List[types.TextContent]:
        text = await registry.call(name, arguments)
        return [types.TextContent(type="text", text=text)]

    return server


async def serve(settings: Settings) -> None:
    """Run the tool server on stdin/stdout until the client disconnects."""
    service = create_stats_service(settings)
    registry = create_registry(service, settings)
    server = create_server(registry)

    if not settings.has_token:
        logger.warning(
            "GITHUB_TOKEN not set: requests are limited to 60 per hour "
            "and influencer analysis is sampled"
        )
    logger.info(f"GitHub stats server running on stdio ({len(registry.definitions)} tools)")

    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream, write_stream, server.create_initialization_options()
            )
    finally:
        await service.close()
