"""Run one stats tool against a repository and print the result."""
import argparse
import asyncio
import logging
import sys

from github_stats.config import load_settings
from github_stats.domain.errors import ConfigurationError
from github_stats.server import create_registry, create_stats_service


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("tool", help="Tool name, e.g. get_repository_info")
    parser.add_argument(
        "repository",
        help="owner/repo or full GitHub URL (the search query for search_repositories)",
    )
    parser.add_argument("--limit", type=int, help="Limit passed to tools that accept one")
    parser.add_argument("--max-tokens", type=int, help="Response size hint in tokens")
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    return parser.parse_args(argv)


def build_arguments(args: argparse.Namespace) -> dict:
    if args.tool == "search_repositories":
        arguments = {"query": args.repository}
    else:
        arguments = {"repository": args.repository}
    if args.limit is not None:
        arguments["limit"] = args.limit
    if args.max_tokens is not None:
        arguments["max_tokens"] = args.max_tokens
    return arguments


async def run(args: argparse.Namespace) -> str:
    settings = load_settings()
    service = create_stats_service(settings)
    registry = create_registry(service, settings)
    try:
        return await registry.call(args.tool, build_arguments(args))
    finally:
        await service.close()


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )

    try:
        text = asyncio.run(run(args))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    print(text)
    if text.startswith("Error:"):
        sys.exit(1)


if __name__ == "__main__":
    main()
