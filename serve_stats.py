"""Main entry point for the GitHub stats tool server.

Runs the stdio server; all logging goes to stderr so stdout carries only
protocol messages.
"""
import asyncio
import logging
import sys

from github_stats.config import load_settings
from github_stats.domain.errors import ConfigurationError
from github_stats.server import serve


logger = logging.getLogger(__name__)


def main():
    """Load settings, configure logging and serve until disconnected."""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )

    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        logger.info("Server stopped")
    except Exception as e:
        logger.error(f"Server failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
