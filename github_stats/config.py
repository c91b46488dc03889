"""Runtime settings read from the environment."""
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from github_stats.application.truncation import DEFAULT_MAX_RESPONSE_CHARS
from github_stats.domain.errors import ConfigurationError
from github_stats.infrastructure.github_client import DEFAULT_API_URL
from github_stats.infrastructure.github_search import DEFAULT_GRAPHQL_URL


@dataclass(frozen=True)
class Settings:
    token: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    graphql_url: str = DEFAULT_GRAPHQL_URL
    batch_size: int = 10
    batch_delay_ms: int = 1000
    max_response_chars: int = DEFAULT_MAX_RESPONSE_CHARS
    log_level: str = "INFO"
    request_timeout: int = 30

    @property
    def has_token(self) -> bool:
        return bool(self.token)

    @property
    def batch_delay_seconds(self) -> float:
        return self.batch_delay_ms / 1000


def _int_setting(environ: Mapping[str, str], name: str, default: int) -> int:
    value = environ.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from ``environ`` (defaults to ``os.environ``).

    When reading the process environment, ``.env`` (or ``env``) is loaded
    first without overriding variables that are already set.
    """
    if environ is None:
        load_dotenv('.env') or load_dotenv('env')
        environ = os.environ

    return Settings(
        token=environ.get("GITHUB_TOKEN") or None,
        api_url=environ.get("GITHUB_API_URL") or DEFAULT_API_URL,
        graphql_url=environ.get("GITHUB_GRAPHQL_URL") or DEFAULT_GRAPHQL_URL,
        batch_size=max(1, _int_setting(environ, "PROFILE_BATCH_SIZE", 10)),
        batch_delay_ms=max(0, _int_setting(environ, "PROFILE_BATCH_DELAY_MS", 1000)),
        max_response_chars=_int_setting(
            environ, "MAX_RESPONSE_CHARS", DEFAULT_MAX_RESPONSE_CHARS
        ),
        log_level=(environ.get("LOG_LEVEL") or "INFO").upper(),
        request_timeout=_int_setting(environ, "REQUEST_TIMEOUT_SECONDS", 30),
    )
