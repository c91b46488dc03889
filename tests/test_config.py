"""Tests for settings loading."""
import pytest

from github_stats.config import Settings, load_settings
from github_stats.domain.errors import ConfigurationError


def test_defaults():
    """Test an empty environment gives the defaults."""
    settings = load_settings({})

    assert settings == Settings()
    assert settings.token is None
    assert settings.has_token is False
    assert settings.api_url == "https://api.github.com"
    assert settings.graphql_url == "https://api.github.com/graphql"
    assert settings.batch_size == 10
    assert settings.batch_delay_seconds == 1.0
    assert settings.max_response_chars == 90000
    assert settings.log_level == "INFO"
    assert settings.request_timeout == 30


def test_values_from_environment():
    """Test every variable is read."""
    settings = load_settings({
        "GITHUB_TOKEN": "ghp_abc",
        "GITHUB_API_URL": "https://ghe.example.test/api/v3",
        "GITHUB_GRAPHQL_URL": "https://ghe.example.test/api/graphql",
        "PROFILE_BATCH_SIZE": "5",
        "PROFILE_BATCH_DELAY_MS": "250",
        "MAX_RESPONSE_CHARS": "40000",
        "LOG_LEVEL": "debug",
        "REQUEST_TIMEOUT_SECONDS": "10",
    })

    assert settings.has_token is True
    assert settings.api_url == "https://ghe.example.test/api/v3"
    assert settings.batch_size == 5
    assert settings.batch_delay_seconds == 0.25
    assert settings.max_response_chars == 40000
    assert settings.log_level == "DEBUG"
    assert settings.request_timeout == 10


def test_empty_token_means_no_token():
    """Test a blank token is treated as unset."""
    assert load_settings({"GITHUB_TOKEN": ""}).has_token is False


def test_batch_values_are_clamped():
    """Test batch size is at least 1 and delay never negative."""
    settings = load_settings({"PROFILE_BATCH_SIZE": "0", "PROFILE_BATCH_DELAY_MS": "-5"})

    assert settings.batch_size == 1
    assert settings.batch_delay_ms == 0


@pytest.mark.parametrize("name", [
    "PROFILE_BATCH_SIZE",
    "PROFILE_BATCH_DELAY_MS",
    "MAX_RESPONSE_CHARS",
    "REQUEST_TIMEOUT_SECONDS",
])
def test_non_integer_values_raise(name):
    """Test malformed numbers fail at load time."""
    with pytest.raises(ConfigurationError, match=name):
        load_settings({name: "ten"})
