"""Verify that the setup is correct before running the stats server."""
import asyncio
import sys
from datetime import datetime, timezone

import aiohttp

from github_stats.config import load_settings
from github_stats.domain.errors import ConfigurationError
from github_stats.infrastructure.github_client import DEFAULT_ACCEPT, USER_AGENT


def check_configuration():
    """Check that the environment parses into settings."""
    print("Checking configuration...")

    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"❌ {e}")
        return False

    print("✅ Configuration loaded")
    print(f"   API URL: {settings.api_url}")
    print(f"   Profile batch size: {settings.batch_size}")
    print(f"   Profile batch delay: {settings.batch_delay_ms} ms")
    print(f"   Max response chars: {settings.max_response_chars}")
    return True


def check_github_token():
    """Check the token is present and looks like a GitHub token."""
    print("\nChecking GitHub token...")

    settings = load_settings()
    if not settings.has_token:
        print("⚠️  GITHUB_TOKEN not set (60 requests/hour, sampled influencer analysis)")
        return True

    token = settings.token
    if token.startswith("ghp_") or token.startswith("github_pat_"):
        print("✅ GitHub token format looks valid")
        print(f"   Token prefix: {token[:10]}...")
    else:
        print("⚠️  Token format may be invalid (expected ghp_* or github_pat_*)")
    return True


async def fetch_rate_limit(settings) -> dict:
    headers = {"Accept": DEFAULT_ACCEPT, "User-Agent": USER_AGENT}
    if settings.has_token:
        headers["Authorization"] = f"Bearer {settings.token}"

    timeout = aiohttp.ClientTimeout(total=settings.request_timeout)
    async with aiohttp.ClientSession(headers=headers, timeout=timeout) as session:
        async with session.get(f"{settings.api_url}/rate_limit") as response:
            response.raise_for_status()
            return await response.json()


def check_api_access():
    """Check the API is reachable and report the remaining core quota."""
    print("\nChecking GitHub API access...")

    settings = load_settings()
    try:
        data = asyncio.run(fetch_rate_limit(settings))
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        print(f"❌ Failed to reach GitHub API: {e}")
        return False

    core = data["resources"]["core"]
    reset_at = datetime.fromtimestamp(core["reset"], tz=timezone.utc)
    print("✅ GitHub API reachable")
    print(f"   Core quota: {core['remaining']}/{core['limit']} (resets {reset_at:%H:%M:%S} UTC)")
    if core["remaining"] < 100:
        print("⚠️  Quota is low; large analyses will be scaled down")
    return True


def main():
    """Run all verification checks."""
    print("=" * 60)
    print("GitHub Stats - Setup Verification")
    print("=" * 60)

    if not check_configuration():
        print("\n❌ Fix the configuration above before continuing.")
        sys.exit(1)

    checks = [
        ("GitHub Token", check_github_token),
        ("GitHub API Access", check_api_access),
    ]

    results = {}
    for name, check_func in checks:
        try:
            results[name] = check_func()
        except Exception as e:
            print(f"❌ {name} check failed with exception: {e}")
            results[name] = False

    print("\n" + "=" * 60)
    print("Verification Summary")
    print("=" * 60)

    for name, passed in results.items():
        status = "✅ PASS" if passed else "❌ FAIL"
        print(f"{status}: {name}")

    if all(results.values()):
        print("\n✅ All checks passed! Ready to run the server.")
        print("\nNext steps:")
        print("  python serve_stats.py")
        sys.exit(0)
    else:
        print("\n❌ Some checks failed. Please fix the issues above.")
        print("\nCommon solutions:")
        print("  - Set GITHUB_TOKEN: export GITHUB_TOKEN=your_token")
        print("  - Check network access to api.github.com")
        sys.exit(1)


if __name__ == "__main__":
    main()
