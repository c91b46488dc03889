"""Error taxonomy shared by every layer."""
import time
from typing import Optional


class GitHubStatsError(Exception):
    """Base class for all errors raised by this package."""
    pass


class ConfigurationError(GitHubStatsError):
    """Raised when settings cannot be parsed."""
    pass


class MalformedInputError(GitHubStatsError):
    """Raised for unusable caller input, before any remote call is made."""
    pass


class UpstreamError(GitHubStatsError):
    """Exception raised when the GitHub API answers with an error."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class NotFoundError(UpstreamError):
    """Repository, release or traffic data absent or inaccessible."""

    def __init__(self, message: str, status: int = 404):
        super().__init__(message, status=status)


class FeatureUnavailableError(UpstreamError):
    """An enhanced media type was rejected for this endpoint or auth context."""
    pass


class QuotaExceededError(UpstreamError):
    """Exception raised when rate limit is hit.

    Carries the hints GitHub gives for when to come back: ``retry_after``
    (seconds, secondary limits) and ``reset_time`` (epoch seconds, primary
    limits).
    """

    def __init__(
        self,
        message: str,
        status: int = 429,
        retry_after: Optional[int] = None,
        reset_time: Optional[int] = None,
    ):
        super().__init__(message, status=status)
        self.retry_after = retry_after
        self.reset_time = reset_time

    def wait_seconds(self, now: Optional[float] = None) -> Optional[float]:
        """Seconds to wait before retrying, or None when no hint is usable."""
        if self.retry_after is not None:
            return float(max(0, self.retry_after))
        if self.reset_time is not None:
            now = time.time() if now is None else now
            return max(0.0, self.reset_time - now)
        return None


class PollTimeoutError(UpstreamError):
    """A polled resource never produced a valid result."""
    pass
