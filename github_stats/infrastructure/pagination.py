"""Page-number pagination over GitHub listing endpoints."""
import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Dict, List, Optional

from github_stats.domain.errors import NotFoundError, QuotaExceededError, UpstreamError
from github_stats.domain.events import EventSink, emit, logging_sink
from github_stats.domain.github_interface import IGitHubClient


logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def _keep(record: Any) -> Any:
    return record


@dataclass(frozen=True)
class ResourceDescriptor:
    """What to list and how to read each raw record.

    Attributes:
        path: API path of the listing endpoint
        params: Extra query parameters (``page``/``per_page`` are added)
        accept: Media type to negotiate, e.g. the timestamped star listing
        parse: Turns a raw record into a domain value; None drops the record
        fallback: Plainer listing to switch to when ``accept`` is refused
        optional: Treat 404 as an empty listing
    """
    path: str
    params: Dict[str, Any] = field(default_factory=dict)
    accept: Optional[str] = None
    parse: Callable[[Any], Any] = _keep
    fallback: Optional['ResourceDescriptor'] = None
    optional: bool = False

    def without_fallback(self) -> 'ResourceDescriptor':
        return replace(self, fallback=None)


class PaginatedFetcher:
    """Walks a listing from page 1 until a short or empty page.

    Each call starts over from page 1; nothing is cached between calls.
    """

    def __init__(
        self,
        client: IGitHubClient,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        events: Optional[EventSink] = None,
        pause_every: int = 10,
        pause_seconds: float = 1.0,
    ):
        """Initialize fetcher.

        Args:
            client: GitHub API client implementation
            sleep: Coroutine used for the courtesy pause
            events: Sink for structured progress events
            pause_every: Pause after every this many pages
            pause_seconds: Length of the courtesy pause
        """
        self._client = client
        self._sleep = sleep
        self._events = events or logging_sink
        self._pause_every = pause_every
        self._pause_seconds = pause_seconds

    async def fetch_all(
        self,
        resource: ResourceDescriptor,
        page_size: int = MAX_PAGE_SIZE,
        hard_cap: Optional[int] = None,
    ) -> List[Any]:
        """Collect every record of a listing, or the first ``hard_cap`` of them.

        If the enhanced listing is refused and the resource has a fallback,
        the walk restarts from page 1 with the fallback for the rest of the
        call.

        Args:
            resource: Listing to walk
            page_size: Records per page (GitHub max is 100)
            hard_cap: Stop once this many records are collected

        Returns:
            Parsed records in listing order
        """
        page_size = min(page_size, MAX_PAGE_SIZE)
        try:
            return await self._walk(resource, page_size, hard_cap)
        except NotFoundError:
            if not resource.optional:
                raise
            emit(self._events, "pagination.not_found", logging.WARNING, path=resource.path)
            return []
        except QuotaExceededError:
            raise
        except UpstreamError as e:
            if resource.fallback is None:
                raise
            emit(
                self._events, "pagination.fallback", logging.WARNING,
                path=resource.path, accept=resource.accept, error=str(e),
            )
            return await self.fetch_all(resource.fallback.without_fallback(), page_size, hard_cap)

    async def _walk(
        self, resource: ResourceDescriptor, page_size: int, hard_cap: Optional[int]
    ) -> List[Any]:
        records: List[Any] = []
        page = 1

        while True:
            params = {**resource.params, "per_page": page_size, "page": page}
            response = await self._client.request(resource.path, params=params, accept=resource.accept)
            raw_records = response.data or []

            if not raw_records:
                break

            records.extend(
                parsed for parsed in (resource.parse(raw) for raw in raw_records)
                if parsed is not None
            )
            emit(
                self._events, "pagination.page", logging.DEBUG,
                path=resource.path, page=page, count=len(raw_records), total=len(records),
            )

            if len(raw_records) < page_size:
                break
            if hard_cap is not None and len(records) >= hard_cap:
                break

            if page % self._pause_every == 0:
                emit(
                    self._events, "pagination.pause", logging.INFO,
                    path=resource.path, page=page, seconds=self._pause_seconds,
                )
                await self._sleep(self._pause_seconds)
            page += 1

        if hard_cap is not None:
            return records[:hard_cap]
        return records
