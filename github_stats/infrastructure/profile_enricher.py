"""Batched, partially-fault-tolerant profile lookups."""
import asyncio
import logging
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from github_stats.domain.events import EventSink, emit, logging_sink


logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def chunk(items: Sequence[T], size: int) -> List[Sequence[T]]:
    """Split into order-preserving chunks of at most ``size`` items."""
    return [items[i:i + size] for i in range(0, len(items), size)]


class BatchProfileEnricher(Generic[T, R]):
    """Looks up full profiles for lightweight identifiers.

    Lookups within a batch run concurrently; batches run one after another
    with a fixed pause in between. A failed lookup is logged and dropped.
    """

    def __init__(
        self,
        lookup: Callable[[T], Awaitable[R]],
        batch_size: int = 10,
        delay_between_batches: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        events: Optional[EventSink] = None,
    ):
        """Initialize enricher.

        Args:
            lookup: Coroutine fetching one profile
            batch_size: Lookups issued concurrently per batch
            delay_between_batches: Seconds to pause between batches
            sleep: Coroutine used for the pause
            events: Sink for structured progress events
        """
        self._lookup = lookup
        self._batch_size = max(1, batch_size)
        self._delay = delay_between_batches
        self._sleep = sleep
        self._events = events or logging_sink

    async def _lookup_or_none(self, identifier: T) -> Optional[R]:
        try:
            return await self._lookup(identifier)
        except Exception as e:
            # One failed profile must not sink the batch
            emit(
                self._events, "enrich.failure", logging.WARNING,
                identifier=str(identifier), error=str(e),
            )
            return None

    async def enrich(self, identifiers: Sequence[T]) -> List[R]:
        """Fetch profiles for all identifiers, skipping failed lookups.

        Returns:
            Successful profiles, in identifier order
        """
        results: List[R] = []
        batches = chunk(identifiers, self._batch_size)

        for index, batch in enumerate(batches):
            profiles = await asyncio.gather(*(self._lookup_or_none(item) for item in batch))
            succeeded = [profile for profile in profiles if profile is not None]
            results.extend(succeeded)
            emit(
                self._events, "enrich.batch", logging.DEBUG,
                batch=index + 1, batches=len(batches),
                succeeded=len(succeeded), failed=len(batch) - len(succeeded),
            )

            if index < len(batches) - 1 and self._delay > 0:
                await self._sleep(self._delay)

        return results
