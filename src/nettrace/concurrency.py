"""
Bounded fan-out of independent sub-queries.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Generic, Hashable, List, Mapping, Optional, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")

DEFAULT_WIDTH = 3


@dataclass
class LimiterOutcome(Generic[K, T]):
    """Successful results by key plus failures in the order they occurred."""

    results: Dict[K, T] = field(default_factory=dict)
    errors: List[Tuple[K, BaseException]] = field(default_factory=list)

    @property
    def first_error(self) -> Optional[BaseException]:
        return self.errors[0][1] if self.errors else None


class ConcurrencyLimiter:
    """
    Runs jobs with at most `width` in flight.

    Every job runs to completion; a failing job is recorded rather than
    cancelling its siblings.
    """

    def __init__(self, width: int = DEFAULT_WIDTH):
        if width < 1:
            raise ValueError("width must be at least 1")
        self.width = width

    async def run(self, jobs: Mapping[K, Callable[[], Awaitable[T]]]) -> LimiterOutcome[K, T]:
        semaphore = asyncio.Semaphore(self.width)
        lock = asyncio.Lock()
        outcome: LimiterOutcome[K, T] = LimiterOutcome()

        async def run_one(key: K, job: Callable[[], Awaitable[T]]) -> None:
            async with semaphore:
                try:
                    value = await job()
                except Exception as e:
                    async with lock:
                        outcome.errors.append((key, e))
                    return
            async with lock:
                outcome.results[key] = value

        await asyncio.gather(*(run_one(key, job) for key, job in jobs.items()))
        return outcome
