"""
Bounded-concurrency pool for chunk transfers.

Runs chunk jobs with a fixed set of workers. The ceiling is shared by
every run on the same pool, so two files transferring at once contend
for the same slots.
"""
import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar, Union

from .cancellation import CancellationToken
from ..exceptions import TransferCancelledError
from ..logging import get_logger

T = TypeVar('T')

logger = get_logger('drivechunks.transfer.pool')


class TransferPool:
    """
    Drains a list of coroutine factories, at most ``concurrency`` at a time.
    
    Each job settles independently: a raising job is recorded as its
    exception and never cancels or blocks the others.
    
    Example:
        >>> pool = TransferPool(concurrency=3)
        >>> results = await pool.run([lambda: upload(c) for c in chunks])
    """
    
    def __init__(self, concurrency: int = 3, name: str = 'transfer'):
        if concurrency <= 0:
            raise ValueError("Pool concurrency must be positive")
        self._concurrency = concurrency
        self._name = name
        self._slots = asyncio.Semaphore(concurrency)
        self._in_flight = 0
        self._peak_in_flight = 0
    
    @property
    def concurrency(self) -> int:
        return self._concurrency
    
    @property
    def in_flight(self) -> int:
        """Jobs currently running."""
        return self._in_flight
    
    @property
    def peak_in_flight(self) -> int:
        """Highest number of simultaneously running jobs observed."""
        return self._peak_in_flight
    
    async def run(
        self,
        jobs: Sequence[Callable[[], Awaitable[T]]],
        cancel_token: Optional[CancellationToken] = None
    ) -> List[Union[T, BaseException]]:
        """
        Run every job and collect the results.
        
        Args:
            jobs: Coroutine factories, called once each
            cancel_token: Jobs not started when it fires settle with
                TransferCancelledError without running
            
        Returns:
            Results in input order; a failed job's slot holds its exception
        """
        results: List[Union[T, BaseException, None]] = [None] * len(jobs)
        if not jobs:
            return []
        
        queue: asyncio.Queue = asyncio.Queue()
        for position, job in enumerate(jobs):
            queue.put_nowait((position, job))
        
        async def worker() -> None:
            while True:
                try:
                    position, job = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                async with self._slots:
                    if cancel_token and cancel_token.cancelled:
                        results[position] = TransferCancelledError("Job not started: transfer cancelled")
                        continue
                    self._in_flight += 1
                    self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
                    try:
                        results[position] = await job()
                    except Exception as e:
                        results[position] = e
                    finally:
                        self._in_flight -= 1
        
        worker_count = min(self._concurrency, len(jobs))
        logger.debug(f"{self._name} pool: {len(jobs)} jobs, {worker_count} workers")
        await asyncio.gather(*(worker() for _ in range(worker_count)))
        return results
