"""
Bounded-concurrency gate for remote API calls.

Every Drive call passes through one of these, independently of how many
chunk transfers are running.
"""
import asyncio
from typing import Awaitable, Callable, TypeVar

from ..logging import get_logger

T = TypeVar('T')

logger = get_logger('drivechunks.api.limiter')


class ConcurrencyLimiter:
    """
    Admits at most ``limit`` operations at a time.
    
    Waiting for a slot blocks without a timeout. Usable as an async
    context manager or through :meth:`run`.
    
    Example:
        >>> limiter = ConcurrencyLimiter(3)
        >>> async with limiter:
        ...     await session.get(url)
    """
    
    def __init__(self, limit: int = 3, name: str = 'api'):
        if limit <= 0:
            raise ValueError("Limiter ceiling must be positive")
        self._limit = limit
        self._name = name
        self._semaphore = asyncio.Semaphore(limit)
        self._in_flight = 0
        self._peak_in_flight = 0
    
    @property
    def limit(self) -> int:
        """Configured ceiling."""
        return self._limit
    
    @property
    def in_flight(self) -> int:
        """Operations currently holding a slot."""
        return self._in_flight
    
    @property
    def peak_in_flight(self) -> int:
        """Highest number of simultaneous holders observed."""
        return self._peak_in_flight
    
    async def acquire(self) -> None:
        await self._semaphore.acquire()
        self._in_flight += 1
        self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
        logger.debug(f"{self._name} limiter slot acquired ({self._in_flight}/{self._limit})")
    
    def release(self) -> None:
        self._in_flight -= 1
        self._semaphore.release()
    
    async def __aenter__(self) -> 'ConcurrencyLimiter':
        await self.acquire()
        return self
    
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.release()
    
    async def run(self, func: Callable[[], Awaitable[T]]) -> T:
        """Run ``func()`` while holding a slot."""
        async with self:
            return await func()
