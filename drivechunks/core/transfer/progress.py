"""
Progress aggregation.

Folds per-chunk byte deltas into file-level totals and a throughput
figure sampled over a fixed wall-clock window.
"""
import time
from typing import AsyncIterator, Callable, Optional

from .cancellation import CancellationToken
from .events import TransferObserver
from .models import Chunk, TransferProgress
from ..logging import get_logger

logger = get_logger('drivechunks.transfer.progress')


class SpeedSampler:
    """
    Throughput sampled once per window.
    
    Bytes accumulate until ``window`` seconds have passed, then the rate
    is computed and the accumulator resets. Between ticks the last rate
    is reported.
    """
    
    def __init__(self, window: float = 1.0, clock: Callable[[], float] = time.monotonic):
        if window <= 0:
            raise ValueError("Sampling window must be positive")
        self._window = window
        self._clock = clock
        self._window_start = clock()
        self._bytes = 0
        self._speed = 0.0
    
    @property
    def speed(self) -> float:
        """Bytes per second over the last completed window."""
        return self._speed
    
    def add(self, delta: int) -> float:
        self._bytes += delta
        now = self._clock()
        elapsed = now - self._window_start
        if elapsed >= self._window:
            self._speed = self._bytes / elapsed
            self._bytes = 0
            self._window_start = now
        return self._speed


class ProgressAggregator:
    """
    Running byte total for one file transfer.
    
    Example:
        >>> aggregator = ProgressAggregator(total_size=2500, total_chunks=3)
        >>> aggregator.add(chunk, transferred=500, delta=500).file_percentage
        20
    """
    
    def __init__(
        self,
        total_size: int,
        total_chunks: int,
        speed_window: float = 1.0,
        clock: Callable[[], float] = time.monotonic
    ):
        self._total_size = total_size
        self._total_chunks = total_chunks
        self._transferred = 0
        self._sampler = SpeedSampler(speed_window, clock)
    
    @property
    def transferred(self) -> int:
        return self._transferred
    
    @property
    def file_percentage(self) -> int:
        if self._total_size == 0:
            return 100
        return round(self._transferred / self._total_size * 100)
    
    def add(self, chunk: Chunk, transferred: int, delta: int) -> TransferProgress:
        """
        Record ``delta`` new bytes for ``chunk``.
        
        Args:
            chunk: Chunk the bytes belong to
            transferred: Bytes of this chunk moved so far
            delta: Bytes moved since the previous report
        """
        self._transferred += delta
        speed = self._sampler.add(delta)
        return TransferProgress(
            chunk=chunk,
            transferred=transferred,
            delta=delta,
            speed=speed,
            file_transferred=self._transferred,
            file_size=self._total_size,
            total_chunks=self._total_chunks,
        )


async def track_progress(
    stream: AsyncIterator[bytes],
    chunk: Chunk,
    aggregator: ProgressAggregator,
    observer: TransferObserver,
    cancel_token: Optional[CancellationToken] = None
) -> AsyncIterator[bytes]:
    """
    Pass ``stream`` through, reporting progress for every block.
    
    Raises:
        TransferCancelledError: If the token fires between blocks
    """
    transferred = 0
    async for block in stream:
        if cancel_token:
            cancel_token.raise_if_cancelled()
        transferred += len(block)
        await observer.on_progress(aggregator.add(chunk, transferred, len(block)))
        yield block


async def close_stream(stream: AsyncIterator[bytes]) -> None:
    """
    Close an async generator stream, releasing whatever it holds.
    
    A generator still running inside the HTTP writer cannot be closed
    from here; that case is logged and left to the writer.
    """
    aclose = getattr(stream, 'aclose', None)
    if aclose is None:
        return
    try:
        await aclose()
    except RuntimeError as e:
        logger.debug(f"Stream already running, not closed: {e}")
