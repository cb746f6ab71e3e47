"""
Transfer event sink.

Callers observe planning, chunk lifecycle and byte progress through a
:class:`TransferObserver`. Every hook is awaited by the emitting task
before it continues.
"""
from enum import Enum
from typing import Iterable, List, Optional

from .models import Chunk, ChunkPlan, TransferProgress


class ChunkEvent(str, Enum):
    """Chunk lifecycle events."""
    START_UPLOADING = 'START_UPLOADING'
    END_UPLOADING = 'END_UPLOADING'
    ERROR_UPLOADING = 'ERROR_UPLOADING'
    START_DOWNLOADING = 'START_DOWNLOADING'
    END_DOWNLOADING = 'END_DOWNLOADING'
    ERROR_DOWNLOADING = 'ERROR_DOWNLOADING'


class TransferObserver:
    """
    Base event sink; every hook is a no-op.
    
    Subclass and override the hooks you care about.
    """
    
    async def on_chunking_progress(self, index: int, total_chunks: int) -> None:
        """A chunk descriptor was planned."""
    
    async def on_chunking_complete(self, plan: ChunkPlan) -> None:
        """The full plan is ready; no transfer has started yet."""
    
    async def on_chunk_event(
        self,
        event: ChunkEvent,
        chunk: Chunk,
        error: Optional[BaseException] = None
    ) -> None:
        """A chunk started, finished or failed."""
    
    async def on_progress(self, progress: TransferProgress) -> None:
        """Bytes moved for a chunk."""


class CompositeObserver(TransferObserver):
    """Fans every event out to several observers, in order."""
    
    def __init__(self, observers: Iterable[TransferObserver]):
        self._observers: List[TransferObserver] = list(observers)
    
    async def on_chunking_progress(self, index: int, total_chunks: int) -> None:
        for observer in self._observers:
            await observer.on_chunking_progress(index, total_chunks)
    
    async def on_chunking_complete(self, plan: ChunkPlan) -> None:
        for observer in self._observers:
            await observer.on_chunking_complete(plan)
    
    async def on_chunk_event(
        self,
        event: ChunkEvent,
        chunk: Chunk,
        error: Optional[BaseException] = None
    ) -> None:
        for observer in self._observers:
            await observer.on_chunk_event(event, chunk, error)
    
    async def on_progress(self, progress: TransferProgress) -> None:
        for observer in self._observers:
            await observer.on_progress(progress)
