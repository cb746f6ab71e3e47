"""
Chunk planning.

Turns a source size into ordered chunk descriptors with pre-allocated
remote IDs.
"""
from typing import List, Optional

from .cancellation import CancellationToken
from .events import TransferObserver
from .models import Chunk, ChunkPlan
from .protocols import IdAllocatorProtocol
from .strategies import FixedSizeChunkingStrategy
from ..logging import get_logger, format_size

logger = get_logger('drivechunks.transfer.planner')


class ChunkPlanner:
    """
    Computes contiguous byte ranges and assigns each an ID and an index.
    
    The index → ID assignment is fixed before any transfer starts.
    """
    
    def __init__(self, allocator: IdAllocatorProtocol):
        self._allocator = allocator
    
    async def plan(
        self,
        total_size: int,
        max_chunk_size: int,
        observer: Optional[TransferObserver] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> ChunkPlan:
        """
        Plan the chunks of a source.
        
        Args:
            total_size: Source size in bytes
            max_chunk_size: Maximum chunk size in bytes
            observer: Receives a chunking-progress event per chunk
            cancel_token: Checked before each chunk is produced
            
        Returns:
            Chunk plan ordered by index
            
        Raises:
            ValueError: If max_chunk_size is not positive
            AllocationError: If IDs cannot be allocated
        """
        observer = observer or TransferObserver()
        strategy = FixedSizeChunkingStrategy(max_chunk_size)
        ranges = strategy.calculate_chunks(total_size)
        total_chunks = len(ranges)
        
        ids = await self._allocator.allocate(total_chunks) if total_chunks else []
        
        chunks: List[Chunk] = []
        for index, (start, end) in enumerate(ranges):
            if cancel_token:
                cancel_token.raise_if_cancelled()
            if index < len(ids):
                chunk_id = ids[index]
            else:
                # only reachable if the batch came back short
                chunk_id = (await self._allocator.allocate(1))[0]
            chunks.append(Chunk(index=index, id=chunk_id, start=start, end=end))
            await observer.on_chunking_progress(index, total_chunks)
        
        logger.info(
            f"Planned {total_chunks} chunks for {format_size(total_size)} "
            f"(max {format_size(max_chunk_size)} per chunk)"
        )
        return ChunkPlan(total_size=total_size, max_chunk_size=max_chunk_size, chunks=chunks)
