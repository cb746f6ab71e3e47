"""
Remote ID allocation.

Requests pre-generated object IDs in capped batches and tops up any
shortfall until the full count is collected.
"""
from typing import List

from .protocols import RemoteStoreProtocol
from ..exceptions import AllocationError
from ..logging import get_logger

logger = get_logger('drivechunks.transfer.allocator')


class IdAllocator:
    """
    All-or-nothing batch ID allocator.
    
    Example:
        >>> allocator = IdAllocator(drive, max_per_request=1000)
        >>> ids = await allocator.allocate(2500)   # three calls or more
    """
    
    MAX_IDS_PER_REQUEST = 1000
    
    def __init__(
        self,
        store: RemoteStoreProtocol,
        max_per_request: int = MAX_IDS_PER_REQUEST
    ):
        if max_per_request <= 0:
            raise ValueError("max_per_request must be positive")
        self._store = store
        self._max_per_request = max_per_request
    
    @property
    def max_per_request(self) -> int:
        return self._max_per_request
    
    async def allocate(self, n: int) -> List[str]:
        """
        Allocate exactly ``n`` IDs.
        
        Args:
            n: Number of IDs needed
            
        Returns:
            List of ``n`` IDs
            
        Raises:
            AllocationError: If a call raises or returns no IDs at all
        """
        ids: List[str] = []
        calls = 0
        while len(ids) < n:
            remaining = n - len(ids)
            requested = min(remaining, self._max_per_request)
            try:
                batch = await self._store.generate_ids(requested)
            except Exception as e:
                logger.error(f"ID allocation failed after {len(ids)}/{n} IDs: {e}")
                raise AllocationError(
                    f"Could not allocate {n} IDs: {e}",
                    requested=n,
                    received=len(ids)
                ) from e
            calls += 1
            
            if not batch:
                raise AllocationError(
                    f"Store returned no IDs ({len(ids)}/{n} allocated)",
                    requested=n,
                    received=len(ids)
                )
            if len(batch) < requested:
                logger.debug(f"Store returned {len(batch)}/{requested} IDs, topping up")
            
            ids.extend(batch[:remaining])
        
        if n > 0:
            logger.debug(f"Allocated {n} IDs in {calls} call(s)")
        return ids
