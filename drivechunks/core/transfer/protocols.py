"""
Protocol definitions for the transfer engine.

Defines the interfaces the engine depends on, so the Drive client, the
allocator and the chunking algorithm can be swapped (and faked in tests).
"""
from typing import AsyncIterator, List, Optional, Protocol, Tuple


class ChunkingStrategy(Protocol):
    """Protocol for file chunking strategies."""
    
    def calculate_chunks(self, file_size: int) -> List[Tuple[int, int]]:
        """
        Calculate chunk boundaries for a file.
        
        Args:
            file_size: Total file size in bytes
            
        Returns:
            List of inclusive (start, end) tuples
        """
        ...


class RemoteStoreProtocol(Protocol):
    """Operations the engine needs from the remote object store."""
    
    async def ensure_root_directory(self, name: str) -> str:
        ...
    
    async def create_directory(
        self,
        name: str,
        object_id: Optional[str] = None,
        parent_id: Optional[str] = None
    ) -> str:
        ...
    
    async def create_object(
        self,
        name: str,
        stream: AsyncIterator[bytes],
        size: int,
        object_id: Optional[str] = None,
        parent_id: Optional[str] = None,
        mime_type: Optional[str] = None
    ):
        """Returns an object with an ``id`` attribute, or None on soft failure."""
        ...
    
    def read_object(
        self,
        object_id: str,
        size: int,
        buffer_size: int = 64 * 1024
    ) -> AsyncIterator[bytes]:
        ...
    
    async def generate_ids(self, count: int) -> List[str]:
        ...


class IdAllocatorProtocol(Protocol):
    """Protocol for remote ID allocation."""
    
    async def allocate(self, n: int) -> List[str]:
        """
        Allocate exactly ``n`` IDs.
        
        Raises:
            AllocationError: If the IDs cannot be allocated
        """
        ...
