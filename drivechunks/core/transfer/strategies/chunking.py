"""
Chunking strategies for file transfers.

Implements Strategy Pattern for different chunking algorithms.
"""
from abc import ABC, abstractmethod
from typing import List, Tuple


class BaseChunkingStrategy(ABC):
    """Abstract base class for chunking strategies."""
    
    @abstractmethod
    def calculate_chunks(self, file_size: int) -> List[Tuple[int, int]]:
        """Calculate inclusive chunk boundaries."""
        pass


class FixedSizeChunkingStrategy(BaseChunkingStrategy):
    """
    Fixed-size chunking strategy.
    
    Every chunk is ``chunk_size`` bytes except the last one, which holds
    the remainder.
    """
    
    DEFAULT_CHUNK_SIZE = 1024 * 1024  # 1MB
    
    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Initialize with chunk size.
        
        Args:
            chunk_size: Size of each chunk in bytes
        """
        if chunk_size <= 0:
            raise ValueError("Chunk size must be positive")
        self.chunk_size = chunk_size
    
    def total_chunks(self, file_size: int) -> int:
        """ceil(file_size / chunk_size)."""
        return -(-file_size // self.chunk_size)
    
    def calculate_chunks(self, file_size: int) -> List[Tuple[int, int]]:
        """
        Calculate fixed-size chunk boundaries.
        
        Args:
            file_size: Total file size in bytes
            
        Returns:
            List of inclusive (start, end) tuples
        """
        if file_size < 0:
            raise ValueError("File size cannot be negative")
        
        chunks = []
        for i in range(self.total_chunks(file_size)):
            start = i * self.chunk_size
            end = min(file_size, start + self.chunk_size) - 1
            chunks.append((start, end))
        
        return chunks
