"""
Data models for the transfer engine.

Uses dataclasses for immutable, type-safe data structures.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Chunk:
    """
    A contiguous byte range of a source file, stored as one remote object.
    
    Attributes:
        index: Position of the chunk in reassembly order
        id: Pre-allocated remote object ID
        start: First byte offset (inclusive)
        end: Last byte offset (inclusive)
    
    Example:
        >>> Chunk(index=2, id='abc', start=2000, end=2499).size
        500
    """
    index: int
    id: str
    start: int
    end: int
    
    @property
    def size(self) -> int:
        """Returns chunk size."""
        return self.end - self.start + 1
    
    @property
    def source_range(self) -> Tuple[int, int]:
        """Inclusive (start, end) byte range."""
        return (self.start, self.end)


@dataclass(frozen=True)
class ChunkPlan:
    """Ordered chunks covering a source of ``total_size`` bytes."""
    total_size: int
    max_chunk_size: int
    chunks: List[Chunk] = field(default_factory=list)
    
    @property
    def total_chunks(self) -> int:
        return len(self.chunks)


@dataclass(frozen=True)
class ChunkOutcome:
    """
    Settlement of one chunk transfer.
    
    Attributes:
        chunk: The chunk that was transferred
        error: True if the transfer failed
        remote_id: Remote object ID (uploads only, absent on error)
        exception: The failure, when there is one
    """
    chunk: Chunk
    error: bool
    remote_id: Optional[str] = None
    exception: Optional[BaseException] = None


@dataclass
class TransferProgress:
    """
    Byte-level progress of one chunk, with the owning file's totals.
    
    Attributes:
        chunk: Chunk being transferred
        transferred: Bytes of this chunk moved so far
        delta: Bytes moved since the previous report
        speed: Sampled file throughput in bytes per second
        file_transferred: Bytes of the whole file moved so far
        file_size: Total file size
        total_chunks: Number of chunks in the file
    """
    chunk: Chunk
    transferred: int
    delta: int
    speed: float
    file_transferred: int
    file_size: int
    total_chunks: int
    
    @property
    def total(self) -> int:
        """Size of the chunk."""
        return self.chunk.size
    
    @property
    def percentage(self) -> float:
        """Chunk progress as a percentage."""
        if self.chunk.size == 0:
            return 100.0
        return (self.transferred / self.chunk.size) * 100
    
    @property
    def file_percentage(self) -> int:
        """File progress as a rounded percentage."""
        if self.file_size == 0:
            return 100
        return round(self.file_transferred / self.file_size * 100)


@dataclass
class TransferConfig:
    """
    Configuration for chunked transfers.
    
    Attributes:
        max_chunk_size: Maximum size of a chunk in bytes
        stream_buffer_size: Read/write buffer per chunk stream in bytes
        transfer_concurrency: Maximum simultaneous chunk uploads
        download_concurrency: Maximum simultaneous chunk downloads
            (same as transfer_concurrency when not set)
        shuffle_uploads: Present uploads in random order
        root_directory_name: Name of the reserved root folder in Drive
        speed_window: Throughput sampling window in seconds
    """
    max_chunk_size: int = 1024 * 1024
    stream_buffer_size: int = 64 * 1024
    transfer_concurrency: int = 3
    download_concurrency: Optional[int] = None
    shuffle_uploads: bool = False
    root_directory_name: str = 'drivechunks'
    speed_window: float = 1.0
    
    def __post_init__(self):
        """Validate config."""
        if self.max_chunk_size <= 0:
            raise ValueError("max_chunk_size must be positive")
        if self.stream_buffer_size <= 0:
            raise ValueError("stream_buffer_size must be positive")
        if self.transfer_concurrency <= 0:
            raise ValueError("transfer_concurrency must be positive")
        if self.download_concurrency is None:
            self.download_concurrency = self.transfer_concurrency
        elif self.download_concurrency <= 0:
            raise ValueError("download_concurrency must be positive")


@dataclass(frozen=True)
class UploadResult:
    """
    Result of an upload.
    
    Attributes:
        file_id: Logical file ID (also the grouping folder's ID)
        name: File name
        size: File size in bytes
        outcomes: Per-chunk outcomes ordered by chunk index
        sha256: Hex digest of the source file
    """
    file_id: str
    name: str
    size: int
    outcomes: List[ChunkOutcome] = field(default_factory=list)
    sha256: Optional[str] = None
    
    @property
    def failed_chunks(self) -> List[Chunk]:
        return [outcome.chunk for outcome in self.outcomes if outcome.error]
    
    @property
    def is_complete(self) -> bool:
        """True if every chunk uploaded."""
        return not self.failed_chunks


@dataclass(frozen=True)
class DownloadResult:
    """Result of a successful download."""
    file_id: str
    size: int
    sha256: str
