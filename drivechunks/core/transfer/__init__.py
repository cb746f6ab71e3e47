"""
Chunked transfer engine.

Splits files into fixed-size chunks stored as independent Drive objects,
transfers them with bounded concurrency and reassembles them in order.
Chunking and the remote store are pluggable through protocols.
"""
from .coordinator import TransferCoordinator
from .allocator import IdAllocator
from .planner import ChunkPlanner
from .pool import TransferPool
from .progress import SpeedSampler, ProgressAggregator, track_progress
from .reassembler import Reassembler, AsyncWritable, chunks_from_records
from .cancellation import CancellationToken
from .events import ChunkEvent, TransferObserver, CompositeObserver
from .models import (
    Chunk,
    ChunkPlan,
    ChunkOutcome,
    TransferProgress,
    TransferConfig,
    UploadResult,
    DownloadResult,
)
from .protocols import ChunkingStrategy, RemoteStoreProtocol, IdAllocatorProtocol

__all__ = [
    # Main classes
    'TransferCoordinator',
    'IdAllocator',
    'ChunkPlanner',
    'TransferPool',
    'Reassembler',
    'CancellationToken',
    
    # Progress and events
    'SpeedSampler',
    'ProgressAggregator',
    'track_progress',
    'ChunkEvent',
    'TransferObserver',
    'CompositeObserver',
    
    # Models
    'Chunk',
    'ChunkPlan',
    'ChunkOutcome',
    'TransferProgress',
    'TransferConfig',
    'UploadResult',
    'DownloadResult',
    
    # Protocols
    'ChunkingStrategy',
    'RemoteStoreProtocol',
    'IdAllocatorProtocol',
    'AsyncWritable',
    'chunks_from_records',
]
