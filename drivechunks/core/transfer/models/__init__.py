"""Transfer models."""
from .transfer_models import (
    Chunk,
    ChunkPlan,
    ChunkOutcome,
    TransferProgress,
    TransferConfig,
    UploadResult,
    DownloadResult,
)

__all__ = [
    'Chunk',
    'ChunkPlan',
    'ChunkOutcome',
    'TransferProgress',
    'TransferConfig',
    'UploadResult',
    'DownloadResult',
]
