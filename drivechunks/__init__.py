"""
drivechunks - Chunked file storage on Google Drive.

Usage:
    >>> from drivechunks import DriveChunksClient
    >>>
    >>> async with DriveChunksClient("alice", "catalog") as drive:
    ...     manifest = await drive.upload("video.mp4")
    ...     await drive.download(manifest.id, "copy.mp4")
"""
import logging
from .client import DriveChunksClient, FileEntry

# Configuration
from .core.api import (
    APIConfig,
    TimeoutConfig,
    DriveCredentials,
    DriveClient,
    RefreshTokenAuth,
    StaticTokenAuth,
)

# Transfer engine
from .core.transfer import (
    TransferConfig,
    TransferCoordinator,
    TransferObserver,
    CompositeObserver,
    ChunkEvent,
    CancellationToken,
    UploadResult,
    DownloadResult,
)

# Catalog
from .core.catalog import (
    CatalogStore,
    FileManifest,
    SQLiteCatalog,
    MemoryCatalog,
)

__version__ = '1.0.0'


def setup_logging(level=logging.INFO):
    """
    Configure logging for drivechunks modules.
    
    This ensures that all drivechunks loggers are properly configured
    to show log messages at the specified level.
    
    Args:
        level: Logging level (default: logging.INFO)
    """
    loggers = [
        'drivechunks',
        'drivechunks.api',
        'drivechunks.client',
        'drivechunks.catalog',
        'drivechunks.transfer',
        'drivechunks.transfer.coordinator',
        'drivechunks.transfer.reassembler',
        'drivechunks.transfer.pool',
    ]
    
    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = True


__all__ = [
    'DriveChunksClient',
    'FileEntry',
    'APIConfig',
    'TimeoutConfig',
    'DriveCredentials',
    'DriveClient',
    'RefreshTokenAuth',
    'StaticTokenAuth',
    'TransferConfig',
    'TransferCoordinator',
    'TransferObserver',
    'CompositeObserver',
    'ChunkEvent',
    'CancellationToken',
    'UploadResult',
    'DownloadResult',
    'CatalogStore',
    'FileManifest',
    'SQLiteCatalog',
    'MemoryCatalog',
    'setup_logging',
]
