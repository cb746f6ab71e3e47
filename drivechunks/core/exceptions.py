"""
Custom exceptions for drivechunks operations.

This module defines the exception classes raised by the transfer engine
and the catalog.
"""
from typing import Optional, Sequence, Any


class DriveChunksError(Exception):
    """Base exception for all drivechunks errors."""

    def __init__(self, message: str, error_code: Optional[int] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            error_code: Numeric error code (if available)
        """
        self.error_code = error_code
        super().__init__(message)


class AllocationError(DriveChunksError):
    """Raised when remote object IDs could not be allocated."""

    def __init__(
        self,
        message: str,
        requested: int = 0,
        received: int = 0,
        error_code: Optional[int] = None
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            requested: Number of IDs requested
            received: Number of IDs received before the failure
            error_code: Numeric error code (if available)
        """
        self.requested = requested
        self.received = received
        super().__init__(message, error_code)


class ChunkTransferError(DriveChunksError):
    """Raised when a single chunk fails to upload or download."""

    def __init__(
        self,
        message: str,
        chunk: Any = None,
        error_code: Optional[int] = None
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            chunk: The chunk (or chunk record) that failed
            error_code: Numeric error code (if available)
        """
        self.chunk = chunk
        super().__init__(message, error_code)

    @property
    def chunk_index(self) -> Optional[int]:
        """Index of the failed chunk, if known."""
        return getattr(self.chunk, 'index', None)

    @property
    def chunk_id(self) -> Optional[str]:
        """ID of the failed chunk, if known."""
        return getattr(self.chunk, 'id', None)


class ReassemblyError(DriveChunksError):
    """Raised when downloaded chunks cannot be merged into the destination."""

    def __init__(
        self,
        message: str,
        failed_chunks: Sequence[Any] = (),
        error_code: Optional[int] = None
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            failed_chunks: Chunks that failed to download
            error_code: Numeric error code (if available)
        """
        self.failed_chunks = list(failed_chunks)
        super().__init__(message, error_code)


class TransferCancelledError(DriveChunksError):
    """Raised when a transfer observes its cancellation token."""
    pass


class CatalogError(DriveChunksError):
    """Exception raised for catalog (metadata) failures."""
    pass


class DirectoryExistsError(CatalogError):
    """Raised when a directory with the same name already exists under a parent."""
    pass


class CatalogFileNotFoundError(CatalogError):
    """Raised when a file is not present in the catalog."""
    pass


class CyclicDirectoryError(CatalogError):
    """Raised when walking a directory's ancestors revisits a directory."""

    def __init__(
        self,
        message: str,
        directory_id: Optional[str] = None,
        error_code: Optional[int] = None
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            directory_id: Directory where the cycle was detected
            error_code: Numeric error code (if available)
        """
        self.directory_id = directory_id
        super().__init__(message, error_code)
