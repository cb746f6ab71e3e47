"""
File validation and reading services.

Single Responsibility: Each class handles one specific task.
"""
import hashlib
import logging
from pathlib import Path
from typing import AsyncIterator, Tuple, Union

import aiofiles


class FileValidator:
    """
    Validates files before upload.

    Responsibilities:
    - Check file existence
    - Verify file is not a directory
    - Get file size
    """

    def validate(self, file_path: Union[str, Path]) -> Tuple[Path, int]:
        """
        Validate a file for upload.

        Args:
            file_path: Path to the file

        Returns:
            Tuple of (validated Path, file size in bytes)

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If path is not a regular file
        """
        path = Path(file_path) if isinstance(file_path, str) else file_path

        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        if not path.is_file():
            raise ValueError(f"Path is not a file: {path}")

        file_size = path.stat().st_size

        return path, file_size

    def validate_size(self, file_size: int) -> None:
        """
        Validate file size.

        Empty files are allowed; they produce a manifest without chunks.

        Raises:
            ValueError: If the size is negative
        """
        if file_size < 0:
            raise ValueError("File size cannot be negative")


class AsyncFileReader:
    """
    Asynchronous ranged reader.

    Uses aiofiles for non-blocking I/O. Every range opens its own handle,
    so concurrent chunk streams never share a file position.
    """

    def __init__(self, buffer_size: int = 64 * 1024):
        """
        Initialize file reader.

        Args:
            buffer_size: Size of each block yielded by iter_range
        """
        if buffer_size <= 0:
            raise ValueError("Buffer size must be positive")
        self._buffer_size = buffer_size
        self._logger = logging.getLogger('drivechunks.transfer.file')

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

    async def iter_range(
        self,
        file_path: Path,
        start: int,
        end: int
    ) -> AsyncIterator[bytes]:
        """
        Stream an inclusive byte range in buffer-sized blocks.

        Args:
            file_path: Path to the file
            start: First byte offset
            end: Last byte offset (inclusive)

        Raises:
            ValueError: If the file ends before ``end``
        """
        remaining = end - start + 1
        async with aiofiles.open(file_path, 'rb') as f:
            await f.seek(start)
            while remaining > 0:
                block = await f.read(min(self._buffer_size, remaining))
                if not block:
                    raise ValueError(
                        f"Unexpected end of file reading {start}-{end} of {file_path}"
                    )
                remaining -= len(block)
                yield block
        self._logger.debug(f"Read range {start}-{end} of {file_path.name}")

    async def hash_file(self, file_path: Path) -> str:
        """
        SHA-256 hex digest of a whole file.

        Raises:
            OSError: If the file cannot be read
        """
        digest = hashlib.sha256()
        async with aiofiles.open(file_path, 'rb') as f:
            while True:
                block = await f.read(self._buffer_size)
                if not block:
                    break
                digest.update(block)
        return digest.hexdigest()
