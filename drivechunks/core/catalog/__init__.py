"""
Local catalog module.

Tracks owners, directories and file manifests so files can be listed,
addressed by path and reassembled without querying Drive metadata.
"""
from .models import UserRecord, DirectoryRecord, ChunkRecord, FileManifest
from .protocols import CatalogStore
from .memory_catalog import MemoryCatalog
from .sqlite_catalog import SQLiteCatalog
from .paths import (
    DirectoryPath,
    index_directories,
    resolve_absolute_path,
    directories_with_absolute_paths,
    file_absolute_path,
    normalize_path,
    find_directory_by_path,
)

__all__ = [
    'UserRecord',
    'DirectoryRecord',
    'ChunkRecord',
    'FileManifest',
    'CatalogStore',
    'MemoryCatalog',
    'SQLiteCatalog',
    'DirectoryPath',
    'index_directories',
    'resolve_absolute_path',
    'directories_with_absolute_paths',
    'file_absolute_path',
    'normalize_path',
    'find_directory_by_path',
]
