"""
Catalog storage protocol.

The transfer engine and the client only rely on these operations.
"""
from typing import List, Optional, Protocol, runtime_checkable

from .models import DirectoryRecord, FileManifest, UserRecord


@runtime_checkable
class CatalogStore(Protocol):
    """
    Protocol for catalog implementations.
    
    Implementations must enforce per-owner uniqueness of (name, parent)
    for directories and return manifest chunks ordered by index.
    """
    
    def upsert_user(self, username: str) -> UserRecord:
        ...
    
    def create_directory(
        self,
        name: str,
        owner_username: str,
        parent_id: Optional[str] = None
    ) -> DirectoryRecord:
        """
        Raises:
            DirectoryExistsError: If the name is taken under the parent
            CatalogError: If the parent does not exist
        """
        ...
    
    def directory_exists(
        self,
        name: str,
        parent_id: Optional[str],
        owner_username: str
    ) -> bool:
        ...
    
    def list_directories(self, owner_username: str) -> List[DirectoryRecord]:
        ...
    
    def create_file(self, manifest: FileManifest) -> FileManifest:
        ...
    
    def get_file(
        self,
        file_id: str,
        owner_username: Optional[str] = None
    ) -> Optional[FileManifest]:
        ...
    
    def list_files(self, owner_username: str) -> List[FileManifest]:
        ...
    
    def close(self) -> None:
        ...
