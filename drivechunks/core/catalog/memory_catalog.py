"""
In-memory catalog implementation.

Provides non-persistent catalog storage for testing and temporary use.
"""
import uuid
from typing import Dict, List, Optional

from .models import DirectoryRecord, FileManifest, UserRecord
from .protocols import CatalogStore
from ..exceptions import CatalogError, DirectoryExistsError


class MemoryCatalog(CatalogStore):
    """
    In-memory catalog.

    Data is lost when the object is destroyed.

    Useful for:
    - Unit testing
    - Temporary sessions

    Example:
        >>> catalog = MemoryCatalog()
        >>> catalog.upsert_user('alice')
        >>> docs = catalog.create_directory('docs', 'alice')
    """

    def __init__(self):
        """Initialize memory catalog."""
        self._users: Dict[str, UserRecord] = {}
        self._directories: Dict[str, DirectoryRecord] = {}
        self._files: Dict[str, FileManifest] = {}

    def upsert_user(self, username: str) -> UserRecord:
        if username not in self._users:
            self._users[username] = UserRecord(username=username)
        return self._users[username]

    def create_directory(
        self,
        name: str,
        owner_username: str,
        parent_id: Optional[str] = None
    ) -> DirectoryRecord:
        if owner_username not in self._users:
            raise CatalogError(f"Unknown user: {owner_username}")
        if parent_id is not None:
            parent = self._directories.get(parent_id)
            if parent is None or parent.owner_username != owner_username:
                raise CatalogError(f"Parent directory not found: {parent_id}")
        if self.directory_exists(name, parent_id, owner_username):
            raise DirectoryExistsError(f"Directory '{name}' already exists")

        directory = DirectoryRecord(
            id=uuid.uuid4().hex,
            name=name,
            owner_username=owner_username,
            parent_directory_id=parent_id,
        )
        self._directories[directory.id] = directory
        return directory

    def directory_exists(
        self,
        name: str,
        parent_id: Optional[str],
        owner_username: str
    ) -> bool:
        return any(
            d.name == name
            and d.parent_directory_id == parent_id
            and d.owner_username == owner_username
            for d in self._directories.values()
        )

    def list_directories(self, owner_username: str) -> List[DirectoryRecord]:
        return [d for d in self._directories.values() if d.owner_username == owner_username]

    def create_file(self, manifest: FileManifest) -> FileManifest:
        manifest.validate()
        if manifest.owner_username not in self._users:
            raise CatalogError(f"Unknown user: {manifest.owner_username}")
        if manifest.id in self._files:
            raise CatalogError(f"File already exists: {manifest.id}")
        if manifest.parent_directory_id and manifest.parent_directory_id not in self._directories:
            raise CatalogError(f"Parent directory not found: {manifest.parent_directory_id}")
        self._files[manifest.id] = manifest
        return manifest

    def get_file(
        self,
        file_id: str,
        owner_username: Optional[str] = None
    ) -> Optional[FileManifest]:
        manifest = self._files.get(file_id)
        if manifest is None:
            return None
        if owner_username is not None and manifest.owner_username != owner_username:
            return None
        return manifest

    def list_files(self, owner_username: str) -> List[FileManifest]:
        return [f for f in self._files.values() if f.owner_username == owner_username]

    def close(self) -> None:
        """Close storage (no-op for memory storage)."""
        pass

    def __enter__(self) -> 'MemoryCatalog':
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
