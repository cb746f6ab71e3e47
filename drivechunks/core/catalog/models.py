"""
Catalog data models.

Users, directories and file manifests as stored in the local catalog.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..exceptions import CatalogError


@dataclass
class UserRecord:
    """A catalog owner."""
    username: str
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class DirectoryRecord:
    """
    A directory in an owner's tree.
    
    Attributes:
        id: Directory ID
        name: Directory name
        owner_username: Owner
        parent_directory_id: Parent directory, None for top-level directories
        created_at: Creation timestamp
    """
    id: str
    name: str
    owner_username: str
    parent_directory_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class ChunkRecord:
    """
    One chunk entry of a manifest.
    
    A chunk whose upload failed has no remote_id.
    """
    id: str
    index: int
    size: int
    remote_id: Optional[str] = None
    
    @property
    def uploaded(self) -> bool:
        return self.remote_id is not None


@dataclass
class FileManifest:
    """
    A file and its ordered chunks.
    
    Attributes:
        id: File ID (also the ID of its grouping folder in Drive)
        name: File name
        size: File size in bytes
        owner_username: Owner
        parent_directory_id: Catalog directory, None for the top level
        chunks: Chunk entries ordered by index
        sha256: Hex digest of the file content
        created_at: Creation timestamp
    """
    id: str
    name: str
    size: int
    owner_username: str
    parent_directory_id: Optional[str] = None
    chunks: List[ChunkRecord] = field(default_factory=list)
    sha256: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    
    def __post_init__(self):
        self.chunks = sorted(self.chunks, key=lambda chunk: chunk.index)
    
    @property
    def failed_chunks(self) -> List[ChunkRecord]:
        """Chunks without a remote object."""
        return [chunk for chunk in self.chunks if not chunk.uploaded]
    
    @property
    def is_complete(self) -> bool:
        return not self.failed_chunks
    
    def validate(self) -> None:
        """
        Check indices are dense and sizes add up.
        
        Raises:
            CatalogError: If the manifest is inconsistent
        """
        indices = [chunk.index for chunk in self.chunks]
        if indices != list(range(len(self.chunks))):
            raise CatalogError(f"Manifest {self.id} has non-contiguous chunk indices: {indices}")
        total = sum(chunk.size for chunk in self.chunks)
        if total != self.size:
            raise CatalogError(
                f"Manifest {self.id} chunks add up to {total} bytes, expected {self.size}"
            )
    
    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary for serialization.
        
        Returns:
            Dictionary representation
        """
        return {
            'id': self.id,
            'name': self.name,
            'size': self.size,
            'owner_username': self.owner_username,
            'parent_directory_id': self.parent_directory_id,
            'sha256': self.sha256,
            'created_at': self.created_at.isoformat(),
            'chunks': [
                {
                    'id': chunk.id,
                    'index': chunk.index,
                    'size': chunk.size,
                    'remote_id': chunk.remote_id,
                }
                for chunk in self.chunks
            ],
        }
