"""
Absolute path resolution for catalog directories.

Paths are POSIX style and rooted at ``/``.
"""
import posixpath
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

from .models import DirectoryRecord, FileManifest
from ..exceptions import CyclicDirectoryError


@dataclass(frozen=True)
class DirectoryPath:
    """A directory with its resolved absolute path."""
    id: str
    name: str
    absolute_path: str


def index_directories(directories: Iterable[DirectoryRecord]) -> Dict[str, DirectoryRecord]:
    """Map directory ID to record."""
    return {directory.id: directory for directory in directories}


def resolve_absolute_path(
    directory_id: str,
    directories: Mapping[str, DirectoryRecord]
) -> str:
    """
    Join a directory with all of its ancestors.
    
    The walk follows parent_directory_id until a directory has no parent,
    or its parent is not in ``directories``.
    
    Raises:
        KeyError: If directory_id is unknown
        CyclicDirectoryError: If a directory is visited twice
    """
    names: List[str] = []
    visited = set()
    current: Optional[DirectoryRecord] = directories[directory_id]
    
    while current is not None:
        if current.id in visited:
            raise CyclicDirectoryError(
                f"Directory {directory_id} has a cyclic ancestry at {current.id}",
                directory_id=current.id
            )
        visited.add(current.id)
        names.append(current.name)
        parent_id = current.parent_directory_id
        current = directories.get(parent_id) if parent_id else None
    
    return posixpath.join('/', *reversed(names))


def directories_with_absolute_paths(
    directories: Iterable[DirectoryRecord]
) -> List[DirectoryPath]:
    """Resolve every directory's absolute path, sorted by path."""
    by_id = index_directories(directories)
    paths = [
        DirectoryPath(id=d.id, name=d.name, absolute_path=resolve_absolute_path(d.id, by_id))
        for d in by_id.values()
    ]
    return sorted(paths, key=lambda p: p.absolute_path)


def file_absolute_path(
    manifest: FileManifest,
    directories: Mapping[str, DirectoryRecord]
) -> str:
    """Absolute path of a file; files in unknown directories sit at the top level."""
    parent_id = manifest.parent_directory_id
    if parent_id and parent_id in directories:
        return posixpath.join(resolve_absolute_path(parent_id, directories), manifest.name)
    return posixpath.join('/', manifest.name)


def normalize_path(path: str) -> str:
    """Collapse a user supplied path to ``/a/b`` form."""
    normalized = posixpath.normpath('/' + path.strip())
    # normpath keeps a leading '//' as-is
    return '/' + normalized.lstrip('/')


def find_directory_by_path(
    path: str,
    directories: Iterable[DirectoryRecord]
) -> Optional[DirectoryRecord]:
    """
    Look up a directory by absolute path.
    
    Returns:
        The directory, or None for ``/`` and unknown paths
    """
    target = normalize_path(path)
    if target == '/':
        return None
    by_id = index_directories(directories)
    for directory in by_id.values():
        if resolve_absolute_path(directory.id, by_id) == target:
            return directory
    return None
