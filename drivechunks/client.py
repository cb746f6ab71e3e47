"""
DriveChunksClient - High-level async client for chunked Drive storage.

Example:
    >>> async with DriveChunksClient("alice", "catalog") as drive:
    ...     manifest = await drive.upload("video.mp4", directory="/videos")
    ...     await drive.download(manifest.id, "restored.mp4")
"""
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import aiofiles

from .core.api import (
    APIConfig,
    ConcurrencyLimiter,
    DriveClient,
    DriveCredentials,
    RefreshTokenAuth,
    TokenProvider,
)
from .core.catalog import (
    CatalogStore,
    ChunkRecord,
    DirectoryPath,
    DirectoryRecord,
    FileManifest,
    MemoryCatalog,
    SQLiteCatalog,
    directories_with_absolute_paths,
    file_absolute_path,
    find_directory_by_path,
    index_directories,
    normalize_path,
)
from .core.exceptions import CatalogError, CatalogFileNotFoundError
from .core.logging import get_logger
from .core.transfer import (
    AsyncWritable,
    CancellationToken,
    DownloadResult,
    IdAllocator,
    RemoteStoreProtocol,
    TransferConfig,
    TransferCoordinator,
    TransferObserver,
    TransferPool,
)


@dataclass(frozen=True)
class FileEntry:
    """A catalogued file with its absolute path."""
    path: str
    manifest: FileManifest


class DriveChunksClient:
    """
    Async client storing files as chunks in Google Drive.

    Owns the API-call limiter, the upload and download pools and the
    catalog, so every transfer started through one client shares the same
    ceilings.

    Example:
        >>> async with DriveChunksClient("alice", "catalog") as drive:
        ...     await drive.create_directory("docs")
        ...     for entry in drive.list_files():
        ...         print(entry.path)
    """

    def __init__(
        self,
        username: str,
        catalog: Optional[Union[str, Path, CatalogStore]] = None,
        *,
        credentials: Optional[DriveCredentials] = None,
        auth: Optional[TokenProvider] = None,
        store: Optional[RemoteStoreProtocol] = None,
        config: Optional[APIConfig] = None,
        transfer_config: Optional[TransferConfig] = None,
        base_path: Optional[Path] = None,
        temp_dir: Optional[Path] = None
    ):
        """
        Initialize client.

        Args:
            username: Catalog owner
            catalog: Catalog name or path (SQLite), a custom store, or None
                for an in-memory catalog
            credentials: OAuth credentials (read from the environment when
                neither ``auth`` nor ``store`` is given)
            auth: Access token provider
            store: Remote store to use instead of a Drive client
            config: API configuration
            transfer_config: Chunking and concurrency settings
            base_path: Base directory for the catalog file
            temp_dir: Parent directory for download temp files
        """
        self._username = username
        self._config = config or APIConfig.default()
        self._transfer_config = transfer_config or TransferConfig()
        self._logger = get_logger('drivechunks.client')

        if catalog is None:
            self._catalog: CatalogStore = MemoryCatalog()
        elif isinstance(catalog, (str, Path)):
            self._catalog = SQLiteCatalog(catalog, base_path)
        else:
            self._catalog = catalog

        self._limiter = ConcurrencyLimiter(self._config.api_concurrency, name='api')
        self._upload_pool = TransferPool(self._transfer_config.transfer_concurrency, name='upload')
        self._download_pool = TransferPool(self._transfer_config.download_concurrency, name='download')

        # Built on first transfer so catalog-only use needs no credentials
        self._store = store
        self._auth = auth
        self._credentials = credentials
        self._temp_dir = temp_dir
        self._coordinator: Optional[TransferCoordinator] = None
        self._catalog.upsert_user(username)

    @property
    def username(self) -> str:
        return self._username

    @property
    def catalog(self) -> CatalogStore:
        return self._catalog

    @property
    def store(self) -> RemoteStoreProtocol:
        """Remote store, created from the credentials on first access."""
        if self._store is None:
            auth = self._auth or RefreshTokenAuth(
                self._credentials or DriveCredentials.from_env(),
                self._config
            )
            self._store = DriveClient(auth, self._limiter, self._config)
        return self._store

    @property
    def coordinator(self) -> TransferCoordinator:
        if self._coordinator is None:
            self._coordinator = TransferCoordinator(
                self.store,
                self._upload_pool,
                self._download_pool,
                config=self._transfer_config,
                allocator=IdAllocator(self.store, self._config.max_ids_per_request),
                temp_dir=self._temp_dir
            )
        return self._coordinator

    @property
    def limiter(self) -> ConcurrencyLimiter:
        return self._limiter

    @property
    def upload_pool(self) -> TransferPool:
        return self._upload_pool

    @property
    def download_pool(self) -> TransferPool:
        return self._download_pool

    async def __aenter__(self) -> 'DriveChunksClient':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the remote store session and the catalog."""
        close = getattr(self._store, 'close', None)
        if close is not None:
            await close()
        self._catalog.close()

    # =========================================================================
    # Directories
    # =========================================================================

    def list_directories(self) -> List[DirectoryPath]:
        """All of the user's directories with absolute paths, sorted by path."""
        return directories_with_absolute_paths(self._catalog.list_directories(self._username))

    def find_directory(self, path: str) -> Optional[DirectoryRecord]:
        """
        Look up a directory by absolute path.

        Returns:
            The directory, or None for ``/`` and unknown paths
        """
        return find_directory_by_path(path, self._catalog.list_directories(self._username))

    def create_directory(self, name: str, parent: Optional[str] = None) -> DirectoryRecord:
        """
        Create a directory.

        Args:
            name: Directory name
            parent: Absolute path of the parent (top level when not set)

        Raises:
            DirectoryExistsError: If the name is taken under the parent
            CatalogError: If the name is invalid or the parent path doesn't exist
        """
        if not name or '/' in name or name in ('.', '..'):
            raise CatalogError(f"Invalid directory name: {name!r}")
        parent_id = self._resolve_parent(parent)
        directory = self._catalog.create_directory(name, self._username, parent_id)
        self._logger.info(f"Created directory {posixpath.join(normalize_path(parent or '/'), name)}")
        return directory

    def ensure_directory_path(self, path: str) -> Optional[DirectoryRecord]:
        """
        Create every missing directory along ``path``.

        Returns:
            The deepest directory, or None for ``/``
        """
        current: Optional[DirectoryRecord] = None
        built = '/'
        for part in normalize_path(path).strip('/').split('/'):
            if not part:
                continue
            built = posixpath.join(built, part)
            existing = self.find_directory(built)
            if existing is None:
                parent_id = current.id if current else None
                existing = self._catalog.create_directory(part, self._username, parent_id)
                self._logger.debug(f"Created directory {built}")
            current = existing
        return current

    def _resolve_parent(self, path: Optional[str]) -> Optional[str]:
        if path is None or normalize_path(path) == '/':
            return None
        directory = self.find_directory(path)
        if directory is None:
            raise CatalogError(f"Directory not found: {normalize_path(path)}")
        return directory.id

    # =========================================================================
    # Files
    # =========================================================================

    def list_files(self) -> List[FileEntry]:
        """All of the user's files with absolute paths, sorted by path."""
        directories = index_directories(self._catalog.list_directories(self._username))
        entries = [
            FileEntry(path=file_absolute_path(manifest, directories), manifest=manifest)
            for manifest in self._catalog.list_files(self._username)
        ]
        return sorted(entries, key=lambda entry: entry.path)

    def get_file(self, file_id: str) -> FileManifest:
        """
        Raises:
            CatalogFileNotFoundError: If the user has no such file
        """
        manifest = self._catalog.get_file(file_id, self._username)
        if manifest is None:
            raise CatalogFileNotFoundError(f"File not found: {file_id}")
        return manifest

    async def upload(
        self,
        file_path: Union[str, Path],
        directory: Optional[str] = None,
        name: Optional[str] = None,
        observer: Optional[TransferObserver] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> FileManifest:
        """
        Upload a file and record its manifest.

        The manifest is stored even when chunks failed; those entries
        carry no remote ID (see ``FileManifest.failed_chunks``).

        Args:
            file_path: Source file
            directory: Absolute catalog path to file it under
            name: File name (source name by default)
            observer: Event sink
            cancel_token: Cancellation token

        Returns:
            Stored manifest
        """
        parent_id = self._resolve_parent(directory)
        result = await self.coordinator.upload(
            file_path,
            name=name,
            observer=observer,
            cancel_token=cancel_token
        )

        manifest = FileManifest(
            id=result.file_id,
            name=result.name,
            size=result.size,
            owner_username=self._username,
            parent_directory_id=parent_id,
            sha256=result.sha256,
            chunks=[
                ChunkRecord(
                    id=outcome.chunk.id,
                    index=outcome.chunk.index,
                    size=outcome.chunk.size,
                    remote_id=None if outcome.error else outcome.remote_id,
                )
                for outcome in result.outcomes
            ],
        )
        stored = self._catalog.create_file(manifest)
        if stored.failed_chunks:
            self._logger.warning(
                f"{result.name} stored with {len(stored.failed_chunks)} missing chunks"
            )
        return stored

    async def download(
        self,
        file_id: str,
        destination: Union[str, Path, AsyncWritable],
        observer: Optional[TransferObserver] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> DownloadResult:
        """
        Reassemble a file.

        Args:
            file_id: Catalogued file ID
            destination: File path, directory (the stored name is appended)
                or an object with ``async write(bytes)``
            observer: Event sink
            cancel_token: Cancellation token

        Raises:
            CatalogFileNotFoundError: If the user has no such file
            ReassemblyError: If any chunk fails or the content doesn't verify
        """
        manifest = self.get_file(file_id)

        if not isinstance(destination, (str, Path)):
            return await self.coordinator.download(manifest, destination, observer, cancel_token)

        path = Path(destination)
        if path.is_dir():
            path = path / manifest.name

        try:
            async with aiofiles.open(path, 'wb') as f:
                return await self.coordinator.download(manifest, f, observer, cancel_token)
        except BaseException:
            path.unlink(missing_ok=True)
            raise


__all__ = ['DriveChunksClient', 'FileEntry']
