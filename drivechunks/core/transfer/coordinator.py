"""
Transfer coordinator.

Orchestrates chunked uploads and downloads using injected dependencies.
Depends on the store protocol, not on the Drive client itself.
"""
import functools
import random
import time
from pathlib import Path
from typing import Optional, Union

from .allocator import IdAllocator
from .cancellation import CancellationToken
from .events import ChunkEvent, TransferObserver
from .models import Chunk, ChunkOutcome, DownloadResult, TransferConfig, UploadResult
from .planner import ChunkPlanner
from .pool import TransferPool
from .progress import ProgressAggregator, close_stream, track_progress
from .protocols import IdAllocatorProtocol, RemoteStoreProtocol
from .reassembler import AsyncWritable, Reassembler
from .services import AsyncFileReader, FileValidator
from ..catalog.models import FileManifest
from ..exceptions import ChunkTransferError, TransferCancelledError
from ..logging import get_logger, format_size

logger = get_logger('drivechunks.transfer.coordinator')


class TransferCoordinator:
    """
    Coordinates the chunked transfer of one file at a time.

    Uses dependency injection for all components, making it:
    - Testable (fake store, fixed RNG)
    - Shareable (pools are owned by the caller and bound every file)

    Example:
        >>> coordinator = TransferCoordinator(drive, TransferPool(3))
        >>> result = await coordinator.upload('video.mp4')
        >>> result.failed_chunks
        []
    """

    def __init__(
        self,
        store: RemoteStoreProtocol,
        upload_pool: TransferPool,
        download_pool: Optional[TransferPool] = None,
        config: Optional[TransferConfig] = None,
        allocator: Optional[IdAllocatorProtocol] = None,
        file_reader: Optional[AsyncFileReader] = None,
        rng: Optional[random.Random] = None,
        temp_dir: Optional[Path] = None
    ):
        """
        Initialize transfer coordinator.

        Args:
            store: Remote object store
            upload_pool: Pool bounding concurrent chunk uploads
            download_pool: Pool bounding concurrent chunk downloads
                (upload_pool when not set)
            config: Transfer configuration
            allocator: ID allocator (batch allocator over ``store`` by default)
            file_reader: Ranged source reader
            rng: Random source used to shuffle uploads
            temp_dir: Parent directory for download temp files
        """
        self._store = store
        self._config = config or TransferConfig()
        self._upload_pool = upload_pool
        self._download_pool = download_pool or upload_pool
        self._allocator = allocator or IdAllocator(store)
        self._planner = ChunkPlanner(self._allocator)
        self._file_reader = file_reader or AsyncFileReader(self._config.stream_buffer_size)
        self._validator = FileValidator()
        self._rng = rng or random.Random()
        self._reassembler = Reassembler(
            store,
            self._download_pool,
            buffer_size=self._config.stream_buffer_size,
            speed_window=self._config.speed_window,
            temp_dir=temp_dir
        )

    @property
    def config(self) -> TransferConfig:
        return self._config

    async def upload(
        self,
        file_path: Union[str, Path],
        file_id: Optional[str] = None,
        name: Optional[str] = None,
        remote_parent_id: Optional[str] = None,
        observer: Optional[TransferObserver] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> UploadResult:
        """
        Upload a file as independently stored chunks.

        Args:
            file_path: Source file
            file_id: Pre-allocated file ID (allocated when not set)
            name: File name (source file name by default)
            remote_parent_id: Drive folder to group chunks under (the
                reserved root folder by default)
            observer: Event sink
            cancel_token: Cancellation token

        Returns:
            Upload result with one outcome per chunk, in index order

        Raises:
            FileNotFoundError: If the source doesn't exist
            AllocationError: If IDs cannot be allocated (nothing uploaded)
            DriveAPIError: If the grouping folder cannot be created
            TransferCancelledError: If the token fired
        """
        observer = observer or TransferObserver()
        path, file_size = self._validator.validate(file_path)
        self._validator.validate_size(file_size)
        name = name or path.name
        start_time = time.time()
        logger.info(f"Starting upload: {name} ({format_size(file_size)})")

        sha256 = await self._file_reader.hash_file(path)

        parent_id = remote_parent_id or await self._store.ensure_root_directory(
            self._config.root_directory_name
        )
        if file_id is None:
            file_id = (await self._allocator.allocate(1))[0]

        # The grouping folder carries the file ID as both name and ID
        await self._store.create_directory(file_id, object_id=file_id, parent_id=parent_id)

        plan = await self._planner.plan(
            file_size,
            self._config.max_chunk_size,
            observer=observer,
            cancel_token=cancel_token
        )
        await observer.on_chunking_complete(plan)

        chunks = list(plan.chunks)
        if self._config.shuffle_uploads:
            self._rng.shuffle(chunks)

        aggregator = ProgressAggregator(file_size, plan.total_chunks, self._config.speed_window)
        jobs = [
            functools.partial(
                self._upload_chunk,
                path,
                chunk,
                file_id,
                aggregator,
                observer,
                cancel_token
            )
            for chunk in chunks
        ]
        results = await self._upload_pool.run(jobs, cancel_token)

        outcomes = sorted(
            (self._to_outcome(chunk, result) for chunk, result in zip(chunks, results)),
            key=lambda outcome: outcome.chunk.index
        )

        if cancel_token:
            cancel_token.raise_if_cancelled()

        result = UploadResult(
            file_id=file_id,
            name=name,
            size=file_size,
            outcomes=outcomes,
            sha256=sha256
        )

        elapsed = time.time() - start_time
        speed = file_size / elapsed if elapsed > 0 else 0
        if result.is_complete:
            logger.info(
                f"Upload complete: {name} in {elapsed:.2f}s ({format_size(int(speed))}/s)"
            )
        else:
            logger.error(
                f"Upload of {name} finished with {len(result.failed_chunks)} failed chunks: "
                f"{[chunk.index for chunk in result.failed_chunks]}"
            )
        return result

    @staticmethod
    def _to_outcome(chunk: Chunk, result) -> ChunkOutcome:
        if isinstance(result, BaseException):
            return ChunkOutcome(chunk=chunk, error=True, exception=result)
        return result

    async def _upload_chunk(
        self,
        path: Path,
        chunk: Chunk,
        folder_id: str,
        aggregator: ProgressAggregator,
        observer: TransferObserver,
        cancel_token: Optional[CancellationToken]
    ) -> ChunkOutcome:
        """Upload one chunk; failures become an error outcome."""
        await observer.on_chunk_event(ChunkEvent.START_UPLOADING, chunk)

        inner = self._file_reader.iter_range(path, chunk.start, chunk.end)
        tracked = track_progress(inner, chunk, aggregator, observer, cancel_token)
        try:
            remote = await self._store.create_object(
                chunk.id,
                tracked,
                chunk.size,
                object_id=chunk.id,
                parent_id=folder_id
            )
            if remote is None:
                raise ChunkTransferError(
                    f"Store rejected chunk {chunk.index} ({chunk.id})", chunk=chunk
                )
        except TransferCancelledError as e:
            await observer.on_chunk_event(ChunkEvent.ERROR_UPLOADING, chunk, e)
            return ChunkOutcome(chunk=chunk, error=True, exception=e)
        except Exception as e:
            # aiohttp wraps errors raised by the body stream in its own
            if cancel_token is not None and cancel_token.cancelled:
                error = TransferCancelledError(f"Chunk {chunk.index} upload cancelled")
                logger.debug(f"Chunk {chunk.index} upload stopped by cancellation: {e}")
                await observer.on_chunk_event(ChunkEvent.ERROR_UPLOADING, chunk, error)
                return ChunkOutcome(chunk=chunk, error=True, exception=error)
            error = e if isinstance(e, ChunkTransferError) else ChunkTransferError(
                f"Chunk {chunk.index} upload failed: {e}", chunk=chunk
            )
            logger.error(f"Chunk {chunk.index} upload failed: {e}")
            await observer.on_chunk_event(ChunkEvent.ERROR_UPLOADING, chunk, error)
            return ChunkOutcome(chunk=chunk, error=True, exception=error)
        finally:
            await close_stream(tracked)
            await close_stream(inner)

        logger.debug(f"Chunk {chunk.index} uploaded ({format_size(chunk.size)})")
        await observer.on_chunk_event(ChunkEvent.END_UPLOADING, chunk)
        return ChunkOutcome(chunk=chunk, error=False, remote_id=remote.id)

    async def download(
        self,
        manifest: FileManifest,
        destination: AsyncWritable,
        observer: Optional[TransferObserver] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> DownloadResult:
        """
        Reassemble a catalogued file into ``destination``.

        Raises:
            ReassemblyError: If any chunk fails or the content doesn't verify
            TransferCancelledError: If the token fired
        """
        digest = await self._reassembler.reassemble(
            manifest,
            destination,
            observer=observer,
            cancel_token=cancel_token
        )
        return DownloadResult(file_id=manifest.id, size=manifest.size, sha256=digest)
