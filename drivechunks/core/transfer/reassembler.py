"""
Chunk reassembly.

Downloads a manifest's chunks concurrently into private temp files and
merges them into the destination in ascending index order.
"""
import functools
import hashlib
import time
from pathlib import Path
from typing import Any, List, Optional, Protocol, Sequence

import aiofiles
import aiofiles.tempfile

from .cancellation import CancellationToken
from .events import ChunkEvent, TransferObserver
from .models import Chunk
from .pool import TransferPool
from .progress import ProgressAggregator, close_stream, track_progress
from .protocols import RemoteStoreProtocol
from ..catalog.models import ChunkRecord, FileManifest
from ..exceptions import ChunkTransferError, ReassemblyError, TransferCancelledError
from ..logging import get_logger, format_size

logger = get_logger('drivechunks.transfer.reassembler')


class AsyncWritable(Protocol):
    """Destination of a download."""

    async def write(self, data: bytes) -> Any:
        ...


def chunks_from_records(records: Sequence[ChunkRecord]) -> List[Chunk]:
    """Give manifest chunk records their byte offsets in the file."""
    chunks: List[Chunk] = []
    offset = 0
    for record in sorted(records, key=lambda r: r.index):
        chunks.append(Chunk(
            index=record.index,
            id=record.id,
            start=offset,
            end=offset + record.size - 1,
        ))
        offset += record.size
    return chunks


class Reassembler:
    """
    Rebuilds a file from its chunks.

    Downloads run through the shared download pool; the merge is strictly
    sequential. Temp files live in a private directory that is removed on
    success, failure and cancellation alike.
    """

    def __init__(
        self,
        store: RemoteStoreProtocol,
        pool: TransferPool,
        buffer_size: int = 64 * 1024,
        speed_window: float = 1.0,
        temp_dir: Optional[Path] = None
    ):
        """
        Initialize reassembler.

        Args:
            store: Remote store to read chunk objects from
            pool: Pool bounding concurrent chunk downloads
            buffer_size: Read/write block size
            speed_window: Throughput sampling window in seconds
            temp_dir: Parent for the private temp directory (system default
                when not set)
        """
        self._store = store
        self._pool = pool
        self._buffer_size = buffer_size
        self._speed_window = speed_window
        self._temp_dir = temp_dir

    async def reassemble(
        self,
        manifest: FileManifest,
        destination: AsyncWritable,
        observer: Optional[TransferObserver] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> str:
        """
        Download every chunk of ``manifest`` and write the file to
        ``destination``.

        Returns:
            SHA-256 hex digest of the written content

        Raises:
            ReassemblyError: If a chunk failed, a temp file could not be
                read back, or the digest does not match the manifest
            TransferCancelledError: If the token fired
        """
        observer = observer or TransferObserver()
        records = {record.index: record for record in manifest.chunks}
        chunks = chunks_from_records(manifest.chunks)
        aggregator = ProgressAggregator(manifest.size, len(chunks), self._speed_window)

        start_time = time.time()
        logger.info(
            f"Downloading {manifest.name} ({format_size(manifest.size)}, {len(chunks)} chunks)"
        )

        async with aiofiles.tempfile.TemporaryDirectory(
            prefix='drivechunks-',
            dir=self._temp_dir
        ) as temp_name:
            temp_path = Path(temp_name)
            parts = {chunk.index: temp_path / f"{chunk.index:08d}.part" for chunk in chunks}

            jobs = [
                functools.partial(
                    self._download_chunk,
                    chunk,
                    records[chunk.index].remote_id,
                    parts[chunk.index],
                    aggregator,
                    observer,
                    cancel_token
                )
                for chunk in chunks
            ]
            results = await self._pool.run(jobs, cancel_token)

            if cancel_token:
                cancel_token.raise_if_cancelled()

            failed = [
                records[chunk.index]
                for chunk, result in zip(chunks, results)
                if isinstance(result, BaseException)
            ]
            if failed:
                indices = [record.index for record in failed]
                logger.error(f"{len(failed)} chunks of {manifest.name} failed: {indices}")
                raise ReassemblyError(
                    f"Could not download chunks {indices} of {manifest.id}",
                    failed_chunks=failed
                )

            digest = await self._merge(chunks, parts, destination)

        if manifest.sha256 and digest != manifest.sha256:
            raise ReassemblyError(
                f"Checksum mismatch for {manifest.id}: expected {manifest.sha256}, got {digest}"
            )

        elapsed = time.time() - start_time
        logger.info(f"Reassembled {manifest.name} in {elapsed:.2f}s")
        return digest

    async def _download_chunk(
        self,
        chunk: Chunk,
        remote_id: Optional[str],
        part_path: Path,
        aggregator: ProgressAggregator,
        observer: TransferObserver,
        cancel_token: Optional[CancellationToken]
    ) -> int:
        """Download one chunk into its temp file; returns bytes written."""
        await observer.on_chunk_event(ChunkEvent.START_DOWNLOADING, chunk)
        try:
            if remote_id is None:
                raise ChunkTransferError(
                    f"Chunk {chunk.index} has no remote object", chunk=chunk
                )

            inner = self._store.read_object(remote_id, chunk.size, self._buffer_size)
            tracked = track_progress(inner, chunk, aggregator, observer, cancel_token)
            written = 0
            try:
                async with aiofiles.open(part_path, 'wb') as f:
                    async for block in tracked:
                        await f.write(block)
                        written += len(block)
            finally:
                await close_stream(tracked)
                await close_stream(inner)

            if written != chunk.size:
                raise ChunkTransferError(
                    f"Chunk {chunk.index} is {written} bytes, expected {chunk.size}",
                    chunk=chunk
                )
        except TransferCancelledError as e:
            await observer.on_chunk_event(ChunkEvent.ERROR_DOWNLOADING, chunk, e)
            raise
        except ChunkTransferError as e:
            logger.error(f"Chunk {chunk.index} download failed: {e}")
            await observer.on_chunk_event(ChunkEvent.ERROR_DOWNLOADING, chunk, e)
            raise
        except Exception as e:
            logger.error(f"Chunk {chunk.index} download failed: {e}")
            error = ChunkTransferError(f"Chunk {chunk.index} download failed: {e}", chunk=chunk)
            await observer.on_chunk_event(ChunkEvent.ERROR_DOWNLOADING, chunk, error)
            raise error from e

        logger.debug(f"Chunk {chunk.index} downloaded ({format_size(written)})")
        await observer.on_chunk_event(ChunkEvent.END_DOWNLOADING, chunk)
        return written

    async def _merge(
        self,
        chunks: Sequence[Chunk],
        parts: dict,
        destination: AsyncWritable
    ) -> str:
        """Write temp files to the destination one at a time, in index order."""
        digest = hashlib.sha256()
        try:
            for chunk in sorted(chunks, key=lambda c: c.index):
                async with aiofiles.open(parts[chunk.index], 'rb') as f:
                    while True:
                        block = await f.read(self._buffer_size)
                        if not block:
                            break
                        digest.update(block)
                        await destination.write(block)
        except OSError as e:
            raise ReassemblyError(f"Merge failed: {e}") from e
        return digest.hexdigest()
