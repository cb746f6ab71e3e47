"""Tests for upload and download orchestration."""
import asyncio
import hashlib
import logging
import random

import aiohttp
import pytest

from drivechunks.core.catalog import ChunkRecord, FileManifest
from drivechunks.core.exceptions import (
    AllocationError,
    ChunkTransferError,
    ReassemblyError,
    TransferCancelledError,
)
from drivechunks.core.transfer import (
    CancellationToken,
    ChunkEvent,
    TransferConfig,
    TransferCoordinator,
    TransferObserver,
    TransferPool,
)


class EventRecorder(TransferObserver):
    """Collects every event in order."""
    
    def __init__(self):
        self.events = []
        self.plans = []
        self.progress = []
    
    async def on_chunking_complete(self, plan):
        self.plans.append(plan)
    
    async def on_chunk_event(self, event, chunk, error=None):
        self.events.append((event, chunk.index))
    
    async def on_progress(self, progress):
        self.progress.append(progress)


def manifest_from(result, owner='alice'):
    return FileManifest(
        id=result.file_id,
        name=result.name,
        size=result.size,
        owner_username=owner,
        sha256=result.sha256,
        chunks=[
            ChunkRecord(
                id=o.chunk.id,
                index=o.chunk.index,
                size=o.chunk.size,
                remote_id=o.remote_id,
            )
            for o in result.outcomes
        ],
    )


@pytest.fixture
def config():
    return TransferConfig(max_chunk_size=1000, stream_buffer_size=256)


@pytest.fixture
def coordinator(fake_store, config):
    return TransferCoordinator(fake_store, TransferPool(3), config=config)


class TestUpload:
    """Test suite for TransferCoordinator.upload."""
    
    @pytest.mark.asyncio
    async def test_upload_stores_every_chunk(self, coordinator, fake_store, make_file, sample_content):
        """Test a 2500-byte file becomes three objects in a grouping folder."""
        path = make_file(sample_content)
        
        result = await coordinator.upload(path, name='sample.bin')
        
        assert result.is_complete
        assert result.size == 2500
        assert [o.chunk.size for o in result.outcomes] == [1000, 1000, 500]
        assert result.sha256 == hashlib.sha256(sample_content).hexdigest()
        assert fake_store.folders[result.file_id] == result.file_id
        assert fake_store.parents[result.file_id] == fake_store.roots[0]
        for outcome in result.outcomes:
            assert outcome.remote_id == outcome.chunk.id
            assert fake_store.parents[outcome.remote_id] == result.file_id
        joined = b''.join(fake_store.objects[o.remote_id] for o in result.outcomes)
        assert joined == sample_content
    
    @pytest.mark.asyncio
    async def test_upload_events(self, coordinator, make_file, sample_content):
        """Test every chunk starts and ends, and progress reaches 100."""
        recorder = EventRecorder()
        
        await coordinator.upload(make_file(sample_content), observer=recorder)
        
        assert len(recorder.plans) == 1
        for index in range(3):
            started = recorder.events.index((ChunkEvent.START_UPLOADING, index))
            ended = recorder.events.index((ChunkEvent.END_UPLOADING, index))
            assert started < ended
        assert recorder.progress[-1].file_percentage == 100
        assert recorder.progress[-1].file_transferred == 2500
    
    @pytest.mark.asyncio
    async def test_partial_failure_isolated(self, make_store, config, make_file):
        """Test chunk 2 of 5 failing leaves the others uploaded."""
        store = make_store(fail_ids={'id-0002'})
        coordinator = TransferCoordinator(store, TransferPool(3), config=config)
        recorder = EventRecorder()
        
        result = await coordinator.upload(
            make_file(b'x' * 5000), file_id='file-1', observer=recorder
        )
        
        assert [o.error for o in result.outcomes] == [False, False, True, False, False]
        assert [c.index for c in result.failed_chunks] == [2]
        failed = result.outcomes[2]
        assert failed.remote_id is None
        assert isinstance(failed.exception, ChunkTransferError)
        assert failed.exception.chunk_index == 2
        assert (ChunkEvent.ERROR_UPLOADING, 2) in recorder.events
        assert (ChunkEvent.END_UPLOADING, 2) not in recorder.events
        assert sorted(store.created_order) == ['id-0000', 'id-0001', 'id-0003', 'id-0004']
    
    @pytest.mark.asyncio
    async def test_rejected_chunk_is_soft_failure(self, make_store, config, make_file):
        """Test a None result from the store fails only that chunk."""
        store = make_store(reject_ids={'id-0000'})
        coordinator = TransferCoordinator(store, TransferPool(3), config=config)
        
        result = await coordinator.upload(make_file(b'y' * 1500), file_id='file-1')
        
        assert [o.error for o in result.outcomes] == [True, False]
        assert isinstance(result.outcomes[0].exception, ChunkTransferError)
    
    @pytest.mark.asyncio
    async def test_allocation_failure_aborts_before_transfer(self, make_store, config, make_file):
        """Test nothing is uploaded when IDs cannot be allocated."""
        store = make_store(id_batch_limit=0)
        coordinator = TransferCoordinator(store, TransferPool(3), config=config)
        
        with pytest.raises(AllocationError):
            await coordinator.upload(make_file(b'z' * 2500), file_id='file-1')
        
        assert store.objects == {}
    
    @pytest.mark.asyncio
    async def test_upload_ceiling(self, make_store, make_file):
        """Test concurrent chunk uploads stay under the pool ceiling."""
        store = make_store(delay=0.005)
        config = TransferConfig(max_chunk_size=100, transfer_concurrency=3)
        coordinator = TransferCoordinator(store, TransferPool(3), config=config)
        
        result = await coordinator.upload(make_file(b'q' * 2500))
        
        assert len(result.outcomes) == 25
        assert store.peak_in_flight <= 3
    
    @pytest.mark.asyncio
    async def test_shuffled_upload_keeps_index_order(self, fake_store, make_file, sample_content):
        """Test shuffled transfer order still reports outcomes by index."""
        config = TransferConfig(max_chunk_size=100, shuffle_uploads=True)
        coordinator = TransferCoordinator(
            fake_store, TransferPool(1), config=config, rng=random.Random(7)
        )
        
        result = await coordinator.upload(make_file(sample_content), file_id='file-1')
        
        chunk_ids = [o.chunk.id for o in result.outcomes]
        assert [o.chunk.index for o in result.outcomes] == list(range(25))
        assert fake_store.created_order != chunk_ids
        assert sorted(fake_store.created_order) == sorted(chunk_ids)
    
    @pytest.mark.asyncio
    async def test_upload_cancelled(self, make_store, make_file):
        """Test cancelling mid-upload stops new chunks and raises."""
        store = make_store(delay=0.01)
        config = TransferConfig(max_chunk_size=100)
        coordinator = TransferCoordinator(store, TransferPool(1), config=config)
        token = CancellationToken()
        
        class CancelAfterFirst(TransferObserver):
            async def on_chunk_event(self, event, chunk, error=None):
                if event == ChunkEvent.END_UPLOADING:
                    token.cancel()
        
        with pytest.raises(TransferCancelledError):
            await coordinator.upload(
                make_file(b'c' * 1000),
                file_id='file-1',
                observer=CancelAfterFirst(),
                cancel_token=token
            )
        
        assert len(store.objects) == 1

    @pytest.mark.asyncio
    async def test_cancellation_wrapped_by_transport(self, make_store, make_file, caplog):
        """Test a cancelled body stream reported by the HTTP layer counts as cancellation."""
        class WrappingStore(make_store):
            async def create_object(self, name, stream, size, **kwargs):
                try:
                    return await super().create_object(name, stream, size, **kwargs)
                except TransferCancelledError as e:
                    raise aiohttp.ClientPayloadError("body stream failed") from e

        config = TransferConfig(max_chunk_size=1000, stream_buffer_size=100)
        coordinator = TransferCoordinator(WrappingStore(), TransferPool(2), config=config)
        token = CancellationToken()
        errors = []

        class CancelOnProgress(TransferObserver):
            async def on_progress(self, progress):
                token.cancel()

            async def on_chunk_event(self, event, chunk, error=None):
                if event == ChunkEvent.ERROR_UPLOADING:
                    errors.append(error)

        with caplog.at_level(logging.ERROR, logger='drivechunks.transfer.coordinator'):
            with pytest.raises(TransferCancelledError):
                await coordinator.upload(
                    make_file(b'w' * 2000),
                    file_id='file-1',
                    observer=CancelOnProgress(),
                    cancel_token=token
                )

        assert errors
        assert all(isinstance(error, TransferCancelledError) for error in errors)
        assert "upload failed" not in caplog.text

    @pytest.mark.asyncio
    async def test_upload_missing_file(self, coordinator):
        """Test missing source raises error."""
        with pytest.raises(FileNotFoundError):
            await coordinator.upload('/nonexistent/file.bin')


class TestRoundTrip:
    """Upload followed by download."""
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize("size", [0, 1, 1000, 1001, 2500, 4321])
    async def test_round_trip(self, coordinator, make_file, sink, size):
        """Test downloaded bytes equal the source for edge sizes."""
        content = bytes((i * 31) % 251 for i in range(size))
        result = await coordinator.upload(make_file(content))
        
        download = await coordinator.download(manifest_from(result), sink)
        
        assert bytes(sink.data) == content
        assert download.size == size
        assert download.sha256 == hashlib.sha256(content).hexdigest()
    
    @pytest.mark.asyncio
    async def test_download_with_failed_chunk(self, make_store, config, make_file, sink):
        """Test a manifest with a failed chunk cannot be reassembled."""
        store = make_store(fail_ids={'id-0001'})
        coordinator = TransferCoordinator(store, TransferPool(3), config=config)
        result = await coordinator.upload(make_file(b'f' * 3000), file_id='file-1')
        
        with pytest.raises(ReassemblyError) as exc_info:
            await coordinator.download(manifest_from(result), sink)
        
        assert [c.index for c in exc_info.value.failed_chunks] == [1]
        assert sink.writes == 0
