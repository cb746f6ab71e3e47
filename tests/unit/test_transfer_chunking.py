"""Tests for chunking strategy and chunk planning."""
import pytest

from drivechunks.core.exceptions import AllocationError, TransferCancelledError
from drivechunks.core.transfer import CancellationToken, ChunkPlanner, IdAllocator, TransferObserver
from drivechunks.core.transfer.strategies.chunking import FixedSizeChunkingStrategy


class TestFixedSizeChunkingStrategy:
    """Test suite for FixedSizeChunkingStrategy."""
    
    @pytest.fixture
    def strategy(self):
        """Create strategy with 1000-byte chunks."""
        return FixedSizeChunkingStrategy(1000)
    
    def test_empty_file(self, strategy):
        """Test chunking empty file."""
        assert strategy.calculate_chunks(0) == []
    
    def test_example_plan(self, strategy):
        """Test 2500 bytes split into three inclusive ranges."""
        assert strategy.calculate_chunks(2500) == [(0, 999), (1000, 1999), (2000, 2499)]
    
    def test_exact_multiple(self, strategy):
        """Test file that is an exact multiple of chunk size."""
        chunks = strategy.calculate_chunks(3000)
        
        assert len(chunks) == 3
        assert chunks[-1] == (2000, 2999)
    
    def test_one_byte_over(self, strategy):
        """Test file one byte larger than a chunk."""
        assert strategy.calculate_chunks(1001) == [(0, 999), (1000, 1000)]
    
    @pytest.mark.parametrize("size", [1, 999, 1000, 1001, 2500, 12345, 100000])
    def test_chunks_cover_file(self, strategy, size):
        """Test ranges are contiguous, non-empty and sum to the file size."""
        chunks = strategy.calculate_chunks(size)
        
        assert chunks[0][0] == 0
        assert chunks[-1][1] == size - 1
        assert sum(end - start + 1 for start, end in chunks) == size
        for (_, prev_end), (start, end) in zip(chunks, chunks[1:]):
            assert start == prev_end + 1
            assert 0 < end - start + 1 <= 1000
        assert len(chunks) == strategy.total_chunks(size)
    
    def test_invalid_chunk_size(self):
        """Test non-positive chunk size raises error."""
        with pytest.raises(ValueError):
            FixedSizeChunkingStrategy(0)
    
    def test_negative_file_size(self, strategy):
        """Test negative size raises error."""
        with pytest.raises(ValueError):
            strategy.calculate_chunks(-1)


class RecordingObserver(TransferObserver):
    """Collects chunking progress events."""
    
    def __init__(self):
        self.progress = []
    
    async def on_chunking_progress(self, index, total_chunks):
        self.progress.append((index, total_chunks))


class ShortAllocator:
    """Returns fewer IDs than asked on the first call only."""
    
    def __init__(self, short_by: int):
        self.short_by = short_by
        self.calls = []
        self._counter = 0
    
    async def allocate(self, n):
        self.calls.append(n)
        if len(self.calls) == 1:
            n -= self.short_by
        ids = [f"x{self._counter + i}" for i in range(n)]
        self._counter += n
        return ids


class TestChunkPlanner:
    """Test suite for ChunkPlanner."""
    
    @pytest.mark.asyncio
    async def test_plan_example(self, fake_store):
        """Test plan of 2500 bytes with 1000-byte chunks."""
        planner = ChunkPlanner(IdAllocator(fake_store))
        
        plan = await planner.plan(2500, 1000)
        
        assert plan.total_chunks == 3
        assert [c.source_range for c in plan.chunks] == [(0, 999), (1000, 1999), (2000, 2499)]
        assert [c.index for c in plan.chunks] == [0, 1, 2]
        assert [c.id for c in plan.chunks] == ['id-0000', 'id-0001', 'id-0002']
        assert fake_store.id_calls == [3]
    
    @pytest.mark.asyncio
    async def test_plan_ids_are_unique(self, fake_store):
        """Test every chunk gets its own ID."""
        plan = await ChunkPlanner(IdAllocator(fake_store)).plan(50000, 1000)
        
        assert len({c.id for c in plan.chunks}) == 50
    
    @pytest.mark.asyncio
    async def test_plan_empty(self, fake_store):
        """Test empty source plans no chunks and allocates nothing."""
        plan = await ChunkPlanner(IdAllocator(fake_store)).plan(0, 1000)
        
        assert plan.chunks == []
        assert fake_store.id_calls == []
    
    @pytest.mark.asyncio
    async def test_plan_emits_progress(self, fake_store):
        """Test a chunking-progress event per chunk."""
        observer = RecordingObserver()
        
        await ChunkPlanner(IdAllocator(fake_store)).plan(2500, 1000, observer=observer)
        
        assert observer.progress == [(0, 3), (1, 3), (2, 3)]
    
    @pytest.mark.asyncio
    async def test_plan_falls_back_to_single_allocation(self):
        """Test missing IDs are allocated one at a time."""
        allocator = ShortAllocator(short_by=2)
        
        plan = await ChunkPlanner(allocator).plan(5000, 1000)
        
        assert allocator.calls == [5, 1, 1]
        assert len({c.id for c in plan.chunks}) == 5
    
    @pytest.mark.asyncio
    async def test_plan_invalid_chunk_size(self, fake_store):
        """Test non-positive chunk size raises error."""
        with pytest.raises(ValueError):
            await ChunkPlanner(IdAllocator(fake_store)).plan(100, 0)
    
    @pytest.mark.asyncio
    async def test_plan_allocation_failure(self, make_store):
        """Test allocation failure propagates."""
        store = make_store(id_batch_limit=0)
        
        with pytest.raises(AllocationError):
            await ChunkPlanner(IdAllocator(store)).plan(2500, 1000)
    
    @pytest.mark.asyncio
    async def test_plan_cancelled(self, fake_store):
        """Test cancelled token stops planning."""
        token = CancellationToken()
        token.cancel()
        
        with pytest.raises(TransferCancelledError):
            await ChunkPlanner(IdAllocator(fake_store)).plan(2500, 1000, cancel_token=token)
