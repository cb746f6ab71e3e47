"""Pytest fixtures for drivechunks tests."""
import asyncio
import os
import tempfile
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, Iterable, List, Optional

import pytest

from drivechunks.core.catalog import MemoryCatalog


class FakeDriveStore:
    """
    In-memory stand-in for the Drive client.

    Generated IDs are handed out as ``id-0000``, ``id-0001``... in call
    order; folders created without an ID are named ``folder-N``.
    """

    def __init__(
        self,
        id_batch_limit: Optional[int] = None,
        fail_ids: Iterable[str] = (),
        reject_ids: Iterable[str] = (),
        fail_read_ids: Iterable[str] = (),
        delay: float = 0.0,
        read_delays: Optional[Dict[str, float]] = None
    ):
        self.id_batch_limit = id_batch_limit
        self.fail_ids = set(fail_ids)
        self.reject_ids = set(reject_ids)
        self.fail_read_ids = set(fail_read_ids)
        self.delay = delay
        self.read_delays = read_delays or {}

        self.objects: Dict[str, bytes] = {}
        self.parents: Dict[str, Optional[str]] = {}
        self.folders: Dict[str, str] = {}
        self.roots: List[str] = []
        self.id_calls: List[int] = []
        self.created_order: List[str] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self._next_id = 0

    def _new_id(self) -> str:
        value = f"id-{self._next_id:04d}"
        self._next_id += 1
        return value

    async def ensure_root_directory(self, name: str) -> str:
        if not self.roots:
            self.roots.append(await self.create_directory(name))
        return self.roots[0]

    async def create_directory(self, name, object_id=None, parent_id=None) -> str:
        object_id = object_id or f"folder-{len(self.folders)}"
        self.folders[object_id] = name
        self.parents[object_id] = parent_id
        return object_id

    async def create_object(
        self,
        name,
        stream,
        size,
        object_id=None,
        parent_id=None,
        mime_type=None
    ):
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            data = b''.join([block async for block in stream])
            if object_id in self.fail_ids:
                raise ConnectionError(f"connection reset uploading {object_id}")
            if object_id in self.reject_ids:
                return None
            object_id = object_id or self._new_id()
            self.objects[object_id] = data
            self.parents[object_id] = parent_id
            self.created_order.append(object_id)
            return SimpleNamespace(id=object_id, name=name)
        finally:
            self.in_flight -= 1

    async def read_object(self, object_id, size, buffer_size=64 * 1024):
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            delay = self.read_delays.get(object_id, self.delay)
            if delay:
                await asyncio.sleep(delay)
            if object_id in self.fail_read_ids:
                raise ConnectionError(f"connection reset reading {object_id}")
            data = self.objects[object_id]
            for offset in range(0, len(data), buffer_size):
                yield data[offset:offset + buffer_size]
        finally:
            self.in_flight -= 1

    async def generate_ids(self, count: int) -> List[str]:
        self.id_calls.append(count)
        if self.id_batch_limit is not None:
            count = min(count, self.id_batch_limit)
        return [self._new_id() for _ in range(count)]


class BytesSink:
    """Async writable collecting bytes."""

    def __init__(self):
        self.data = bytearray()
        self.writes = 0

    async def write(self, data: bytes) -> int:
        self.data.extend(data)
        self.writes += 1
        return len(data)


@pytest.fixture
def fake_store():
    """Fresh in-memory Drive store."""
    return FakeDriveStore()


@pytest.fixture
def memory_catalog():
    """In-memory catalog with user 'alice'."""
    catalog = MemoryCatalog()
    catalog.upsert_user('alice')
    return catalog


@pytest.fixture
def make_file():
    """Factory writing temporary files; removed after the test."""
    paths = []

    def _make(content: bytes, suffix: str = '.bin') -> Path:
        fd, path = tempfile.mkstemp(suffix=suffix)
        os.write(fd, content)
        os.close(fd)
        paths.append(path)
        return Path(path)

    yield _make

    for path in paths:
        if os.path.exists(path):
            os.unlink(path)


@pytest.fixture
def sample_content():
    """2500 bytes of non-repeating-looking content."""
    return bytes((i * 7 + i // 256) % 256 for i in range(2500))


@pytest.fixture
def make_store():
    """Factory for configured fake stores."""
    return FakeDriveStore


@pytest.fixture
def sink():
    """Async byte sink for downloads."""
    return BytesSink()
