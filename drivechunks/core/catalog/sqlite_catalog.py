"""
SQLite catalog implementation.

Provides persistent catalog storage using a SQLite database.
"""
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from .models import ChunkRecord, DirectoryRecord, FileManifest, UserRecord
from .protocols import CatalogStore
from ..exceptions import CatalogError, DirectoryExistsError
from ..logging import get_logger

logger = get_logger('drivechunks.catalog')

UNIQUE_DIRECTORY_INDEX = 'directories_owner_parent_name'


class SQLiteCatalog(CatalogStore):
    """
    SQLite-based catalog.

    Stores users, directories, files and chunk manifests in a local
    database file. Thread-safe: one connection guarded by a lock.

    Example:
        >>> catalog = SQLiteCatalog("catalog")
        >>> # Creates catalog.db file
        >>> catalog.upsert_user("alice")
    """

    EXTENSION = '.db'
    SCHEMA_VERSION = 1

    def __init__(
        self,
        catalog_name: Union[str, Path],
        base_path: Optional[Path] = None
    ):
        """
        Initialize SQLite catalog.

        Args:
            catalog_name: Catalog name (without extension), full path or
                ':memory:'
            base_path: Optional base directory for catalog files
        """
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

        if str(catalog_name) == ':memory:':
            self._path = Path(':memory:')
        elif isinstance(catalog_name, Path) or catalog_name.endswith(self.EXTENSION):
            self._path = Path(catalog_name)
        elif base_path:
            self._path = base_path / f"{catalog_name}{self.EXTENSION}"
        else:
            self._path = Path(f"{catalog_name}{self.EXTENSION}")

        if str(self._path) != ':memory:':
            self._path.parent.mkdir(parents=True, exist_ok=True)

        self._init_db()

    @property
    def path(self) -> Path:
        """Get catalog file path."""
        return self._path

    @contextmanager
    def _get_connection(self):
        """Get thread-safe database connection."""
        with self._lock:
            if self._conn is None:
                self._conn = sqlite3.connect(
                    str(self._path),
                    check_same_thread=False
                )
                self._conn.row_factory = sqlite3.Row
                self._conn.execute('PRAGMA foreign_keys = ON')
            yield self._conn

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS version (
                    version INTEGER PRIMARY KEY
                )
            ''')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS users (
                    username TEXT PRIMARY KEY,
                    created_at TEXT NOT NULL
                )
            ''')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS directories (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    owner_username TEXT NOT NULL REFERENCES users(username),
                    parent_directory_id TEXT REFERENCES directories(id),
                    created_at TEXT NOT NULL
                )
            ''')

            # NULL parents never collide in a plain UNIQUE constraint
            cursor.execute('''
                CREATE UNIQUE INDEX IF NOT EXISTS directories_owner_parent_name
                ON directories (owner_username, COALESCE(parent_directory_id, ''), name)
            ''')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS files (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    size INTEGER NOT NULL,
                    owner_username TEXT NOT NULL REFERENCES users(username),
                    parent_directory_id TEXT REFERENCES directories(id),
                    sha256 TEXT,
                    created_at TEXT NOT NULL
                )
            ''')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS chunks (
                    id TEXT PRIMARY KEY,
                    file_id TEXT NOT NULL REFERENCES files(id) ON DELETE CASCADE,
                    chunk_index INTEGER NOT NULL,
                    size INTEGER NOT NULL,
                    remote_id TEXT,
                    UNIQUE (file_id, chunk_index)
                )
            ''')

            cursor.execute('SELECT version FROM version LIMIT 1')
            row = cursor.fetchone()
            if row is None:
                cursor.execute(
                    'INSERT INTO version (version) VALUES (?)',
                    (self.SCHEMA_VERSION,)
                )

            conn.commit()

    # =========================================================================
    # Users and directories
    # =========================================================================

    def upsert_user(self, username: str) -> UserRecord:
        with self._get_connection() as conn:
            conn.execute(
                'INSERT OR IGNORE INTO users (username, created_at) VALUES (?, ?)',
                (username, datetime.now().isoformat())
            )
            conn.commit()
            row = conn.execute(
                'SELECT username, created_at FROM users WHERE username = ?',
                (username,)
            ).fetchone()
        return UserRecord(
            username=row['username'],
            created_at=datetime.fromisoformat(row['created_at'])
        )

    def create_directory(
        self,
        name: str,
        owner_username: str,
        parent_id: Optional[str] = None
    ) -> DirectoryRecord:
        if parent_id is not None and not self._owns_directory(parent_id, owner_username):
            raise CatalogError(f"Parent directory not found: {parent_id}")
        if self.directory_exists(name, parent_id, owner_username):
            raise DirectoryExistsError(f"Directory '{name}' already exists")

        directory = DirectoryRecord(
            id=uuid.uuid4().hex,
            name=name,
            owner_username=owner_username,
            parent_directory_id=parent_id,
        )
        with self._get_connection() as conn:
            try:
                conn.execute('''
                    INSERT INTO directories (
                        id, name, owner_username, parent_directory_id, created_at
                    ) VALUES (?, ?, ?, ?, ?)
                ''', (
                    directory.id,
                    directory.name,
                    directory.owner_username,
                    directory.parent_directory_id,
                    directory.created_at.isoformat(),
                ))
                conn.commit()
            except sqlite3.IntegrityError as e:
                conn.rollback()
                if UNIQUE_DIRECTORY_INDEX in str(e):
                    raise DirectoryExistsError(f"Directory '{name}' already exists") from e
                raise CatalogError(f"Could not create directory '{name}': {e}") from e

        logger.debug(f"Created directory '{name}' ({directory.id})")
        return directory

    def _owns_directory(self, directory_id: str, owner_username: str) -> bool:
        with self._get_connection() as conn:
            row = conn.execute(
                'SELECT 1 FROM directories WHERE id = ? AND owner_username = ?',
                (directory_id, owner_username)
            ).fetchone()
        return row is not None

    def directory_exists(
        self,
        name: str,
        parent_id: Optional[str],
        owner_username: str
    ) -> bool:
        with self._get_connection() as conn:
            row = conn.execute('''
                SELECT 1 FROM directories
                WHERE name = ? AND owner_username = ?
                  AND COALESCE(parent_directory_id, '') = COALESCE(?, '')
            ''', (name, owner_username, parent_id)).fetchone()
        return row is not None

    def list_directories(self, owner_username: str) -> List[DirectoryRecord]:
        with self._get_connection() as conn:
            rows = conn.execute('''
                SELECT id, name, owner_username, parent_directory_id, created_at
                FROM directories
                WHERE owner_username = ?
                ORDER BY created_at, name
            ''', (owner_username,)).fetchall()
        return [
            DirectoryRecord(
                id=row['id'],
                name=row['name'],
                owner_username=row['owner_username'],
                parent_directory_id=row['parent_directory_id'],
                created_at=datetime.fromisoformat(row['created_at']),
            )
            for row in rows
        ]

    # =========================================================================
    # Files
    # =========================================================================

    def create_file(self, manifest: FileManifest) -> FileManifest:
        """
        Store a manifest and its chunks in one transaction.

        Raises:
            CatalogError: If the manifest is inconsistent or violates a
                constraint (unknown owner or parent, duplicate ID)
        """
        manifest.validate()
        with self._get_connection() as conn:
            try:
                conn.execute('''
                    INSERT INTO files (
                        id, name, size, owner_username, parent_directory_id,
                        sha256, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ''', (
                    manifest.id,
                    manifest.name,
                    manifest.size,
                    manifest.owner_username,
                    manifest.parent_directory_id,
                    manifest.sha256,
                    manifest.created_at.isoformat(),
                ))
                conn.executemany('''
                    INSERT INTO chunks (id, file_id, chunk_index, size, remote_id)
                    VALUES (?, ?, ?, ?, ?)
                ''', [
                    (chunk.id, manifest.id, chunk.index, chunk.size, chunk.remote_id)
                    for chunk in manifest.chunks
                ])
                conn.commit()
            except sqlite3.IntegrityError as e:
                conn.rollback()
                raise CatalogError(f"Could not store file {manifest.id}: {e}") from e

        logger.debug(f"Stored manifest {manifest.id} ({len(manifest.chunks)} chunks)")
        return self.get_file(manifest.id)

    def get_file(
        self,
        file_id: str,
        owner_username: Optional[str] = None
    ) -> Optional[FileManifest]:
        with self._get_connection() as conn:
            row = conn.execute('''
                SELECT id, name, size, owner_username, parent_directory_id,
                       sha256, created_at
                FROM files
                WHERE id = ? AND (? IS NULL OR owner_username = ?)
            ''', (file_id, owner_username, owner_username)).fetchone()
            if row is None:
                return None
            chunk_rows = conn.execute('''
                SELECT id, chunk_index, size, remote_id
                FROM chunks
                WHERE file_id = ?
                ORDER BY chunk_index ASC
            ''', (file_id,)).fetchall()
        return self._to_manifest(row, chunk_rows)

    def list_files(self, owner_username: str) -> List[FileManifest]:
        with self._get_connection() as conn:
            ids = [
                row['id'] for row in conn.execute(
                    'SELECT id FROM files WHERE owner_username = ? ORDER BY created_at, name',
                    (owner_username,)
                ).fetchall()
            ]
        return [self.get_file(file_id) for file_id in ids]

    @staticmethod
    def _to_manifest(row: sqlite3.Row, chunk_rows: List[sqlite3.Row]) -> FileManifest:
        return FileManifest(
            id=row['id'],
            name=row['name'],
            size=row['size'],
            owner_username=row['owner_username'],
            parent_directory_id=row['parent_directory_id'],
            sha256=row['sha256'],
            created_at=datetime.fromisoformat(row['created_at']),
            chunks=[
                ChunkRecord(
                    id=chunk['id'],
                    index=chunk['chunk_index'],
                    size=chunk['size'],
                    remote_id=chunk['remote_id'],
                )
                for chunk in chunk_rows
            ],
        )

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> 'SQLiteCatalog':
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
