"""
Async Google Drive client.

Thin typed operations over the Drive v3 REST API. Every call is gated by
a shared :class:`ConcurrencyLimiter`.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

import aiohttp

from .auth import TokenProvider
from .config import APIConfig
from .errors import DriveAPIError, HTTPStatusCodes
from .limiter import ConcurrencyLimiter
from ..logging import get_logger, format_size

FOLDER_MIME_TYPE = 'application/vnd.google-apps.folder'
DEFAULT_MIME_TYPE = 'application/octet-stream'


@dataclass(frozen=True)
class RemoteObject:
    """An object (file or folder) stored in Drive."""
    id: str
    name: str
    mime_type: str = DEFAULT_MIME_TYPE
    size: Optional[int] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'RemoteObject':
        size = data.get('size')
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            mime_type=data.get('mimeType', DEFAULT_MIME_TYPE),
            size=int(size) if size is not None else None,
        )


def _quote(value: str) -> str:
    """Escape a literal for a Drive search query."""
    return value.replace('\\', '\\\\').replace("'", "\\'")


class DriveClient:
    """
    Asynchronous Drive client.

    Features:
    - Streamed object create (resumable session, single PUT) and read
    - Folder creation with caller-supplied IDs
    - Batched ID generation
    - Shared API-call limiter injected by the owner

    Example:
        >>> limiter = ConcurrencyLimiter(3)
        >>> async with DriveClient(auth, limiter) as drive:
        ...     root_id = await drive.ensure_root_directory('drivechunks')
    """

    def __init__(
        self,
        auth: TokenProvider,
        limiter: Optional[ConcurrencyLimiter] = None,
        config: Optional[APIConfig] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        Initialize Drive client.

        Args:
            auth: Access token provider
            limiter: API-call limiter shared with every other caller
            config: API configuration (uses defaults if not provided)
            session: Optional externally owned HTTP session
        """
        self._config = config or APIConfig.default()
        self._auth = auth
        self._limiter = limiter or ConcurrencyLimiter(self._config.api_concurrency)
        self._session = session
        self._owns_session = session is None
        self._connector: Optional[aiohttp.TCPConnector] = None

        self._logger = get_logger('drivechunks.api')
        root_logger = logging.getLogger()
        if not root_logger.handlers:
            self._logger.setLevel(self._config.log_level)

    @property
    def config(self) -> APIConfig:
        return self._config

    @property
    def limiter(self) -> ConcurrencyLimiter:
        return self._limiter

    async def __aenter__(self) -> 'DriveClient':
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session is created and open."""
        if self._session is None or self._session.closed:
            self._connector = aiohttp.TCPConnector(
                **self._config.get_connector_kwargs()
            )
            self._session = aiohttp.ClientSession(
                connector=self._connector,
                **self._config.get_session_kwargs()
            )
            self._owns_session = True
        return self._session

    async def close(self):
        """Close client and release resources."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None

        if self._connector and not self._connector.closed:
            await self._connector.close()
        self._connector = None

    async def _auth_headers(self, session: aiohttp.ClientSession) -> Dict[str, str]:
        token = await self._auth.get_token(session)
        return {'Authorization': f"Bearer {token}"}

    async def _request_json(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Make one limiter-gated metadata call.

        Raises:
            DriveAPIError: On a non-success status
        """
        async with self._limiter:
            session = await self._ensure_session()
            headers = await self._auth_headers(session)
            async with session.request(
                method,
                url,
                params=params,
                json=payload,
                headers=headers,
                proxy=self._config.proxy
            ) as response:
                if not HTTPStatusCodes.is_success(response.status):
                    body = await response.text()
                    self._logger.error(f"{method} {url} failed: HTTP {response.status}")
                    raise DriveAPIError(response.status, body=body)
                if response.status == 204:
                    return {}
                return await response.json()

    # =========================================================================
    # Folders and listings
    # =========================================================================

    async def list_objects(
        self,
        query: str,
        fields: str = 'nextPageToken, files(id, name, mimeType, size)'
    ) -> List[RemoteObject]:
        """List objects matching a Drive search query, following pagination."""
        objects: List[RemoteObject] = []
        page_token: Optional[str] = None
        while True:
            params = {'q': query, 'fields': fields, 'spaces': 'drive'}
            if page_token:
                params['pageToken'] = page_token
            data = await self._request_json('GET', f"{self._config.api_url}files", params=params)
            objects.extend(RemoteObject.from_api(item) for item in data.get('files', []))
            page_token = data.get('nextPageToken')
            if not page_token:
                return objects

    async def delete_object(self, object_id: str) -> None:
        """Permanently delete an object."""
        await self._request_json('DELETE', f"{self._config.api_url}files/{object_id}")
        self._logger.debug(f"Deleted object {object_id}")

    async def create_directory(
        self,
        name: str,
        object_id: Optional[str] = None,
        parent_id: Optional[str] = None
    ) -> str:
        """
        Create a folder.

        Args:
            name: Folder name
            object_id: Pre-generated ID to create the folder with
            parent_id: Parent folder ID (store root when omitted)

        Returns:
            ID of the created folder
        """
        metadata: Dict[str, Any] = {
            'name': name,
            'mimeType': FOLDER_MIME_TYPE,
            'parents': [parent_id] if parent_id else [],
        }
        if object_id:
            metadata['id'] = object_id
        data = await self._request_json(
            'POST',
            f"{self._config.api_url}files",
            params={'fields': 'id, name, mimeType'},
            payload=metadata
        )
        self._logger.debug(f"Created folder '{name}' ({data['id']})")
        return data['id']

    async def ensure_root_directory(self, name: str) -> str:
        """
        Return the ID of the reserved root folder, creating it if needed.

        When several folders carry the name, the first one listed wins and
        the others are deleted.
        """
        query = (
            f"'root' in parents and name='{_quote(name)}' "
            f"and mimeType='{FOLDER_MIME_TYPE}' and trashed=false"
        )
        existing = await self.list_objects(query)

        if not existing:
            self._logger.info(f"Root folder '{name}' not found, creating it")
            return await self.create_directory(name)

        if len(existing) > 1:
            self._logger.warning(
                f"Found {len(existing)} root folders named '{name}', keeping {existing[0].id}"
            )
            for duplicate in existing[1:]:
                await self.delete_object(duplicate.id)

        return existing[0].id

    # =========================================================================
    # Objects
    # =========================================================================

    async def create_object(
        self,
        name: str,
        stream: AsyncIterator[bytes],
        size: int,
        object_id: Optional[str] = None,
        parent_id: Optional[str] = None,
        mime_type: Optional[str] = None
    ) -> Optional[RemoteObject]:
        """
        Upload a stream as a single object.

        Opens a resumable upload session and sends the whole body with one
        PUT, so the stream is consumed exactly once.

        Args:
            name: Object name
            stream: Async iterator yielding the body
            size: Exact body length in bytes
            object_id: Pre-generated ID
            parent_id: Parent folder ID
            mime_type: Content type (octet-stream by default)

        Returns:
            The created object, or None if Drive answered with a
            non-success status
        """
        mime_type = mime_type or DEFAULT_MIME_TYPE
        metadata: Dict[str, Any] = {
            'name': name,
            'mimeType': mime_type,
            'parents': [parent_id] if parent_id else [],
        }
        if object_id:
            metadata['id'] = object_id

        async with self._limiter:
            session = await self._ensure_session()
            headers = await self._auth_headers(session)

            async with session.post(
                f"{self._config.upload_url}files",
                params={'uploadType': 'resumable'},
                data=json.dumps(metadata),
                headers={
                    **headers,
                    'Content-Type': 'application/json; charset=UTF-8',
                    'X-Upload-Content-Type': mime_type,
                    'X-Upload-Content-Length': str(size),
                },
                proxy=self._config.proxy
            ) as response:
                if not HTTPStatusCodes.is_success(response.status):
                    self._logger.error(
                        f"Could not open upload session for '{name}': HTTP {response.status}"
                    )
                    return None
                location = response.headers.get('Location')

            if not location:
                self._logger.error(f"Upload session for '{name}' returned no location")
                return None

            self._logger.debug(f"Uploading '{name}' ({format_size(size)})")
            async with session.put(
                location,
                data=stream,
                headers={
                    **headers,
                    'Content-Type': mime_type,
                    'Content-Length': str(size),
                },
                proxy=self._config.proxy
            ) as response:
                if not HTTPStatusCodes.is_success(response.status):
                    self._logger.error(f"Upload of '{name}' failed: HTTP {response.status}")
                    return None
                data = await response.json()

        return RemoteObject.from_api(data)

    async def read_object(
        self,
        object_id: str,
        size: int,
        buffer_size: int = 64 * 1024
    ) -> AsyncIterator[bytes]:
        """
        Stream an object's content.

        The limiter slot is held until the stream is exhausted or closed.
        ``size`` is the expected length; progress relative to it is
        reported by the caller's progress wrapper.

        Raises:
            DriveAPIError: If Drive answers with a non-success status
        """
        async with self._limiter:
            session = await self._ensure_session()
            headers = await self._auth_headers(session)
            async with session.get(
                f"{self._config.api_url}files/{object_id}",
                params={'alt': 'media'},
                headers=headers,
                proxy=self._config.proxy
            ) as response:
                if not HTTPStatusCodes.is_success(response.status):
                    body = await response.text()
                    self._logger.error(f"Read of {object_id} failed: HTTP {response.status}")
                    raise DriveAPIError(response.status, body=body)
                self._logger.debug(f"Reading {object_id} ({format_size(size)})")
                async for block in response.content.iter_chunked(buffer_size):
                    yield block

    async def generate_ids(self, count: int) -> List[str]:
        """
        Pre-generate object IDs with a single call.

        ``count`` is capped at the store's per-request maximum.
        """
        count = min(count, self._config.max_ids_per_request)
        data = await self._request_json(
            'GET',
            f"{self._config.api_url}files/generateIds",
            params={'count': count, 'space': 'drive'}
        )
        return list(data.get('ids', []))
