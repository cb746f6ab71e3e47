"""
Access token providers.

Exchanges an externally supplied OAuth refresh token for short-lived
bearer tokens.
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Optional, Protocol

import aiohttp

from .config import APIConfig, DriveCredentials
from .errors import AuthError
from ..logging import get_logger

logger = get_logger('drivechunks.api.auth')


@dataclass
class AccessToken:
    """Bearer token with its expiry (monotonic clock)."""
    token: str
    expires_at: float

    def is_valid(self, leeway: float = 60.0) -> bool:
        """True while the token has more than ``leeway`` seconds left."""
        return time.monotonic() < self.expires_at - leeway


class TokenProvider(Protocol):
    """Protocol for objects handing out bearer tokens."""

    async def get_token(self, session: aiohttp.ClientSession) -> str:
        ...


class StaticTokenAuth:
    """Provider returning a fixed token (tests, short scripts)."""

    def __init__(self, token: str):
        self._token = token

    async def get_token(self, session: aiohttp.ClientSession) -> str:
        return self._token


class RefreshTokenAuth:
    """
    Refresh-token based provider.

    Caches the access token and refreshes it under a lock so concurrent
    chunk tasks trigger a single refresh.
    """

    def __init__(
        self,
        credentials: DriveCredentials,
        config: Optional[APIConfig] = None
    ):
        self._credentials = credentials
        self._config = config or APIConfig.default()
        self._token: Optional[AccessToken] = None
        self._lock = asyncio.Lock()

    async def get_token(self, session: aiohttp.ClientSession) -> str:
        if self._token and self._token.is_valid():
            return self._token.token

        async with self._lock:
            if self._token and self._token.is_valid():
                return self._token.token
            self._token = await self._refresh(session)
            return self._token.token

    def invalidate(self) -> None:
        """Drop the cached token so the next call refreshes."""
        self._token = None

    async def _refresh(self, session: aiohttp.ClientSession) -> AccessToken:
        logger.debug("Refreshing access token")
        payload = {
            'client_id': self._credentials.client_id,
            'client_secret': self._credentials.client_secret,
            'refresh_token': self._credentials.refresh_token,
            'grant_type': 'refresh_token',
        }
        async with session.post(self._config.token_url, data=payload) as response:
            if response.status != 200:
                body = await response.text()
                logger.error(f"Token refresh failed: HTTP {response.status}")
                raise AuthError(response.status, "Could not refresh access token", body)
            data = await response.json()

        token = data.get('access_token')
        if not token:
            raise AuthError(response.status, "Token response carried no access_token")

        expires_in = float(data.get('expires_in', 3600))
        logger.info(f"Access token refreshed (expires in {expires_in:.0f}s)")
        return AccessToken(token=token, expires_at=time.monotonic() + expires_in)
