"""
API configuration module.

Provides configuration for the Drive API client.
"""
import os
from dataclasses import dataclass, field
from typing import Optional, Dict, Any


@dataclass
class TimeoutConfig:
    """
    Timeout configuration.
    
    Chunk bodies are streamed, so there is no total timeout by default;
    only connect and per-read timeouts apply.
    """
    total: Optional[float] = None
    connect: float = 30.0
    sock_read: float = 120.0
    sock_connect: float = 30.0
    
    def to_aiohttp_timeout(self):
        """Convert to aiohttp ClientTimeout."""
        import aiohttp
        return aiohttp.ClientTimeout(
            total=self.total,
            connect=self.connect,
            sock_read=self.sock_read,
            sock_connect=self.sock_connect
        )


@dataclass
class DriveCredentials:
    """
    OAuth client credentials plus the externally supplied refresh token.
    
    Obtaining the refresh token (the consent flow) happens outside this
    package.
    """
    client_id: str
    client_secret: str
    refresh_token: str
    
    ENV_CLIENT_ID = 'DRIVECHUNKS_CLIENT_ID'
    ENV_CLIENT_SECRET = 'DRIVECHUNKS_CLIENT_SECRET'
    ENV_REFRESH_TOKEN = 'DRIVECHUNKS_REFRESH_TOKEN'
    
    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> 'DriveCredentials':
        """
        Read credentials from environment variables.
        
        Raises:
            KeyError: If a variable is missing
        """
        env = os.environ if environ is None else environ
        missing = [
            name for name in (cls.ENV_CLIENT_ID, cls.ENV_CLIENT_SECRET, cls.ENV_REFRESH_TOKEN)
            if not env.get(name)
        ]
        if missing:
            raise KeyError(f"Missing environment variables: {', '.join(missing)}")
        return cls(
            client_id=env[cls.ENV_CLIENT_ID],
            client_secret=env[cls.ENV_CLIENT_SECRET],
            refresh_token=env[cls.ENV_REFRESH_TOKEN],
        )


@dataclass
class APIConfig:
    """
    Complete API configuration.
    
    Centralizes all configuration options for the Drive API client.
    """
    # Endpoints
    api_url: str = 'https://www.googleapis.com/drive/v3/'
    upload_url: str = 'https://www.googleapis.com/upload/drive/v3/'
    token_url: str = 'https://oauth2.googleapis.com/token'
    
    user_agent: str = 'drivechunks/1.0.0'
    
    # HTTP(S) proxy URL, credentials inline
    proxy: Optional[str] = None
    verify_ssl: bool = True
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    
    extra_headers: Dict[str, str] = field(default_factory=dict)
    
    # Store limits
    max_ids_per_request: int = 1000
    api_concurrency: int = 3
    
    log_level: int = 20  # logging.INFO
    
    # Connection pool settings
    limit_per_host: int = 10
    limit: int = 100
    
    @classmethod
    def default(cls) -> 'APIConfig':
        """Create default configuration."""
        return cls()
    
    def get_connector_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp TCPConnector."""
        return {
            'limit': self.limit,
            'limit_per_host': self.limit_per_host,
            'ssl': self.verify_ssl,
        }
    
    def get_session_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp ClientSession."""
        headers = {
            'User-Agent': self.user_agent,
            **self.extra_headers
        }
        
        return {
            'headers': headers,
            'timeout': self.timeout.to_aiohttp_timeout(),
        }
