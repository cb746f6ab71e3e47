"""Drive API module."""
from .errors import DriveAPIError, AuthError, HTTPStatusCodes
from .config import APIConfig, TimeoutConfig, DriveCredentials
from .limiter import ConcurrencyLimiter
from .auth import TokenProvider, StaticTokenAuth, RefreshTokenAuth, AccessToken
from .drive_client import DriveClient, RemoteObject, FOLDER_MIME_TYPE

__all__ = [
    # Client
    'DriveClient',
    'RemoteObject',
    'FOLDER_MIME_TYPE',
    'ConcurrencyLimiter',
    
    # Auth
    'TokenProvider',
    'StaticTokenAuth',
    'RefreshTokenAuth',
    'AccessToken',
    
    # Configuration
    'APIConfig',
    'TimeoutConfig',
    'DriveCredentials',
    
    # Errors
    'DriveAPIError',
    'AuthError',
    'HTTPStatusCodes',
]
