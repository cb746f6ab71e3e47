"""Drive API errors and exceptions."""
from .api_errors import DriveAPIError, AuthError, HTTPStatusCodes

__all__ = [
    'DriveAPIError',
    'AuthError',
    'HTTPStatusCodes',
]
