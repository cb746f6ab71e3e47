"""Drive API status codes and exceptions."""
from typing import Dict, Optional

from ...exceptions import DriveChunksError


class HTTPStatusCodes:
    """Status codes returned by the Drive API."""
    
    STATUS_MESSAGES: Dict[int, str] = {
        400: 'BAD_REQUEST (400): The request was malformed or a parameter was invalid.',
        401: 'UNAUTHORIZED (401): The access token is missing, invalid or expired.',
        403: 'FORBIDDEN (403): Rate limit exceeded, quota exhausted or insufficient permissions.',
        404: 'NOT_FOUND (404): The file or folder does not exist or is not accessible.',
        409: 'CONFLICT (409): An object with the requested ID already exists.',
        429: 'TOO_MANY_REQUESTS (429): The user sent too many requests in a given amount of time.',
        500: 'INTERNAL (500): An unexpected error occurred while processing the request.',
        502: 'BAD_GATEWAY (502): The upstream server returned an invalid response.',
        503: 'UNAVAILABLE (503): The service is temporarily unavailable.',
    }
    
    @classmethod
    def get_message(cls, status: int) -> str:
        """Gets message for a status code."""
        return cls.STATUS_MESSAGES.get(status, f"Unexpected status: {status}")
    
    @staticmethod
    def is_success(status: int) -> bool:
        """Returns True for 2xx status codes."""
        return 200 <= status < 300


class DriveAPIError(DriveChunksError):
    """Exception raised for non-success Drive API responses."""
    
    def __init__(self, status: int, reason: Optional[str] = None, body: str = ''):
        self.status = status
        self.body = body
        self.message = reason or HTTPStatusCodes.get_message(status)
        super().__init__(self.message, error_code=status)


class AuthError(DriveAPIError):
    """Exception raised when an access token cannot be obtained."""
    pass
