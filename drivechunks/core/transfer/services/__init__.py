"""Transfer services module."""
from .file_service import FileValidator, AsyncFileReader

__all__ = [
    'FileValidator',
    'AsyncFileReader',
]
