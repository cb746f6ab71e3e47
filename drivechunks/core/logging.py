"""Logging utilities for drivechunks modules."""

import logging


def get_logger(name: str) -> logging.Logger:
    """Get a logger that automatically inherits from root logger.
    
    Loggers work with basicConfig() without needing an explicit
    setup_logging() call. The logger will:
    - Propagate to root logger (default behavior)
    - Only set a default level if root logger has no handlers
    
    Args:
        name: Logger name (typically 'drivechunks.<area>')
        
    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.propagate = True
    
    # basicConfig() not called yet
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logger.setLevel(logging.WARNING)
    
    return logger


def format_size(num_bytes: float) -> str:
    """Human readable byte count for log messages."""
    if num_bytes < 1024:
        return f"{int(num_bytes)} B"
    for unit in ('KB', 'MB', 'GB'):
        num_bytes /= 1024
        if num_bytes < 1024 or unit == 'GB':
            break
    return f"{num_bytes:.1f} {unit}"
