"""Cooperative cancellation for multi-chunk transfers."""
import asyncio

from ..exceptions import TransferCancelledError


class CancellationToken:
    """
    Flag shared by planner, pool, progress streams and reassembler.
    
    Cancelling stops new chunks from starting; running chunk streams stop
    at their next block.
    
    Example:
        >>> token = CancellationToken()
        >>> task = asyncio.create_task(client.upload(path, cancel_token=token))
        >>> token.cancel()
    """
    
    def __init__(self):
        self._event = asyncio.Event()
        self._reason = 'Transfer cancelled'
    
    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
    
    def cancel(self, reason: str = 'Transfer cancelled') -> None:
        self._reason = reason
        self._event.set()
    
    def raise_if_cancelled(self) -> None:
        """
        Raises:
            TransferCancelledError: If the token was cancelled
        """
        if self._event.is_set():
            raise TransferCancelledError(self._reason)
