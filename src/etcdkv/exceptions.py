"""
Custom exceptions for the etcd key-value client.
"""

from typing import Optional, Union


class EtcdError(Exception):
    """Base exception for all client errors."""
    pass


class TransportError(EtcdError):
    """Exception raised when the store cannot be reached or the channel fails."""
    pass


class RemoteError(EtcdError):
    """Exception raised when the store rejects an otherwise well-formed request."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class SwapFailedError(EtcdError):
    """Exception raised when a compare-and-swap predicate does not hold."""

    def __init__(self, key: Union[str, bytes, bytearray, memoryview]) -> None:
        if isinstance(key, (bytearray, memoryview)):
            key = bytes(key)
        shown = key.decode("utf-8", errors="replace") if isinstance(key, bytes) else key
        super().__init__(f"Compare and swap failed for key '{shown}'")
        self.key = key


class ClientClosedError(EtcdError):
    """Exception raised when a closed client is used."""
    pass
