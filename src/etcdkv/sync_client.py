"""
Blocking client for the etcd key-value store.
"""

import asyncio
import weakref
from typing import Dict, Optional, Sequence

from .async_client import AsyncEtcdClient
from .config import BULK_PUT_BATCH_SIZE, DEFAULT_ENDPOINT
from .exceptions import ClientClosedError
from .ranges import KeyLike
from .rpc import AsyncKVStub


def _teardown(loop: asyncio.AbstractEventLoop, inner: AsyncEtcdClient) -> None:
    """Close the inner client and then its loop."""
    if loop.is_closed():
        return
    try:
        loop.run_until_complete(inner.close())
    finally:
        loop.close()


class SyncEtcdClient:
    """
    A synchronous version of ``AsyncEtcdClient``.

    Wraps an ``AsyncEtcdClient`` together with a private event loop and runs
    each operation to completion on it. The loop belongs to this instance
    alone and is closed by ``close()``; use the client as a context manager
    to guarantee that.

    Example usage:
        with SyncEtcdClient("http://localhost:2379") as etcd:
            etcd.put("config/a", "1")
            etcd.get("config/a")  # b"1"

    Not safe for concurrent use from several threads; use one client per
    thread.
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        *,
        stub: Optional[AsyncKVStub] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Create a client and connect it.

        Args:
            endpoint: Base URL of the store; defaults to ``ETCDKV_ENDPOINT``
                      or localhost
            stub: Use this stub instead of connecting to ``endpoint``
            timeout: Per-request timeout in seconds

        Raises:
            TransportError: If the store cannot be reached
        """
        self._loop: Optional[asyncio.AbstractEventLoop] = asyncio.new_event_loop()
        try:
            if stub is not None:
                self._inner = AsyncEtcdClient(stub)
            else:
                self._inner = self._loop.run_until_complete(
                    AsyncEtcdClient.connect(endpoint, timeout=timeout)
                )
        except BaseException:
            self._loop.close()
            self._loop = None
            raise
        # runs on close() or when the instance is garbage collected
        self._finalizer = weakref.finalize(self, _teardown, self._loop, self._inner)

    @classmethod
    def localhost(cls) -> "SyncEtcdClient":
        """Create a client on localhost."""
        return cls(DEFAULT_ENDPOINT)

    def _run(self, coro):
        if self._loop is None:
            coro.close()
            raise ClientClosedError("Client is closed")
        return self._loop.run_until_complete(coro)

    def put(self, key: KeyLike, value: KeyLike) -> None:
        """Store a value."""
        self._run(self._inner.put(key, value))

    def bulk_put(self, keys: Sequence[KeyLike], batch_size: int = BULK_PUT_BATCH_SIZE) -> None:
        """Load a set of keys with empty values, one transaction per batch."""
        self._run(self._inner.bulk_put(keys, batch_size))

    def get(self, key: KeyLike) -> Optional[bytes]:
        """Retrieve a single value."""
        return self._run(self._inner.get(key))

    def get_prefix(self, prefix: KeyLike) -> Dict[bytes, bytes]:
        """Get all key/value pairs for the given prefix."""
        return self._run(self._inner.get_prefix(prefix))

    def delete(self, keys: Sequence[KeyLike]) -> None:
        """Delete a set of keys atomically."""
        self._run(self._inner.delete(keys))

    def delete_prefix(self, prefix: KeyLike) -> None:
        """Delete all keys underneath a prefix atomically."""
        self._run(self._inner.delete_prefix(prefix))

    def swap(self, key: KeyLike, old_value: KeyLike, new_value: KeyLike) -> None:
        """Perform an atomic compare and swap for a key."""
        self._run(self._inner.swap(key, old_value, new_value))

    @property
    def closed(self) -> bool:
        """True once ``close()`` has run."""
        return self._loop is None

    def close(self) -> None:
        """
        Close the connection and the event loop.

        Safe to call more than once. A client dropped without closing is
        torn down when it is garbage collected.
        """
        if self._loop is None:
            return
        self._loop = None
        self._finalizer()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
