"""
Async client for the etcd key-value store.
"""

import logging
from typing import Dict, Optional, Sequence

from .config import BULK_PUT_BATCH_SIZE, DEFAULT_ENDPOINT
from .exceptions import SwapFailedError
from .ranges import KeyLike, prefix_range, to_bytes
from .rpc import AsyncKVStub, HttpKVStub
from .transaction import (
    Compare,
    DeleteRangeOp,
    PutOp,
    build_conditional,
    build_unconditional,
    chunked,
    interpret,
)

logger = logging.getLogger(__name__)


class AsyncEtcdClient:
    """
    An asyncio client for etcd.

    Wraps the store's KV RPC surface and hides its transaction protocol
    behind single-purpose operations. Keys and values may be given as
    ``str`` or ``bytes``; values are always returned as ``bytes``.

    Example usage:
        async with await AsyncEtcdClient.connect("http://localhost:2379") as etcd:
            await etcd.put("config/a", "1")
            await etcd.swap("config/a", "1", "2")
            await etcd.get_prefix("config/")

    A client owns one connection and allows one in-flight operation at a
    time; use one client per task or serialize access externally.
    """

    def __init__(self, stub: AsyncKVStub) -> None:
        """
        Initialize the client around an existing stub.

        Args:
            stub: The RPC stub to issue requests through
        """
        self._stub = stub

    @classmethod
    async def connect(
        cls,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> "AsyncEtcdClient":
        """
        Connect to the store at ``endpoint``.

        Raises:
            TransportError: If the store cannot be reached
        """
        stub = HttpKVStub(endpoint, timeout=timeout)
        try:
            await stub.connect()
        except BaseException:
            await stub.close()
            raise
        return cls(stub)

    @classmethod
    async def localhost(cls) -> "AsyncEtcdClient":
        """Connect to the store on localhost."""
        return await cls.connect(DEFAULT_ENDPOINT)

    async def put(self, key: KeyLike, value: KeyLike) -> None:
        """
        Store a value.

        Args:
            key: The key to set
            value: The value to associate with the key
        """
        await self._stub.put(to_bytes(key), to_bytes(value))

    async def bulk_put(self, keys: Sequence[KeyLike], batch_size: int = BULK_PUT_BATCH_SIZE) -> None:
        """
        Load a set of keys with empty values.

        Keys are written in batches, one transaction per batch, because etcd
        limits the size of a transaction. Each batch is atomic; the call as
        a whole is not. If a batch fails, earlier batches stay committed and
        later ones are not attempted.

        Args:
            keys: The keys to load
            batch_size: Maximum number of keys per transaction
        """
        batches = list(chunked([to_bytes(k) for k in keys], batch_size))
        for index, batch in enumerate(batches):
            txn = build_unconditional(PutOp(key) for key in batch)
            try:
                await self._stub.txn(txn)
            except Exception:
                logger.warning(
                    "Bulk put stopped at batch %d of %d; %d keys committed",
                    index + 1, len(batches), index * batch_size,
                )
                raise
            logger.debug("Committed batch %d of %d (%d keys)", index + 1, len(batches), len(batch))

    async def get(self, key: KeyLike) -> Optional[bytes]:
        """
        Retrieve a single value.

        Returns:
            The stored value, or None if the key does not exist
        """
        kvs = await self._stub.range(to_bytes(key))
        if not kvs:
            return None
        # an exact-key query yields at most one pair; keep the last if not
        return kvs[-1][1]

    async def get_prefix(self, prefix: KeyLike) -> Dict[bytes, bytes]:
        """
        Get all key/value pairs for the given prefix.

        Returns:
            A mapping of every matching key to its value
        """
        key, range_end = prefix_range(prefix)
        kvs = await self._stub.range(key, range_end)
        result = dict(kvs)
        logger.debug("Prefix %r matched %d keys", key, len(result))
        return result

    async def delete(self, keys: Sequence[KeyLike]) -> None:
        """
        Delete a set of keys atomically.

        All keys are removed in one transaction, so either all are deleted
        or, if the request fails, none are. An empty ``keys`` sends no
        request at all.
        """
        ops = [DeleteRangeOp(to_bytes(k)) for k in keys]
        if not ops:
            return
        logger.debug("Deleting %d keys", len(ops))
        await self._stub.txn(build_unconditional(ops))
        logger.debug("Delete transaction complete")

    async def delete_prefix(self, prefix: KeyLike) -> None:
        """Delete all keys underneath a prefix atomically."""
        key, range_end = prefix_range(prefix)
        await self._stub.delete_range(key, range_end)

    async def swap(self, key: KeyLike, old_value: KeyLike, new_value: KeyLike) -> None:
        """
        Perform an atomic compare and swap for a key.

        Args:
            key: The key to update
            old_value: The value the key must currently hold
            new_value: The value to store if it does

        Raises:
            SwapFailedError: If the current value differs from ``old_value``
                             or the key does not exist
        """
        k = to_bytes(key)
        txn = build_conditional(
            [Compare(k, to_bytes(old_value))],
            [PutOp(k, to_bytes(new_value))],
        )
        response = await self._stub.txn(txn)
        if not interpret(response):
            raise SwapFailedError(key)

    async def close(self) -> None:
        """Close the underlying connection."""
        await self._stub.close()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
