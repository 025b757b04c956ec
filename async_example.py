#!/usr/bin/env python3
"""
Example demonstrating the async etcd client.

Runs against the store named by ETCDKV_ENDPOINT, or an in-memory stub if
the variable is unset.
"""

import asyncio
import logging
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from etcdkv import AsyncEtcdClient, InMemoryKVStub, SwapFailedError


async def open_client() -> AsyncEtcdClient:
    if os.environ.get("ETCDKV_ENDPOINT"):
        return await AsyncEtcdClient.connect()
    return AsyncEtcdClient(InMemoryKVStub())


async def increment(etcd: AsyncEtcdClient, key: str) -> int:
    """Optimistically increment an existing counter, retrying on a lost race."""
    while True:
        current = await etcd.get(key)
        value = int(current) + 1
        try:
            await etcd.swap(key, current, str(value))
            return value
        except SwapFailedError:
            continue


async def main():
    """Demonstrate async operations."""
    print("=== Async etcd Client Demo ===\n")

    async with await open_client() as etcd:
        await etcd.put("counter/hits", "0")
        results = [await increment(etcd, "counter/hits") for _ in range(5)]
        print(f"   - Counter values: {results}")
        print(f"   - Final: {await etcd.get('counter/hits')}")
        await etcd.delete_prefix("counter/")


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    asyncio.run(main())
