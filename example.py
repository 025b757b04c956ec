#!/usr/bin/env python3
"""
Example usage of the blocking etcd client.

Runs against the store named by ETCDKV_ENDPOINT, or an in-memory stub if
the variable is unset.
"""

import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from etcdkv import InMemoryKVStub, SwapFailedError, SyncEtcdClient


def open_client() -> SyncEtcdClient:
    if os.environ.get("ETCDKV_ENDPOINT"):
        return SyncEtcdClient()
    return SyncEtcdClient(stub=InMemoryKVStub())


def main():
    """Demonstrate the SyncEtcdClient functionality."""
    print("=== etcd Key-Value Client Demo ===\n")

    with open_client() as etcd:
        print("1. Basic operations:")
        etcd.put("demo/name", "Alice")
        etcd.put("demo/age", "30")
        print(f"   - Get name: {etcd.get('demo/name')}")
        print(f"   - Get missing: {etcd.get('demo/missing')}")

        print("\n2. Prefix read:")
        for key, value in sorted(etcd.get_prefix("demo/").items()):
            print(f"   - {key!r} = {value!r}")

        print("\n3. Compare and swap:")
        etcd.swap("demo/age", "30", "31")
        print(f"   - age after swap: {etcd.get('demo/age')}")
        try:
            etcd.swap("demo/age", "30", "32")
        except SwapFailedError as e:
            print(f"   - Stale swap rejected: {e}")

        print("\n4. Bulk load and cleanup:")
        etcd.bulk_put([f"demo/bulk/{i:04d}" for i in range(2500)])
        print(f"   - Loaded {len(etcd.get_prefix('demo/bulk/'))} keys")
        etcd.delete(["demo/name"])
        etcd.delete_prefix("demo/")
        print(f"   - Remaining under demo/: {etcd.get_prefix('demo/')}")


if __name__ == "__main__":
    main()
