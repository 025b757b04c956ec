"""
etcd Key-Value Client

A Python client for the etcd v3 KV API offering put, get, delete,
compare-and-swap and prefix operations over both asyncio and blocking
call surfaces.
"""

from .async_client import AsyncEtcdClient
from .sync_client import SyncEtcdClient
from .interface import EtcdKV
from .rpc import AsyncKVStub, HttpKVStub, InMemoryKVStub
from .ranges import prefix_range
from .exceptions import (
    EtcdError,
    TransportError,
    RemoteError,
    SwapFailedError,
    ClientClosedError,
)

__version__ = "0.1.0"
__all__ = [
    "AsyncEtcdClient",
    "SyncEtcdClient",
    "EtcdKV",
    "AsyncKVStub",
    "HttpKVStub",
    "InMemoryKVStub",
    "prefix_range",
    "EtcdError",
    "TransportError",
    "RemoteError",
    "SwapFailedError",
    "ClientClosedError",
]
