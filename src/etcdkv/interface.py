"""
Capability contract shared by etcd clients.
"""

from typing import Dict, Optional, Protocol, Sequence, runtime_checkable

from .ranges import KeyLike


@runtime_checkable
class EtcdKV(Protocol):
    """
    The blocking etcd operation set.

    Depend on this instead of a concrete client. ``SyncEtcdClient`` satisfies
    it without inheriting from it; an async client can be adapted by running
    it on an owned event loop the same way.
    """

    def put(self, key: KeyLike, value: KeyLike) -> None:
        """Store a value."""
        ...

    def bulk_put(self, keys: Sequence[KeyLike]) -> None:
        """Load a set of keys with empty values."""
        ...

    def get(self, key: KeyLike) -> Optional[bytes]:
        """Retrieve a single value."""
        ...

    def get_prefix(self, prefix: KeyLike) -> Dict[bytes, bytes]:
        """Get all key/value pairs for the given prefix."""
        ...

    def delete(self, keys: Sequence[KeyLike]) -> None:
        """Delete a set of keys atomically."""
        ...

    def delete_prefix(self, prefix: KeyLike) -> None:
        """Delete all keys underneath a prefix atomically."""
        ...

    def swap(self, key: KeyLike, old_value: KeyLike, new_value: KeyLike) -> None:
        """Perform an atomic compare and swap for a key."""
        ...
