"""
Default settings for the etcd key-value client.

Endpoint and timeout may be overridden from the environment through
``ETCDKV_ENDPOINT`` and ``ETCDKV_TIMEOUT``; explicit arguments always win.
"""

import os
from typing import Optional

DEFAULT_ENDPOINT = "http://localhost:2379"
DEFAULT_TIMEOUT = 5.0

# etcd caps the number of operations in a single transaction
BULK_PUT_BATCH_SIZE = 1000

ENDPOINT_ENV = "ETCDKV_ENDPOINT"
TIMEOUT_ENV = "ETCDKV_TIMEOUT"


def resolve_endpoint(endpoint: Optional[str] = None) -> str:
    """Return the endpoint to connect to."""
    if endpoint:
        return endpoint
    return os.environ.get(ENDPOINT_ENV) or DEFAULT_ENDPOINT


def resolve_timeout(timeout: Optional[float] = None) -> float:
    """
    Return the request timeout in seconds.

    Raises:
        ValueError: If the environment override is not a number
    """
    if timeout is not None:
        return float(timeout)
    raw = os.environ.get(TIMEOUT_ENV)
    if raw:
        try:
            return float(raw)
        except ValueError:
            raise ValueError(f"{TIMEOUT_ENV} must be a number, got '{raw}'")
    return DEFAULT_TIMEOUT
