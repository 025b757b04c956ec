"""
RPC stubs for the etcd KV service.

The client talks to the store only through ``AsyncKVStub``. ``HttpKVStub``
speaks etcd's v3 JSON gateway; ``InMemoryKVStub`` applies the same range and
transaction semantics in-process for tests and local development.
"""

import base64
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import httpx

from .config import resolve_endpoint, resolve_timeout
from .exceptions import RemoteError, TransportError
from .transaction import (
    Compare,
    DeleteRangeOp,
    Mutation,
    PutOp,
    TxnRequest,
    TxnResponse,
)

logger = logging.getLogger(__name__)

KeyValue = Tuple[bytes, bytes]


class AsyncKVStub(ABC):
    """Abstract base class for the store's KV RPC surface."""

    @abstractmethod
    async def connect(self) -> None:
        """Establish the channel to the store."""
        pass

    @abstractmethod
    async def put(self, key: bytes, value: bytes) -> None:
        """Store a single key/value pair."""
        pass

    @abstractmethod
    async def range(self, key: bytes, range_end: bytes = b"") -> List[KeyValue]:
        """Return the pairs in ``[key, range_end)``, or ``key`` alone if range_end is empty."""
        pass

    @abstractmethod
    async def delete_range(self, key: bytes, range_end: bytes = b"") -> None:
        """Delete the pairs in ``[key, range_end)``, or ``key`` alone if range_end is empty."""
        pass

    @abstractmethod
    async def txn(self, request: TxnRequest) -> TxnResponse:
        """Submit a transaction and report which branch ran."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the channel."""
        pass


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _unb64(data: Optional[str]) -> bytes:
    return base64.b64decode(data) if data else b""


def _encode_compare(compare: Compare) -> Dict[str, Any]:
    return {
        "result": compare.result.value,
        "target": compare.target.value,
        "key": _b64(compare.key),
        "value": _b64(compare.value),
    }


def _encode_op(op: Mutation) -> Dict[str, Any]:
    if isinstance(op, PutOp):
        return {"request_put": {"key": _b64(op.key), "value": _b64(op.value)}}
    if isinstance(op, DeleteRangeOp):
        body = {"key": _b64(op.key)}
        if op.range_end:
            body["range_end"] = _b64(op.range_end)
        return {"request_delete_range": body}
    raise TypeError(f"Unsupported mutation: {op!r}")


def encode_txn(request: TxnRequest) -> Dict[str, Any]:
    """Encode a transaction as the JSON body of ``/v3/kv/txn``."""
    return {
        "compare": [_encode_compare(c) for c in request.compare],
        "success": [_encode_op(op) for op in request.success],
        "failure": [_encode_op(op) for op in request.failure],
    }


class HttpKVStub(AsyncKVStub):
    """KV stub speaking etcd's v3 JSON gateway over HTTP."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the stub.

        Args:
            endpoint: Base URL of the store, e.g. ``http://localhost:2379``
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport, mainly for tests

        Raises:
            TransportError: If the endpoint is not an http(s) URL
        """
        self.endpoint = resolve_endpoint(endpoint)
        try:
            url = httpx.URL(self.endpoint)
        except httpx.InvalidURL as e:
            raise TransportError(f"Invalid endpoint '{self.endpoint}'") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise TransportError(f"Invalid endpoint '{self.endpoint}'")
        self._client = httpx.AsyncClient(
            base_url=self.endpoint,
            timeout=resolve_timeout(timeout),
            transport=transport,
        )

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.TransportError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {"message": response.text}
            if not isinstance(body, dict):
                body = {"message": str(body)}
            message = body.get("message") or body.get("error") or response.reason_phrase
            raise RemoteError(message, status_code=response.status_code, code=body.get("code"))

        try:
            reply = response.json()
        except ValueError as e:
            raise RemoteError(f"Malformed reply from {path}", status_code=response.status_code) from e
        if not isinstance(reply, dict):
            raise RemoteError(f"Malformed reply from {path}", status_code=response.status_code)
        return reply

    async def connect(self) -> None:
        await self._request("GET", "/version")
        logger.debug("Connected to %s", self.endpoint)

    async def put(self, key: bytes, value: bytes) -> None:
        await self._request("POST", "/v3/kv/put", {"key": _b64(key), "value": _b64(value)})

    async def range(self, key: bytes, range_end: bytes = b"") -> List[KeyValue]:
        payload = {"key": _b64(key)}
        if range_end:
            payload["range_end"] = _b64(range_end)
        reply = await self._request("POST", "/v3/kv/range", payload)
        return [(_unb64(kv.get("key")), _unb64(kv.get("value"))) for kv in reply.get("kvs", [])]

    async def delete_range(self, key: bytes, range_end: bytes = b"") -> None:
        payload = {"key": _b64(key)}
        if range_end:
            payload["range_end"] = _b64(range_end)
        await self._request("POST", "/v3/kv/deleterange", payload)

    async def txn(self, request: TxnRequest) -> TxnResponse:
        reply = await self._request("POST", "/v3/kv/txn", encode_txn(request))
        # proto3 JSON drops fields holding their default, so false is absent
        return TxnResponse(succeeded=bool(reply.get("succeeded", False)))

    async def close(self) -> None:
        await self._client.aclose()


class InMemoryKVStub(AsyncKVStub):
    """In-process KV stub with etcd range and transaction semantics, for testing."""

    def __init__(self) -> None:
        self.data: Dict[bytes, bytes] = {}
        self.closed = False

    @staticmethod
    def _in_range(candidate: bytes, key: bytes, range_end: bytes) -> bool:
        if not range_end:
            return candidate == key
        if range_end == b"\x00":
            return candidate >= key
        return key <= candidate < range_end

    async def connect(self) -> None:
        pass  # Nothing to connect

    async def put(self, key: bytes, value: bytes) -> None:
        self.data[key] = value

    async def range(self, key: bytes, range_end: bytes = b"") -> List[KeyValue]:
        return sorted(
            (k, v) for k, v in self.data.items() if self._in_range(k, key, range_end)
        )

    def _delete(self, key: bytes, range_end: bytes) -> None:
        for k in [k for k in self.data if self._in_range(k, key, range_end)]:
            del self.data[k]

    async def delete_range(self, key: bytes, range_end: bytes = b"") -> None:
        self._delete(key, range_end)

    async def txn(self, request: TxnRequest) -> TxnResponse:
        # Nothing below awaits, so the whole transaction applies in one step
        succeeded = all(self.data.get(c.key) == c.value for c in request.compare)
        for op in request.success if succeeded else request.failure:
            if isinstance(op, PutOp):
                self.data[op.key] = op.value
            else:
                self._delete(op.key, op.range_end)
        return TxnResponse(succeeded=succeeded)

    async def close(self) -> None:
        self.closed = True
