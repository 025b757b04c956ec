"""
Tests for the JSON gateway stub, against a mocked HTTP transport.
"""

import base64
import json

import httpx
import pytest
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from etcdkv import AsyncEtcdClient, HttpKVStub
from etcdkv.exceptions import RemoteError, SwapFailedError, TransportError
from etcdkv.rpc import encode_txn
from etcdkv.transaction import Compare, DeleteRangeOp, PutOp, build_conditional


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class FakeGateway:
    """Records requests and replies with canned JSON bodies."""

    def __init__(self, replies=None, status_code=200):
        self.requests = []
        self.replies = replies or {}
        self.status_code = status_code

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, request.url.path, body))
        return httpx.Response(self.status_code, json=self.replies.get(request.url.path, {}))

    def stub(self) -> HttpKVStub:
        return HttpKVStub("http://etcd.test:2379", transport=httpx.MockTransport(self))


class TestHttpStubRequests:
    """Test request encoding."""

    @pytest.mark.asyncio
    async def test_put_encodes_base64(self):
        """Test that keys and values are base64 encoded."""
        gateway = FakeGateway()
        stub = gateway.stub()

        await stub.put(b"key", b"\xffvalue")

        assert gateway.requests == [
            ("POST", "/v3/kv/put", {"key": b64(b"key"), "value": b64(b"\xffvalue")})
        ]
        await stub.close()

    @pytest.mark.asyncio
    async def test_range_without_end_omits_range_end(self):
        """Test that an exact-key query sends no range_end."""
        gateway = FakeGateway()
        stub = gateway.stub()

        assert await stub.range(b"key") == []
        assert gateway.requests[0][2] == {"key": b64(b"key")}
        await stub.close()

    @pytest.mark.asyncio
    async def test_range_decodes_kvs(self):
        """Test that returned pairs are decoded from base64."""
        gateway = FakeGateway(replies={
            "/v3/kv/range": {
                "kvs": [
                    {"key": b64(b"a/1"), "value": b64(b"x"), "mod_revision": "5"},
                    {"key": b64(b"a/2")},
                ],
                "count": "2",
            }
        })
        stub = gateway.stub()

        assert await stub.range(b"a/", b"a0") == [(b"a/1", b"x"), (b"a/2", b"")]
        assert gateway.requests[0][2] == {"key": b64(b"a/"), "range_end": b64(b"a0")}
        await stub.close()

    @pytest.mark.asyncio
    async def test_delete_range(self):
        """Test the deleterange request body."""
        gateway = FakeGateway()
        stub = gateway.stub()

        await stub.delete_range(b"a/", b"a0")

        assert gateway.requests == [
            ("POST", "/v3/kv/deleterange", {"key": b64(b"a/"), "range_end": b64(b"a0")})
        ]
        await stub.close()

    def test_encode_txn(self):
        """Test the JSON shape of a transaction."""
        txn = build_conditional(
            [Compare(b"k", b"old")],
            [PutOp(b"k", b"new")],
            [DeleteRangeOp(b"x"), DeleteRangeOp(b"a/", b"a0")],
        )

        assert encode_txn(txn) == {
            "compare": [{"result": "EQUAL", "target": "VALUE", "key": b64(b"k"), "value": b64(b"old")}],
            "success": [{"request_put": {"key": b64(b"k"), "value": b64(b"new")}}],
            "failure": [
                {"request_delete_range": {"key": b64(b"x")}},
                {"request_delete_range": {"key": b64(b"a/"), "range_end": b64(b"a0")}},
            ],
        }

    @pytest.mark.asyncio
    async def test_connect_probes_version(self):
        """Test that connect() checks the endpoint with GET /version."""
        gateway = FakeGateway(replies={"/version": {"etcdserver": "3.5.9"}})
        stub = gateway.stub()

        await stub.connect()
        assert gateway.requests == [("GET", "/version", None)]
        await stub.close()


class TestHttpStubSwap:
    """Test transaction replies through the client."""

    @pytest.mark.asyncio
    async def test_swap_succeeded(self):
        """Test that succeeded=true completes the swap."""
        gateway = FakeGateway(replies={"/v3/kv/txn": {"succeeded": True}})
        async with AsyncEtcdClient(gateway.stub()) as client:
            await client.swap("k", "old", "new")

        assert gateway.requests[0][1] == "/v3/kv/txn"

    @pytest.mark.asyncio
    async def test_swap_missing_succeeded_means_failure(self):
        """Test that an omitted succeeded field is read as false."""
        gateway = FakeGateway(replies={"/v3/kv/txn": {"header": {"revision": "7"}}})
        async with AsyncEtcdClient(gateway.stub()) as client:
            with pytest.raises(SwapFailedError):
                await client.swap("k", "old", "new")


class TestHttpStubErrors:
    """Test mapping of transport and remote failures."""

    @pytest.mark.asyncio
    async def test_error_status_raises_remote_error(self):
        """Test that a gateway error reply raises RemoteError with its details."""
        gateway = FakeGateway(
            replies={"/v3/kv/txn": {"error": "etcdserver: too many operations in txn request",
                                    "code": 3,
                                    "message": "etcdserver: too many operations in txn request"}},
            status_code=400,
        )
        stub = gateway.stub()

        with pytest.raises(RemoteError) as exc_info:
            await stub.txn(build_conditional([], [PutOp(b"k")]))

        assert exc_info.value.status_code == 400
        assert exc_info.value.code == 3
        assert "too many operations" in str(exc_info.value)
        await stub.close()

    @pytest.mark.asyncio
    async def test_non_json_error_body(self):
        """Test that a plain-text error reply still raises RemoteError."""
        def handler(request):
            return httpx.Response(503, text="upstream unavailable")

        stub = HttpKVStub("http://etcd.test:2379", transport=httpx.MockTransport(handler))
        with pytest.raises(RemoteError) as exc_info:
            await stub.put(b"k", b"v")

        assert exc_info.value.status_code == 503
        await stub.close()

    @pytest.mark.asyncio
    async def test_connection_failure_raises_transport_error(self):
        """Test that connection errors are wrapped in TransportError."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        stub = HttpKVStub("http://etcd.test:2379", transport=httpx.MockTransport(handler))
        with pytest.raises(TransportError) as exc_info:
            await stub.range(b"k")

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        await stub.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [[1, 2], "ok", None])
    async def test_non_object_reply_raises_remote_error(self, body):
        """Test that a 2xx reply whose JSON is not an object raises RemoteError."""
        def handler(request):
            return httpx.Response(200, json=body)

        stub = HttpKVStub("http://etcd.test:2379", transport=httpx.MockTransport(handler))
        with pytest.raises(RemoteError) as exc_info:
            await stub.range(b"k")

        assert "Malformed reply" in str(exc_info.value)
        await stub.close()

    @pytest.mark.asyncio
    async def test_html_reply_raises_remote_error(self):
        """Test that a non-JSON 2xx reply raises RemoteError."""
        def handler(request):
            return httpx.Response(200, text="<html>proxy</html>")

        stub = HttpKVStub("http://etcd.test:2379", transport=httpx.MockTransport(handler))
        with pytest.raises(RemoteError):
            await stub.txn(build_conditional([], [PutOp(b"k")]))
        await stub.close()

    def test_invalid_endpoint(self):
        """Test that a non-http endpoint is rejected."""
        with pytest.raises(TransportError):
            HttpKVStub("ftp://example.com")


class TestConfiguration:
    """Test endpoint and timeout resolution."""

    def test_endpoint_from_environment(self, monkeypatch):
        """Test that ETCDKV_ENDPOINT is used when no endpoint is given."""
        monkeypatch.setenv("ETCDKV_ENDPOINT", "http://etcd.internal:2379")
        assert HttpKVStub().endpoint == "http://etcd.internal:2379"

    def test_explicit_endpoint_wins(self, monkeypatch):
        """Test that an explicit endpoint overrides the environment."""
        monkeypatch.setenv("ETCDKV_ENDPOINT", "http://etcd.internal:2379")
        assert HttpKVStub("http://other:2379").endpoint == "http://other:2379"

    def test_default_endpoint(self, monkeypatch):
        """Test the localhost default."""
        monkeypatch.delenv("ETCDKV_ENDPOINT", raising=False)
        assert HttpKVStub().endpoint == "http://localhost:2379"

    def test_invalid_timeout_from_environment(self, monkeypatch):
        """Test that a non-numeric ETCDKV_TIMEOUT is rejected."""
        monkeypatch.setenv("ETCDKV_TIMEOUT", "soon")
        with pytest.raises(ValueError):
            HttpKVStub("http://localhost:2379")
