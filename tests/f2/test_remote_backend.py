"""Tests for the remote HTTP backend (F2)."""

import asyncio
import json

import httpx
import pytest

from wordmemo.storage.base import (
    ConfigurationError,
    NetworkError,
    RemoteStatusError,
    RemoteTimeoutError,
)
from wordmemo.storage.remote import RemoteBackend

ENDPOINT = "https://store.test/api"


def make_backend(handler, endpoint=ENDPOINT, timeout_ms=1000):
    return RemoteBackend(
        endpoint=endpoint,
        timeout_ms=timeout_ms,
        transport=httpx.MockTransport(handler),
    )


class TestRemoteSave:
    """POST /save."""

    @pytest.mark.asyncio
    async def test_posts_key_and_data(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        backend = make_backend(handler)
        await backend.init()
        await backend.save("stats", {"correct": 1, "wrong": 2})
        await backend.aclose()

        assert len(seen) == 1
        assert seen[0].method == "POST"
        assert str(seen[0].url) == f"{ENDPOINT}/save"
        assert json.loads(seen[0].content) == {"key": "stats", "data": {"correct": 1, "wrong": 2}}

    @pytest.mark.asyncio
    async def test_server_error_raises_status_error(self):
        backend = make_backend(lambda request: httpx.Response(500))

        with pytest.raises(RemoteStatusError) as exc_info:
            await backend.save("k", "v")

        assert exc_info.value.status_code == 500


class TestRemoteLoad:
    """GET /load/{key}."""

    @pytest.mark.asyncio
    async def test_returns_data_field(self):
        backend = make_backend(lambda request: httpx.Response(200, json={"data": [1, 2, 3]}))

        assert await backend.load("k") == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_not_found_is_absent(self):
        backend = make_backend(lambda request: httpx.Response(404))

        assert await backend.load("missing") is None

    @pytest.mark.asyncio
    async def test_other_status_raises(self):
        backend = make_backend(lambda request: httpx.Response(503))

        with pytest.raises(RemoteStatusError) as exc_info:
            await backend.load("k")

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_invalid_body_raises_network_error(self):
        backend = make_backend(lambda request: httpx.Response(200, content=b"not json"))

        with pytest.raises(NetworkError):
            await backend.load("k")

    @pytest.mark.asyncio
    async def test_key_is_path_escaped(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(404)

        backend = make_backend(handler)
        await backend.load("a/b c")

        assert seen[0].url.raw_path == b"/api/load/a%2Fb%20c"


class TestRemoteRemove:
    """DELETE /delete/{key}."""

    @pytest.mark.asyncio
    async def test_sends_delete(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(204)

        backend = make_backend(handler)
        await backend.remove("k")

        assert seen[0].method == "DELETE"
        assert seen[0].url.path == "/api/delete/k"


class TestRemoteFailures:
    """Configuration and timeout failures."""

    @pytest.mark.asyncio
    async def test_missing_endpoint_sends_nothing(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200)

        backend = make_backend(handler, endpoint="")
        await backend.init()

        with pytest.raises(ConfigurationError):
            await backend.save("k", "v")
        with pytest.raises(ConfigurationError):
            await backend.load("k")

        assert seen == []

    @pytest.mark.asyncio
    async def test_slow_request_is_cancelled(self):
        async def handler(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json={"data": "late"})

        backend = make_backend(handler, timeout_ms=50)

        with pytest.raises(RemoteTimeoutError, match="50 ms"):
            await backend.load("k")

    @pytest.mark.asyncio
    async def test_transport_error_is_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        backend = make_backend(handler)

        with pytest.raises(NetworkError):
            await backend.remove("k")

    @pytest.mark.asyncio
    async def test_endpoint_trailing_slash_is_trimmed(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200)

        backend = make_backend(handler, endpoint=ENDPOINT + "/")
        await backend.save("k", "v")

        assert str(seen[0].url) == f"{ENDPOINT}/save"

    @pytest.mark.asyncio
    async def test_long_timeout_reaches_every_request_phase(self):
        seen = []

        def handler(request):
            seen.append(request.extensions["timeout"])
            return httpx.Response(200, json={"data": "v"})

        backend = make_backend(handler, timeout_ms=10000)

        assert await backend.load("k") == "v"
        assert seen == [{"connect": 10.0, "read": 10.0, "write": 10.0, "pool": 10.0}]
