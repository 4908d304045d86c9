"""Tests for the signed OpenSearch HTTP client against a local server."""

import asyncio
import hashlib
import socket
from dataclasses import replace

import pytest
from aiohttp import web

from app.streamer.config import OpenSearchConfig
from app.streamer.exceptions import OpenSearchException
from app.streamer.opensearch_client import OpenSearchClient


class StubSigner:
    """Adds fixed auth headers in place of SigV4."""

    def __init__(self):
        self.requests = []

    def sign(self, request):
        self.requests.append(request)
        headers = dict(request.headers)
        headers["authorization"] = "AWS4-HMAC-SHA256 Credential=stub"
        headers["x-amz-content-sha256"] = hashlib.sha256(request.body).hexdigest()
        return replace(request, headers=headers)


def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def serve(handler, call):
    """Run `call(base_url)` while a local app answers every request with `handler`."""
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", handler)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    try:
        port = runner.addresses[0][1]
        return await call(f"http://127.0.0.1:{port}/")
    finally:
        await runner.cleanup()


def test_bulk_request_is_signed_and_forwarded():
    """Test path joining, method, content type and signed headers on the wire."""
    received = {}

    async def handler(request):
        received.update(
            method=request.method,
            path=request.path,
            headers=dict(request.headers),
            body=await request.read(),
        )
        return web.json_response({"errors": False, "items": []})

    body = '{"delete": {"_index": "saves", "_id": "a"}}\n'

    async def call(base_url):
        async with OpenSearchClient(OpenSearchConfig(endpoint=base_url), signer=StubSigner()) as client:
            return await client.bulk(body)

    response = asyncio.run(serve(handler, call))

    assert response.ok
    assert response.status == 200
    assert received["method"] == "POST"
    assert received["path"] == "/_bulk"
    assert received["body"] == body.encode("utf-8")
    headers = {name.lower(): value for name, value in received["headers"].items()}
    assert headers["content-type"] == "application/json"
    assert headers["authorization"] == "AWS4-HMAC-SHA256 Credential=stub"
    assert headers["x-amz-content-sha256"] == hashlib.sha256(body.encode("utf-8")).hexdigest()


def test_requests_without_body_have_no_content_type():
    signer = StubSigner()
    received = {}

    async def handler(request):
        received.update(method=request.method, path=request.path)
        return web.Response(status=404, text="missing")

    async def call(base_url):
        async with OpenSearchClient(OpenSearchConfig(endpoint=base_url), signer=signer) as client:
            return await client.get_index("saves")

    response = asyncio.run(serve(handler, call))

    assert (received["method"], received["path"]) == ("GET", "/saves")
    assert response.status == 404
    assert response.text == "missing"
    assert "content-type" not in signer.requests[0].headers


def test_non_utf8_error_body_is_decoded_with_replacement():
    async def handler(request):
        return web.Response(status=500, body=b"\xff\xfeinternal", content_type="text/plain", charset="utf-8")

    async def call(base_url):
        async with OpenSearchClient(OpenSearchConfig(endpoint=base_url), signer=StubSigner()) as client:
            return await client.bulk("{}\n")

    response = asyncio.run(serve(handler, call))

    assert response.status == 500
    assert response.snippet().endswith("internal")
    assert "�" in response.text


def test_connection_failure_raises_retriable_error():
    """Test that connection errors surface as OpenSearchException."""
    config = OpenSearchConfig(endpoint=f"http://127.0.0.1:{free_port()}", timeout=5)

    async def call():
        async with OpenSearchClient(config, signer=StubSigner()) as client:
            return await client.bulk("{}\n")

    with pytest.raises(OpenSearchException):
        asyncio.run(call())
