import asyncio

import pytest
from aiohttp import test_utils, web

from blobvault.constants import Network
from blobvault.exceptions import APIError, NetworkError, ProviderError
from blobvault.providers import http
from blobvault.providers.http import HTTPProvider

SAFE = "0x5AFE3855358E112B5647B952709E6165e1c1eEEe"


def _run(handler, scenario):
    async def main():
        app = web.Application()
        app.router.add_get("/api/v1/safes/{address}/", handler)
        server = test_utils.TestServer(app)
        await server.start_server()
        try:
            async with HTTPProvider(endpoint=str(server.make_url("/")), api_key="token") as provider:
                return await scenario(provider)
        finally:
            await server.close()

    return asyncio.run(main())


def test_endpoint_defaults():
    assert HTTPProvider().endpoint == "https://safe-transaction-mainnet.safe.global/api"
    assert HTTPProvider(Network.TESTNET).endpoint.endswith("sepolia.safe.global/api")
    assert HTTPProvider(endpoint="https://example.com/api/").endpoint == "https://example.com/api"


def test_get_safe_info():
    seen = {}

    async def handler(request):
        seen["address"] = request.match_info["address"]
        seen["auth"] = request.headers.get("Authorization")
        return web.json_response({"address": SAFE, "nonce": "12", "version": "1.4.1"})

    info = _run(handler, lambda provider: provider.get_safe_info(SAFE))

    assert info.nonce == 12
    assert info.version == "1.4.1"
    assert seen == {"address": SAFE, "auth": "Bearer token"}


def test_client_error_is_not_retried():
    calls = []

    async def handler(request):
        calls.append(1)
        return web.json_response({"detail": "Not found."}, status=404)

    with pytest.raises(APIError) as exc_info:
        _run(handler, lambda provider: provider.get_safe_info(SAFE))
    assert exc_info.value.status == 404
    assert len(calls) == 1


def test_server_error_is_retried(monkeypatch):
    monkeypatch.setattr(http, "RETRY_DELAY", 0)
    calls = []

    async def handler(request):
        calls.append(1)
        if len(calls) < 3:
            return web.Response(status=503, text="busy")
        return web.json_response({"nonce": 1, "version": "1.3.0"})

    info = _run(handler, lambda provider: provider.get_safe_info(SAFE))
    assert info.nonce == 1
    assert len(calls) == 3


def test_retries_are_bounded(monkeypatch):
    monkeypatch.setattr(http, "RETRY_DELAY", 0)

    async def handler(request):
        return web.Response(status=429, text="slow down")

    with pytest.raises(NetworkError):
        _run(handler, lambda provider: provider.get_safe_info(SAFE))


def test_invalid_json():
    async def handler(request):
        return web.Response(text="<html>")

    with pytest.raises(ProviderError):
        _run(handler, lambda provider: provider.request("/v1/safes/x/"))
