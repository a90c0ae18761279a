"""Tests for search backend registry and the Serper/Tavily adapters."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from claim_tribunal.backends import available_backends, get_backend, register_backend
from claim_tribunal.backends.serper import SERPER_URL, SerperBackend
from claim_tribunal.backends.tavily import TavilyBackend
from claim_tribunal.contracts import SearchProvider
from claim_tribunal.errors import ConfigurationError, ProviderError


def _serper_response(payload: dict, status: int = 200) -> httpx.Response:
    return httpx.Response(status, json=payload, request=httpx.Request("POST", SERPER_URL))


class TestRegistry:
    def test_register_and_get(self):
        class DummyBackend:
            name = "dummy"

            def __init__(self, **kwargs):
                self.kwargs = kwargs

            async def query(self, text, max_results=3):
                return []

        register_backend("dummy", DummyBackend)
        backend = get_backend("dummy", api_key="k")
        assert backend.kwargs == {"api_key": "k"}
        assert isinstance(backend, SearchProvider)
        assert "dummy" in available_backends()

    def test_unknown_backend_raises(self):
        with pytest.raises(KeyError, match="Unknown backend"):
            get_backend("nonexistent_backend_xyz")

    def test_builtins_registered(self):
        assert {"serper", "tavily"} <= set(available_backends())


class TestSerper:
    def test_missing_key(self):
        with pytest.raises(ConfigurationError, match="SERPER_API_KEY"):
            SerperBackend(api_key="")

    @pytest.mark.asyncio
    async def test_maps_organic_results(self):
        backend = SerperBackend(api_key="k")
        payload = {
            "organic": [
                {"title": "CDC", "link": "https://www.cdc.gov/x", "snippet": "No link found."},
                {"title": "No link"},
                {"title": "WHO", "link": "https://www.who.int/y"},
            ]
        }
        with patch.object(
            backend._client, "post", new=AsyncMock(return_value=_serper_response(payload))
        ) as post:
            hits = await backend.query("vaccines autism", max_results=3)

        assert [h["url"] for h in hits] == ["https://www.cdc.gov/x", "https://www.who.int/y"]
        assert hits[1]["snippet"] == ""
        kwargs = post.call_args.kwargs
        assert kwargs["headers"]["X-API-KEY"] == "k"
        assert kwargs["json"] == {"q": "vaccines autism", "num": 3}
        await backend.aclose()

    @pytest.mark.asyncio
    async def test_http_error_becomes_provider_error(self):
        backend = SerperBackend(api_key="k")
        with patch.object(
            backend._client, "post", new=AsyncMock(return_value=_serper_response({}, status=403))
        ):
            with pytest.raises(ProviderError):
                await backend.query("q")
        await backend.aclose()

    @pytest.mark.asyncio
    async def test_network_error_becomes_provider_error(self):
        backend = SerperBackend(api_key="k")
        with patch.object(
            backend._client, "post", new=AsyncMock(side_effect=httpx.ConnectError("down"))
        ):
            with pytest.raises(ProviderError, match="serper search failed"):
                await backend.query("q")
        await backend.aclose()


class TestTavily:
    def test_missing_key(self):
        with pytest.raises(ConfigurationError, match="TAVILY_API_KEY"):
            TavilyBackend(api_key="")

    @pytest.mark.asyncio
    async def test_maps_results(self):
        backend = TavilyBackend(api_key="k")
        client = MagicMock()
        client.search.return_value = {
            "results": [
                {"title": "A", "url": "https://a.example.com", "content": "alpha"},
                {"title": "B", "url": ""},
            ]
        }
        backend._client = client

        hits = await backend.query("q", max_results=2)

        assert hits == [{"title": "A", "url": "https://a.example.com", "snippet": "alpha"}]
        assert client.search.call_args.kwargs["max_results"] == 2

    @pytest.mark.asyncio
    async def test_client_failure(self):
        backend = TavilyBackend(api_key="k")
        client = MagicMock()
        client.search.side_effect = RuntimeError("quota exceeded")
        backend._client = client
        with pytest.raises(ProviderError, match="quota exceeded"):
            await backend.query("q")
