"""Serper (Google search) backend."""

from __future__ import annotations

import httpx

from claim_tribunal.contracts import SearchHit
from claim_tribunal.errors import ConfigurationError, ProviderError

from . import register_backend

SERPER_URL = "https://google.serper.dev/search"


class SerperBackend:
    name: str = "serper"

    def __init__(self, *, api_key: str = "", timeout: float = 20.0) -> None:
        if not api_key:
            raise ConfigurationError("SERPER_API_KEY is required for the serper backend")
        self.api_key = api_key
        self._client = httpx.AsyncClient(timeout=timeout)

    async def query(self, text: str, max_results: int = 3) -> list[SearchHit]:
        try:
            resp = await self._client.post(
                SERPER_URL,
                headers={"X-API-KEY": self.api_key, "Content-Type": "application/json"},
                json={"q": text, "num": max_results},
            )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(f"serper search failed: {e}") from e

        hits: list[SearchHit] = []
        for item in data.get("organic", [])[:max_results]:
            url = item.get("link", "")
            if not url:
                continue
            hits.append(
                SearchHit(
                    title=item.get("title", ""),
                    url=url,
                    snippet=item.get("snippet", "") or "",
                )
            )
        return hits

    async def aclose(self) -> None:
        await self._client.aclose()


register_backend("serper", SerperBackend)
