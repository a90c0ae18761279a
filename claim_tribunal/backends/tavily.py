"""Tavily factual grounding backend."""

from __future__ import annotations

import asyncio

from claim_tribunal.contracts import SearchHit
from claim_tribunal.errors import ConfigurationError, ProviderError

from . import register_backend


class TavilyBackend:
    name: str = "tavily"

    def __init__(self, *, api_key: str = "", timeout: float = 20.0) -> None:
        if not api_key:
            raise ConfigurationError("TAVILY_API_KEY is required for the tavily backend")
        self.api_key = api_key
        self.timeout = timeout
        self._client = None

    def _get_client(self):
        if self._client is None:
            from tavily import TavilyClient

            self._client = TavilyClient(api_key=self.api_key)
        return self._client

    async def query(self, text: str, max_results: int = 3) -> list[SearchHit]:
        try:
            client = self._get_client()
            # TavilyClient is synchronous
            response = await asyncio.wait_for(
                asyncio.to_thread(
                    client.search, text, max_results=max_results, search_depth="advanced"
                ),
                timeout=self.timeout,
            )
        except Exception as e:
            raise ProviderError(f"tavily search failed: {e}") from e

        hits: list[SearchHit] = []
        for item in response.get("results", [])[:max_results]:
            url = item.get("url", "")
            if not url:
                continue
            hits.append(
                SearchHit(
                    title=item.get("title", ""),
                    url=url,
                    snippet=item.get("content", "") or "",
                )
            )
        return hits

    async def aclose(self) -> None:
        return None


register_backend("tavily", TavilyBackend)
