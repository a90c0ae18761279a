"""Evidence gatherer: search, then summarize each hit concurrently.

Never fails the round: any search failure yields no exhibits and any failed
summarization drops only its own hit. Cancellation still propagates.
"""

from __future__ import annotations

import asyncio
import sys

from claim_tribunal.agents.oracle import invoke_with_contract
from claim_tribunal.contracts import (
    Exhibit,
    ReasoningOracle,
    Role,
    SearchHit,
    SearchProvider,
)
from claim_tribunal.errors import ProviderError
from claim_tribunal.schemas import UrlSummary
from claim_tribunal.scoring.credibility import SNIPPET_MAX_LENGTH, normalize_exhibit
from claim_tribunal.validation import check_url_summary

DEFAULT_MAX_RESULTS = 3


def assign_subclaim(index: int, subclaim_ids: list[str] | None) -> str:
    """Fallback mapping of the index-th exhibit onto a subclaim.

    Search hits are not matched to subclaims semantically; exhibits are
    spread round-robin over ``subclaim_ids`` in retrieval order. This is a
    heuristic for readability of the transcript, not a relevance claim.
    """
    if not subclaim_ids:
        return "S1"
    return subclaim_ids[index % len(subclaim_ids)]


async def _search(
    provider: SearchProvider,
    query: str,
    max_results: int,
    timeout: float | None,
) -> list[SearchHit]:
    try:
        if timeout is None:
            return await provider.query(query, max_results)
        return await asyncio.wait_for(provider.query(query, max_results), timeout=timeout)
    except ProviderError as e:
        print(f"WARNING: search failed for {query[:60]!r}: {e}", file=sys.stderr)
    except asyncio.TimeoutError:
        print(f"WARNING: search timed out after {timeout}s for {query[:60]!r}", file=sys.stderr)
    except Exception as e:
        print(
            f"WARNING: search failed for {query[:60]!r}: {type(e).__name__}: {e}",
            file=sys.stderr,
        )
    return []


async def _summarize_hit(
    oracle: ReasoningOracle,
    hit: SearchHit,
    query: str,
) -> dict:
    payload = {
        "query": query,
        "url": hit["url"],
        "title": hit.get("title") or "Untitled",
        "snippet": hit.get("snippet", ""),
    }
    return await invoke_with_contract(
        oracle,
        Role.URL_SUMMARIZER.value,
        payload,
        UrlSummary,
        [check_url_summary],
        retries=0,
    )


async def gather(
    side: str,
    query: str,
    *,
    provider: SearchProvider,
    oracle: ReasoningOracle,
    max_results: int = DEFAULT_MAX_RESULTS,
    subclaim_ids: list[str] | None = None,
    snippet_max_length: int = SNIPPET_MAX_LENGTH,
    search_timeout: float | None = None,
) -> list[Exhibit]:
    """Gather side-tagged exhibits for ``query``.

    Exhibits carry provisional ids E1..Ek in retrieval order; the caller
    reseats them when merging both sides.
    """
    hits = (await _search(provider, query, max_results, search_timeout))[:max_results]
    if not hits:
        return []

    # Fan-out: one summarization per hit, all settle before fan-in
    outcomes = await asyncio.gather(
        *(_summarize_hit(oracle, hit, query) for hit in hits),
        return_exceptions=True,
    )

    exhibits: list[Exhibit] = []
    for index, (hit, outcome) in enumerate(zip(hits, outcomes)):
        if isinstance(outcome, Exception):
            print(
                f"WARNING: dropped {side} exhibit {hit.get('url')}: {outcome!r}",
                file=sys.stderr,
            )
            continue
        if isinstance(outcome, BaseException):
            raise outcome

        raw = {
            "id": f"E{len(exhibits) + 1}",
            "subclaim_id": assign_subclaim(index, subclaim_ids),
            "url": hit["url"],
            "title": hit.get("title") or "Untitled",
            "snippet": hit.get("snippet", ""),
            "summary": outcome["summary"],
        }
        exhibit = normalize_exhibit(raw, snippet_max_length=snippet_max_length)
        exhibit["side"] = side
        exhibits.append(Exhibit(**exhibit))

    return exhibits
