"""Test fixtures."""

from __future__ import annotations

import pytest

from claim_tribunal.config import Settings
from claim_tribunal.contracts import Exhibit


@pytest.fixture
def settings() -> Settings:
    return Settings(
        anthropic_api_key="test-key",
        serper_api_key="test-serper",
        tavily_api_key="",
        search_backend="serper",
        oracle_model="claude-sonnet-4-6",
        fallback_model="",
        max_rounds=3,
        stop_confidence="high",
        min_delta=2.0,
        early_stop=True,
        max_results_per_side=3,
        snippet_max_length=400,
        summary_max_length=500,
        query_max_length=300,
        schema_retries=1,
        oracle_timeout=60.0,
        search_timeout=20.0,
        run_timeout=900.0,
        max_concurrent_requests=5,
        run_log_dir="runs/",
    )


@pytest.fixture
def sample_exhibits() -> list[Exhibit]:
    def _exhibit(eid: str, side: str, url: str) -> Exhibit:
        return Exhibit(
            id=eid,
            subclaim_id="S1",
            url=url,
            title=f"{eid} title",
            snippet="snippet",
            summary="summary",
            stance="neutral",
            source_domain=url.split("/")[2],
            credibility=0.5,
            side=side,
        )

    return [
        _exhibit("E1", "proposer", "https://a.example.com/1"),
        _exhibit("E2", "proposer", "https://b.example.com/2"),
        _exhibit("E3", "opponent", "https://c.example.com/3"),
    ]
