"""Tests for agents.gatherer: per-hit summarization and failure isolation."""

from __future__ import annotations

import asyncio

import pytest
from fakes import FakeOracle, FakeProvider, make_hits, url_summary_output

from claim_tribunal.agents.gatherer import assign_subclaim, gather
from claim_tribunal.errors import OracleError
from claim_tribunal.pipeline.stages import reseat_exhibits


def _summaries_failing_for(bad_url: str):
    def _respond(payload: dict) -> dict:
        if payload["url"] == bad_url:
            raise OracleError("summarizer unavailable")
        return url_summary_output(payload)

    return _respond


class TestAssignSubclaim:
    def test_round_robin(self):
        ids = ["S1", "S2"]
        assert [assign_subclaim(i, ids) for i in range(5)] == ["S1", "S2", "S1", "S2", "S1"]

    def test_no_subclaims(self):
        assert assign_subclaim(3, []) == "S1"
        assert assign_subclaim(0, None) == "S1"


class TestGather:
    @pytest.mark.asyncio
    async def test_exhibits_normalized_and_tagged(self):
        provider = FakeProvider(make_hits("https://www.irs.gov/a", "https://en.wikipedia.org/wiki/B"))
        oracle = FakeOracle({"url_summarizer": url_summary_output})

        exhibits = await gather(
            "opponent", "claim critique", provider=provider, oracle=oracle, subclaim_ids=["S2"]
        )

        assert [e["id"] for e in exhibits] == ["E1", "E2"]
        assert all(e["side"] == "opponent" for e in exhibits)
        assert all(e["subclaim_id"] == "S2" for e in exhibits)
        assert exhibits[0]["credibility"] == 0.9
        assert exhibits[1]["credibility"] == 0.7
        assert exhibits[0]["summary"] == "summary of Title 1"
        assert exhibits[0]["stance"] == "neutral"

    @pytest.mark.asyncio
    async def test_respects_max_results(self):
        provider = FakeProvider(make_hits(*(f"https://s{i}.example.com" for i in range(6))))
        oracle = FakeOracle({"url_summarizer": url_summary_output})
        exhibits = await gather("proposer", "q", provider=provider, oracle=oracle, max_results=2)
        assert len(exhibits) == 2
        assert len(oracle.calls) == 2

    @pytest.mark.asyncio
    async def test_zero_results(self):
        oracle = FakeOracle({"url_summarizer": url_summary_output})
        exhibits = await gather("proposer", "q", provider=FakeProvider([]), oracle=oracle)
        assert exhibits == []
        assert oracle.calls == []

    @pytest.mark.asyncio
    async def test_provider_failure_yields_empty(self, capsys):
        oracle = FakeOracle({"url_summarizer": url_summary_output})
        exhibits = await gather(
            "proposer", "q", provider=FakeProvider(fail=True), oracle=oracle
        )
        assert exhibits == []
        assert "WARNING: search failed" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_search_timeout_yields_empty(self, capsys):
        class _Hanging(FakeProvider):
            async def query(self, text, max_results=3):
                await asyncio.Event().wait()

        oracle = FakeOracle({"url_summarizer": url_summary_output})
        exhibits = await gather(
            "proposer", "q", provider=_Hanging(), oracle=oracle, search_timeout=0.01
        )
        assert exhibits == []
        assert "timed out" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_failed_summary_drops_only_that_hit(self, capsys):
        hits = make_hits("https://a.example.com", "https://b.example.com", "https://c.example.com")
        oracle = FakeOracle({"url_summarizer": _summaries_failing_for("https://b.example.com")})

        exhibits = await gather(
            "proposer", "q", provider=FakeProvider(hits), oracle=oracle, subclaim_ids=["S1", "S2"]
        )

        assert [e["url"] for e in exhibits] == ["https://a.example.com", "https://c.example.com"]
        # Provisional ids stay dense after the drop
        assert [e["id"] for e in exhibits] == ["E1", "E2"]
        assert "dropped proposer exhibit https://b.example.com" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_invalid_summary_is_dropped(self):
        hits = make_hits("https://a.example.com", "https://b.example.com")

        def _respond(payload):
            if payload["url"] == "https://a.example.com":
                return {"url": payload["url"], "summary": ""}
            return url_summary_output(payload)

        exhibits = await gather(
            "proposer", "q", provider=FakeProvider(hits), oracle=FakeOracle({"url_summarizer": _respond})
        )
        assert [e["url"] for e in exhibits] == ["https://b.example.com"]

    @pytest.mark.asyncio
    async def test_hit_url_wins_over_echoed_url(self):
        hits = make_hits("https://real.example.com/page")
        oracle = FakeOracle(
            {"url_summarizer": {"url": "https://hallucinated.example.com", "summary": "s"}}
        )
        exhibits = await gather("proposer", "q", provider=FakeProvider(hits), oracle=oracle)
        assert exhibits[0]["url"] == "https://real.example.com/page"
        assert exhibits[0]["source_domain"] == "real.example.com"

    @pytest.mark.asyncio
    async def test_unexpected_summary_error_drops_only_that_hit(self, capsys):
        hits = make_hits("https://a.example.com", "https://b.example.com", "https://c.example.com")

        def _respond(payload):
            if payload["url"] == "https://b.example.com":
                raise KeyError("summary")
            return url_summary_output(payload)

        exhibits = await gather(
            "proposer", "q", provider=FakeProvider(hits), oracle=FakeOracle({"url_summarizer": _respond})
        )

        assert [e["id"] for e in exhibits] == ["E1", "E2"]
        assert [e["url"] for e in exhibits] == ["https://a.example.com", "https://c.example.com"]
        assert "KeyError" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_raw_provider_exception_yields_empty(self, capsys):
        class _Broken(FakeProvider):
            async def query(self, text, max_results=3):
                raise ConnectionResetError("peer reset")

        oracle = FakeOracle({"url_summarizer": url_summary_output})
        exhibits = await gather("opponent", "q", provider=_Broken(), oracle=oracle)

        assert exhibits == []
        assert oracle.calls == []
        assert "ConnectionResetError" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        hits = make_hits("https://a.example.com")
        oracle = FakeOracle({"url_summarizer": asyncio.CancelledError()})
        with pytest.raises(asyncio.CancelledError):
            await gather("proposer", "q", provider=FakeProvider(hits), oracle=oracle)

    @pytest.mark.asyncio
    async def test_snippet_bounded(self):
        hits = make_hits("https://a.example.com")
        hits[0]["snippet"] = "z" * 900
        exhibits = await gather(
            "proposer",
            "q",
            provider=FakeProvider(hits),
            oracle=FakeOracle({"url_summarizer": url_summary_output}),
            snippet_max_length=100,
        )
        assert len(exhibits[0]["snippet"]) == 100


class TestCompletionOrder:
    @staticmethod
    def _slow_for_earlier_hits(urls: list[str]):
        async def _respond(payload: dict) -> dict:
            # Earlier hits finish last
            await asyncio.sleep(0.01 * (len(urls) - urls.index(payload["url"])))
            return url_summary_output(payload)

        return _respond

    @pytest.mark.asyncio
    async def test_retrieval_order_kept_when_summaries_finish_out_of_order(self):
        urls = [f"https://s{i}.example.com" for i in range(1, 4)]
        oracle = FakeOracle({"url_summarizer": self._slow_for_earlier_hits(urls)})

        exhibits = await gather(
            "proposer", "q", provider=FakeProvider(make_hits(*urls)), oracle=oracle
        )

        assert [e["url"] for e in exhibits] == urls
        assert [e["id"] for e in exhibits] == ["E1", "E2", "E3"]

    @pytest.mark.asyncio
    async def test_reseated_ids_dense_across_concurrent_sides(self):
        pro_urls = [f"https://pro{i}.example.com" for i in range(1, 4)]
        opp_urls = [f"https://opp{i}.example.com" for i in range(1, 3)]
        oracle = FakeOracle(
            {"url_summarizer": self._slow_for_earlier_hits(pro_urls + opp_urls)}
        )

        proposer, opponent = await asyncio.gather(
            gather("proposer", "q", provider=FakeProvider(make_hits(*pro_urls)), oracle=oracle),
            gather("opponent", "q", provider=FakeProvider(make_hits(*opp_urls)), oracle=oracle),
        )
        reseated = reseat_exhibits(proposer, opponent)

        assert [e["id"] for e in reseated] == ["E1", "E2", "E3", "E4", "E5"]
        assert [e["url"] for e in reseated] == pro_urls + opp_urls
        assert [e["side"] for e in reseated] == ["proposer"] * 3 + ["opponent"] * 2
