"""Stage pipeline for one round.

Propose -> Oppose -> Gather (both sides) -> Reseat -> Adjudicate -> Summarize.

Stages run strictly in order over a shared ``RoundContext`` accumulator.
Each oracle-backed stage validates its output before the next stage runs;
a contract failure raises and ends the run.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from claim_tribunal.agents.gatherer import gather
from claim_tribunal.agents.oracle import invoke_with_contract
from claim_tribunal.config import Settings
from claim_tribunal.contracts import (
    Argument,
    Directive,
    Exhibit,
    ReasoningOracle,
    Rebuttal,
    Role,
    RoundRecord,
    RoundSummary,
    SearchProvider,
    Side,
    Subclaim,
    Verdict,
)
from claim_tribunal.schemas import (
    AdjudicatorOutput,
    OpponentOutput,
    ProposerOutput,
    SummaryOutput,
)
from claim_tribunal.validation import check_proposer, make_opponent_check

# Ordered strongest to weakest; qualifiers may follow after a comma
VERDICT_PHRASES = (
    "Generally true",
    "Mostly true",
    "Partially true",
    "Uncertain",
    "Unsupported",
    "False",
)

_PHRASE_THRESHOLDS: list[tuple[float, str]] = [
    (85.0, "Generally true"),
    (70.0, "Mostly true"),
    (50.0, "Partially true"),
    (35.0, "Uncertain"),
    (15.0, "Unsupported"),
]


@dataclass
class PipelineDeps:
    oracle: ReasoningOracle
    provider: SearchProvider
    settings: Settings


@dataclass
class RoundContext:
    """Accumulator threaded through every stage of one round."""

    claim: str
    round_number: int
    previous: RoundRecord | None = None

    subclaims: list[Subclaim] = field(default_factory=list)
    arguments: list[Argument] = field(default_factory=list)
    rebuttals: list[Rebuttal] = field(default_factory=list)
    proposer_exhibits: list[Exhibit] = field(default_factory=list)
    opponent_exhibits: list[Exhibit] = field(default_factory=list)
    exhibits: list[Exhibit] = field(default_factory=list)  # reseated E1..Em
    verdict: Verdict | None = None
    directive: Directive | None = None
    summary: RoundSummary | None = None


# --- Pure helpers ---


def clamp_score(score: float) -> float:
    return min(100.0, max(0.0, float(score)))


def phrase_for_score(score: float) -> str:
    for threshold, phrase in _PHRASE_THRESHOLDS:
        if score >= threshold:
            return phrase
    return "False"


def controlled_phrase(verdict: str) -> str | None:
    """Return ``verdict`` with its canonical phrase, if it opens with one.

    A qualifier is allowed only after a comma or in parentheses.
    """
    text = verdict.strip()
    lowered = text.lower()
    for phrase in VERDICT_PHRASES:
        if not lowered.startswith(phrase.lower()):
            continue
        rest = text[len(phrase) :]
        if not rest.strip():
            return phrase
        if rest.lstrip()[0] in ",(":
            return phrase + rest
    return None


def _band_distance(phrase: str, score: float) -> int:
    base = next(p for p in VERDICT_PHRASES if phrase.startswith(p))
    return abs(VERDICT_PHRASES.index(base) - VERDICT_PHRASES.index(phrase_for_score(score)))


def restate_verdict(
    raw: dict,
    verdict: Verdict,
    *,
    summary_max_length: int = 500,
) -> RoundSummary:
    """Build the round summary as a faithful restatement of ``verdict``.

    Score and confidence always come from the verdict. A verdict phrase that
    is off-vocabulary, or more than one band away from the score, is
    replaced by the phrase for the score.
    """
    score = verdict["truth_score"]
    phrase = controlled_phrase(raw.get("verdict", ""))
    if phrase is None or _band_distance(phrase, score) > 1:
        phrase = phrase_for_score(score)
    return RoundSummary(
        verdict=phrase,
        truth_score=verdict["truth_score"],
        confidence=verdict["confidence"],
        summary=raw.get("summary", "").strip()[:summary_max_length],
    )


def reseat_exhibits(proposer: list[Exhibit], opponent: list[Exhibit]) -> list[Exhibit]:
    """Concatenate proposer then opponent exhibits and renumber E1..Em."""
    return [
        Exhibit(**{**exhibit, "id": f"E{i}"})
        for i, exhibit in enumerate([*proposer, *opponent], start=1)
    ]


def _bounded(text: str, limit: int) -> str:
    return " ".join(text.split())[:limit]


def proposer_query(claim: str, subclaims: list[Subclaim], limit: int = 300) -> str:
    return _bounded(f"{claim} {' '.join(s['text'] for s in subclaims)}", limit)


def opponent_query(
    claim: str,
    rebuttals: list[Rebuttal],
    subclaims: list[Subclaim],
    limit: int = 300,
) -> str:
    texts = [r["text"] for r in rebuttals] or [s["text"] for s in subclaims]
    return _bounded(f"{claim} critique {' '.join(texts)}", limit)


# --- Stages ---


async def propose(ctx: RoundContext, deps: PipelineDeps) -> None:
    payload: dict = {"claim": ctx.claim, "round": ctx.round_number}
    if ctx.previous is not None:
        payload["previous_directive"] = ctx.previous["judge"]["directive"]
        payload["previous_summary"] = ctx.previous["summary"]

    out = await invoke_with_contract(
        deps.oracle,
        Role.PROPOSER.value,
        payload,
        ProposerOutput,
        [check_proposer],
        retries=deps.settings.schema_retries,
    )
    ctx.subclaims = [Subclaim(**s) for s in out["subclaims"]]
    ctx.arguments = [Argument(**a) for a in out["arguments"]]


async def oppose(ctx: RoundContext, deps: PipelineDeps) -> None:
    payload = {
        "claim": ctx.claim,
        "round": ctx.round_number,
        "proposer": {"subclaims": ctx.subclaims, "arguments": ctx.arguments},
    }
    out = await invoke_with_contract(
        deps.oracle,
        Role.OPPONENT.value,
        payload,
        OpponentOutput,
        [make_opponent_check([s["id"] for s in ctx.subclaims])],
        retries=deps.settings.schema_retries,
    )
    ctx.rebuttals = [Rebuttal(**r) for r in out["rebuttals"]]


async def gather_evidence(ctx: RoundContext, deps: PipelineDeps) -> None:
    settings = deps.settings
    subclaim_ids = [s["id"] for s in ctx.subclaims]
    rebutted_ids = [r["target_subclaim_id"] for r in ctx.rebuttals] or subclaim_ids

    common = dict(
        provider=deps.provider,
        oracle=deps.oracle,
        max_results=settings.max_results_per_side,
        snippet_max_length=settings.snippet_max_length,
        search_timeout=settings.search_timeout,
    )
    # The two sides share no data, so they are gathered concurrently
    ctx.proposer_exhibits, ctx.opponent_exhibits = await asyncio.gather(
        gather(
            Side.PROPOSER.value,
            proposer_query(ctx.claim, ctx.subclaims, settings.query_max_length),
            subclaim_ids=subclaim_ids,
            **common,
        ),
        gather(
            Side.OPPONENT.value,
            opponent_query(ctx.claim, ctx.rebuttals, ctx.subclaims, settings.query_max_length),
            subclaim_ids=rebutted_ids,
            **common,
        ),
    )


async def reseat(ctx: RoundContext, deps: PipelineDeps) -> None:
    ctx.exhibits = reseat_exhibits(ctx.proposer_exhibits, ctx.opponent_exhibits)


async def adjudicate(ctx: RoundContext, deps: PipelineDeps) -> None:
    payload = {
        "claim": ctx.claim,
        "round": ctx.round_number,
        "proposer": {"subclaims": ctx.subclaims, "arguments": ctx.arguments},
        "opponent": {"rebuttals": ctx.rebuttals},
        "exhibits": ctx.exhibits,
    }
    out = await invoke_with_contract(
        deps.oracle,
        Role.ADJUDICATOR.value,
        payload,
        AdjudicatorOutput,
        retries=deps.settings.schema_retries,
    )
    raw_verdict = out["verdict"]
    ctx.verdict = Verdict(
        truth_score=clamp_score(raw_verdict["truth_score"]),
        confidence=raw_verdict["confidence"],
        rationale=raw_verdict["rationale"],
        adjustments=raw_verdict["adjustments"],
    )
    ctx.directive = Directive(**out["directive"])


async def summarize(ctx: RoundContext, deps: PipelineDeps) -> None:
    payload = {"claim": ctx.claim, "round": ctx.round_number, "verdict": ctx.verdict}
    out = await invoke_with_contract(
        deps.oracle,
        Role.SUMMARIZER.value,
        payload,
        SummaryOutput,
        retries=deps.settings.schema_retries,
    )
    ctx.summary = restate_verdict(
        out, ctx.verdict, summary_max_length=deps.settings.summary_max_length
    )


Stage = Callable[[RoundContext, PipelineDeps], Awaitable[None]]

STAGES: tuple[tuple[str, Stage], ...] = (
    ("propose", propose),
    ("oppose", oppose),
    ("gather", gather_evidence),
    ("reseat", reseat),
    ("adjudicate", adjudicate),
    ("summarize", summarize),
)


async def run_round_pipeline(
    ctx: RoundContext,
    deps: PipelineDeps,
    *,
    on_stage: Callable[[str, RoundContext], None] | None = None,
) -> RoundContext:
    """Run every stage in order, notifying ``on_stage`` after each."""
    for name, stage in STAGES:
        await stage(ctx, deps)
        if on_stage is not None:
            on_stage(name, ctx)
    return ctx
