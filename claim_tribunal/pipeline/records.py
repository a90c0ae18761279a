"""Round record assembly and exhibit admissibility."""

from __future__ import annotations

from claim_tribunal.contracts import (
    Exhibit,
    JudgeRecord,
    OpponentRecord,
    ProposerRecord,
    RoundRecord,
    Side,
)
from claim_tribunal.pipeline.stages import RoundContext


def apply_admissibility(
    exhibits: list[Exhibit],
    inadmissible_ids: list[str],
) -> tuple[list[Exhibit], list[Exhibit]]:
    """Drop inadmissible exhibits and split the rest by side.

    Returns (proposer_exhibits, opponent_exhibits), each in reseated order.
    Unknown ids in ``inadmissible_ids`` are ignored.
    """
    excluded = set(inadmissible_ids)
    kept = [e for e in exhibits if e["id"] not in excluded]
    proposer = [e for e in kept if e["side"] == Side.PROPOSER.value]
    opponent = [e for e in kept if e["side"] == Side.OPPONENT.value]
    return proposer, opponent


def build_round_record(ctx: RoundContext) -> RoundRecord:
    """Freeze a completed RoundContext into a RoundRecord.

    The directive and the full reseated exhibit list are kept verbatim so
    excluded exhibits stay auditable.
    """
    if ctx.verdict is None or ctx.directive is None or ctx.summary is None:
        raise ValueError(f"Round {ctx.round_number} is incomplete; cannot build record")

    proposer_exhibits, opponent_exhibits = apply_admissibility(
        ctx.exhibits, ctx.directive["inadmissible_exhibit_ids"]
    )

    return RoundRecord(
        round_number=ctx.round_number,
        proposer=ProposerRecord(
            subclaims=list(ctx.subclaims),
            arguments=list(ctx.arguments),
            exhibits=proposer_exhibits,
        ),
        opponent=OpponentRecord(
            rebuttals=list(ctx.rebuttals),
            exhibits=opponent_exhibits,
        ),
        judge=JudgeRecord(verdict=ctx.verdict, directive=ctx.directive),
        exhibits_considered=list(ctx.exhibits),
        summary=ctx.summary,
    )
