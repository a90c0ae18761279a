"""Single source of truth for all types, enums, and protocols."""

from __future__ import annotations

from enum import Enum
from typing import Any, Protocol, TypedDict, runtime_checkable

# --- Enums ---


class Confidence(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class Stance(str, Enum):
    SUPPORT = "support"
    OPPOSE = "oppose"
    NEUTRAL = "neutral"


class Side(str, Enum):
    PROPOSER = "proposer"
    OPPONENT = "opponent"


class Role(str, Enum):
    """Oracle roles, one per reasoning stage."""

    PROPOSER = "proposer"
    OPPONENT = "opponent"
    URL_SUMMARIZER = "url_summarizer"
    ADJUDICATOR = "adjudicator"
    SUMMARIZER = "summarizer"


# --- Case Types ---


class Subclaim(TypedDict):
    id: str  # "S1".."S4"
    text: str


class Argument(TypedDict):
    subclaim_id: str
    text: str


class Rebuttal(TypedDict):
    target_subclaim_id: str
    text: str


class SearchHit(TypedDict):
    title: str
    url: str
    snippet: str


class Exhibit(TypedDict):
    id: str  # "E1".. (provisional until reseated)
    subclaim_id: str
    url: str
    title: str
    snippet: str  # <= snippet_max_length chars
    summary: str
    stance: str  # Stance value
    source_domain: str | None  # None only when the URL has no hostname
    credibility: float  # 0-1
    side: str  # Side value


class Adjustment(TypedDict):
    reason: str
    delta: float


class Verdict(TypedDict):
    truth_score: float  # 0-100, clamped
    confidence: str  # Confidence value
    rationale: str
    adjustments: list[Adjustment]


class Directive(TypedDict):
    notes: list[str]
    requests: list[str]
    inadmissible_exhibit_ids: list[str]


class RoundSummary(TypedDict):
    verdict: str  # controlled vocabulary phrase, optionally qualified
    truth_score: float  # mirrors Verdict.truth_score
    confidence: str  # mirrors Verdict.confidence
    summary: str  # <= summary_max_length chars


class ProposerRecord(TypedDict):
    subclaims: list[Subclaim]
    arguments: list[Argument]
    exhibits: list[Exhibit]


class OpponentRecord(TypedDict):
    rebuttals: list[Rebuttal]
    exhibits: list[Exhibit]


class JudgeRecord(TypedDict):
    verdict: Verdict
    directive: Directive


class RoundRecord(TypedDict):
    """One completed round. Immutable once appended to CaseState."""

    round_number: int
    proposer: ProposerRecord  # exhibits after admissibility
    opponent: OpponentRecord  # exhibits after admissibility
    judge: JudgeRecord
    exhibits_considered: list[Exhibit]  # reseated, before admissibility
    summary: RoundSummary


class CaseState(TypedDict):
    claim: str
    rounds: list[RoundRecord]  # rounds[i]["round_number"] == i + 1
    running_score: float | None  # latest clamped truth score


class CaseResult(TypedDict):
    final: RoundSummary
    case_state: CaseState
    stop_reason: str


# --- Observability ---


class TokenUsage(TypedDict):
    agent: str
    model: str
    input_tokens: int
    output_tokens: int
    cost_usd: float
    timestamp: str


class RunEvent(TypedDict):
    run_id: str
    node: str
    round: int
    ts: str  # ISO 8601
    elapsed_s: float
    inputs_summary: dict[str, int]  # field -> count/size
    outputs_summary: dict[str, int]  # field -> count/size
    tokens: int
    cost: float


# --- Protocols ---


@runtime_checkable
class ReasoningOracle(Protocol):
    async def invoke(
        self,
        role: str,
        payload: dict[str, Any],
        schema: type,
    ) -> dict[str, Any]: ...


@runtime_checkable
class SearchProvider(Protocol):
    name: str

    async def query(self, text: str, max_results: int = 3) -> list[SearchHit]: ...
