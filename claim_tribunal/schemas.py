"""Output contracts for each oracle role.

These models describe the raw shape an oracle must return. They are checked
by ``validation.check_contract`` immediately after every oracle call and
dumped back to plain dicts matching the TypedDicts in ``contracts``.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class SubclaimOut(BaseModel):
    id: str
    text: str = Field(min_length=1)


class ArgumentOut(BaseModel):
    subclaim_id: str
    text: str = Field(min_length=1)


class ProposerOutput(BaseModel):
    subclaims: list[SubclaimOut]
    arguments: list[ArgumentOut]


class RebuttalOut(BaseModel):
    target_subclaim_id: str
    text: str = Field(min_length=1)


class OpponentOutput(BaseModel):
    rebuttals: list[RebuttalOut] = Field(default_factory=list)


class UrlSummary(BaseModel):
    url: str | None = None
    summary: str = Field(min_length=1)


class AdjustmentOut(BaseModel):
    reason: str
    delta: float


class VerdictOut(BaseModel):
    # Not range-checked here: the adjudicate stage clamps to [0, 100].
    truth_score: float
    confidence: Literal["low", "moderate", "high"]
    rationale: str
    adjustments: list[AdjustmentOut] = Field(default_factory=list)


class DirectiveOut(BaseModel):
    notes: list[str] = Field(default_factory=list)
    requests: list[str] = Field(default_factory=list)
    inadmissible_exhibit_ids: list[str] = Field(default_factory=list)


class AdjudicatorOutput(BaseModel):
    verdict: VerdictOut
    directive: DirectiveOut = Field(default_factory=DirectiveOut)


class SummaryOutput(BaseModel):
    verdict: str = Field(min_length=1)
    # Echoed by the oracle but always overwritten from the adjudicator's verdict.
    truth_score: float | None = None
    confidence: str | None = None
    summary: str = Field(min_length=1)
