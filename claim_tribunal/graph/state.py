"""TribunalState: the single state object flowing through the graph."""

from __future__ import annotations

import operator
from typing import Annotated, TypedDict

from claim_tribunal.contracts import RoundRecord, RoundSummary, TokenUsage

# --- Scalar reducers (last-write-wins) ---


def _replace(existing: str, new: str) -> str:
    return new


def _replace_int(existing: int, new: int) -> int:
    return new


def _replace_score(existing: float | None, new: float | None) -> float | None:
    return new


def _replace_bool(existing: bool, new: bool) -> bool:
    return new


def _replace_dict(existing: dict, new: dict) -> dict:
    return new


# --- Graph State ---


class TribunalState(TypedDict):
    # Input (set once)
    claim: str

    # Case record (append-only, one entry per round)
    rounds: Annotated[list[RoundRecord], operator.add]
    running_score: Annotated[float | None, _replace_score]

    # Control
    current_round: Annotated[int, _replace_int]
    done: Annotated[bool, _replace_bool]
    stop_reason: Annotated[str, _replace]

    # Budget (accumulate)
    token_usage: Annotated[list[TokenUsage], operator.add]

    # Output
    final: Annotated[RoundSummary, _replace_dict]


def initial_state(claim: str) -> TribunalState:
    return TribunalState(
        claim=claim,
        rounds=[],
        running_score=None,
        current_round=0,
        done=False,
        stop_reason="",
        token_usage=[],
        final={},
    )
