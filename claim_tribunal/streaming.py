"""Streaming display for real-time progress during graph execution."""

from __future__ import annotations

import sys
from typing import Any

# Human-readable labels for graph node names
NODE_LABELS: dict[str, str] = {
    "init": "Opening case",
    "round": "Hearing round",
    "evaluate": "Checking stop policy",
    "finalize": "Recording final verdict",
}

# Human-readable labels for the in-round stages
STAGE_LABELS: dict[str, str] = {
    "propose": "Proposer decomposed claim",
    "oppose": "Opponent filed rebuttals",
    "gather": "Exhibits gathered",
    "reseat": "Exhibits reseated",
    "adjudicate": "Adjudicator ruled",
    "summarize": "Summary written",
}


class StreamDisplay:
    """Handles stream events from LangGraph astream and prints progress to stderr."""

    def __init__(self, *, verbose: bool = False) -> None:
        self._verbose = verbose
        self._current_node: str | None = None
        self._round: int = 0

    def _print(self, msg: str) -> None:
        print(msg, file=sys.stderr, flush=True)

    def handle_update(self, update: dict[str, Any]) -> None:
        """Handle an 'updates' stream event (node_name -> state_update)."""
        for node_name, state_delta in update.items():
            label = NODE_LABELS.get(node_name, node_name)
            self._current_node = node_name
            if not isinstance(state_delta, dict):
                self._print(f"  [{label}]")
                continue

            self._print(f"  [{label}]")

            if node_name == "evaluate" and state_delta.get("done"):
                self._print(f"    stop: {state_delta.get('stop_reason', '')}")

            if self._verbose:
                self._print_details(node_name, state_delta)

    def handle_custom(self, event: dict[str, Any]) -> None:
        """Handle a 'custom' stream event (granular progress from nodes)."""
        kind = event.get("kind", "")

        if kind == "stage_progress":
            round_number = event.get("round", 0)
            if round_number and round_number != self._round:
                self._round = round_number
                self._print(f"\n--- Round {self._round} ---")
            stage = event.get("stage", "")
            label = STAGE_LABELS.get(stage, stage)
            if stage == "propose":
                self._print(f"    {label} ({event.get('subclaims', 0)} subclaims)")
            elif stage == "oppose":
                self._print(f"    {label} ({event.get('rebuttals', 0)} rebuttals)")
            elif stage == "reseat":
                self._print(f"    {label} ({event.get('exhibits', 0)} exhibits)")
            elif self._verbose:
                self._print(f"    {label}")
        elif kind == "round_verdict":
            score = event.get("truth_score", 0.0)
            confidence = event.get("confidence", "")
            self._print(f"    Verdict: {event.get('verdict', '')} ({score:.1f}, {confidence})")
            excluded = event.get("inadmissible", [])
            if excluded:
                self._print(f"    Inadmissible: {', '.join(excluded)}")
        elif event.get("message"):
            self._print(f"    {event['message']}")

    def _print_details(self, node_name: str, state_delta: dict) -> None:
        """Print verbose details about what a node produced."""
        counts: dict[str, str] = {}
        for record in state_delta.get("rounds", []):
            counts["proposer_exhibits"] = str(len(record["proposer"]["exhibits"]))
            counts["opponent_exhibits"] = str(len(record["opponent"]["exhibits"]))
            counts["considered"] = str(len(record["exhibits_considered"]))
        if "token_usage" in state_delta:
            counts["calls"] = str(len(state_delta["token_usage"]))
        if state_delta.get("running_score") is not None:
            counts["score"] = f"{state_delta['running_score']:.1f}"

        if counts:
            detail = ", ".join(f"{k}={v}" for k, v in counts.items())
            self._print(f"    -> {detail}")
