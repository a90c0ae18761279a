"""Stopping policy: decide whether another round is run."""

from __future__ import annotations

from collections.abc import Sequence


def should_stop(
    scores: Sequence[float],
    confidences: Sequence[str],
    *,
    max_rounds: int,
    stop_confidence: str,
    min_delta: float,
    early_stop: bool = True,
) -> tuple[bool, str]:
    """Decide after round ``r = len(scores)`` whether to stop.

    Returns (should_stop, reason).

    - Round 1 has no prior score, so only the confidence rule applies.
    - From round 2, a score change below ``min_delta`` stops (checked first),
      as does the verdict reaching ``stop_confidence``.
    - The round budget always stops the loop.
    - With ``early_stop=False`` only the round budget applies.
    """
    r = len(scores)
    if r == 0:
        return False, "no_rounds"

    if early_stop:
        if r > 1:
            delta = abs(scores[-1] - scores[-2])
            if delta < min_delta:
                return True, f"converged (delta={delta:g} < {min_delta:g})"

        if confidences and confidences[-1] == stop_confidence:
            return True, f"confidence_reached ({stop_confidence})"

    if r >= max_rounds:
        return True, f"round_budget_exhausted ({max_rounds})"

    return False, "continue"
