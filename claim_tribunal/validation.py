"""Schema contract validation for oracle output.

Every oracle result is checked here before the next stage sees it. The
outcome is an explicit tagged value: ``Valid(value)`` or
``Invalid(violations)``. Structural checks come from the pydantic model in
``schemas``; semantic checks (id density, referential integrity) are plain
functions returning a list of violation strings.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ValidationError

from claim_tribunal.schemas import OpponentOutput, ProposerOutput, UrlSummary

MIN_SUBCLAIMS = 2
MAX_SUBCLAIMS = 4

Check = Callable[[Any], list[str]]


@dataclass(frozen=True)
class Valid:
    value: dict[str, Any]


@dataclass(frozen=True)
class Invalid:
    violations: list[str] = field(default_factory=list)


ContractResult = Valid | Invalid


def _format_error(err: dict) -> str:
    loc = ".".join(str(part) for part in err.get("loc", ())) or "<root>"
    return f"{loc}: {err.get('msg', 'invalid')}"


def check_contract(
    model: type[BaseModel],
    data: Any,
    checks: Iterable[Check] = (),
) -> ContractResult:
    """Validate ``data`` against ``model`` and then each semantic check."""
    if not isinstance(data, dict):
        return Invalid([f"<root>: expected a JSON object, got {type(data).__name__}"])

    try:
        parsed = model.model_validate(data)
    except ValidationError as e:
        return Invalid([_format_error(err) for err in e.errors()])

    violations: list[str] = []
    for check in checks:
        violations.extend(check(parsed))
    if violations:
        return Invalid(violations)

    return Valid(parsed.model_dump())


# --- Semantic checks ---


def expected_subclaim_ids(n: int) -> list[str]:
    return [f"S{i}" for i in range(1, n + 1)]


def check_proposer(out: ProposerOutput) -> list[str]:
    """2-4 subclaims with ids S1..Sn, exactly one argument per subclaim."""
    violations: list[str] = []
    n = len(out.subclaims)
    if not MIN_SUBCLAIMS <= n <= MAX_SUBCLAIMS:
        violations.append(f"subclaims: expected {MIN_SUBCLAIMS}-{MAX_SUBCLAIMS}, got {n}")

    ids = [s.id for s in out.subclaims]
    if ids != expected_subclaim_ids(n):
        violations.append(
            f"subclaims: ids must be {expected_subclaim_ids(n)} in order, got {ids}"
        )

    known = set(ids)
    per_subclaim = Counter(a.subclaim_id for a in out.arguments)
    for sid in sorted(per_subclaim):
        if sid not in known:
            violations.append(f"arguments: references unknown subclaim {sid}")
    for sid in ids:
        count = per_subclaim.get(sid, 0)
        if count != 1:
            violations.append(f"arguments: expected exactly one for {sid}, got {count}")

    return violations


def make_opponent_check(subclaim_ids: list[str]) -> Check:
    """At most one rebuttal per subclaim, targets must exist."""
    known = set(subclaim_ids)

    def _check(out: OpponentOutput) -> list[str]:
        violations: list[str] = []
        per_target = Counter(r.target_subclaim_id for r in out.rebuttals)
        for target, count in sorted(per_target.items()):
            if target not in known:
                violations.append(f"rebuttals: references unknown subclaim {target}")
            if count > 1:
                violations.append(f"rebuttals: {count} rebuttals target {target}, max 1")
        return violations

    return _check


def check_url_summary(out: UrlSummary) -> list[str]:
    if not out.summary.strip():
        return ["summary: must not be blank"]
    return []
