"""Per-case observability files: a node event stream and the final result."""

from __future__ import annotations

import json
from collections.abc import Iterator
from datetime import datetime, timezone
from pathlib import Path

from claim_tribunal.contracts import RunEvent


def _decode(line: str) -> RunEvent | None:
    try:
        return json.loads(line)
    except json.JSONDecodeError:
        return None


class EventLog:
    """Files for one case under ``<log_dir>/<run_id>/``.

    ``events.jsonl`` receives one line per graph node execution and
    ``case.json`` the final result with usage totals. Reading tolerates a
    log that was cut off mid-write.
    """

    EVENTS_FILE = "events.jsonl"
    RESULT_FILE = "case.json"

    def __init__(self, log_dir: str | Path, run_id: str) -> None:
        self.run_id = run_id
        self.run_dir = Path(log_dir) / run_id
        self.run_dir.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self.run_dir / self.EVENTS_FILE

    @property
    def result_path(self) -> Path:
        return self.run_dir / self.RESULT_FILE

    def record(
        self,
        *,
        node: str,
        round_number: int,
        elapsed_s: float,
        inputs_summary: dict[str, int] | None = None,
        outputs_summary: dict[str, int] | None = None,
        tokens: int = 0,
        cost: float = 0.0,
    ) -> RunEvent:
        """Stamp a node execution with this case's run id and append it."""
        event = RunEvent(
            run_id=self.run_id,
            node=node,
            round=round_number,
            ts=datetime.now(timezone.utc).isoformat(),
            elapsed_s=round(elapsed_s, 3),
            inputs_summary=inputs_summary or {},
            outputs_summary=outputs_summary or {},
            tokens=tokens,
            cost=round(cost, 6),
        )
        self.emit(event)
        return event

    def emit(self, event: RunEvent) -> None:
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(event, ensure_ascii=False) + "\n")

    def _lines(self) -> Iterator[str]:
        try:
            with self.path.open(encoding="utf-8") as f:
                for line in f:
                    if line.strip():
                        yield line
        except OSError:
            return

    def read_all(self) -> list[RunEvent]:
        """Events in append order; undecodable lines are skipped."""
        return [event for event in map(_decode, self._lines()) if event is not None]

    def totals(self) -> dict:
        """Aggregate the event stream into per-case usage numbers."""
        events = self.read_all()
        return {
            "events": len(events),
            "rounds": max((e.get("round", 0) for e in events), default=0),
            "tokens": sum(e.get("tokens", 0) for e in events),
            "cost": round(sum(e.get("cost", 0.0) for e in events), 6),
        }

    def write_result(self, result: dict) -> Path:
        """Write ``case.json`` next to the events, tagged with the run id."""
        payload = {"run_id": self.run_id, **result, "usage": self.totals()}
        self.result_path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        return self.result_path
