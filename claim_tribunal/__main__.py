"""CLI entry point: python -m claim_tribunal <claim>"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

from claim_tribunal.config import Settings, get_settings
from claim_tribunal.contracts import CaseResult, Confidence
from claim_tribunal.errors import TribunalError
from claim_tribunal.graph.runner import make_oracle, make_provider, run_case
from claim_tribunal.streaming import StreamDisplay


def _generate_run_id() -> str:
    """Generate a unique run ID: case-YYYYMMDD-HHMMSS-XXXX."""
    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    suffix = os.urandom(2).hex()
    return f"case-{ts}-{suffix}"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="claim-tribunal",
        description="Adversarial multi-round claim evaluation",
    )
    parser.add_argument(
        "claim",
        type=str,
        help="The claim to evaluate",
    )
    parser.add_argument(
        "--max-rounds",
        type=int,
        default=None,
        help="Maximum rounds, 1-6 (default: from config)",
    )
    parser.add_argument(
        "--stop-confidence",
        type=str,
        choices=[c.value for c in Confidence],
        default=None,
        help="Stop once the adjudicator reaches this confidence (default: from config)",
    )
    parser.add_argument(
        "--min-delta",
        type=float,
        default=None,
        help="Stop when the score moves less than this between rounds (default: from config)",
    )
    parser.add_argument(
        "--max-results",
        type=int,
        default=None,
        help="Search results per side per round (default: from config)",
    )
    parser.add_argument(
        "--backend",
        type=str,
        choices=["serper", "tavily"],
        default=None,
        help="Search backend (default: from config)",
    )
    parser.add_argument(
        "--no-early-stop",
        action="store_true",
        default=False,
        help="Always run exactly --max-rounds rounds",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Also write the case result JSON to this path",
    )
    parser.add_argument(
        "--no-log",
        action="store_true",
        default=False,
        help="Disable run event logging",
    )
    parser.add_argument(
        "--no-stream",
        action="store_true",
        default=False,
        help="Disable streaming output (use blocking ainvoke)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Show detailed progress during streaming",
    )
    args = parser.parse_args(argv)
    if not args.claim.strip():
        parser.error("claim must not be empty")
    return args


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return settings with CLI flags applied over environment defaults."""
    overrides: dict = {}
    if args.max_rounds is not None:
        overrides["max_rounds"] = args.max_rounds
    if args.stop_confidence is not None:
        overrides["stop_confidence"] = args.stop_confidence
    if args.min_delta is not None:
        overrides["min_delta"] = args.min_delta
    if args.max_results is not None:
        overrides["max_results_per_side"] = args.max_results
    if args.backend is not None:
        overrides["search_backend"] = args.backend
    if args.no_early_stop:
        overrides["early_stop"] = False
    return dataclasses.replace(settings, **overrides) if overrides else settings


def _output_result(result: CaseResult, *, output_path: str | None) -> None:
    """Print the case result to stdout and optionally save it."""
    text = json.dumps(result, ensure_ascii=False, indent=2)
    sys.stdout.buffer.write(text.encode("utf-8"))
    sys.stdout.buffer.write(b"\n")
    sys.stdout.buffer.flush()

    if output_path:
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        print(f"\nResult saved to: {path}", file=sys.stderr)

    final = result["final"]
    rounds = len(result["case_state"]["rounds"])
    print(
        f"Verdict: {final['verdict']} | score {final['truth_score']:.1f} | "
        f"confidence {final['confidence']} | {rounds} round(s) | "
        f"Reason: {result['stop_reason']}",
        file=sys.stderr,
    )


async def run(args: argparse.Namespace) -> int:
    settings = apply_overrides(get_settings(), args)

    errors = settings.validate()
    if errors:
        for err in errors:
            print(f"ERROR: {err}", file=sys.stderr)
        return 1
    for warn in settings.warnings():
        print(f"WARNING: {warn}", file=sys.stderr)

    run_id = _generate_run_id()
    event_log = None
    if not args.no_log:
        from claim_tribunal.event_log.writer import EventLog

        event_log = EventLog(settings.run_log_dir, run_id)

    display = None if args.no_stream else StreamDisplay(verbose=args.verbose)

    print(f"Run: {run_id}", file=sys.stderr)
    print(f"Claim: {args.claim}", file=sys.stderr)
    print(
        f"Backend: {settings.search_backend} | Max rounds: {settings.max_rounds} | "
        f"Early stop: {'on' if settings.early_stop else 'off'}",
        file=sys.stderr,
    )
    print("---", file=sys.stderr)

    oracle = make_oracle(settings)
    try:
        provider = make_provider(settings)
    except TribunalError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    try:
        result = await run_case(
            args.claim,
            settings=settings,
            oracle=oracle,
            provider=provider,
            event_log=event_log,
            display=display,
        )
    except TribunalError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        await provider.aclose()

    _output_result(result, output_path=args.output)
    print(
        f"Usage: {oracle.total_tokens:,} tokens | ${oracle.total_cost:.4f}",
        file=sys.stderr,
    )

    if event_log is not None:
        event_log.write_result(result)
        print(f"Event log: {event_log.path}", file=sys.stderr)
    return 0


def main() -> None:
    args = parse_args()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
