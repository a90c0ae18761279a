"""StateGraph construction: the round controller state machine.

init -> round -> evaluate -> (round | finalize) -> END
"""

from __future__ import annotations

import inspect
import time
from collections.abc import Callable

from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph

from claim_tribunal.config import Settings
from claim_tribunal.contracts import ReasoningOracle, SearchProvider
from claim_tribunal.errors import ConfigurationError
from claim_tribunal.event_log.writer import EventLog
from claim_tribunal.graph.state import TribunalState
from claim_tribunal.pipeline.records import build_round_record
from claim_tribunal.pipeline.stages import PipelineDeps, RoundContext, run_round_pipeline
from claim_tribunal.scoring.convergence import should_stop


def _get_stream_writer(config: RunnableConfig | None) -> Callable | None:
    """Safely extract a stream writer from LangGraph config, if available."""
    if config is None:
        return None
    try:
        from langgraph.config import get_stream_writer

        return get_stream_writer()
    except Exception:
        return None


def _summarize_fields(values: dict | None) -> dict[str, int]:
    """field -> count/size for event logging."""
    summary: dict[str, int] = {}
    for key, value in (values or {}).items():
        if isinstance(value, (list, dict, str)):
            summary[key] = len(value)
        elif isinstance(value, bool):
            summary[key] = int(value)
    return summary


def _wrap_with_logging(node_name: str, fn: Callable, event_log: EventLog) -> Callable:
    """Wrap a node so each execution emits one RunEvent.

    Handles sync and async nodes, with or without a ``config`` parameter.
    """
    accepts_config = "config" in inspect.signature(fn).parameters
    is_async = inspect.iscoroutinefunction(fn)

    async def wrapped(state: dict, config: RunnableConfig = None) -> dict:
        start = time.monotonic()
        result = fn(state, config) if accepts_config else fn(state)
        if is_async:
            result = await result
        elapsed = time.monotonic() - start

        usage = (result or {}).get("token_usage", [])
        tokens = sum(u.get("input_tokens", 0) + u.get("output_tokens", 0) for u in usage)
        cost = sum(u.get("cost_usd", 0.0) for u in usage)
        round_number = (result or {}).get("current_round", state.get("current_round", 0))

        event_log.record(
            node=node_name,
            round_number=round_number,
            elapsed_s=elapsed,
            inputs_summary=_summarize_fields(state),
            outputs_summary=_summarize_fields(result),
            tokens=tokens,
            cost=cost,
        )
        return result

    return wrapped


def build_graph(
    settings: Settings,
    *,
    oracle: ReasoningOracle,
    provider: SearchProvider,
    event_log: EventLog | None = None,
) -> CompiledStateGraph:
    """Build and compile the round controller graph.

    Returns a compiled StateGraph ready to invoke with ``initial_state``.
    """
    if oracle is None:
        raise ConfigurationError("A reasoning oracle is required")
    if provider is None:
        raise ConfigurationError("A search provider is required")

    deps = PipelineDeps(oracle=oracle, provider=provider, settings=settings)

    # --- Node functions (closures over deps) ---

    async def init_node(state: TribunalState) -> dict:
        """Validate run configuration before any oracle call."""
        errors = settings.validate_run()
        if not state.get("claim", "").strip():
            errors.append("claim must not be empty")
        if errors:
            raise ConfigurationError("; ".join(errors))
        return {"current_round": 0, "done": False, "stop_reason": ""}

    async def round_node(state: TribunalState, config: RunnableConfig = None) -> dict:
        """Run the stage pipeline once and append the admissibility-filtered record."""
        writer = _get_stream_writer(config)
        rounds = state.get("rounds", [])
        round_number = state.get("current_round", 0) + 1
        usage_before = len(getattr(oracle, "usage_log", []))

        def on_stage(name: str, ctx: RoundContext) -> None:
            if writer:
                writer(
                    {
                        "kind": "stage_progress",
                        "round": round_number,
                        "stage": name,
                        "subclaims": len(ctx.subclaims),
                        "rebuttals": len(ctx.rebuttals),
                        "exhibits": len(ctx.exhibits),
                    }
                )

        ctx = RoundContext(
            claim=state["claim"],
            round_number=round_number,
            previous=rounds[-1] if rounds else None,
        )
        await run_round_pipeline(ctx, deps, on_stage=on_stage)
        record = build_round_record(ctx)

        if writer:
            directive = record["judge"]["directive"]
            writer(
                {
                    "kind": "round_verdict",
                    "round": round_number,
                    "truth_score": record["judge"]["verdict"]["truth_score"],
                    "confidence": record["judge"]["verdict"]["confidence"],
                    "verdict": record["summary"]["verdict"],
                    "inadmissible": directive["inadmissible_exhibit_ids"],
                }
            )

        return {
            "rounds": [record],
            "current_round": round_number,
            "running_score": record["judge"]["verdict"]["truth_score"],
            "token_usage": list(getattr(oracle, "usage_log", []))[usage_before:],
        }

    async def evaluate_node(state: TribunalState) -> dict:
        """Apply the stopping policy to the round history."""
        verdicts = [r["judge"]["verdict"] for r in state.get("rounds", [])]
        stop, reason = should_stop(
            [v["truth_score"] for v in verdicts],
            [v["confidence"] for v in verdicts],
            max_rounds=settings.max_rounds,
            stop_confidence=settings.stop_confidence,
            min_delta=settings.min_delta,
            early_stop=settings.early_stop,
        )
        return {"done": stop, "stop_reason": reason}

    async def finalize_node(state: TribunalState) -> dict:
        """The last round's summary becomes the final verdict."""
        return {"final": state["rounds"][-1]["summary"]}

    # --- Routing ---

    def should_continue(state: TribunalState) -> str:
        if state.get("done", False):
            return "finalize"
        return "round"

    # --- Build graph ---

    nodes: dict[str, Callable] = {
        "init": init_node,
        "round": round_node,
        "evaluate": evaluate_node,
        "finalize": finalize_node,
    }

    graph = StateGraph(TribunalState)
    for name, fn in nodes.items():
        if event_log is not None:
            fn = _wrap_with_logging(name, fn, event_log)
        graph.add_node(name, fn)

    graph.set_entry_point("init")
    graph.add_edge("init", "round")
    graph.add_edge("round", "evaluate")
    graph.add_conditional_edges(
        "evaluate",
        should_continue,
        {"finalize": "finalize", "round": "round"},
    )
    graph.add_edge("finalize", END)

    return graph.compile()
