"""Case execution: drive the compiled graph to a CaseResult."""

from __future__ import annotations

import asyncio

from claim_tribunal.agents.base import AgentCaller
from claim_tribunal.agents.oracle import AnthropicOracle
from claim_tribunal.config import Settings
from claim_tribunal.contracts import (
    CaseResult,
    CaseState,
    ReasoningOracle,
    SearchProvider,
)
from claim_tribunal.errors import ConfigurationError, RunTimeout
from claim_tribunal.event_log.writer import EventLog
from claim_tribunal.graph.builder import build_graph
from claim_tribunal.graph.state import initial_state
from claim_tribunal.streaming import StreamDisplay


def make_oracle(settings: Settings) -> AnthropicOracle:
    """Build the Anthropic-backed oracle from settings."""
    caller = AgentCaller(
        api_key=settings.anthropic_api_key,
        model=settings.oracle_model,
        max_concurrent=settings.max_concurrent_requests,
        fallback_model=settings.fallback_model,
        timeout=settings.oracle_timeout,
    )
    return AnthropicOracle(caller)


def make_provider(settings: Settings, name: str | None = None) -> SearchProvider:
    """Instantiate the configured search backend via the registry."""
    name = name or settings.search_backend
    if name == "serper":
        import claim_tribunal.backends.serper  # noqa: F401
    elif name == "tavily":
        import claim_tribunal.backends.tavily  # noqa: F401

    from claim_tribunal.backends import get_backend

    keys = {"serper": settings.serper_api_key, "tavily": settings.tavily_api_key}
    try:
        return get_backend(name, api_key=keys.get(name, ""), timeout=settings.search_timeout)
    except KeyError as e:
        raise ConfigurationError(str(e)) from e


def _recursion_limit(settings: Settings) -> int:
    # init + finalize, plus round/evaluate per round
    return 2 * settings.max_rounds + 4


def to_case_result(state: dict) -> CaseResult:
    """Project the final graph state onto the public CaseResult shape."""
    rounds = state.get("rounds", [])
    final = state.get("final") or (rounds[-1]["summary"] if rounds else None)
    if final is None:
        raise ValueError("Case finished without any completed round")
    return CaseResult(
        final=final,
        case_state=CaseState(
            claim=state["claim"],
            rounds=list(rounds),
            running_score=state.get("running_score"),
        ),
        stop_reason=state.get("stop_reason", ""),
    )


async def _execute(graph, input_state: dict, config: dict, display: StreamDisplay | None) -> dict:
    if display is None:
        return await graph.ainvoke(input_state, config=config)

    final_state: dict = {}
    async for stream_mode, payload in graph.astream(
        input_state,
        config=config,
        stream_mode=["updates", "custom", "values"],
    ):
        if stream_mode == "updates":
            display.handle_update(payload)
        elif stream_mode == "custom":
            display.handle_custom(payload)
        elif stream_mode == "values":
            final_state = payload
    return final_state


async def run_case(
    claim: str,
    *,
    settings: Settings,
    oracle: ReasoningOracle,
    provider: SearchProvider,
    event_log: EventLog | None = None,
    display: StreamDisplay | None = None,
) -> CaseResult:
    """Evaluate ``claim`` over one or more adversarial rounds.

    Raises ConfigurationError before any oracle call when the claim or the
    run settings are invalid, RunTimeout when the whole case exceeds
    ``settings.run_timeout``, and propagates any stage failure unchanged.
    """
    if not claim or not claim.strip():
        raise ConfigurationError("claim must not be empty")
    errors = settings.validate_run()
    if errors:
        raise ConfigurationError("; ".join(errors))

    graph = build_graph(settings, oracle=oracle, provider=provider, event_log=event_log)
    config = {"recursion_limit": _recursion_limit(settings)}

    deadline = asyncio.timeout(settings.run_timeout if settings.run_timeout > 0 else None)
    try:
        async with deadline:
            state = await _execute(graph, initial_state(claim), config, display)
    except TimeoutError as e:
        if not deadline.expired():
            raise
        raise RunTimeout(f"Case exceeded run timeout of {settings.run_timeout}s") from e

    return to_case_result(state)
