"""Reasoning oracle backed by the Anthropic Messages API.

The oracle is role-addressed: each role has its own system prompt and
sampling temperature. ``invoke_with_contract`` is the single entry point the
stages use; it checks every result against the role's contract and gives the
oracle one corrective retry before failing the run.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel

from claim_tribunal.agents.base import AgentCaller
from claim_tribunal.agents.prompts import ROLE_PROMPTS, ROLE_TEMPERATURES
from claim_tribunal.contracts import ReasoningOracle, TokenUsage
from claim_tribunal.errors import ConfigurationError, SchemaViolation
from claim_tribunal.validation import Check, Invalid, check_contract


class AnthropicOracle:
    """ReasoningOracle over an AgentCaller."""

    def __init__(self, caller: AgentCaller, *, max_tokens: int = 2048) -> None:
        self._caller = caller
        self._max_tokens = max_tokens

    @property
    def usage_log(self) -> list[TokenUsage]:
        return self._caller.usage_log

    @property
    def total_tokens(self) -> int:
        return self._caller.total_tokens

    @property
    def total_cost(self) -> float:
        return self._caller.total_cost

    async def invoke(
        self,
        role: str,
        payload: dict[str, Any],
        schema: type[BaseModel],
    ) -> dict[str, Any]:
        """Call the oracle for ``role``. Output is NOT validated here.

        Raises OracleError on transport failure and SchemaViolation when the
        response cannot be parsed as JSON at all.
        """
        system = ROLE_PROMPTS.get(role)
        if system is None:
            raise ConfigurationError(f"No prompt registered for oracle role {role!r}")

        user_content = (
            f"Input:\n{json.dumps(payload, indent=2, ensure_ascii=False, default=str)}\n\n"
            f"Expected output JSON schema:\n{json.dumps(schema.model_json_schema())}"
        )

        try:
            data, _usage = await self._caller.call_json(
                system=system,
                messages=[{"role": "user", "content": user_content}],
                agent_name=role,
                max_tokens=self._max_tokens,
                temperature=ROLE_TEMPERATURES.get(role, 0.0),
            )
        except ValueError as e:
            raise SchemaViolation(role, [str(e)]) from e

        return data


async def invoke_with_contract(
    oracle: ReasoningOracle,
    role: str,
    payload: dict[str, Any],
    schema: type[BaseModel],
    checks: Iterable[Check] = (),
    *,
    retries: int = 1,
) -> dict[str, Any]:
    """Invoke the oracle and return output that satisfies ``schema`` + ``checks``.

    On a violation the oracle is re-invoked with its rejected output and the
    list of violations as corrective feedback, up to ``retries`` times.
    """
    checks = list(checks)
    attempt_payload = payload

    for attempt in range(retries + 1):
        data = await oracle.invoke(role, attempt_payload, schema)
        result = check_contract(schema, data, checks)
        if not isinstance(result, Invalid):
            return result.value

        if attempt < retries:
            attempt_payload = {
                **payload,
                "rejected_output": data,
                "contract_violations": result.violations,
                "instruction": "Your previous output violated its contract. "
                "Fix every listed violation and return the full corrected JSON.",
            }

    raise SchemaViolation(role, result.violations)
