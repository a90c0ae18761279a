"""AgentCaller: Anthropic SDK wrapper with token tracking and rate limiting."""

from __future__ import annotations

import asyncio
import json
import sys
from datetime import datetime, timezone

import anthropic
from anthropic._exceptions import OverloadedError

from claim_tribunal.contracts import TokenUsage
from claim_tribunal.errors import OracleError

# Pricing per million tokens
_PRICING: dict[str, dict[str, float]] = {
    "claude-opus-4-6": {"input": 15.0, "output": 75.0},
    "claude-sonnet-4-6": {"input": 3.0, "output": 15.0},
    "claude-haiku-4-5-20251001": {"input": 1.0, "output": 5.0},
}

_JSON_RETRY_INSTRUCTION = (
    "Your previous response was not valid JSON. Respond again with ONLY the JSON "
    "object requested, no prose, no markdown fences."
)


def _extract_json(text: str) -> str:
    """Extract JSON from model response, handling fenced blocks and prose wrapping."""
    cleaned = text.strip()

    # Handle ```json fenced blocks
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")[1:]
        json_lines = []
        for line in lines:
            if line.strip() == "```":
                break
            json_lines.append(line)
        cleaned = "\n".join(json_lines).strip()

    if cleaned.startswith("{") or cleaned.startswith("["):
        return cleaned

    # Find a JSON object embedded in prose by tracking brace depth
    start = cleaned.find("{")
    if start != -1:
        depth = 0
        for i in range(start, len(cleaned)):
            if cleaned[i] == "{":
                depth += 1
            elif cleaned[i] == "}":
                depth -= 1
                if depth == 0:
                    return cleaned[start : i + 1]
        # No matching close, will surface as truncation
        return cleaned[start:]

    return ""


def _parse_json(text: str) -> tuple[dict | None, str]:
    """Parse a model response. Returns (data, error); data is None on failure."""
    cleaned = _extract_json(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        stripped = cleaned.rstrip()
        if stripped and stripped[-1] not in ("}", "]"):
            return None, (
                f"Truncated JSON (likely hit max_tokens), response ends at char {len(cleaned)}"
            )
        return None, f"JSON parse error: {e}"
    return data, ""


class AgentCaller:
    """Wraps Anthropic API calls with token tracking and concurrency control."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        max_concurrent: int = 5,
        max_retries: int = 3,
        fallback_model: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.model = model
        self.fallback_model = fallback_model or None
        self._client = anthropic.AsyncAnthropic(api_key=api_key)
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._max_retries = max_retries
        self._timeout = timeout
        self._usage_log: list[TokenUsage] = []

    async def call(
        self,
        *,
        system: str,
        messages: list[dict],
        agent_name: str,
        max_tokens: int = 4096,
        temperature: float = 0.0,
    ) -> tuple[str, TokenUsage]:
        """Make an API call with retry and token tracking.

        Returns (response_text, token_usage).
        """
        async with self._semaphore:
            return await self._call_with_retry(
                system=system,
                messages=messages,
                agent_name=agent_name,
                max_tokens=max_tokens,
                temperature=temperature,
            )

    async def _create(self, model: str, **kwargs):
        request = self._client.messages.create(model=model, **kwargs)
        if self._timeout is None:
            return await request
        return await asyncio.wait_for(request, timeout=self._timeout)

    @staticmethod
    def _response_text(response) -> str:
        text = ""
        for block in response.content:
            if block.type == "text":
                text += block.text
        return text

    async def _call_with_retry(
        self,
        *,
        system: str,
        messages: list[dict],
        agent_name: str,
        max_tokens: int,
        temperature: float,
    ) -> tuple[str, TokenUsage]:
        last_error = None
        overloaded = False
        request = dict(
            max_tokens=max_tokens,
            temperature=temperature,
            system=system,
            messages=messages,
        )

        for attempt in range(self._max_retries):
            try:
                response = await self._create(self.model, **request)
                usage = self._track_usage(response, agent_name)
                return self._response_text(response), usage

            except OverloadedError:
                overloaded = True
                wait = 2 ** (attempt + 1)
                print(
                    f"WARNING: {self.model} overloaded (529), "
                    f"retry {attempt + 1}/{self._max_retries} in {wait}s",
                    file=sys.stderr,
                )
                await asyncio.sleep(wait)
                last_error = "overloaded"
            except anthropic.RateLimitError:
                wait = 2 ** (attempt + 1)
                await asyncio.sleep(wait)
                last_error = "rate_limit"
            except asyncio.TimeoutError:
                last_error = f"timed out after {self._timeout}s"
            except anthropic.APIError as e:
                last_error = str(e)
                if attempt < self._max_retries - 1:
                    await asyncio.sleep(1)

        if overloaded and self.fallback_model:
            print(
                f"WARNING: {self.model} exhausted retries, "
                f"falling back to {self.fallback_model} for {agent_name}",
                file=sys.stderr,
            )
            try:
                response = await self._create(self.fallback_model, **request)
                usage = self._track_usage(
                    response, agent_name, model_override=self.fallback_model
                )
                return self._response_text(response), usage
            except (anthropic.APIError, asyncio.TimeoutError) as e:
                last_error = f"fallback ({self.fallback_model}) also failed: {e}"

        raise OracleError(
            f"{agent_name}: call failed after {self._max_retries} retries: {last_error}"
        )

    def _track_usage(
        self, response, agent_name: str, *, model_override: str | None = None
    ) -> TokenUsage:
        input_tokens = response.usage.input_tokens
        output_tokens = response.usage.output_tokens

        model = model_override or self.model
        pricing = _PRICING.get(model, {"input": 3.0, "output": 15.0})
        cost = (input_tokens * pricing["input"] + output_tokens * pricing["output"]) / 1_000_000

        usage = TokenUsage(
            agent=agent_name,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=round(cost, 6),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        self._usage_log.append(usage)
        return usage

    @property
    def usage_log(self) -> list[TokenUsage]:
        return list(self._usage_log)

    @property
    def total_tokens(self) -> int:
        return sum(u["input_tokens"] + u["output_tokens"] for u in self._usage_log)

    @property
    def total_cost(self) -> float:
        return sum(u["cost_usd"] for u in self._usage_log)

    async def call_json(
        self,
        *,
        system: str,
        messages: list[dict],
        agent_name: str,
        max_tokens: int = 4096,
        temperature: float = 0.0,
    ) -> tuple[dict, TokenUsage]:
        """Make an API call expecting JSON response.

        Retries once at temperature 0 with the failed output as assistant
        context. Raises ValueError if both attempts are unparseable.
        """
        text, usage = await self.call(
            system=system,
            messages=messages,
            agent_name=agent_name,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        data, error = _parse_json(text)
        if data is not None:
            return data, usage

        retry_messages = [
            *messages,
            {"role": "assistant", "content": text},
            {"role": "user", "content": _JSON_RETRY_INSTRUCTION},
        ]
        retry_text, retry_usage = await self.call(
            system=system,
            messages=retry_messages,
            agent_name=agent_name,
            max_tokens=max_tokens,
            temperature=0.0,
        )
        merged = TokenUsage(
            agent=agent_name,
            model=retry_usage["model"],
            input_tokens=usage["input_tokens"] + retry_usage["input_tokens"],
            output_tokens=usage["output_tokens"] + retry_usage["output_tokens"],
            cost_usd=round(usage["cost_usd"] + retry_usage["cost_usd"], 6),
            timestamp=retry_usage["timestamp"],
        )

        data, retry_error = _parse_json(retry_text)
        if data is not None:
            return data, merged

        raise ValueError(
            f"{retry_error or error} from {agent_name} after retry.\n"
            f"Raw (attempt 1): {text[:300]}\n"
            f"Raw (attempt 2): {retry_text[:300]}"
        )
