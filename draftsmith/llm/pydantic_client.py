"""PydanticAI-backed LLM client implementing the LLMBackend protocol.

Three agent roles from config/settings.yaml share this client, and
ArticleWriter passes a system prompt on every call:

- strategy: gap analysis (structured output, strategist prompt)
- outline: section plan for the stored strategy (structured output, outliner prompt)
- writing: introduction, each section, conclusion (markdown text, one prompt per part)

The provider is inferred from the model string prefix ("google-gla:",
"anthropic:", "openai:", ...). Gemini models get NativeOutput so the schema
is enforced through responseSchema; other providers enforce it through
tool calling.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
from typing import Any

from pydantic_ai import Agent, NativeOutput, StructuredDict
from pydantic_ai.settings import ModelSettings

logger = logging.getLogger(__name__)

_GEMINI_PREFIXES = ("google-gla:", "google-vertex:")

_MAX_RETRIES = 5
_BASE_DELAY = 2.0  # seconds
_MAX_DELAY = 90.0  # seconds cap

_RETRYABLE_CODES = {"429", "502", "503", "504"}
_RETRYABLE_MSGS = {"unavailable", "resource_exhausted", "rate", "overloaded", "gateway", "quota"}


def _is_gemini(model: str) -> bool:
    return model.startswith(_GEMINI_PREFIXES)


def _is_retryable(exc: BaseException) -> bool:
    s = str(exc).lower()
    return any(c in s for c in _RETRYABLE_CODES) or any(m in s for m in _RETRYABLE_MSGS)


async def _run_with_retry(agent: Agent[Any, Any], prompt: str, *, model_settings: ModelSettings) -> Any:
    """Run *agent*, retrying transient provider errors with exponential backoff and jitter.

    Non-retryable errors (auth, schema) are re-raised on first occurrence.
    """
    for attempt in range(_MAX_RETRIES):
        try:
            return await agent.run(prompt, model_settings=model_settings)
        except Exception as exc:
            if not _is_retryable(exc) or attempt == _MAX_RETRIES - 1:
                raise
            delay = min(_BASE_DELAY * (2 ** attempt) + random.uniform(0, 1), _MAX_DELAY)
            logger.warning(
                f"LLM transient error (attempt {attempt + 1}/{_MAX_RETRIES}), "
                f"retrying in {delay:.1f}s: {exc}"
            )
            await asyncio.sleep(delay)
    raise RuntimeError("unreachable")  # pragma: no cover


def _build_agent(model: str, json_schema: dict | None, system_prompt: str | None) -> Agent[None, Any]:
    instructions = system_prompt or ()
    if json_schema is None:
        return Agent(model, output_type=str, system_prompt=instructions)
    output_type: Any = StructuredDict(json_schema)
    if _is_gemini(model):
        output_type = NativeOutput(output_type)
    return Agent(model, output_type=output_type, system_prompt=instructions)


class PydanticAIClient:
    """Provider-agnostic LLM client backed by a PydanticAI Agent.

    A fresh Agent is built per call since model, schema and system prompt
    all vary by role.
    """

    async def complete(
        self,
        prompt: str,
        *,
        model: str,
        temperature: float,
        json_schema: dict | None = None,
        system_prompt: str | None = None,
    ) -> str:
        agent = _build_agent(model, json_schema, system_prompt)
        result = await _run_with_retry(agent, prompt, model_settings=ModelSettings(temperature=temperature))
        output = result.output
        if isinstance(output, dict):
            return json.dumps(output)
        return str(output)
