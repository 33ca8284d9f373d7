"""Abstract LLM backend protocol for provider-agnostic LLM calls."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class LLMBackend(Protocol):
    """Structural protocol satisfied by any LLM client that can produce text or JSON.

    Callers pass json_schema to request structured JSON output and
    system_prompt for the role instruction. Implementors must retry
    transient provider errors themselves.
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
        """Return the LLM response as a string.

        If json_schema is supplied, the response MUST be a JSON string
        conforming to that schema.
        """
        ...
