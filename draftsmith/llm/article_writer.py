"""Article writer: the LLM calls behind each pipeline stage."""

from __future__ import annotations

import logging
import re
import time
from typing import List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from draftsmith.errors import ExternalServiceError, MalformedResponseError
from draftsmith.llm import prompts
from draftsmith.llm.base_client import LLMBackend
from draftsmith.models import CompetitorSnapshot, GapAnalysis, Outline, SettingsConfig
from draftsmith.utils.structured_log import log_api_call

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_FENCE_RE = re.compile(r"^\s*```(?:json|JSON)?\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


def strip_code_fences(raw: str) -> str:
    match = _FENCE_RE.match(raw)
    return match.group(1).strip() if match else raw.strip()


def parse_structured(raw: str, model_cls: Type[T]) -> T:
    """Validate a structured LLM response, tolerating a markdown code fence around it."""
    try:
        return model_cls.model_validate_json(strip_code_fences(raw))
    except ValidationError as exc:
        raise MalformedResponseError(
            f"{model_cls.__name__} response did not validate: {exc.error_count()} errors"
        ) from exc


class ArticleWriter:
    """Gap analysis, outline and prose generation over any LLMBackend."""

    def __init__(self, backend: LLMBackend, settings: Optional[SettingsConfig] = None):
        self.backend = backend
        self.settings = settings or SettingsConfig()

    async def _complete(
        self,
        agent_name: str,
        call_type: str,
        stage: str,
        prompt: str,
        system_prompt: str,
        json_schema: dict | None = None,
    ) -> str:
        agent = self.settings.agent(agent_name)
        t0 = time.monotonic()
        try:
            raw = await self.backend.complete(
                prompt,
                model=agent.model,
                temperature=agent.temperature,
                json_schema=json_schema,
                system_prompt=system_prompt,
            )
        except ExternalServiceError:
            raise
        except Exception as exc:
            log_api_call("llm", "error", stage, model=agent.model, call_type=call_type, error=str(exc))
            raise ExternalServiceError(f"LLM {call_type} call failed: {exc}") from exc
        latency_ms = int((time.monotonic() - t0) * 1000)
        if not raw or not raw.strip():
            log_api_call("llm", "empty", stage, model=agent.model, call_type=call_type, latency_ms=latency_ms)
            raise ExternalServiceError(f"LLM {call_type} call returned no text")
        log_api_call(
            "llm",
            "success",
            stage,
            model=agent.model,
            call_type=call_type,
            latency_ms=latency_ms,
            raw_response=raw if json_schema is not None else None,
        )
        return raw

    async def analyze_gap(
        self, keyword: str, competitors: List[CompetitorSnapshot], paa_questions: Sequence[str]
    ) -> GapAnalysis:
        prompt = prompts.build_gap_analysis_prompt(keyword, competitors, paa_questions)
        raw = await self._complete(
            "strategy",
            "gap_analysis",
            "strategy",
            prompt,
            prompts.STRATEGIST_SYSTEM,
            json_schema=GapAnalysis.model_json_schema(),
        )
        result = parse_structured(raw, GapAnalysis)
        logger.info(f"Gap analysis completed for keyword: {keyword}")
        return result

    async def generate_outline(
        self, keyword: str, target_format: str, angle: str, paa_questions: Sequence[str]
    ) -> Outline:
        prompt = prompts.build_outline_prompt(keyword, target_format, angle, paa_questions)
        raw = await self._complete(
            "outline",
            "outline",
            "outline",
            prompt,
            prompts.OUTLINER_SYSTEM,
            json_schema=Outline.model_json_schema(),
        )
        outline = parse_structured(raw, Outline)
        logger.info(f"Outline generated for keyword {keyword} with {len(outline.sections)} sections")
        return outline

    async def generate_introduction(self, keyword: str, title: str, angle: str) -> str:
        return await self._complete(
            "writing",
            "introduction",
            "content",
            prompts.build_introduction_prompt(keyword, title, angle),
            prompts.INTRODUCTION_SYSTEM,
        )

    async def generate_section(
        self,
        heading: str,
        intent: str,
        keywords: Sequence[str],
        previous_excerpt: str,
        angle: str,
        article_title: str,
    ) -> str:
        return await self._complete(
            "writing",
            "section",
            "content",
            prompts.build_section_prompt(
                heading, intent, keywords, previous_excerpt, angle, article_title
            ),
            prompts.SECTION_SYSTEM,
        )

    async def generate_conclusion(self, title: str, keyword: str, summary: str) -> str:
        return await self._complete(
            "writing",
            "conclusion",
            "content",
            prompts.build_conclusion_prompt(title, keyword, summary),
            prompts.CONCLUSION_SYSTEM,
        )
