"""DataForSEO client: SERP snapshots and keyword suggestions.

Response parsing lives in module-level functions so it can be exercised
without the network.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import Any, Dict, List, Optional, Tuple

import aiohttp
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from draftsmith.errors import ExternalServiceError
from draftsmith.models import (
    DifficultyLevel,
    KeywordSuggestion,
    PeopleAlsoAsk,
    ResearchConfig,
    SerpData,
    SerpResult,
)
from draftsmith.utils.ssl_context import research_session
from draftsmith.utils.structured_log import log_api_call

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class TransientResearchError(ExternalServiceError):
    """Rate limit, gateway or timeout failure worth retrying in-call."""


def map_difficulty_level(difficulty: float) -> DifficultyLevel:
    if difficulty <= 30:
        return DifficultyLevel.LOW
    if difficulty <= 60:
        return DifficultyLevel.MEDIUM
    return DifficultyLevel.HIGH


def _first_result(data: Dict[str, Any]) -> Optional[Any]:
    tasks = (data or {}).get("tasks") or []
    if not tasks:
        return None
    results = tasks[0].get("result") or []
    return results if results else None


def parse_serp_response(data: Dict[str, Any]) -> SerpData:
    results = _first_result(data)
    if results is None:
        return SerpData()
    items = results[0].get("items") or []

    organic = [
        SerpResult(
            title=item.get("title") or "",
            url=item.get("url") or "",
            snippet=item.get("description") or "",
            rank=item.get("rank_absolute") or item.get("rank_group") or 0,
        )
        for item in items
        if item.get("type") == "organic"
    ]

    people_also_ask: List[PeopleAlsoAsk] = []
    related: List[str] = []
    for item in items:
        if item.get("type") == "people_also_ask":
            for child in item.get("items") or []:
                people_also_ask.append(
                    PeopleAlsoAsk(
                        question=child.get("question") or child.get("title") or "",
                        snippet=child.get("description") or child.get("snippet") or "",
                        title=child.get("title") or "",
                        url=child.get("url") or child.get("link") or "",
                    )
                )
        elif item.get("type") == "related_searches":
            for child in item.get("items") or []:
                if isinstance(child, str):
                    text = child
                else:
                    text = child.get("text") or child.get("query") or ""
                if text:
                    related.append(text)

    return SerpData(organic=organic, people_also_ask=people_also_ask, related_searches=related)


def _number(value: Any, default: float = 0) -> float:
    # bool is an int subclass; the provider never sends booleans for these fields
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return default


def parse_keyword_suggestions(data: Dict[str, Any], top_n: int = 10) -> List[KeywordSuggestion]:
    """Score each suggestion by kcv = volume * cpc / (competition_index + 1) and keep the best."""
    results = _first_result(data)
    if results is None:
        return []

    suggestions: List[KeywordSuggestion] = []
    for item in results:
        keyword = item.get("keyword")
        if not isinstance(keyword, str) or not keyword.strip():
            continue
        competition_index = _number(item.get("competition_index"))
        competition = item.get("competition") if isinstance(item.get("competition"), str) else None
        competition = competition or "LOW"
        search_volume = int(_number(item.get("search_volume")))
        cpc = float(_number(item.get("cpc")))
        kcv = search_volume * cpc / (competition_index + 1)

        annotations = item.get("keyword_annotations") or {}
        concepts = annotations.get("concepts") if isinstance(annotations, dict) else None
        metadata = {
            "keyword": keyword,
            "location_code": item.get("location_code"),
            "language_code": item.get("language_code"),
            "search_partners": item.get("search_partners", False),
            "competition": competition,
            "competition_index": competition_index,
            "search_volume": search_volume,
            "low_top_of_page_bid": item.get("low_top_of_page_bid"),
            "high_top_of_page_bid": item.get("high_top_of_page_bid"),
            "cpc": cpc,
            "monthly_searches": [
                {"year": m.get("year"), "month": m.get("month"), "search_volume": m.get("search_volume")}
                for m in item.get("monthly_searches") or []
            ],
            "keyword_annotations": {
                "concepts": [
                    {"name": c.get("name"), "concept_group": c.get("concept_group")}
                    for c in concepts
                ]
                if isinstance(concepts, list)
                else None
            },
        }
        try:
            level = DifficultyLevel(competition.upper())
        except ValueError:
            level = map_difficulty_level(competition_index)
        suggestions.append(
            KeywordSuggestion(
                keyword=keyword,
                difficulty=int(max(0, min(100, competition_index))),
                difficulty_level=level,
                search_volume=search_volume,
                cpc=cpc,
                competition=competition,
                kcv=kcv,
                metadata=metadata,
            )
        )

    suggestions.sort(key=lambda s: s.kcv, reverse=True)
    return suggestions[:top_n]


class DataForSEOClient:
    """Research provider backed by the DataForSEO v3 REST API."""

    source = "dataforseo"

    def __init__(
        self,
        config: Optional[ResearchConfig] = None,
        login: Optional[str] = None,
        password: Optional[str] = None,
    ):
        self.config = config or ResearchConfig()
        self._login = login if login is not None else os.getenv("DATAFORSEO_LOGIN", "")
        self._password = password if password is not None else os.getenv("DATAFORSEO_PASSWORD", "")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1.0, min=1.0, max=20.0),
        retry=retry_if_exception_type(TransientResearchError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _post(self, path: str, body: List[Dict[str, Any]], stage: str) -> Dict[str, Any]:
        url = f"{self.config.api_base.rstrip('/')}/{path.lstrip('/')}"
        started = time.monotonic()
        try:
            async with research_session(
                self.config.request_timeout,
                auth=aiohttp.BasicAuth(self._login, self._password),
            ) as session:
                async with session.post(url, json=body) as response:
                    if response.status in _RETRYABLE_STATUS:
                        text = await response.text()
                        raise TransientResearchError(
                            f"DataForSEO {path} returned {response.status}: {text[:250]}"
                        )
                    if response.status != 200:
                        text = await response.text()
                        raise ExternalServiceError(
                            f"DataForSEO {path} returned {response.status}: {text[:250]}"
                        )
                    data = await response.json()
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as exc:
            log_api_call(self.source, "error", stage, call_type=path, error=str(exc))
            raise TransientResearchError(f"DataForSEO {path} unreachable: {exc}") from exc
        except aiohttp.ClientError as exc:
            log_api_call(self.source, "error", stage, call_type=path, error=str(exc))
            raise ExternalServiceError(f"DataForSEO {path} failed: {exc}") from exc
        log_api_call(
            self.source,
            "success",
            stage,
            call_type=path,
            latency_ms=int((time.monotonic() - started) * 1000),
        )
        return data

    async def search_results(self, keyword: str) -> SerpData:
        data = await self._post(
            "serp/google/organic/live/regular",
            [
                {
                    "language_code": self.config.language_code,
                    "location_code": self.config.location_code,
                    "keyword": keyword,
                }
            ],
            stage="strategy",
        )
        serp = parse_serp_response(data)
        if not serp.organic:
            logger.warning(f"No SERP results found for keyword: {keyword}")
        logger.info(
            f"Fetched SERP data for {keyword!r}: {len(serp.organic)} organic, "
            f"{len(serp.people_also_ask)} PAA, {len(serp.related_searches)} related"
        )
        return serp

    async def keyword_suggestions(self, seed: str) -> List[KeywordSuggestion]:
        data = await self._post(
            "keywords_data/google_ads/keywords_for_keywords/live",
            [
                {
                    "location_code": self.config.location_code,
                    "language_code": self.config.language_code,
                    "keywords": [seed],
                    "limit": self.config.suggestion_limit,
                }
            ],
            stage="keywords",
        )
        suggestions = parse_keyword_suggestions(data, self.config.top_suggestions)
        logger.info(f"Found {len(suggestions)} keyword suggestions for: {seed}")
        return suggestions

    async def keyword_difficulty(self, keyword: str) -> Tuple[int, DifficultyLevel]:
        """Difficulty for one keyword; any failure degrades to (0, LOW)."""
        try:
            data = await self._post(
                "dataforseo_labs/google/keywords_for_keywords/live",
                [
                    {
                        "location_code": self.config.location_code,
                        "language_code": self.config.language_code,
                        "keywords": [keyword],
                        "limit": 1,
                    }
                ],
                stage="keywords",
            )
        except ExternalServiceError as exc:
            logger.error(f"Error fetching keyword difficulty for {keyword!r}: {exc}")
            return 0, DifficultyLevel.LOW
        results = _first_result(data)
        if results is None:
            return 0, DifficultyLevel.LOW
        difficulty = int(_number(results[0].get("keyword_difficulty")))
        return difficulty, map_difficulty_level(difficulty)
