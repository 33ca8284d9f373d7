"""Scripted stand-ins for the research provider, heading scraper and LLM backend."""

from __future__ import annotations

import json
import re
from typing import Dict, List, Optional, Sequence, Tuple

from draftsmith.db.repositories import KeywordRepository
from draftsmith.llm import prompts
from draftsmith.models import (
    DifficultyLevel,
    Keyword,
    KeywordSuggestion,
    PeopleAlsoAsk,
    SerpData,
    SerpResult,
)

KEYWORD = "best hiking boots"

_KINDS = {
    prompts.STRATEGIST_SYSTEM: "gap",
    prompts.OUTLINER_SYSTEM: "outline",
    prompts.INTRODUCTION_SYSTEM: "introduction",
    prompts.SECTION_SYSTEM: "section",
    prompts.CONCLUSION_SYSTEM: "conclusion",
}

_SECTION_TITLE_RE = re.compile(r"^Section Title: (.*)$", re.MULTILINE)


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLLM:
    """Scripted LLMBackend. The call kind is recognised from the system prompt."""

    def __init__(self, keyword: str = KEYWORD, section_count: int = 3, target_format: str = "Listicle"):
        self.keyword = keyword
        self.section_count = section_count
        self.target_format = target_format
        self.calls: List[str] = []
        self.prompts: List[str] = []
        self._failures: Dict[Tuple[str, int], Exception] = {}

    def fail_on(self, kind: str, call_number: int = 1, exc: Optional[Exception] = None) -> None:
        """Raise once on the ``call_number``-th call of ``kind``."""
        self._failures[(kind, call_number)] = exc or RuntimeError(f"{kind} call {call_number} failed")

    def count(self, kind: str) -> int:
        return self.calls.count(kind)

    async def complete(
        self,
        prompt: str,
        *,
        model: str,
        temperature: float,
        json_schema: Optional[dict] = None,
        system_prompt: Optional[str] = None,
    ) -> str:
        kind = _KINDS[system_prompt]
        self.calls.append(kind)
        self.prompts.append(prompt)
        exc = self._failures.pop((kind, self.count(kind)), None)
        if exc is not None:
            raise exc
        return getattr(self, f"_{kind}")(prompt)

    def _gap(self, prompt: str) -> str:
        return json.dumps(
            {
                "target_format": self.target_format,
                "information_gain_angle": "Field-tested durability data from long trails",
                "competitor_headings": ["Top picks", "How to choose"],
                "recommended_approach": "Lead with test results, then buying advice.",
            }
        )

    def _outline(self, prompt: str) -> str:
        outline = {
            "title": f"The Complete Guide to {self.keyword.title()}",
            "sections": [
                {
                    "heading": f"Section {i}: {self.keyword}",
                    "intent": f"Cover part {i}",
                    "keywords_to_include": [self.keyword, f"term {i}"],
                }
                for i in range(1, self.section_count + 1)
            ],
        }
        return "```json\n" + json.dumps(outline) + "\n```"

    def _introduction(self, prompt: str) -> str:
        return f"Looking for {self.keyword}? This guide compares the options that last."

    def _section(self, prompt: str) -> str:
        match = _SECTION_TITLE_RE.search(prompt)
        heading = match.group(1) if match else "Untitled"
        return f"## {heading}\n\nPractical details about {heading.lower()}."

    def _conclusion(self, prompt: str) -> str:
        return f"## Wrapping up\n\nPick the {self.keyword} that fit your trail."


class FakeResearch:
    """ResearchProvider returning a fixed SERP snapshot."""

    def __init__(self, organic_count: int = 3, suggestions: Optional[List[KeywordSuggestion]] = None):
        self.serp = SerpData(
            organic=[
                SerpResult(
                    title=f"Result {i}",
                    url=f"https://site{i}.example/boots",
                    snippet=f"Snippet {i}",
                    rank=i,
                )
                for i in range(1, organic_count + 1)
            ],
            people_also_ask=[
                PeopleAlsoAsk(question="Are expensive hiking boots worth it?"),
                PeopleAlsoAsk(question="How long do hiking boots last?"),
            ],
            related_searches=["hiking boots for women", "waterproof hiking boots"],
        )
        if suggestions is None:
            suggestions = [
                KeywordSuggestion(
                    keyword=KEYWORD,
                    difficulty=45,
                    difficulty_level=DifficultyLevel.MEDIUM,
                    search_volume=12000,
                    cpc=1.5,
                    competition="MEDIUM",
                    kcv=12000 * 1.5 / 46,
                ),
                KeywordSuggestion(
                    keyword="hiking boots for wide feet",
                    difficulty=20,
                    difficulty_level=DifficultyLevel.LOW,
                    search_volume=900,
                    cpc=0.8,
                    competition="LOW",
                    kcv=900 * 0.8 / 21,
                ),
            ]
        self.suggestions = suggestions
        self.searched: List[str] = []

    async def search_results(self, keyword: str) -> SerpData:
        self.searched.append(keyword)
        return self.serp

    async def keyword_suggestions(self, seed: str) -> List[KeywordSuggestion]:
        return list(self.suggestions)


class FakeScraper:
    """HeadingSource; URLs in ``failing`` come back with no headings, as a failed scrape does."""

    def __init__(self, failing: Sequence[str] = ()):
        self.failing = set(failing)
        self.requested: List[str] = []

    async def scrape_headings(self, urls: Sequence[str]) -> Dict[str, List[str]]:
        self.requested.extend(urls)
        return {
            url: [] if url in self.failing else [f"{url} heading A", f"{url} heading B"]
            for url in urls
        }


async def store_keyword(db, text: str = KEYWORD) -> Keyword:
    return await KeywordRepository(db).create(
        Keyword(keyword=text, difficulty=45, difficulty_level=DifficultyLevel.MEDIUM, search_volume=12000)
    )
