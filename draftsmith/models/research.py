"""Research provider records: SERP results, PAA questions, keyword suggestions."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from draftsmith.models.enums import ContentFormat, DifficultyLevel


class SerpResult(BaseModel):
    title: str = ""
    url: str = ""
    snippet: str = ""
    rank: int = 0


class PeopleAlsoAsk(BaseModel):
    question: str = ""
    snippet: str = ""
    title: str = ""
    url: str = ""


class SerpData(BaseModel):
    organic: List[SerpResult] = Field(default_factory=list)
    people_also_ask: List[PeopleAlsoAsk] = Field(default_factory=list)
    related_searches: List[str] = Field(default_factory=list)


class CompetitorSnapshot(BaseModel):
    """One top-ranking competitor as presented to the gap analysis."""

    title: str
    snippet: str
    url: str
    headings: List[str] = Field(default_factory=list)


class GapAnalysis(BaseModel):
    target_format: ContentFormat
    information_gain_angle: str = Field(min_length=1)
    competitor_headings: List[str] = Field(default_factory=list)
    recommended_approach: str = ""


class KeywordSuggestion(BaseModel):
    """A provider suggestion; id is set once the keyword is stored."""

    id: Optional[str] = None
    keyword: str
    difficulty: int = Field(ge=0, le=100, default=0)
    difficulty_level: DifficultyLevel = DifficultyLevel.LOW
    search_volume: int = 0
    cpc: float = 0.0
    competition: Optional[str] = None
    kcv: float = 0.0
    metadata: Dict[str, Any] = Field(default_factory=dict)
