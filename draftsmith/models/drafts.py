"""Draft, section and keyword records."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from draftsmith.models.enums import ContentFormat, DifficultyLevel, DraftStatus, SectionType
from draftsmith.models.research import SerpData


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Keyword(BaseModel):
    id: str = Field(default_factory=_new_id)
    keyword: str = Field(min_length=1)
    difficulty: Optional[int] = Field(default=None, ge=0, le=100)
    difficulty_level: Optional[DifficultyLevel] = None
    search_volume: Optional[int] = None
    kcv: Optional[float] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)


class Strategy(BaseModel):
    target_format: ContentFormat
    information_gain_angle: str
    competitor_headings: List[str] = Field(default_factory=list)
    recommended_approach: str = ""
    serp_data: SerpData = Field(default_factory=SerpData)


class OutlineSection(BaseModel):
    heading: str = Field(min_length=1)
    intent: str = ""
    keywords_to_include: List[str] = Field(default_factory=list)


class Outline(BaseModel):
    title: str = Field(min_length=1)
    sections: List[OutlineSection] = Field(min_length=1)


class SeoScore(BaseModel):
    keyword_in_h1: bool = False
    keyword_in_first_paragraph: bool = False
    keyword_in_h2: bool = False
    entity_density: float = 0.0
    word_count: int = 0


class Section(BaseModel):
    """One unit of generated prose. order 0 is the introduction, N+1 the conclusion."""

    id: str = Field(default_factory=_new_id)
    draft_id: str
    heading: str
    content: str
    order: int = Field(ge=0)
    type: SectionType
    created_at: datetime = Field(default_factory=_utcnow)


class Draft(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str
    content: Optional[str] = None
    status: DraftStatus = DraftStatus.RESEARCHING
    primary_keyword_id: Optional[str] = None
    primary_keyword: Optional[Keyword] = None
    strategy: Optional[Strategy] = None
    outline: Optional[Outline] = None
    seo_score: Optional[SeoScore] = None
    sections: List[Section] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def keyword_text(self) -> str:
        return self.primary_keyword.keyword if self.primary_keyword else ""


class DraftExport(BaseModel):
    id: str
    title: str
    content: str
    format: Literal["markdown"] = "markdown"
    exported_at: datetime = Field(default_factory=_utcnow)
