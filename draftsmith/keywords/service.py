"""Keyword suggestion and storage."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import aiosqlite

from draftsmith.db.repositories import KeywordRepository
from draftsmith.errors import NotFoundError
from draftsmith.models import DifficultyLevel, Keyword, KeywordSuggestion
from draftsmith.research.base import ResearchProvider

logger = logging.getLogger(__name__)


class KeywordService:
    def __init__(self, db: aiosqlite.Connection, research: ResearchProvider):
        self.repository = KeywordRepository(db)
        self.research = research

    async def suggest_keywords(self, seed: str) -> List[KeywordSuggestion]:
        """Fetch suggestions for ``seed`` and store the ones not seen before.

        Every returned suggestion carries the id of its stored keyword.
        """
        if not seed or not seed.strip():
            logger.warning("Empty seed keyword provided")
            return []

        logger.info(f"Fetching keyword suggestions for: {seed}")
        suggestions = await self.research.keyword_suggestions(seed)
        saved: List[KeywordSuggestion] = []
        for suggestion in suggestions:
            keyword = await self.repository.find_by_text(suggestion.keyword)
            if keyword is None:
                keyword = await self.create_keyword(
                    suggestion.keyword,
                    difficulty=suggestion.difficulty,
                    difficulty_level=suggestion.difficulty_level,
                    search_volume=suggestion.search_volume,
                    kcv=suggestion.kcv,
                    metadata=suggestion.metadata,
                )
            saved.append(suggestion.model_copy(update={"id": keyword.id}))
        logger.info(f"Saved {len(saved)} keywords")
        return saved

    async def create_keyword(
        self,
        keyword: str,
        difficulty: Optional[int] = None,
        difficulty_level: Optional[DifficultyLevel] = None,
        search_volume: Optional[int] = None,
        kcv: Optional[float] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Keyword:
        record = Keyword(
            keyword=keyword,
            difficulty=difficulty,
            difficulty_level=difficulty_level,
            search_volume=search_volume,
            kcv=kcv,
            metadata=metadata or {},
        )
        return await self.repository.create(record)

    async def get_keyword(self, keyword_id: str) -> Keyword:
        keyword = await self.repository.get(keyword_id)
        if keyword is None:
            raise NotFoundError(f"Keyword {keyword_id} not found")
        return keyword

    async def find_by_text(self, text: str) -> Optional[Keyword]:
        return await self.repository.find_by_text(text)
