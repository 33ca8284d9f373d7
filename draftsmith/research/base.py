"""Collaborator protocols for research and heading scraping."""

from __future__ import annotations

from typing import Dict, List, Protocol, Sequence

from draftsmith.models import KeywordSuggestion, SerpData


class ResearchProvider(Protocol):
    async def search_results(self, keyword: str) -> SerpData:
        """Organic results, PAA questions and related searches. Empty results are not an error."""
        ...

    async def keyword_suggestions(self, seed: str) -> List[KeywordSuggestion]:
        ...


class HeadingSource(Protocol):
    async def scrape_headings(self, urls: Sequence[str]) -> Dict[str, List[str]]:
        """Map every requested URL to its h2/h3 headings; failures map to []."""
        ...
