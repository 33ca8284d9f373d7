"""On-page SEO checks for a compiled markdown document."""

from __future__ import annotations

import re

import markdown
from bs4 import BeautifulSoup

from draftsmith.models import SeoScore


def markdown_to_html(document: str) -> str:
    return markdown.markdown(document, extensions=["tables", "fenced_code"])


def score_content(document: str, keyword: str) -> SeoScore:
    if not document or not document.strip() or not keyword or not keyword.strip():
        return SeoScore()

    needle = keyword.strip().lower()
    soup = BeautifulSoup(markdown_to_html(document), "html.parser")

    h1 = soup.find("h1")
    first_p = soup.find("p")
    text = soup.get_text(" ")
    words = text.split()
    word_count = len(words)
    occurrences = len(re.findall(re.escape(needle), text.lower()))
    density = (occurrences / word_count) * 100 if word_count else 0.0

    return SeoScore(
        keyword_in_h1=bool(h1 and needle in h1.get_text().lower()),
        keyword_in_first_paragraph=bool(first_p and needle in first_p.get_text().lower()),
        keyword_in_h2=any(needle in h2.get_text().lower() for h2 in soup.find_all("h2")),
        entity_density=round(density, 2),
        word_count=word_count,
    )
