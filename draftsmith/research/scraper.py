"""Competitor heading scraper.

Fetches static HTML and pulls h2/h3 text in document order. A failing URL
yields an empty list; it never aborts the batch.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, List, Optional, Sequence

import aiohttp
from bs4 import BeautifulSoup

from draftsmith.models import ScraperConfig
from draftsmith.utils.ssl_context import research_session
from draftsmith.utils.structured_log import log_api_call

logger = logging.getLogger(__name__)


def extract_headings(html: str) -> List[str]:
    soup = BeautifulSoup(html, "html.parser")
    headings: List[str] = []
    for element in soup.find_all(["h2", "h3"]):
        text = element.get_text(" ", strip=True)
        if text:
            headings.append(text)
    return headings


class HeadingScraper:
    def __init__(self, config: Optional[ScraperConfig] = None):
        self.config = config or ScraperConfig()

    async def _fetch(self, session: aiohttp.ClientSession, url: str) -> str:
        async with session.get(url, allow_redirects=True) as response:
            if response.status != 200:
                raise aiohttp.ClientResponseError(
                    response.request_info,
                    response.history,
                    status=response.status,
                    message=f"HTTP {response.status}",
                )
            return await response.text(errors="replace")

    async def scrape_one(self, session: aiohttp.ClientSession, url: str) -> List[str]:
        started = time.monotonic()
        last_error: Optional[BaseException] = None
        for attempt in range(self.config.max_retries + 1):
            try:
                html = await self._fetch(session, url)
                headings = extract_headings(html)
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
                last_error = exc
                logger.debug(f"Heading fetch attempt {attempt + 1} failed for {url}: {exc}")
                continue
            logger.info(f"Scraped {len(headings)} headings from {url}")
            log_api_call(
                "scraper",
                "success",
                "strategy",
                latency_ms=int((time.monotonic() - started) * 1000),
                records=len(headings),
            )
            return headings
        logger.warning(f"Failed to scrape headings from {url}: {last_error}")
        log_api_call("scraper", "error", "strategy", error=f"{url}: {last_error}")
        return []

    async def scrape_headings(self, urls: Sequence[str]) -> Dict[str, List[str]]:
        """Scrape every URL concurrently. The result maps each requested URL."""
        if not urls:
            return {}
        async with research_session(
            self.config.timeout_seconds,
            limit=len(urls),
            headers={"User-Agent": self.config.user_agent},
        ) as session:
            results = await asyncio.gather(
                *(self.scrape_one(session, url) for url in urls), return_exceptions=True
            )
        headings: Dict[str, List[str]] = {}
        for url, result in zip(urls, results):
            if isinstance(result, Exception):
                logger.warning(f"Heading scrape for {url} raised {type(result).__name__}: {result}")
                log_api_call("scraper", "error", "strategy", error=f"{url}: {result}")
                headings[url] = []
            elif isinstance(result, BaseException):
                raise result
            else:
                headings[url] = result
        return headings
