"""Strategy stage: SERP research, competitor headings and gap analysis."""

from __future__ import annotations

import logging

import aiosqlite

from draftsmith.db.repositories import DraftRepository
from draftsmith.jobs.queue import JobQueue
from draftsmith.llm.article_writer import ArticleWriter
from draftsmith.models import (
    CompetitorSnapshot,
    DraftStatus,
    JobRecord,
    OutlineJobData,
    SettingsConfig,
    Stage,
    Strategy,
    StrategyJobData,
)
from draftsmith.pipeline.stages import enqueue_stage, enter_stage, parse_payload, stale_if_moved_on
from draftsmith.research.base import HeadingSource, ResearchProvider
from draftsmith.utils.structured_log import log_transition

logger = logging.getLogger(__name__)


class StrategyHandler:
    """Moves a draft RESEARCHING -> ANALYZING -> OUTLINE_PENDING and enqueues its outline job.

    Any failure before the strategy is stored leaves the draft in ANALYZING
    and propagates to the queue for retry. A retry that finds the strategy
    stored but no outline only re-queues the outline job.
    """

    stage = Stage.STRATEGY

    def __init__(
        self,
        db: aiosqlite.Connection,
        queue: JobQueue,
        research: ResearchProvider,
        scraper: HeadingSource,
        writer: ArticleWriter,
        settings: SettingsConfig,
    ):
        self.drafts = DraftRepository(db)
        self.queue = queue
        self.research = research
        self.scraper = scraper
        self.writer = writer
        self.settings = settings

    async def _enqueue_outline(self, draft_id: str, keyword: str, strategy: Strategy) -> None:
        await enqueue_stage(
            self.queue,
            Stage.OUTLINE,
            OutlineJobData(draft_id=draft_id, keyword=keyword, strategy=strategy),
        )

    async def __call__(self, job: JobRecord) -> Strategy:
        data = parse_payload(job, StrategyJobData)
        draft_id, keyword = data.draft_id, data.keyword
        logger.info(f"Processing strategy analysis for draft {draft_id}, keyword: {keyword}")

        draft = await self.drafts.require(draft_id, with_sections=False)
        if (
            draft.status == DraftStatus.OUTLINE_PENDING
            and draft.strategy is not None
            and draft.outline is None
        ):
            # an earlier attempt stored the strategy but never queued the outline
            logger.warning(f"Strategy for draft {draft_id} already stored; re-queuing outline job")
            await self._enqueue_outline(draft_id, keyword, draft.strategy)
            await self.queue.update_progress(job, 100)
            return draft.strategy

        await enter_stage(self.drafts, draft_id, DraftStatus.ANALYZING)
        await self.queue.update_progress(job, 10)

        logger.info(f"Fetching SERP data for keyword: {keyword}")
        serp = await self.research.search_results(keyword)
        await self.queue.update_progress(job, 30)

        top = serp.organic[: self.settings.research.competitor_count]
        urls = [result.url for result in top if result.url]
        logger.info(f"Scraping {len(urls)} competitor URLs")
        heading_map = await self.scraper.scrape_headings(urls)
        await self.queue.update_progress(job, 60)

        competitors = [
            CompetitorSnapshot(
                title=result.title,
                snippet=result.snippet,
                url=result.url,
                headings=heading_map.get(result.url, []),
            )
            for result in top
        ]
        flattened = [heading for url in urls for heading in heading_map.get(url, [])]
        paa_questions = [q.question for q in serp.people_also_ask if q.question]

        logger.info(f"Analyzing content gaps for {keyword}")
        await self.queue.update_progress(job, 70)
        gap = await self.writer.analyze_gap(keyword, competitors, paa_questions)
        await self.queue.update_progress(job, 85)

        strategy = Strategy(
            target_format=gap.target_format,
            information_gain_angle=gap.information_gain_angle,
            competitor_headings=flattened,
            recommended_approach=gap.recommended_approach,
            serp_data=serp,
        )
        async with stale_if_moved_on(draft_id, DraftStatus.ANALYZING):
            previous = await self.drafts.save_strategy(draft_id, strategy, [DraftStatus.ANALYZING])
        log_transition(draft_id, previous.value, DraftStatus.OUTLINE_PENDING.value, actor="worker")
        await self._enqueue_outline(draft_id, keyword, strategy)
        await self.queue.update_progress(job, 100)

        logger.info(f"Strategy analysis completed for draft {draft_id}")
        return strategy
