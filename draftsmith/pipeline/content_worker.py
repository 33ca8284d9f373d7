"""Content stage: introduction, body sections and conclusion, strictly in order.

Sections already stored for the draft are reused rather than regenerated,
so a retried job resumes where the failed attempt stopped.
"""

from __future__ import annotations

import logging
from typing import Dict

import aiosqlite

from draftsmith.db.repositories import DraftRepository
from draftsmith.errors import NotFoundError
from draftsmith.jobs.queue import JobQueue
from draftsmith.llm.article_writer import ArticleWriter
from draftsmith.models import (
    ContentJobData,
    DraftStatus,
    JobRecord,
    Section,
    SectionType,
    SeoScore,
    Stage,
)
from draftsmith.pipeline.assembler import assemble_document
from draftsmith.pipeline.stages import enter_stage, parse_payload, stale_if_moved_on
from draftsmith.seo.scoring import score_content
from draftsmith.utils.structured_log import log_transition

logger = logging.getLogger(__name__)

PREVIOUS_EXCERPT_CHARS = 200
SUMMARY_CHARS = 1000
CONCLUSION_HEADING = "Conclusion"


class ContentHandler:
    stage = Stage.CONTENT

    def __init__(self, db: aiosqlite.Connection, queue: JobQueue, writer: ArticleWriter):
        self.drafts = DraftRepository(db)
        self.queue = queue
        self.writer = writer

    async def _store(self, existing: Dict[int, Section], section: Section) -> Section:
        if not await self.drafts.append_section(section):
            # another attempt stored this order first; keep its text for continuity
            stored = {s.order: s for s in await self.drafts.list_sections(section.draft_id)}
            section = stored[section.order]
        existing[section.order] = section
        return section

    async def __call__(self, job: JobRecord) -> SeoScore:
        data = parse_payload(job, ContentJobData)
        draft_id, outline = data.draft_id, data.outline
        angle = data.strategy.information_gain_angle
        logger.info(f"Processing content generation for draft {draft_id}")

        await enter_stage(self.drafts, draft_id, DraftStatus.WRITING)
        draft = await self.drafts.require(draft_id)
        keyword = draft.keyword_text
        if not keyword:
            raise NotFoundError(f"Primary keyword for draft {draft_id} not found")

        existing: Dict[int, Section] = {s.order: s for s in draft.sections}
        if existing:
            logger.info(f"Resuming draft {draft_id} with sections {sorted(existing)} already stored")
        total = len(outline.sections) + 2

        if 0 in existing:
            intro = existing[0]
        else:
            logger.info("Generating introduction...")
            body = await self.writer.generate_introduction(keyword, outline.title, angle)
            intro = await self._store(
                existing,
                Section(
                    draft_id=draft_id,
                    heading=outline.title,
                    content=body,
                    order=0,
                    type=SectionType.INTRODUCTION,
                ),
            )
        await self.queue.update_progress(job, int(90 * 1 / total))

        previous_excerpt = intro.content[:PREVIOUS_EXCERPT_CHARS]
        for order, item in enumerate(outline.sections, start=1):
            if order in existing:
                section = existing[order]
            else:
                logger.info(f"Generating section {order}/{len(outline.sections)}: {item.heading}")
                body = await self.writer.generate_section(
                    item.heading,
                    item.intent,
                    item.keywords_to_include,
                    previous_excerpt,
                    angle,
                    outline.title,
                )
                section = await self._store(
                    existing,
                    Section(
                        draft_id=draft_id,
                        heading=item.heading,
                        content=body,
                        order=order,
                        type=SectionType.SECTION,
                    ),
                )
            previous_excerpt = section.content[:PREVIOUS_EXCERPT_CHARS]
            await self.queue.update_progress(job, int(90 * (order + 1) / total))

        conclusion_order = len(outline.sections) + 1
        if conclusion_order not in existing:
            logger.info("Generating conclusion...")
            so_far = "\n\n".join(existing[o].content for o in sorted(existing))
            body = await self.writer.generate_conclusion(
                outline.title, keyword, so_far[:SUMMARY_CHARS]
            )
            await self._store(
                existing,
                Section(
                    draft_id=draft_id,
                    heading=CONCLUSION_HEADING,
                    content=body,
                    order=conclusion_order,
                    type=SectionType.CONCLUSION,
                ),
            )
        await self.queue.update_progress(job, 90)

        document = assemble_document(await self.drafts.list_sections(draft_id))
        logger.info("Calculating SEO score...")
        score = score_content(document, keyword)
        await self.queue.update_progress(job, 95)

        async with stale_if_moved_on(draft_id, DraftStatus.WRITING):
            previous = await self.drafts.save_content(draft_id, document, score)
        log_transition(draft_id, previous.value, DraftStatus.COMPLETED.value, actor="worker")
        await self.queue.update_progress(job, 100)

        logger.info(f"Content generation completed for draft {draft_id}")
        return score
