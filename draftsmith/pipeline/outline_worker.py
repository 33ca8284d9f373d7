"""Outline stage: one structured LLM call, then wait for human approval."""

from __future__ import annotations

import logging

import aiosqlite

from draftsmith.db.repositories import DraftRepository
from draftsmith.errors import InvalidTransitionError, StaleJobError
from draftsmith.jobs.queue import JobQueue
from draftsmith.llm.article_writer import ArticleWriter
from draftsmith.models import DraftStatus, JobRecord, Outline, OutlineJobData, Stage
from draftsmith.pipeline.stages import parse_payload
from draftsmith.pipeline.state_machine import is_past

logger = logging.getLogger(__name__)


class OutlineHandler:
    stage = Stage.OUTLINE

    def __init__(self, db: aiosqlite.Connection, queue: JobQueue, writer: ArticleWriter):
        self.drafts = DraftRepository(db)
        self.queue = queue
        self.writer = writer

    async def __call__(self, job: JobRecord) -> Outline:
        data = parse_payload(job, OutlineJobData)
        draft_id = data.draft_id
        logger.info(f"Processing outline generation for draft {draft_id}")

        draft = await self.drafts.require(draft_id, with_sections=False)
        if draft.status != DraftStatus.OUTLINE_PENDING:
            if is_past(draft.status, [DraftStatus.OUTLINE_PENDING]):
                raise StaleJobError(f"Draft {draft_id} is already {draft.status.value}")
            raise InvalidTransitionError(
                draft_id, draft.status.value, DraftStatus.OUTLINE_PENDING.value
            )
        if draft.outline is not None:
            raise StaleJobError(f"Draft {draft_id} already has an outline")

        strategy = data.strategy
        paa_questions = [q.question for q in strategy.serp_data.people_also_ask if q.question]
        outline = await self.writer.generate_outline(
            data.keyword,
            strategy.target_format.value,
            strategy.information_gain_angle,
            paa_questions,
        )
        await self.queue.update_progress(job, 90)

        if not await self.drafts.save_generated_outline(draft_id, outline):
            raise StaleJobError(f"Draft {draft_id} received an outline while this job ran")
        await self.queue.update_progress(job, 100)

        logger.info(f"Outline generated for draft {draft_id} ({len(outline.sections)} sections)")
        return outline
