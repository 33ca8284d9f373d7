"""Draft operations exposed to the HTTP and CLI surfaces."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Union

import aiosqlite

from draftsmith.db.repositories import DraftRepository, KeywordRepository
from draftsmith.errors import NotFoundError, PreconditionError
from draftsmith.jobs.queue import JobQueue
from draftsmith.models import (
    ContentJobData,
    Draft,
    DraftExport,
    DraftStatus,
    JobRecord,
    Outline,
    Stage,
    StrategyJobData,
)
from draftsmith.pipeline.stages import enqueue_stage
from draftsmith.pipeline.state_machine import is_past
from draftsmith.utils.structured_log import log_transition

logger = logging.getLogger(__name__)


class DraftService:
    def __init__(self, db: aiosqlite.Connection, queue: JobQueue):
        self.drafts = DraftRepository(db)
        self.keywords = KeywordRepository(db)
        self.queue = queue

    async def create_draft(self, keyword_id: str) -> Draft:
        """Insert a RESEARCHING draft titled after its keyword and enqueue the strategy job."""
        keyword = await self.keywords.get(keyword_id)
        if keyword is None:
            raise NotFoundError(f"Keyword {keyword_id} not found")

        draft = Draft(
            title=keyword.keyword,
            primary_keyword_id=keyword.id,
            status=DraftStatus.RESEARCHING,
        )
        await self.drafts.insert(draft)
        draft.primary_keyword = keyword
        await enqueue_stage(
            self.queue,
            Stage.STRATEGY,
            StrategyJobData(draft_id=draft.id, keyword=keyword.keyword),
        )
        logger.info(f"Created draft {draft.id} for keyword: {keyword.keyword}")
        return draft

    async def get_draft(self, draft_id: str) -> Draft:
        return await self.drafts.require(draft_id)

    async def list_drafts(self) -> List[Draft]:
        """All drafts, newest first."""
        return await self.drafts.list_all()

    async def update_outline(self, draft_id: str, outline: Union[Outline, Dict[str, Any]]) -> Draft:
        """Replace the outline. Refused once the outline has been approved."""
        validated = outline if isinstance(outline, Outline) else Outline.model_validate(outline)
        draft = await self.drafts.require(draft_id, with_sections=False)
        if is_past(draft.status, [DraftStatus.OUTLINE_PENDING]):
            raise PreconditionError(
                f"Draft {draft_id} is {draft.status.value}; the outline can no longer change"
            )
        await self.drafts.save_outline(draft_id, validated)
        return await self.drafts.require(draft_id)

    async def approve_outline(self, draft_id: str) -> Draft:
        """Approve the outline and queue content generation.

        Approving an already-approved draft re-queues its content job; the
        dedup key returns the existing job when one is still in flight.
        """
        draft = await self.drafts.require(draft_id, with_sections=False)
        if draft.outline is None:
            raise PreconditionError(f"Draft {draft_id} has no outline to approve")
        if draft.strategy is None:
            raise PreconditionError(f"Draft {draft_id} has no strategy")

        if draft.status == DraftStatus.OUTLINE_APPROVED:
            logger.warning(f"Draft {draft_id} already approved; re-queuing content generation")
        else:
            previous = await self.drafts.transition_status(
                draft_id, [DraftStatus.OUTLINE_PENDING], DraftStatus.OUTLINE_APPROVED
            )
            log_transition(draft_id, previous.value, DraftStatus.OUTLINE_APPROVED.value, actor="user")
        await enqueue_stage(
            self.queue,
            Stage.CONTENT,
            ContentJobData(draft_id=draft_id, outline=draft.outline, strategy=draft.strategy),
        )
        logger.info(f"Outline approved for draft {draft_id}; content generation queued")
        return await self.drafts.require(draft_id)

    async def export_draft(self, draft_id: str) -> DraftExport:
        draft = await self.drafts.require(draft_id, with_sections=False)
        if not draft.content:
            raise PreconditionError(f"Draft {draft_id} content not available")
        return DraftExport(id=draft.id, title=draft.title, content=draft.content)

    async def list_jobs(self, draft_id: str) -> List[JobRecord]:
        await self.drafts.require(draft_id, with_sections=False)
        return await self.queue.list_for_draft(draft_id)
