"""Shared plumbing for the three stage handlers."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Type, TypeVar

from pydantic import BaseModel, ValidationError

from draftsmith.db.repositories import DraftRepository
from draftsmith.errors import InvalidTransitionError, PayloadValidationError, StaleJobError
from draftsmith.jobs.queue import JobQueue
from draftsmith.models import DraftStatus, JobRecord, Stage
from draftsmith.pipeline.state_machine import is_past, sources_for
from draftsmith.utils.structured_log import log_transition

P = TypeVar("P", bound=BaseModel)

JOB_NAMES: Dict[Stage, str] = {
    Stage.STRATEGY: "analyze-strategy",
    Stage.OUTLINE: "generate-outline",
    Stage.CONTENT: "generate-content",
}


def dedup_key(draft_id: str, stage: Stage) -> str:
    """At most one waiting or active job per (draft, stage)."""
    return f"{draft_id}:{Stage(stage).value}"


async def enqueue_stage(queue: JobQueue, stage: Stage, payload: BaseModel) -> JobRecord:
    data = payload.model_dump(mode="json")
    return await queue.add(
        Stage(stage).value,
        JOB_NAMES[Stage(stage)],
        data,
        dedup_key=dedup_key(data["draft_id"], stage),
    )


def parse_payload(job: JobRecord, model_cls: Type[P]) -> P:
    try:
        return model_cls.model_validate(job.payload)
    except ValidationError as exc:
        raise PayloadValidationError(
            f"Job {job.id} payload is not a valid {model_cls.__name__}: {exc.error_count()} errors"
        ) from exc


@asynccontextmanager
async def stale_if_moved_on(draft_id: str, *statuses: DraftStatus) -> AsyncIterator[None]:
    """Turn a lost compare-and-swap into StaleJobError when the draft is already past ``statuses``."""
    try:
        yield
    except InvalidTransitionError as exc:
        if is_past(DraftStatus(exc.current), statuses):
            raise StaleJobError(
                f"Draft {draft_id} is already {exc.current}; nothing left for this job"
            ) from exc
        raise


async def enter_stage(drafts: DraftRepository, draft_id: str, target: DraftStatus) -> DraftStatus:
    """Claim the draft for a stage by moving it to ``target`` (retries re-enter from ``target``)."""
    sources = sources_for(target)
    async with stale_if_moved_on(draft_id, *sources):
        previous = await drafts.transition_status(draft_id, sources, target)
    log_transition(draft_id, previous.value, DraftStatus(target).value, actor="worker")
    return previous
