"""
End-to-end pipeline runs: stage workers polling a real SQLite file, with
scripted research, scraping and LLM collaborators.
"""

from __future__ import annotations

import asyncio

import pytest

from draftsmith.errors import InvalidTransitionError
from draftsmith.models import ContentJobData, DraftStatus, JobStatus, Stage
from draftsmith.pipeline.runtime import PipelineRuntime
from draftsmith.pipeline.stages import enqueue_stage
from tests.fixtures.fakes import KEYWORD, FakeLLM, FakeResearch, FakeScraper

pytestmark = pytest.mark.integration


async def _wait_for_status(
    runtime: PipelineRuntime, draft_id: str, status: DraftStatus, timeout: float = 5.0
):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        draft = await runtime.drafts.get_draft(draft_id)
        if draft.status == status:
            return draft
        await asyncio.sleep(0.02)
    raise AssertionError(f"draft {draft_id} never reached {status.value}")


async def _wait_for_idle(runtime: PipelineRuntime, timeout: float = 5.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        counts = [await runtime.queue.counts(stage.value) for stage in Stage]
        if all(c["waiting"] == 0 and c["active"] == 0 for c in counts):
            return
        await asyncio.sleep(0.02)
    raise AssertionError("queues never drained")


@pytest.mark.asyncio
async def test_keyword_to_exported_article(settings) -> None:
    llm = FakeLLM(section_count=4)
    scraper = FakeScraper(failing=["https://site3.example/boots"])
    async with PipelineRuntime(settings, research=FakeResearch(), scraper=scraper, llm=llm) as runtime:
        runtime.run_workers()

        suggestions = await runtime.keywords.suggest_keywords("hiking boots")
        draft = await runtime.drafts.create_draft(suggestions[0].id)

        await _wait_for_status(runtime, draft.id, DraftStatus.OUTLINE_PENDING)
        await _wait_for_idle(runtime)
        pending = await runtime.drafts.get_draft(draft.id)
        assert pending.strategy is not None
        assert len(pending.outline.sections) == 4
        # nothing is written until the outline is approved
        await asyncio.sleep(0.1)
        assert llm.count("introduction") == 0
        assert (await runtime.drafts.get_draft(draft.id)).status == DraftStatus.OUTLINE_PENDING

        await runtime.drafts.approve_outline(draft.id)
        completed = await _wait_for_status(runtime, draft.id, DraftStatus.COMPLETED)
        await _wait_for_idle(runtime)

        assert [s.order for s in completed.sections] == list(range(6))
        exported = await runtime.drafts.export_draft(draft.id)
        assert exported.content.startswith(f"# The Complete Guide to {KEYWORD.title()}")
        assert completed.seo_score is not None
        assert completed.seo_score.keyword_in_h2

        jobs = await runtime.drafts.list_jobs(draft.id)
        assert [(j.queue, j.status) for j in jobs] == [
            ("strategy", JobStatus.COMPLETED),
            ("outline", JobStatus.COMPLETED),
            ("content", JobStatus.COMPLETED),
        ]
        assert all(j.progress == 100 for j in jobs)


@pytest.mark.asyncio
async def test_transient_failures_are_retried_by_workers(settings) -> None:
    llm = FakeLLM()
    llm.fail_on("gap")
    llm.fail_on("section", 2)
    async with PipelineRuntime(settings, research=FakeResearch(), scraper=FakeScraper(), llm=llm) as runtime:
        runtime.run_workers()
        keyword = await runtime.keywords.create_keyword(KEYWORD)
        draft = await runtime.drafts.create_draft(keyword.id)

        await _wait_for_status(runtime, draft.id, DraftStatus.OUTLINE_PENDING)
        await _wait_for_idle(runtime)
        await runtime.drafts.approve_outline(draft.id)
        completed = await _wait_for_status(runtime, draft.id, DraftStatus.COMPLETED)

        assert len(completed.sections) == 5
        assert llm.count("gap") == 2
        assert llm.count("introduction") == 1
        jobs = {j.queue: j for j in await runtime.drafts.list_jobs(draft.id)}
        assert jobs["strategy"].attempts == 2
        assert jobs["content"].attempts == 2


@pytest.mark.asyncio
async def test_crashed_worker_lease_expires_and_job_is_reclaimed(settings) -> None:
    settings.queues.strategy.lease_seconds = 0.2
    settings.queues.strategy.renew_seconds = 0.05
    async with PipelineRuntime(
        settings, research=FakeResearch(), scraper=FakeScraper(), llm=FakeLLM()
    ) as runtime:
        keyword = await runtime.keywords.create_keyword(KEYWORD)
        draft = await runtime.drafts.create_draft(keyword.id)

        # a worker claims the job and dies without settling it
        abandoned = await runtime.queue.claim("strategy", settings.queues.strategy.lease_seconds)
        assert abandoned is not None
        assert await runtime.workers[Stage.STRATEGY].run_once() is None

        await asyncio.sleep(0.3)
        reclaimed = await runtime.workers[Stage.STRATEGY].run_once()

        assert reclaimed.id == abandoned.id
        assert reclaimed.attempts == 2
        assert reclaimed.status == JobStatus.COMPLETED
        assert (await runtime.drafts.get_draft(draft.id)).status == DraftStatus.OUTLINE_PENDING
        assert await runtime.queue.complete(abandoned) is False


@pytest.mark.asyncio
async def test_duplicate_enqueue_while_in_flight_is_ignored(settings) -> None:
    async with PipelineRuntime(
        settings, research=FakeResearch(), scraper=FakeScraper(), llm=FakeLLM()
    ) as runtime:
        keyword = await runtime.keywords.create_keyword(KEYWORD)
        draft = await runtime.drafts.create_draft(keyword.id)
        await runtime.workers[Stage.STRATEGY].run_once()
        await runtime.workers[Stage.OUTLINE].run_once()

        approved = await runtime.drafts.approve_outline(draft.id)
        first = (await runtime.drafts.list_jobs(draft.id))[-1]
        again = await enqueue_stage(
            runtime.queue,
            Stage.CONTENT,
            ContentJobData(draft_id=draft.id, outline=approved.outline, strategy=approved.strategy),
        )
        reapproved = await runtime.drafts.approve_outline(draft.id)

        assert again.id == first.id
        assert reapproved.status == DraftStatus.OUTLINE_APPROVED
        assert (await runtime.queue.counts("content"))["waiting"] == 1

        await runtime.workers[Stage.CONTENT].run_once()
        with pytest.raises(InvalidTransitionError):
            await runtime.drafts.approve_outline(draft.id)
