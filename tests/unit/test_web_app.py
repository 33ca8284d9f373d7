"""
Unit tests for the HTTP routes, called directly against a runtime built on fakes.
"""

import json

import pytest
import pytest_asyncio
from fastapi import HTTPException

from draftsmith.errors import NotFoundError, PreconditionError
from draftsmith.models import DraftStatus, Outline, OutlineSection, Stage
from draftsmith.pipeline.runtime import PipelineRuntime
from draftsmith.web import app as web
from tests.fixtures.fakes import KEYWORD, FakeLLM, FakeResearch, FakeScraper


@pytest_asyncio.fixture
async def runtime(settings):
    rt = await PipelineRuntime(
        settings, research=FakeResearch(), scraper=FakeScraper(), llm=FakeLLM()
    ).start()
    web.app.state.runtime = rt
    try:
        yield rt
    finally:
        web.app.state.runtime = None
        await rt.shutdown()


@pytest.mark.asyncio
async def test_runtime_not_started_returns_503() -> None:
    web.app.state.runtime = None

    with pytest.raises(HTTPException) as exc_info:
        await web.list_drafts()

    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_error_handlers_map_status_codes() -> None:
    not_found = await web._not_found(None, NotFoundError("Draft x not found"))
    conflict = await web._precondition(None, PreconditionError("no outline"))

    assert not_found.status_code == 404
    assert json.loads(not_found.body) == {"detail": "Draft x not found"}
    assert conflict.status_code == 409


@pytest.mark.asyncio
async def test_keyword_to_outline_approval_flow(runtime) -> None:
    suggested = await web.suggest_keywords(web.SuggestKeywordsRequest(seed_keyword="hiking boots"))
    keyword_id = suggested.suggestions[0].id
    assert (await web.get_keyword(keyword_id)).keyword == KEYWORD

    draft = await web.create_draft(web.CreateDraftRequest(keyword_id=keyword_id))
    assert draft.status == DraftStatus.RESEARCHING
    assert [d.id for d in await web.list_drafts()] == [draft.id]

    await runtime.workers[Stage.STRATEGY].run_once()
    await runtime.workers[Stage.OUTLINE].run_once()
    pending = await web.get_draft(draft.id)
    assert pending.status == DraftStatus.OUTLINE_PENDING
    assert pending.outline is not None

    edited = Outline(title="Edited guide", sections=[OutlineSection(heading="Fit first")])
    updated = await web.update_outline(draft.id, web.UpdateOutlineRequest(outline=edited))
    assert updated.outline.title == "Edited guide"

    approved = await web.approve_outline(draft.id)
    assert approved.status == DraftStatus.OUTLINE_APPROVED
    jobs = await web.list_draft_jobs(draft.id)
    assert [j.queue for j in jobs] == ["strategy", "outline", "content"]


@pytest.mark.asyncio
async def test_export_and_missing_draft(runtime) -> None:
    keyword = await runtime.keywords.create_keyword(KEYWORD)
    draft = await web.create_draft(web.CreateDraftRequest(keyword_id=keyword.id))

    with pytest.raises(PreconditionError):
        await web.export_draft(draft.id)
    with pytest.raises(NotFoundError):
        await web.get_draft("missing")


@pytest.mark.asyncio
async def test_health_reports_queue_counts(runtime) -> None:
    keyword = await runtime.keywords.create_keyword(KEYWORD)
    await web.create_draft(web.CreateDraftRequest(keyword_id=keyword.id))

    health = await web.health()

    assert health["status"] == "ok"
    assert health["queues"]["strategy"]["waiting"] == 1
    assert health["queues"]["content"]["waiting"] == 0
