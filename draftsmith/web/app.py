"""FastAPI surface over the draft pipeline.

Run with:
    uvicorn draftsmith.web.app:app --port ${PORT:-8001}

Stage workers run in their own process (``python -m draftsmith.main worker``)
unless DRAFTSMITH_EMBEDDED_WORKERS=1.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from draftsmith.config.loader import load_settings
from draftsmith.errors import NotFoundError, PreconditionError
from draftsmith.models import Draft, DraftExport, JobRecord, Keyword, KeywordSuggestion, Outline
from draftsmith.pipeline.runtime import PipelineRuntime
from draftsmith.utils.logging_config import LogLevel, setup_logging
from draftsmith.utils.structured_log import configure_run_logging

logger = logging.getLogger(__name__)


def _embedded_workers() -> bool:
    return os.getenv("DRAFTSMITH_EMBEDDED_WORKERS", "").lower() in ("1", "true", "yes")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = load_settings()
    setup_logging(LogLevel(settings.logging.level))
    configure_run_logging(settings.logging.log_dir)
    runtime = await PipelineRuntime(settings).start()
    if _embedded_workers():
        runtime.run_workers()
    app.state.runtime = runtime
    try:
        yield
    finally:
        await runtime.shutdown()


app = FastAPI(title="Draftsmith API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NotFoundError)
async def _not_found(_request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(PreconditionError)
async def _precondition(_request: Request, exc: PreconditionError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


def _runtime() -> PipelineRuntime:
    runtime = getattr(app.state, "runtime", None)
    if runtime is None or runtime.db is None:
        raise HTTPException(status_code=503, detail="Pipeline runtime not started")
    return runtime


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class SuggestKeywordsRequest(BaseModel):
    seed_keyword: str = Field(min_length=1)


class SuggestKeywordsResponse(BaseModel):
    suggestions: List[KeywordSuggestion]


class CreateDraftRequest(BaseModel):
    keyword_id: str = Field(min_length=1)


class UpdateOutlineRequest(BaseModel):
    outline: Outline


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.post("/api/keywords/suggest", response_model=SuggestKeywordsResponse)
async def suggest_keywords(req: SuggestKeywordsRequest) -> SuggestKeywordsResponse:
    suggestions = await _runtime().keywords.suggest_keywords(req.seed_keyword)
    return SuggestKeywordsResponse(suggestions=suggestions)


@app.get("/api/keywords/{keyword_id}", response_model=Keyword)
async def get_keyword(keyword_id: str) -> Keyword:
    return await _runtime().keywords.get_keyword(keyword_id)


@app.post("/api/drafts", response_model=Draft, status_code=201)
async def create_draft(req: CreateDraftRequest) -> Draft:
    return await _runtime().drafts.create_draft(req.keyword_id)


@app.get("/api/drafts", response_model=List[Draft])
async def list_drafts() -> List[Draft]:
    return await _runtime().drafts.list_drafts()


@app.get("/api/drafts/{draft_id}", response_model=Draft)
async def get_draft(draft_id: str) -> Draft:
    return await _runtime().drafts.get_draft(draft_id)


@app.put("/api/drafts/{draft_id}/outline", response_model=Draft)
async def update_outline(draft_id: str, req: UpdateOutlineRequest) -> Draft:
    return await _runtime().drafts.update_outline(draft_id, req.outline)


@app.put("/api/drafts/{draft_id}/approve-outline", response_model=Draft)
async def approve_outline(draft_id: str) -> Draft:
    return await _runtime().drafts.approve_outline(draft_id)


@app.get("/api/drafts/{draft_id}/export", response_model=DraftExport)
async def export_draft(draft_id: str) -> DraftExport:
    return await _runtime().drafts.export_draft(draft_id)


@app.get("/api/drafts/{draft_id}/jobs", response_model=List[JobRecord])
async def list_draft_jobs(draft_id: str) -> List[JobRecord]:
    return await _runtime().drafts.list_jobs(draft_id)


@app.get("/api/health")
async def health() -> Dict[str, Any]:
    runtime = getattr(app.state, "runtime", None)
    if runtime is None or runtime.queue is None:
        return {"status": "starting"}
    queues = {stage: await runtime.queue.counts(stage) for stage in ("strategy", "outline", "content")}
    return {"status": "ok", "embedded_workers": _embedded_workers(), "queues": queues}
