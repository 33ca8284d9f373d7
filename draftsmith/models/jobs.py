"""Stage job payloads and the persisted job record."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from draftsmith.models.drafts import Outline, Strategy
from draftsmith.models.enums import JobStatus


class StrategyJobData(BaseModel):
    draft_id: str = Field(min_length=1)
    keyword: str = Field(min_length=1)


class OutlineJobData(BaseModel):
    draft_id: str = Field(min_length=1)
    keyword: str
    strategy: Strategy


class ContentJobData(BaseModel):
    draft_id: str = Field(min_length=1)
    outline: Outline
    strategy: Strategy


class JobRecord(BaseModel):
    id: int
    queue: str
    name: str
    payload: Dict[str, Any]
    status: JobStatus
    attempts: int = 0
    max_attempts: int = 3
    progress: int = 0
    lock_token: Optional[str] = None
    locked_until: Optional[float] = None
    available_at: float = 0.0
    last_error: Optional[str] = None
    dedup_key: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    finished_at: Optional[datetime] = None
