"""Typed repositories for keywords, drafts and sections."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

import aiosqlite

from draftsmith.errors import InvalidTransitionError, NotFoundError
from draftsmith.models import (
    DifficultyLevel,
    Draft,
    DraftStatus,
    Keyword,
    Outline,
    Section,
    SectionType,
    SeoScore,
    Strategy,
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _load_json(raw: Optional[str]) -> Any:
    return json.loads(raw) if raw else None


def _row_to_keyword(row: aiosqlite.Row) -> Keyword:
    level = row["difficulty_level"]
    return Keyword(
        id=row["id"],
        keyword=row["keyword"],
        difficulty=row["difficulty"],
        difficulty_level=DifficultyLevel(level) if level else None,
        search_volume=row["search_volume"],
        kcv=row["kcv"],
        metadata=_load_json(row["metadata"]) or {},
        created_at=row["created_at"],
    )


def _row_to_section(row: aiosqlite.Row) -> Section:
    return Section(
        id=row["id"],
        draft_id=row["draft_id"],
        heading=row["heading"],
        content=row["content"],
        order=int(row["position"]),
        type=SectionType(row["type"]),
        created_at=row["created_at"],
    )


def _row_to_draft(row: aiosqlite.Row) -> Draft:
    strategy = _load_json(row["strategy"])
    outline = _load_json(row["outline"])
    seo_score = _load_json(row["seo_score"])
    return Draft(
        id=row["id"],
        title=row["title"],
        content=row["content"],
        status=DraftStatus(row["status"]),
        primary_keyword_id=row["primary_keyword_id"],
        strategy=Strategy.model_validate(strategy) if strategy else None,
        outline=Outline.model_validate(outline) if outline else None,
        seo_score=SeoScore.model_validate(seo_score) if seo_score else None,
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class KeywordRepository:
    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    async def create(self, keyword: Keyword) -> Keyword:
        await self.db.execute(
            """
            INSERT INTO keywords
                (id, keyword, difficulty, difficulty_level, search_volume, kcv, metadata, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                keyword.id,
                keyword.keyword,
                keyword.difficulty,
                keyword.difficulty_level.value if keyword.difficulty_level else None,
                keyword.search_volume,
                keyword.kcv,
                json.dumps(keyword.metadata),
                keyword.created_at.isoformat(),
            ),
        )
        await self.db.commit()
        return keyword

    async def get(self, keyword_id: str) -> Optional[Keyword]:
        cursor = await self.db.execute("SELECT * FROM keywords WHERE id = ?", (keyword_id,))
        row = await cursor.fetchone()
        return _row_to_keyword(row) if row else None

    async def find_by_text(self, text: str) -> Optional[Keyword]:
        cursor = await self.db.execute(
            "SELECT * FROM keywords WHERE keyword = ? ORDER BY created_at LIMIT 1", (text,)
        )
        row = await cursor.fetchone()
        return _row_to_keyword(row) if row else None


class DraftRepository:
    """Draft and section persistence.

    Every status change is a compare-and-swap on the current status so two
    workers racing on one draft cannot both advance it.
    """

    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    async def insert(self, draft: Draft) -> Draft:
        await self.db.execute(
            """
            INSERT INTO drafts
                (id, title, content, status, primary_keyword_id, strategy, outline,
                 seo_score, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                draft.id,
                draft.title,
                draft.content,
                draft.status.value,
                draft.primary_keyword_id,
                draft.strategy.model_dump_json() if draft.strategy else None,
                draft.outline.model_dump_json() if draft.outline else None,
                draft.seo_score.model_dump_json() if draft.seo_score else None,
                draft.created_at.isoformat(),
                draft.updated_at.isoformat(),
            ),
        )
        await self.db.commit()
        return draft

    async def _attach_keyword(self, draft: Draft) -> Draft:
        if draft.primary_keyword_id:
            draft.primary_keyword = await KeywordRepository(self.db).get(draft.primary_keyword_id)
        return draft

    async def get(self, draft_id: str, with_sections: bool = True) -> Optional[Draft]:
        cursor = await self.db.execute("SELECT * FROM drafts WHERE id = ?", (draft_id,))
        row = await cursor.fetchone()
        if row is None:
            return None
        draft = await self._attach_keyword(_row_to_draft(row))
        if with_sections:
            draft.sections = await self.list_sections(draft_id)
        return draft

    async def require(self, draft_id: str, with_sections: bool = True) -> Draft:
        draft = await self.get(draft_id, with_sections=with_sections)
        if draft is None:
            raise NotFoundError(f"Draft {draft_id} not found")
        return draft

    async def list_all(self) -> List[Draft]:
        cursor = await self.db.execute(
            "SELECT * FROM drafts ORDER BY created_at DESC, rowid DESC"
        )
        rows = await cursor.fetchall()
        return [await self._attach_keyword(_row_to_draft(row)) for row in rows]

    async def get_status(self, draft_id: str) -> Optional[DraftStatus]:
        cursor = await self.db.execute("SELECT status FROM drafts WHERE id = ?", (draft_id,))
        row = await cursor.fetchone()
        return DraftStatus(row["status"]) if row else None

    async def _swap(
        self,
        draft_id: str,
        expected: Iterable[DraftStatus],
        target: DraftStatus,
        assignments: str = "",
        params: tuple = (),
    ) -> DraftStatus:
        """Compare-and-swap the status; returns the status it replaced."""
        target = DraftStatus(target)
        current = await self.get_status(draft_id)
        if current is None:
            raise NotFoundError(f"Draft {draft_id} not found")
        if current not in {DraftStatus(s) for s in expected}:
            raise InvalidTransitionError(draft_id, current.value, target.value)
        cursor = await self.db.execute(
            f"UPDATE drafts SET status = ?, updated_at = ?{assignments} "
            f"WHERE id = ? AND status = ?",
            (target.value, _now(), *params, draft_id, current.value),
        )
        await self.db.commit()
        if cursor.rowcount == 0:
            latest = await self.get_status(draft_id)
            if latest is None:
                raise NotFoundError(f"Draft {draft_id} not found")
            raise InvalidTransitionError(draft_id, latest.value, target.value)
        return current

    async def transition_status(
        self, draft_id: str, expected: Iterable[DraftStatus], target: DraftStatus
    ) -> DraftStatus:
        """Move the draft to ``target`` only if its current status is in ``expected``."""
        return await self._swap(draft_id, expected, target)

    async def save_strategy(
        self, draft_id: str, strategy: Strategy, expected: Iterable[DraftStatus]
    ) -> DraftStatus:
        return await self._swap(
            draft_id,
            expected,
            DraftStatus.OUTLINE_PENDING,
            ", strategy = ?",
            (strategy.model_dump_json(),),
        )

    async def save_outline(self, draft_id: str, outline: Outline) -> None:
        """Overwrite the outline without touching status."""
        cursor = await self.db.execute(
            "UPDATE drafts SET outline = ?, updated_at = ? WHERE id = ?",
            (outline.model_dump_json(), _now(), draft_id),
        )
        await self.db.commit()
        if cursor.rowcount == 0:
            raise NotFoundError(f"Draft {draft_id} not found")

    async def save_generated_outline(self, draft_id: str, outline: Outline) -> bool:
        """Store a worker-generated outline unless one exists or the draft has moved on."""
        cursor = await self.db.execute(
            """
            UPDATE drafts SET outline = ?, updated_at = ?
            WHERE id = ? AND status = ? AND outline IS NULL
            """,
            (outline.model_dump_json(), _now(), draft_id, DraftStatus.OUTLINE_PENDING.value),
        )
        await self.db.commit()
        return cursor.rowcount > 0

    async def save_content(
        self, draft_id: str, content: str, seo_score: Optional[SeoScore] = None
    ) -> DraftStatus:
        """Store the compiled document and its score and complete the draft in one write."""
        return await self._swap(
            draft_id,
            [DraftStatus.WRITING],
            DraftStatus.COMPLETED,
            ", content = ?, seo_score = ?",
            (content, seo_score.model_dump_json() if seo_score else None),
        )

    async def append_section(self, section: Section) -> bool:
        """Insert a section; returns False when its order is already taken."""
        cursor = await self.db.execute(
            """
            INSERT INTO sections (id, draft_id, heading, content, position, type, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (draft_id, position) DO NOTHING
            """,
            (
                section.id,
                section.draft_id,
                section.heading,
                section.content,
                section.order,
                section.type.value,
                section.created_at.isoformat(),
            ),
        )
        await self.db.execute(
            "UPDATE drafts SET updated_at = ? WHERE id = ?", (_now(), section.draft_id)
        )
        await self.db.commit()
        return cursor.rowcount > 0

    async def list_sections(self, draft_id: str) -> List[Section]:
        cursor = await self.db.execute(
            "SELECT * FROM sections WHERE draft_id = ? ORDER BY position ASC", (draft_id,)
        )
        rows = await cursor.fetchall()
        return [_row_to_section(row) for row in rows]

