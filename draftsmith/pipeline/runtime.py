"""Explicit wiring of connection, queue, collaborators and stage workers."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List, Optional

import aiosqlite

from draftsmith.db.database import open_db
from draftsmith.jobs.queue import JobQueue
from draftsmith.jobs.worker import JobHandler, StageWorker
from draftsmith.keywords.service import KeywordService
from draftsmith.llm.article_writer import ArticleWriter
from draftsmith.llm.base_client import LLMBackend
from draftsmith.llm.pydantic_client import PydanticAIClient
from draftsmith.models import SettingsConfig, Stage
from draftsmith.pipeline.content_worker import ContentHandler
from draftsmith.pipeline.outline_worker import OutlineHandler
from draftsmith.pipeline.service import DraftService
from draftsmith.pipeline.strategy_worker import StrategyHandler
from draftsmith.research.base import HeadingSource, ResearchProvider
from draftsmith.research.dataforseo import DataForSEOClient
from draftsmith.research.scraper import HeadingScraper

logger = logging.getLogger(__name__)


class PipelineRuntime:
    """Owns the database connection and every worker built on it.

    Collaborators default to the production clients; tests pass fakes.
    """

    def __init__(
        self,
        settings: SettingsConfig,
        research: Optional[ResearchProvider] = None,
        scraper: Optional[HeadingSource] = None,
        llm: Optional[LLMBackend] = None,
    ):
        self.settings = settings
        self.research = research or DataForSEOClient(settings.research)
        self.scraper = scraper or HeadingScraper(settings.scraper)
        self.writer = ArticleWriter(llm or PydanticAIClient(), settings)
        self.db: Optional[aiosqlite.Connection] = None
        self.queue: Optional[JobQueue] = None
        self.drafts: Optional[DraftService] = None
        self.keywords: Optional[KeywordService] = None
        self.workers: Dict[Stage, StageWorker] = {}
        self._tasks: List[asyncio.Task] = []

    async def start(self) -> "PipelineRuntime":
        if self.db is not None:
            return self
        self.db = await open_db(self.settings.database.path)
        self.queue = JobQueue(self.db, self.settings.queues)
        self.drafts = DraftService(self.db, self.queue)
        self.keywords = KeywordService(self.db, self.research)
        handlers: Dict[Stage, JobHandler] = {
            Stage.STRATEGY: StrategyHandler(
                self.db, self.queue, self.research, self.scraper, self.writer, self.settings
            ),
            Stage.OUTLINE: OutlineHandler(self.db, self.queue, self.writer),
            Stage.CONTENT: ContentHandler(self.db, self.queue, self.writer),
        }
        for stage, handler in handlers.items():
            self.workers[stage] = StageWorker(
                self.queue,
                stage.value,
                handler,
                self.settings.queues.for_stage(stage.value),
                poll_interval=self.settings.queues.poll_interval,
            )
        logger.info(f"Pipeline runtime started on {self.settings.database.path}")
        return self

    def run_workers(self, stages: Optional[Iterable[Stage]] = None) -> List[asyncio.Task]:
        """Start background loops for the given stages (all by default)."""
        if self.db is None:
            raise RuntimeError("PipelineRuntime.start() must be awaited first")
        for stage in stages or list(Stage):
            worker = self.workers[Stage(stage)]
            self._tasks.append(asyncio.create_task(worker.run(), name=f"worker-{Stage(stage).value}"))
        return list(self._tasks)

    async def shutdown(self) -> None:
        """Stop the workers, wait for in-flight jobs to finish, then close the connection."""
        for worker in self.workers.values():
            worker.stop()
        if self._tasks:
            results = await asyncio.gather(*self._tasks, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error(f"Worker exited with error: {result}")
            self._tasks.clear()
        if self.db is not None:
            await self.db.close()
            self.db = None
        logger.info("Pipeline runtime shut down")

    async def __aenter__(self) -> "PipelineRuntime":
        return await self.start()

    async def __aexit__(self, *exc_info) -> None:
        await self.shutdown()
