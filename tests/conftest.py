"""
Pytest configuration and fixtures.
"""

import pytest
import pytest_asyncio

from draftsmith.db.database import get_db
from draftsmith.jobs.queue import JobQueue
from draftsmith.models import (
    DatabaseConfig,
    LoggingConfig,
    QueuesConfig,
    SettingsConfig,
    StageQueueConfig,
)
from tests.fixtures.fakes import FakeClock, FakeLLM, FakeResearch, FakeScraper


def _stage_config() -> StageQueueConfig:
    return StageQueueConfig(lease_seconds=30, renew_seconds=10, max_attempts=3, backoff_seconds=0)


@pytest.fixture
def settings(tmp_path) -> SettingsConfig:
    """Settings pointing at a temporary database with fast queues."""
    return SettingsConfig(
        database=DatabaseConfig(path=str(tmp_path / "draftsmith.db")),
        logging=LoggingConfig(level="minimal", log_dir=str(tmp_path / "logs")),
        queues=QueuesConfig(
            poll_interval=0.01,
            strategy=_stage_config(),
            outline=_stage_config(),
            content=_stage_config(),
        ),
    )


@pytest_asyncio.fixture
async def db(tmp_path):
    async with get_db(str(tmp_path / "unit.db")) as conn:
        yield conn


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def queue(db, settings, clock) -> JobQueue:
    return JobQueue(db, settings.queues, clock=clock)


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def fake_research() -> FakeResearch:
    return FakeResearch()


@pytest.fixture
def fake_scraper() -> FakeScraper:
    return FakeScraper()
