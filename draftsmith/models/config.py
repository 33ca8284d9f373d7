"""Configuration models loaded from YAML."""

from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, Field


class AgentConfig(BaseModel):
    model: str
    temperature: float = Field(ge=0.0, le=1.0, default=0.2)


class ResearchConfig(BaseModel):
    api_base: str = "https://api.dataforseo.com/v3"
    location_code: int = 2840  # United States
    language_code: str = "en"
    competitor_count: int = Field(ge=1, le=10, default=3)
    suggestion_limit: int = Field(ge=1, le=1000, default=50)
    top_suggestions: int = Field(ge=1, le=100, default=10)
    request_timeout: int = Field(ge=1, default=60)


class ScraperConfig(BaseModel):
    timeout_seconds: int = Field(ge=1, default=30)
    max_retries: int = Field(ge=0, le=5, default=1)
    user_agent: str = "Mozilla/5.0 (compatible; draftsmith/1.0; +https://example.invalid/bot)"


class StageQueueConfig(BaseModel):
    lease_seconds: float = Field(gt=0)
    renew_seconds: float = Field(gt=0)
    max_attempts: int = Field(ge=1, le=20, default=3)
    backoff_seconds: float = Field(ge=0.0, default=5.0)


class QueuesConfig(BaseModel):
    """Lease budgets follow each stage's external-call latency."""

    poll_interval: float = Field(gt=0.0, default=1.0)
    strategy: StageQueueConfig = Field(
        default_factory=lambda: StageQueueConfig(lease_seconds=600, renew_seconds=300)
    )
    outline: StageQueueConfig = Field(
        default_factory=lambda: StageQueueConfig(lease_seconds=300, renew_seconds=150)
    )
    content: StageQueueConfig = Field(
        default_factory=lambda: StageQueueConfig(lease_seconds=900, renew_seconds=450)
    )

    def for_stage(self, stage: str) -> StageQueueConfig:
        return getattr(self, stage)


class DatabaseConfig(BaseModel):
    path: str = "data/draftsmith.db"


class LoggingConfig(BaseModel):
    level: str = "normal"
    log_dir: str = "logs"


def _default_agents() -> Dict[str, AgentConfig]:
    return {
        "strategy": AgentConfig(model="google-gla:gemini-2.5-pro", temperature=0.2),
        "outline": AgentConfig(model="google-gla:gemini-2.5-pro", temperature=0.3),
        "writing": AgentConfig(model="google-gla:gemini-2.5-pro", temperature=0.7),
    }


class SettingsConfig(BaseModel):
    agents: Dict[str, AgentConfig] = Field(default_factory=_default_agents)
    research: ResearchConfig = Field(default_factory=ResearchConfig)
    scraper: ScraperConfig = Field(default_factory=ScraperConfig)
    queues: QueuesConfig = Field(default_factory=QueuesConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def agent(self, name: str) -> AgentConfig:
        """Return the named agent config, falling back to the first configured one."""
        cfg = self.agents.get(name)
        if cfg is None:
            cfg = next(iter(self.agents.values()))
        return cfg
