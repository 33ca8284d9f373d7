"""Model exports for stage boundaries."""

from draftsmith.models.config import (
    AgentConfig,
    DatabaseConfig,
    LoggingConfig,
    QueuesConfig,
    ResearchConfig,
    ScraperConfig,
    SettingsConfig,
    StageQueueConfig,
)
from draftsmith.models.drafts import (
    Draft,
    DraftExport,
    Keyword,
    Outline,
    OutlineSection,
    Section,
    SeoScore,
    Strategy,
)
from draftsmith.models.enums import (
    ContentFormat,
    DifficultyLevel,
    DraftStatus,
    JobStatus,
    SectionType,
    Stage,
)
from draftsmith.models.jobs import ContentJobData, JobRecord, OutlineJobData, StrategyJobData
from draftsmith.models.research import (
    CompetitorSnapshot,
    GapAnalysis,
    KeywordSuggestion,
    PeopleAlsoAsk,
    SerpData,
    SerpResult,
)

__all__ = [
    "AgentConfig",
    "CompetitorSnapshot",
    "ContentFormat",
    "ContentJobData",
    "DatabaseConfig",
    "DifficultyLevel",
    "Draft",
    "DraftExport",
    "DraftStatus",
    "GapAnalysis",
    "JobRecord",
    "JobStatus",
    "Keyword",
    "KeywordSuggestion",
    "LoggingConfig",
    "Outline",
    "OutlineJobData",
    "OutlineSection",
    "PeopleAlsoAsk",
    "QueuesConfig",
    "ResearchConfig",
    "ScraperConfig",
    "Section",
    "SectionType",
    "SeoScore",
    "SerpData",
    "SerpResult",
    "SettingsConfig",
    "Stage",
    "StageQueueConfig",
    "Strategy",
    "StrategyJobData",
]
