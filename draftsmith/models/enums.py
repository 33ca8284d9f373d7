"""Enum definitions for typed stage boundaries."""

from enum import Enum


class DraftStatus(str, Enum):
    RESEARCHING = "RESEARCHING"
    ANALYZING = "ANALYZING"
    OUTLINE_PENDING = "OUTLINE_PENDING"
    OUTLINE_APPROVED = "OUTLINE_APPROVED"
    WRITING = "WRITING"
    COMPLETED = "COMPLETED"


class DifficultyLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class SectionType(str, Enum):
    INTRODUCTION = "introduction"
    SECTION = "section"
    CONCLUSION = "conclusion"


class ContentFormat(str, Enum):
    LISTICLE = "Listicle"
    HOW_TO_GUIDE = "How-to Guide"
    DEEP_DIVE_ESSAY = "Deep-Dive Essay"
    COMPARISON = "Comparison"
    TUTORIAL = "Tutorial"


class Stage(str, Enum):
    STRATEGY = "strategy"
    OUTLINE = "outline"
    CONTENT = "content"


class JobStatus(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    DEAD = "dead"  # retries exhausted or non-retryable failure
