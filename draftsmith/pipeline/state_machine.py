"""Draft lifecycle transitions."""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable

from draftsmith.models import DraftStatus

S = DraftStatus

# target -> statuses it may be entered from. Self-loops on ANALYZING and
# WRITING let a retried strategy/content job re-enter its stage.
TRANSITIONS: Dict[DraftStatus, FrozenSet[DraftStatus]] = {
    S.ANALYZING: frozenset({S.RESEARCHING, S.ANALYZING}),
    S.OUTLINE_PENDING: frozenset({S.ANALYZING, S.OUTLINE_PENDING}),
    S.OUTLINE_APPROVED: frozenset({S.OUTLINE_PENDING}),
    S.WRITING: frozenset({S.OUTLINE_APPROVED, S.WRITING}),
    S.COMPLETED: frozenset({S.WRITING}),
}

# Linear order of the pipeline, used to decide whether a job's stage is behind its draft.
_RANK = {status: index for index, status in enumerate(DraftStatus)}


def sources_for(target: DraftStatus) -> FrozenSet[DraftStatus]:
    """Return the statuses from which ``target`` may be entered."""
    return TRANSITIONS.get(DraftStatus(target), frozenset())


def is_past(current: DraftStatus, statuses: Iterable[DraftStatus]) -> bool:
    """True when ``current`` lies strictly beyond every status in ``statuses``."""
    rank = _RANK[DraftStatus(current)]
    return all(rank > _RANK[DraftStatus(s)] for s in statuses)
