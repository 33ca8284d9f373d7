from __future__ import annotations

import pytest

from draftsmith.db.repositories import DraftRepository
from draftsmith.errors import InvalidTransitionError, PreconditionError
from draftsmith.models import Draft
from draftsmith.models import DraftStatus as S
from draftsmith.pipeline.state_machine import is_past, sources_for


@pytest.mark.parametrize(
    "current,target",
    [
        (S.RESEARCHING, S.ANALYZING),
        (S.ANALYZING, S.OUTLINE_PENDING),
        (S.OUTLINE_PENDING, S.OUTLINE_APPROVED),
        (S.OUTLINE_APPROVED, S.WRITING),
        (S.WRITING, S.COMPLETED),
    ],
)
def test_forward_path_is_allowed(current, target) -> None:
    assert current in sources_for(target)


@pytest.mark.parametrize(
    "current,target",
    [
        (S.RESEARCHING, S.OUTLINE_PENDING),
        (S.OUTLINE_PENDING, S.WRITING),
        (S.COMPLETED, S.WRITING),
        (S.OUTLINE_APPROVED, S.OUTLINE_PENDING),
        (S.RESEARCHING, S.COMPLETED),
    ],
)
def test_skips_and_reversals_are_rejected(current, target) -> None:
    assert current not in sources_for(target)


@pytest.mark.asyncio
async def test_rejected_swap_reports_both_statuses(db) -> None:
    repo = DraftRepository(db)
    draft = await repo.insert(Draft(title="t", status=S.RESEARCHING))

    with pytest.raises(InvalidTransitionError) as exc_info:
        await repo.transition_status(draft.id, sources_for(S.COMPLETED), S.COMPLETED)

    assert isinstance(exc_info.value, PreconditionError)
    assert exc_info.value.current == S.RESEARCHING.value
    assert exc_info.value.target == S.COMPLETED.value
    assert await repo.get_status(draft.id) == S.RESEARCHING


@pytest.mark.asyncio
async def test_swap_returns_replaced_status(db) -> None:
    repo = DraftRepository(db)
    draft = await repo.insert(Draft(title="t", status=S.RESEARCHING))

    assert await repo.transition_status(draft.id, sources_for(S.ANALYZING), S.ANALYZING) == S.RESEARCHING
    assert await repo.transition_status(draft.id, sources_for(S.ANALYZING), S.ANALYZING) == S.ANALYZING


def test_retry_self_loops() -> None:
    assert S.ANALYZING in sources_for(S.ANALYZING)
    assert S.WRITING in sources_for(S.WRITING)
    assert S.OUTLINE_APPROVED not in sources_for(S.OUTLINE_APPROVED)


def test_completed_is_terminal() -> None:
    assert all(S.COMPLETED not in sources_for(target) for target in S)


def test_researching_is_never_a_target() -> None:
    assert sources_for(S.RESEARCHING) == frozenset()


def test_is_past() -> None:
    assert is_past(S.OUTLINE_PENDING, [S.RESEARCHING, S.ANALYZING])
    assert not is_past(S.ANALYZING, [S.RESEARCHING, S.ANALYZING])
    assert is_past(S.COMPLETED, [S.WRITING])
    assert not is_past(S.OUTLINE_APPROVED, [S.WRITING])
