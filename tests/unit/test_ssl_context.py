from __future__ import annotations

import pytest

from draftsmith.utils.ssl_context import SKIP_VERIFY_ENV, research_session, verification_disabled


def test_verification_on_unless_env_opts_out(monkeypatch):
    monkeypatch.delenv(SKIP_VERIFY_ENV, raising=False)
    assert verification_disabled() is False
    monkeypatch.setenv(SKIP_VERIFY_ENV, "TRUE")
    assert verification_disabled() is True
    monkeypatch.setenv(SKIP_VERIFY_ENV, "0")
    assert verification_disabled() is False


@pytest.mark.asyncio
async def test_session_carries_timeout_limit_and_headers(monkeypatch):
    monkeypatch.delenv(SKIP_VERIFY_ENV, raising=False)
    session = research_session(7, limit=3, headers={"User-Agent": "draftsmith-test"})
    try:
        assert session.timeout.total == 7
        assert session.connector.limit == 3
        assert session.headers["User-Agent"] == "draftsmith-test"
    finally:
        await session.close()
