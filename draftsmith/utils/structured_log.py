"""Structured logging for a machine-parseable job audit trail."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog
from structlog.processors import JSONRenderer
from structlog.typing import Processor

_configured = False
_logger: structlog.BoundLogger | None = None


def configure_run_logging(log_dir: str) -> None:
    """One-time setup at process start. Writes JSON lines to {log_dir}/app.jsonl."""
    global _configured, _logger
    if _configured:
        return
    app_log_path = Path(log_dir) / "app.jsonl"
    app_log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handle = open(app_log_path, "a", encoding="utf-8")

    def _file_logger_factory(*args: Any, **kwargs: Any) -> structlog.PrintLogger:
        return structlog.PrintLogger(file_handle)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        JSONRenderer(),
    ]
    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=_file_logger_factory,
        cache_logger_on_first_use=True,
    )
    _configured = True
    _logger = structlog.get_logger()


def bind_job(job_id: int, draft_id: str, stage: str) -> None:
    """Bind job context so every event emitted while processing carries it."""
    structlog.contextvars.bind_contextvars(job_id=job_id, draft_id=draft_id, stage=stage)


def clear_job() -> None:
    structlog.contextvars.unbind_contextvars("job_id", "draft_id", "stage")


def log_job_event(stage: str, action: str, **details: Any) -> None:
    """Log a job lifecycle event (action: enqueue|claim|progress|complete|retry|dead|skip)."""
    if _logger is not None:
        _logger.info("job", stage=stage, action=action, **details)


def log_api_call(
    source: str,
    status: str,
    stage: str,
    *,
    model: str | None = None,
    latency_ms: int | None = None,
    records: int | None = None,
    error: str | None = None,
    raw_response: str | None = None,
    call_type: str | None = None,
) -> None:
    """Log an external call (research, scrape or LLM)."""
    payload: dict[str, Any] = {"source": source, "status": status, "stage": stage}
    if call_type is not None:
        payload["call_type"] = call_type
    if model is not None:
        payload["model"] = model
    if latency_ms is not None:
        payload["latency_ms"] = latency_ms
    if records is not None:
        payload["records"] = records
    if error is not None:
        payload["error"] = error
    if raw_response is not None and len(raw_response) < 500:
        payload["raw_response"] = raw_response
    elif raw_response is not None:
        payload["raw_response_preview"] = raw_response[:200] + "..."
    if _logger is not None:
        _logger.info("api_call", **payload)


def log_transition(draft_id: str, from_status: str, to_status: str, actor: str) -> None:
    """Log a draft status transition."""
    if _logger is not None:
        _logger.info(
            "transition", draft_id=draft_id, from_status=from_status, to_status=to_status, actor=actor
        )


def load_events_from_jsonl(path: str, draft_id: str | None = None) -> list[dict[str, Any]]:
    """Read an app.jsonl file, optionally filtered to one draft.

    Skips lines that fail to parse.
    """
    events: list[dict[str, Any]] = []
    log_path = Path(path)
    if not log_path.exists():
        return events
    with log_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                continue
            if draft_id is not None and entry.get("draft_id") != draft_id:
                continue
            events.append(entry)
    return events
