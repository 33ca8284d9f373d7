"""CLI entry point."""

from __future__ import annotations

import argparse
import asyncio
import signal
from pathlib import Path
from typing import List, Sequence

from rich.console import Console
from rich.table import Table

from draftsmith.config.loader import load_settings, validate_secret_env
from draftsmith.errors import DraftsmithError
from draftsmith.models import Draft, SettingsConfig, Stage
from draftsmith.pipeline.runtime import PipelineRuntime
from draftsmith.utils.logging_config import LogLevel, setup_logging
from draftsmith.utils.structured_log import configure_run_logging


def _print_drafts(console: Console, drafts: List[Draft]) -> None:
    table = Table(title="Drafts")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="white")
    table.add_column("Status", style="magenta")
    table.add_column("Updated", style="dim")
    for draft in drafts:
        table.add_row(draft.id, draft.title, draft.status.value, draft.updated_at.isoformat())
    console.print(table)


def _print_draft(console: Console, draft: Draft) -> None:
    table = Table(title=f"Draft {draft.id}")
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")
    table.add_row("title", draft.title)
    table.add_row("status", draft.status.value)
    table.add_row("keyword", draft.keyword_text)
    table.add_row("updated_at", draft.updated_at.isoformat())
    if draft.strategy:
        table.add_row("target_format", draft.strategy.target_format.value)
        table.add_row("angle", draft.strategy.information_gain_angle)
    if draft.outline:
        table.add_row("outline", "\n".join(s.heading for s in draft.outline.sections))
    table.add_row("sections", str(len(draft.sections)))
    if draft.seo_score:
        score = draft.seo_score
        table.add_row(
            "seo",
            f"h1={score.keyword_in_h1} first_p={score.keyword_in_first_paragraph} "
            f"h2={score.keyword_in_h2} density={score.entity_density}% words={score.word_count}",
        )
    console.print(table)


async def _run_command(args: argparse.Namespace, settings: SettingsConfig, console: Console) -> int:
    async with PipelineRuntime(settings) as runtime:
        if args.command == "suggest":
            suggestions = await runtime.keywords.suggest_keywords(args.seed)
            table = Table(title=f"Suggestions for {args.seed!r}")
            table.add_column("ID", style="cyan", no_wrap=True)
            table.add_column("Keyword", style="white")
            table.add_column("Volume", justify="right")
            table.add_column("CPC", justify="right")
            table.add_column("Difficulty")
            table.add_column("KCV", justify="right")
            for s in suggestions:
                table.add_row(
                    s.id or "",
                    s.keyword,
                    str(s.search_volume),
                    f"{s.cpc:.2f}",
                    f"{s.difficulty} ({s.difficulty_level.value})",
                    f"{s.kcv:.1f}",
                )
            console.print(table)
            return 0

        if args.command == "create":
            draft = await runtime.drafts.create_draft(args.keyword_id)
            console.print(f"[green]Draft created:[/] {draft.id} ({draft.status.value})")
            return 0

        if args.command == "list":
            _print_drafts(console, await runtime.drafts.list_drafts())
            return 0

        if args.command == "show":
            _print_draft(console, await runtime.drafts.get_draft(args.draft_id))
            return 0

        if args.command == "approve":
            draft = await runtime.drafts.approve_outline(args.draft_id)
            console.print(f"[green]Outline approved:[/] {draft.id} ({draft.status.value})")
            return 0

        if args.command == "export":
            exported = await runtime.drafts.export_draft(args.draft_id)
            if args.out:
                Path(args.out).write_text(exported.content, encoding="utf-8")
                console.print(f"[green]Export complete:[/] {args.out}")
            else:
                console.print(exported.content, markup=False)
            return 0

        if args.command == "jobs":
            if not args.dead:
                for stage in Stage:
                    counts = await runtime.queue.counts(stage.value)
                    console.print(
                        f"[cyan]{stage.value}[/]: "
                        + ", ".join(f"{k}={v}" for k, v in counts.items())
                    )
                return 0
            jobs = await runtime.queue.list_dead()
            table = Table(title="Dead-lettered jobs")
            table.add_column("ID", style="cyan")
            table.add_column("Queue")
            table.add_column("Draft")
            table.add_column("Attempts", justify="right")
            table.add_column("Last error", style="red")
            for job in jobs:
                table.add_row(
                    str(job.id),
                    job.queue,
                    str(job.payload.get("draft_id", "")),
                    f"{job.attempts}/{job.max_attempts}",
                    job.last_error or "",
                )
            console.print(table)
            return 0

        if args.command == "retry":
            job = await runtime.queue.retry_dead(args.job_id)
            console.print(f"[green]Job requeued:[/] {job.id} on {job.queue}")
            return 0

        if args.command == "worker":
            stages = list(Stage) if args.stage == "all" else [Stage(args.stage)]
            if args.once:
                for stage in stages:
                    job = await runtime.workers[stage].run_once()
                    if job is None:
                        console.print(f"[dim]{stage.value}: queue empty[/]")
                    else:
                        console.print(f"{stage.value}: job {job.id} -> {job.status.value}")
                return 0
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, lambda: [w.stop() for w in runtime.workers.values()])
            console.print(f"[green]Workers running:[/] {', '.join(s.value for s in stages)}")
            await asyncio.gather(*runtime.run_workers(stages))
            return 0

    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="draftsmith")
    parser.add_argument("--settings", default=None, help="Path to settings.yaml")
    parser.add_argument("--verbose", "-v", action="store_true")
    parser.add_argument("--debug", "-d", action="store_true")
    sub = parser.add_subparsers(dest="command")

    suggest = sub.add_parser("suggest", help="Fetch and store keyword suggestions")
    suggest.add_argument("seed")

    create = sub.add_parser("create", help="Create a draft for a stored keyword")
    create.add_argument("keyword_id")

    sub.add_parser("list", help="List drafts, newest first")

    show = sub.add_parser("show")
    show.add_argument("draft_id")

    approve = sub.add_parser("approve", help="Approve a draft's outline and queue content generation")
    approve.add_argument("draft_id")

    export = sub.add_parser("export")
    export.add_argument("draft_id")
    export.add_argument("--out", default=None, help="Write markdown to this file")

    worker = sub.add_parser("worker", help="Run stage workers")
    worker.add_argument(
        "--stage", choices=[s.value for s in Stage] + ["all"], default="all"
    )
    worker.add_argument("--once", action="store_true", help="Process at most one job per stage")

    jobs = sub.add_parser("jobs", help="Queue counts, or dead-lettered jobs with --dead")
    jobs.add_argument("--dead", action="store_true")

    retry = sub.add_parser("retry", help="Requeue a dead-lettered job")
    retry.add_argument("job_id", type=int)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    console = Console()
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    try:
        settings = load_settings(args.settings)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/] {e}")
        return 1

    setup_logging(LogLevel(settings.logging.level), verbose=args.verbose, debug=args.debug)
    configure_run_logging(settings.logging.log_dir)

    if args.command in ("worker", "suggest"):
        missing = validate_secret_env(settings)
        if missing:
            console.print(f"[red]Error:[/] missing environment variables: {', '.join(missing)}")
            return 1

    try:
        return asyncio.run(_run_command(args, settings, console))
    except DraftsmithError as e:
        console.print(f"[red]Error:[/] {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
