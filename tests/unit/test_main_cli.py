from __future__ import annotations

import pytest
import yaml

from draftsmith import main as cli
from draftsmith.main import build_parser


@pytest.fixture
def settings_file(tmp_path, monkeypatch):
    monkeypatch.delenv("DRAFTSMITH_DB", raising=False)
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)
    monkeypatch.setattr(cli, "configure_run_logging", lambda *args, **kwargs: None)
    path = tmp_path / "settings.yaml"
    path.write_text(
        yaml.dump(
            {
                "database": {"path": str(tmp_path / "cli.db")},
                "logging": {"level": "minimal", "log_dir": str(tmp_path / "logs")},
            }
        )
    )
    return str(path)


def test_parser_commands() -> None:
    parser = build_parser()

    assert parser.parse_args(["worker"]).stage == "all"
    parsed = parser.parse_args(["worker", "--stage", "content", "--once"])
    assert (parsed.stage, parsed.once) == ("content", True)
    assert parser.parse_args(["retry", "7"]).job_id == 7
    assert parser.parse_args(["export", "d1", "--out", "x.md"]).out == "x.md"
    with pytest.raises(SystemExit):
        parser.parse_args(["worker", "--stage", "publish"])


def test_no_command_prints_help() -> None:
    assert cli.main([]) == 0


def test_missing_settings_file(tmp_path) -> None:
    assert cli.main(["--settings", str(tmp_path / "none.yaml"), "list"]) == 1


def test_list_on_empty_database(settings_file, capsys) -> None:
    assert cli.main(["--settings", settings_file, "list"]) == 0
    assert "Drafts" in capsys.readouterr().out


def test_unknown_draft_is_reported(settings_file, capsys) -> None:
    assert cli.main(["--settings", settings_file, "show", "missing"]) == 1
    assert "not found" in capsys.readouterr().out


def test_worker_refuses_to_start_without_secrets(settings_file, monkeypatch) -> None:
    monkeypatch.setattr(cli, "validate_secret_env", lambda settings: ["GEMINI_API_KEY"])

    assert cli.main(["--settings", settings_file, "worker", "--once"]) == 1


def test_worker_once_on_idle_queues(settings_file, monkeypatch, capsys) -> None:
    monkeypatch.setattr(cli, "validate_secret_env", lambda settings: [])

    assert cli.main(["--settings", settings_file, "worker", "--once"]) == 0
    assert "queue empty" in capsys.readouterr().out
