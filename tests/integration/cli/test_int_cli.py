# tests/integration/cli/test_int_cli.py - v1
"""CLI entry point (main.py) against a SQLite repository."""

from __future__ import annotations

import logging

import pytest

from contentflow.main import _build_parser, main


@pytest.fixture(autouse=True)
def cli_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("REPOSITORY_BACKEND", "sqlite")
    monkeypatch.setenv("SQLITE_PATH", str(tmp_path / "cli.db"))
    monkeypatch.setenv("VALIDATE_LINKS", "false")
    root = logging.getLogger("contentflow")
    level, handlers = root.level, list(root.handlers)
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestParser:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage: contentflow" in capsys.readouterr().out

    def test_version(self):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0

    def test_step_choices(self):
        parser = _build_parser()
        args = parser.parse_args(["step", "abc", "write_block", "--block", "2"])
        assert (args.step, args.block) == ("write_block", 2)
        with pytest.raises(SystemExit):
            parser.parse_args(["step", "abc", "translate"])


class TestCommands:
    def test_create_then_status(self, capsys):
        assert main(["create", "jardin potager"]) == 0
        item_id = capsys.readouterr().out.strip()

        assert main(["status", item_id]) == 0
        out = capsys.readouterr().out
        assert "jardin potager" in out
        assert "Brouillon [draft] 0%" in out
        assert "Next step: analyze" in out

    def test_status_unknown_item(self):
        assert main(["status", "missing"]) == 2

    def test_illegal_step(self, capsys):
        main(["create", "jardin potager"])
        item_id = capsys.readouterr().out.strip()
        assert main(["step", item_id, "publish"]) == 1
        assert "not allowed" in capsys.readouterr().out

        assert main(["history", item_id]) == 0
        assert "publish" in capsys.readouterr().out

    def test_rollback_refused(self, capsys):
        main(["create", "k"])
        item_id = capsys.readouterr().out.strip()
        assert main(["rollback", item_id]) == 1
        assert "Cannot roll back" in capsys.readouterr().out

    def test_empty_reports(self, capsys):
        assert main(["costs"]) == 0
        assert "$0.0000 over 0 runs" in capsys.readouterr().out
        assert main(["refresh-scan"]) == 0
        assert "0 candidate(s)" in capsys.readouterr().out
