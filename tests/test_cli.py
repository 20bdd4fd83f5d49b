"""Tests for CLI interface."""

import json
from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from conftest import make_fake_db, make_sqlite_db
from sqlite_vacuum.cli import app, resolve_roots
from sqlite_vacuum.models import RunTotals, ScanRoot

runner = CliRunner()


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "sqlite-vacuum version" in result.stdout

    def test_version_short_flag(self):
        result = runner.invoke(app, ["-v"])
        assert result.exit_code == 0
        assert "sqlite-vacuum version" in result.stdout


class TestHelp:
    def test_help_flag(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "--aggressive" in result.stdout
        assert "--workers" in result.stdout


class TestArguments:
    def test_unknown_option(self):
        result = runner.invoke(app, ["--no-such-flag"])
        assert result.exit_code == 2

    def test_zero_workers_rejected(self, tmp_path):
        result = runner.invoke(app, [str(tmp_path), "--workers", "0"])
        assert result.exit_code == 2

    def test_no_accessible_root(self, tmp_path):
        result = runner.invoke(app, [str(tmp_path / "missing"), str(tmp_path / "gone")])
        assert result.exit_code == 1
        assert "no accessible directory" in result.stdout


class TestResolveRoots:
    def test_defaults_to_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert resolve_roots(None) == [ScanRoot(label="", path=tmp_path)]

    def test_drops_duplicates(self, tmp_path):
        roots = resolve_roots([tmp_path, tmp_path, tmp_path / "x"])
        assert [r.path for r in roots] == [tmp_path, tmp_path / "x"]


class TestRun:
    def test_compacts_databases(self, tmp_path):
        make_sqlite_db(tmp_path / "app.db")
        (tmp_path / "notes.txt").write_text("hello")

        result = runner.invoke(app, [str(tmp_path), "--workers", "2"])

        assert result.exit_code == 0
        assert "Vacuumed" in result.stdout
        assert "app.db" in result.stdout
        assert "Done." in result.stdout
        assert "Total size reduction" in result.stdout
        assert "1 compacted" in result.stdout

    def test_per_file_errors_still_exit_zero(self, tmp_path):
        (tmp_path / "broken.db").write_bytes(b"garbage" * 200)

        result = runner.invoke(app, [str(tmp_path)])

        assert result.exit_code == 0
        assert "Done." in result.stdout

    def test_aggressive_flag(self, tmp_path):
        make_sqlite_db(tmp_path / "data.bin")

        fast = runner.invoke(app, [str(tmp_path)])
        aggressive = runner.invoke(app, [str(tmp_path), "-a"])

        assert "Vacuumed" not in fast.stdout
        assert "Vacuumed" in aggressive.stdout

    def test_one_missing_root_still_runs(self, tmp_path):
        make_sqlite_db(tmp_path / "app.db")

        result = runner.invoke(app, [str(tmp_path / "missing"), str(tmp_path)])

        assert result.exit_code == 0
        assert "1 compacted" in result.stdout
        assert "1 failed" in result.stdout

    def test_config_file(self, tmp_path):
        data = tmp_path / "data"
        make_fake_db(data / "x.custom")
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"extensions": [".custom"], "workers": 1}))

        with patch("sqlite_vacuum.cli.run", return_value=RunTotals()) as mock_run:
            result = runner.invoke(app, [str(data), "--config", str(config)])

        assert result.exit_code == 0
        args, kwargs = mock_run.call_args
        assert args[0] == [ScanRoot(label=str(data), path=data)]
        assert args[1] is False
        assert kwargs["settings"].extensions == [".custom"]
        assert kwargs["workers"] is None

    def test_workers_option_is_passed(self, tmp_path):
        with patch("sqlite_vacuum.cli.run", return_value=RunTotals()) as mock_run:
            result = runner.invoke(app, [str(tmp_path), "-j", "3", "--aggressive"])

        assert result.exit_code == 0
        _, kwargs = mock_run.call_args
        assert kwargs["workers"] == 3
        assert mock_run.call_args[0][1] is True

    def test_defaults_to_current_directory(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with patch("sqlite_vacuum.cli.run", return_value=RunTotals()) as mock_run:
            result = runner.invoke(app, [])

        assert result.exit_code == 0
        assert mock_run.call_args[0][0] == [ScanRoot(label="", path=Path.cwd())]

    def test_undecodable_config_falls_back_to_defaults(self, tmp_path):
        make_sqlite_db(tmp_path / "data" / "app.db")
        config = tmp_path / "config.json"
        config.write_bytes(b'{"workers": 2, "x": "\xff\xfe"}')

        result = runner.invoke(app, [str(tmp_path / "data"), "--config", str(config)])

        assert result.exit_code == 0
        assert "1 compacted" in result.stdout
