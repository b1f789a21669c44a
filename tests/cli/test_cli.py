"""Command-line tests over a file-backed SQLite database."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from cli import app

runner = CliRunner()


@pytest.fixture()
def database_url(tmp_path: Path) -> str:
    url = f"sqlite:///{tmp_path / 'screener.db'}"
    result = runner.invoke(app, ["--database-url", url, "db", "init"])
    assert result.exit_code == 0, result.output
    return url


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "div10.json"
    path.write_text(
        json.dumps({"selection": {"topN": 10}, "weights": {"type": "marketCap"}})
    )
    return path


class TestValidate:
    def test_valid_document(self, config_file: Path) -> None:
        result = runner.invoke(app, ["index", "validate", str(config_file)])
        assert result.exit_code == 0, result.output
        assert "Configuration is valid." in result.output

    def test_invalid_document(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"selection": {"orderBy": "magic"}}))
        result = runner.invoke(app, ["index", "validate", str(path)])
        assert result.exit_code == 1
        assert "unknown orderBy field" in result.output

    def test_not_json(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("[1, 2")
        result = runner.invoke(app, ["index", "validate", str(path)])
        assert result.exit_code == 1

    def test_not_an_object(self, tmp_path: Path) -> None:
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        result = runner.invoke(app, ["index", "validate", str(path)])
        assert result.exit_code == 1


class TestDefinitions:
    def test_save_list_show(self, database_url: str, config_file: Path) -> None:
        args = ["index", "save", "DIV10", str(config_file), "--name", "Dividend 10"]
        saved = runner.invoke(app, ["--database-url", database_url, *args])
        assert saved.exit_code == 0, saved.output
        assert "DIV10" in saved.output

        listed = runner.invoke(app, ["--database-url", database_url, "index", "list"])
        assert listed.exit_code == 0, listed.output
        assert "Dividend 10" in listed.output

        shown = runner.invoke(app, ["--database-url", database_url, "index", "show", "div10"])
        assert shown.exit_code == 0, shown.output

        logs = runner.invoke(
            app, ["--database-url", database_url, "index", "history", "DIV10"]
        )
        assert logs.exit_code == 0, logs.output

    def test_unknown_index(self, database_url: str) -> None:
        result = runner.invoke(app, ["--database-url", database_url, "index", "show", "NOPE"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_run_unknown_index_fails(self, database_url: str) -> None:
        result = runner.invoke(
            app, ["--database-url", database_url, "index", "run", "NOPE", "--force"]
        )
        assert result.exit_code == 1
        assert "not found" in result.output


class TestGlobalOptions:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "screener CLI" in result.output

    def test_db_status(self, database_url: str) -> None:
        result = runner.invoke(app, ["--database-url", database_url, "db", "status"])
        assert result.exit_code == 0, result.output
        assert "sqlite" in result.output
