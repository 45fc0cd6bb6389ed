"""Tests for the saved view CLI commands."""

import json

import pytest
from typer.testing import CliRunner

from serverdeck.cli import runtime
from serverdeck.cli.main import app

runner = CliRunner()


@pytest.fixture
def views_path(tmp_path, monkeypatch):
    path = tmp_path / "views.json"
    monkeypatch.setattr(runtime.settings, "views_path", str(path))
    return path


class TestViewCommands:
    def test_save_list_delete(self, views_path):
        result = runner.invoke(
            app, ["view", "save", "berlin", "--filter", "location=Berlin", "--sort", "cores:desc"]
        )
        assert result.exit_code == 0, result.output

        saved = json.loads(views_path.read_text())
        assert saved[0]["name"] == "berlin"
        assert saved[0]["filters"] == [{"key": "location", "value": "Berlin"}]
        assert saved[0]["sort_keys"] == [{"key": "cores", "direction": "desc"}]

        result = runner.invoke(app, ["view", "list"])
        assert result.exit_code == 0

        result = runner.invoke(app, ["view", "delete", saved[0]["id"]])
        assert result.exit_code == 0
        assert json.loads(views_path.read_text()) == []

    def test_delete_unknown_view(self, views_path):
        result = runner.invoke(app, ["view", "delete", "missing"])
        assert result.exit_code == 1

    def test_malformed_filter(self, views_path):
        result = runner.invoke(app, ["view", "save", "x", "--filter", "nonsense"])
        assert result.exit_code != 0
        assert not views_path.exists()
