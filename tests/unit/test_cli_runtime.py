"""Tests for CLI option parsing and saved view files."""

import json

import pytest
import typer

from serverdeck.cli import runtime
from serverdeck.cli.runtime import parse_assignments, parse_filters, parse_sort
from serverdeck.core.gateway import InMemoryGateway
from serverdeck.core.store import InventoryStore
from serverdeck.schemas.view import ServerFilter, SortDirection, SortKey


class TestParsers:
    def test_parse_filters(self):
        assert parse_filters(["location=Berlin", "tags=a=b"]) == [
            ServerFilter(key="location", value="Berlin"),
            ServerFilter(key="tags", value="a=b"),
        ]
        assert parse_filters(None) == []

    @pytest.mark.parametrize("raw", ["location", "=Berlin"])
    def test_parse_filters_rejects_malformed(self, raw):
        with pytest.raises(typer.BadParameter):
            parse_filters([raw])

    def test_parse_sort(self):
        assert parse_sort(["server_name", "cores:DESC"]) == [
            SortKey(key="server_name", direction=SortDirection.ASC),
            SortKey(key="cores", direction=SortDirection.DESC),
        ]

    def test_parse_sort_rejects_direction(self):
        with pytest.raises(typer.BadParameter):
            parse_sort(["cores:sideways"])

    def test_parse_assignments(self):
        assert parse_assignments(["company=Acme", "description="]) == {"company": "Acme", "description": ""}
        with pytest.raises(typer.BadParameter):
            parse_assignments(["company"])


class TestViewsFile:
    def test_save_and_load(self, tmp_path, monkeypatch):
        path = tmp_path / "views.json"
        monkeypatch.setattr(runtime.settings, "views_path", str(path))

        store = InventoryStore(InMemoryGateway())
        store.set_filters([ServerFilter(key="location", value="berlin")])
        view = store.save_view("berlin")
        runtime.save_views(store)
        assert json.loads(path.read_text())[0]["name"] == "berlin"

        fresh = InventoryStore(InMemoryGateway())
        runtime.load_views(fresh)
        assert fresh.saved_views == [view]

    def test_missing_file_is_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setattr(runtime.settings, "views_path", str(tmp_path / "none.json"))
        store = InventoryStore(InMemoryGateway())
        runtime.load_views(store)
        assert store.saved_views == []
