"""Tests for history diffs."""

from datetime import timedelta
from enum import Enum

from conftest import BASE_TIME, make_server

from serverdeck.core.history import diff_history, history_id, stringify


class Color(Enum):
    RED = "red"


class TestStringify:
    def test_values(self):
        assert stringify(None) == ""
        assert stringify(["web", "db"]) == "web, db"
        assert stringify(Color.RED) == "red"
        assert stringify(BASE_TIME) == BASE_TIME.isoformat()
        assert stringify(16) == "16"


class TestHistoryId:
    def test_same_change_same_id(self):
        assert history_id("a", "company", BASE_TIME) == history_id("a", "company", BASE_TIME)

    def test_differs_by_field_and_time(self):
        first = history_id("a", "company", BASE_TIME)
        assert history_id("a", "location", BASE_TIME) != first
        assert history_id("a", "company", BASE_TIME + timedelta(seconds=1)) != first
        assert history_id("b", "company", BASE_TIME) != first


class TestDiffHistory:
    def test_only_changed_fields(self):
        record = make_server(id="a", company="Acme", location="Berlin")
        entries = diff_history(record, {"company": "Globex", "location": "Berlin"}, "alice", BASE_TIME)

        assert [(e.field, e.old_value, e.new_value) for e in entries] == [("company", "Acme", "Globex")]
        assert entries[0].user == "alice"
        assert entries[0].timestamp == BASE_TIME
        assert entries[0].id == history_id("a", "company", BASE_TIME)

    def test_bookkeeping_fields_are_untracked(self):
        record = make_server(id="a")
        changes = {"updated_by": "alice", "updated_at": BASE_TIME + timedelta(days=1)}
        assert diff_history(record, changes, "alice", BASE_TIME) == []

    def test_cleared_field(self):
        record = make_server(id="a", description="old box")
        entries = diff_history(record, {"description": ""}, "alice", BASE_TIME)
        assert [(e.old_value, e.new_value) for e in entries] == [("old box", "")]
