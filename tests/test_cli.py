"""Tests for the command line interface."""

import asyncio
import json

import pytest
from click.testing import CliRunner

from tidy_organizer.cli import cli
from tidy_organizer.core.operation_history import OperationHistoryStore
from tidy_organizer.models.history import FileHistoryRecord, PruneConfig
from tidy_organizer.utils.dates import utc_now

from factories import history_entry


CONFIG = {
    "templates": [
        {"id": "tpl-shots", "name": "Screenshots", "pattern": "{date}_{original}"},
        {"id": "tpl-any", "name": "Fallback", "pattern": "{original}", "isDefault": True},
    ],
    "rules": [
        {"id": "pdf-title", "name": "PDF with title", "templateId": "tpl-any", "priority": 5,
         "conditions": [{"field": "pdf.title", "operator": "exists"}]},
    ],
    "filenameRules": [
        {"id": "shots", "name": "Screenshots", "pattern": "Screenshot*", "templateId": "tpl-shots", "priority": 5},
        {"id": "pngs", "name": "PNG files", "pattern": "*.png", "templateId": "tpl-any", "priority": 1},
    ],
}


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def paths(tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps(CONFIG))
    return config_path, tmp_path / "history.json"


def invoke(runner, paths, *args):
    config_path, history_path = paths
    return runner.invoke(cli, ["--config", str(config_path), "--history-file", str(history_path), *args])


def seed_history(history_path, *entries):
    store = OperationHistoryStore(history_path, PruneConfig(max_entries=0, max_age_days=0))

    async def record_all():
        for entry in entries:
            await store.record(entry)

    asyncio.run(record_all())


class TestHistoryCommands:
    """Test history list/show/prune."""

    def test_list_empty(self, runner, paths):
        result = invoke(runner, paths, "history", "list")
        assert result.exit_code == 0
        assert "No operations in history" in result.output

    def test_list_json(self, runner, paths):
        seed_history(paths[1], history_entry("op-1"), history_entry("op-2"))
        result = invoke(runner, paths, "history", "list", "--format", "json")
        assert result.exit_code == 0
        assert [e["id"] for e in json.loads(result.output)] == ["op-2", "op-1"]

    def test_list_table(self, runner, paths):
        seed_history(paths[1], history_entry("abcdef123456"))
        result = invoke(runner, paths, "history", "list")
        assert result.exit_code == 0
        assert "abcdef12" in result.output

    def test_list_limit_and_type(self, runner, paths):
        seed_history(paths[1], history_entry("a"), history_entry("b"), history_entry("c"))
        result = invoke(runner, paths, "history", "list", "--limit", "2", "--type", "move", "--format", "json")
        assert json.loads(result.output) == []
        result = invoke(runner, paths, "history", "list", "--limit", "2", "--format", "json")
        assert len(json.loads(result.output)) == 2

    def test_show(self, runner, paths):
        seed_history(paths[1], history_entry("op-1"))
        result = invoke(runner, paths, "history", "show", "op-1", "--format", "json")
        assert result.exit_code == 0
        assert json.loads(result.output)["files"][0]["originalPath"] == "/src/op-1.txt"

    def test_show_unknown(self, runner, paths):
        result = invoke(runner, paths, "history", "show", "ghost")
        assert result.exit_code == 1
        assert "Operation not found" in result.output

    def test_prune(self, runner, paths):
        seed_history(paths[1], *[history_entry(str(i)) for i in range(4)])
        result = invoke(runner, paths, "history", "prune", "--max-entries", "1", "--format", "json")
        assert result.exit_code == 0
        assert json.loads(result.output) == {"removed": 3}

    def test_prune_rejects_negative(self, runner, paths):
        result = invoke(runner, paths, "history", "prune", "--max-entries", "-1")
        assert result.exit_code == 2


class TestUndoCommand:
    """Test the undo command."""

    def test_undo_with_empty_history_json(self, runner, paths):
        result = invoke(runner, paths, "undo", "--format", "json")
        assert result.exit_code == 1
        assert json.loads(result.output)["error"]["code"] == "EMPTY_HISTORY"

    def test_undo_restores_file(self, runner, paths, tmp_path):
        original = tmp_path / "before.txt"
        current = tmp_path / "after.txt"
        current.write_text("data")
        seed_history(paths[1], history_entry("op", utc_now(), files=[FileHistoryRecord(str(original), str(current))]))

        result = invoke(runner, paths, "undo", "op")
        assert result.exit_code == 0
        assert "1 restored" in result.output
        assert original.read_text() == "data"

        again = invoke(runner, paths, "undo", "op", "--format", "json")
        assert again.exit_code == 1
        assert json.loads(again.output)["error"]["code"] == "ALREADY_UNDONE"

    def test_undo_dry_run(self, runner, paths, tmp_path):
        current = tmp_path / "after.txt"
        current.write_text("data")
        seed_history(paths[1], history_entry("op", files=[FileHistoryRecord(str(tmp_path / "before.txt"), str(current))]))

        result = invoke(runner, paths, "undo", "--dry-run", "--format", "json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["dryRun"] is True
        assert data["stagesCompleted"] == ["validate"]
        assert current.exists()

    def test_undo_conflict_exits_nonzero(self, runner, paths, tmp_path):
        original = tmp_path / "before.txt"
        original.write_text("squatter")
        current = tmp_path / "after.txt"
        current.write_text("data")
        seed_history(paths[1], history_entry("op", files=[FileHistoryRecord(str(original), str(current))]))

        result = invoke(runner, paths, "undo")
        assert result.exit_code == 1
        assert "--force" in result.output
        assert current.exists()


class TestRestoreCommand:
    """Test restoring single files."""

    def test_restore_by_current_path(self, runner, paths, tmp_path):
        original = tmp_path / "before.txt"
        current = tmp_path / "after.txt"
        current.write_text("data")
        seed_history(paths[1], history_entry("op", files=[FileHistoryRecord(str(original), str(current))]))

        result = invoke(runner, paths, "restore", str(current), "--format", "json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["success"] is True
        assert data["operationId"] == "op"
        assert original.read_text() == "data"

    def test_restore_dry_run_table(self, runner, paths, tmp_path):
        current = tmp_path / "after.txt"
        current.write_text("data")
        seed_history(paths[1], history_entry("op", files=[FileHistoryRecord(str(tmp_path / "before.txt"), str(current))]))

        result = invoke(runner, paths, "restore", str(current), "--dry-run")
        assert result.exit_code == 0
        assert "Would restore" in result.output
        assert current.exists()

    def test_restore_unknown_file(self, runner, paths, tmp_path):
        result = invoke(runner, paths, "restore", str(tmp_path / "nothing.txt"))
        assert result.exit_code == 1
        assert "No history found" in result.output

    def test_lookup(self, runner, paths, tmp_path):
        current = tmp_path / "after.txt"
        current.write_text("data")
        seed_history(paths[1], history_entry("op", files=[FileHistoryRecord(str(tmp_path / "before.txt"), str(current))]))

        result = invoke(runner, paths, "restore", str(current), "--lookup", "--format", "json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["originalPath"] == str(tmp_path / "before.txt")
        assert data["isAtOriginal"] is False
        assert current.exists()

    def test_restore_operation(self, runner, paths, tmp_path):
        original = tmp_path / "before.txt"
        current = tmp_path / "after.txt"
        current.write_text("data")
        seed_history(paths[1], history_entry("op", files=[FileHistoryRecord(str(original), str(current))]))

        result = invoke(runner, paths, "restore", "--operation", "op", "--format", "json")
        assert result.exit_code == 0
        assert json.loads(result.output)["message"] == "Restored 1 file(s) from operation"
        assert original.exists()

    def test_restore_requires_target(self, runner, paths):
        result = invoke(runner, paths, "restore")
        assert result.exit_code == 1
        assert "--operation is required" in result.output


class TestRulesCommands:
    """Test rule inspection commands."""

    def test_list_json_order(self, runner, paths):
        result = invoke(runner, paths, "rules", "list", "--format", "json")
        assert result.exit_code == 0
        assert [r["ruleId"] for r in json.loads(result.output)] == ["pdf-title", "shots", "pngs"]

    def test_list_table(self, runner, paths):
        result = invoke(runner, paths, "rules", "list")
        assert result.exit_code == 0
        assert "PNG files" in result.output

    def test_preview(self, runner, paths, tmp_path):
        shot = tmp_path / "Screenshot 2024.png"
        shot.write_bytes(b"\x89PNG")
        result = invoke(runner, paths, "rules", "preview", str(shot), "--format", "json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["preview"]["winningRule"]["ruleId"] == "shots"
        assert [r["ruleId"] for r in data["preview"]["matchedButLost"]] == ["pngs"]
        assert data["resolution"]["templateId"] == "tpl-shots"
        assert data["resolution"]["reason"] == "rule-match"
        assert data["rendered"].endswith("_Screenshot 2024.png")
        assert data["renderError"] is None

    def test_preview_table(self, runner, paths, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("hello")
        result = invoke(runner, paths, "rules", "preview", str(notes))
        assert result.exit_code == 0
        assert "tpl-any" in result.output
        assert "default-fallback" in result.output
        assert "New name: notes.txt" in result.output

    def test_ties(self, runner, paths):
        result = invoke(runner, paths, "rules", "ties", "--format", "json")
        ties = json.loads(result.output)
        assert len(ties) == 1
        assert ties[0]["priority"] == 5
        assert ties[0]["crossFamily"] is True
        assert ties[0]["rules"][0]["ruleId"] == "pdf-title"

    def test_invalid_config(self, runner, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"rules": [{"name": "missing fields"}]}))
        result = runner.invoke(cli, ["--config", str(bad), "rules", "list"])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output
