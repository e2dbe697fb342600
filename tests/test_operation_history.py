"""Tests for operation history persistence, pruning and lookup."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from tidy_organizer.core.operation_history import (
    OperationHistoryStore,
    create_entry_from_result,
    migrate_store_data,
    prune_history,
    should_prune,
)
from tidy_organizer.domain.result import HistoryError
from tidy_organizer.models.history import (
    FileHistoryRecord,
    HistoryStore,
    OperationHistoryEntry,
    OperationSummary,
    OperationType,
    PruneConfig,
)
from tidy_organizer.models.rename import BatchRenameResult, FileRenameResult, RenameOutcome
from tidy_organizer.utils.dates import utc_now

from factories import history_entry

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def days_ago(days):
    return NOW - timedelta(days=days)


def batch_result(*outcomes):
    results = [
        FileRenameResult(
            original_path=f"/in/file{i}.txt",
            new_path=f"/out/file{i}.txt" if moved else f"/in/renamed{i}.txt",
            outcome=outcome,
            error=None if outcome is RenameOutcome.SUCCESS else "boom",
            is_move_operation=moved,
        )
        for i, (outcome, moved) in enumerate(outcomes)
    ]
    return BatchRenameResult.from_results(results, NOW, NOW + timedelta(milliseconds=40), ["/out"])


class TestEntryModel:
    """Test the entry invariants."""

    def test_file_count_must_match_records(self):
        with pytest.raises(ValueError, match="file_count"):
            OperationHistoryEntry(
                id="x", timestamp=NOW, operation_type=OperationType.RENAME, file_count=2,
                summary=OperationSummary(succeeded=2), duration_ms=0,
                files=(FileHistoryRecord("/a", "/b"),),
            )

    def test_summary_must_match_file_count(self):
        entry = history_entry("x")
        with pytest.raises(ValueError, match="summary counts"):
            OperationHistoryEntry(
                id="x", timestamp=NOW, operation_type=OperationType.RENAME, file_count=1,
                summary=OperationSummary(succeeded=1, failed=1), duration_ms=0, files=entry.files,
            )

    def test_round_trip_uses_z_timestamps(self):
        data = history_entry("x", timestamp=NOW).to_dict()
        assert data["timestamp"] == "2024-06-01T12:00:00.000Z"
        assert data["undoneAt"] is None
        assert data["files"][0]["isMoveOperation"] is True

    def test_prune_config_rejects_negative_limits(self):
        with pytest.raises(ValueError):
            PruneConfig(max_entries=-1)


class TestCreateEntryFromResult:
    """Test turning a batch result into a history entry."""

    def test_counts_and_records(self):
        entry = create_entry_from_result(batch_result(
            (RenameOutcome.SUCCESS, False), (RenameOutcome.FAILED, False), (RenameOutcome.SKIPPED, False),
        ))
        assert entry.file_count == 3
        assert entry.summary == OperationSummary(succeeded=1, skipped=1, failed=1, directories_created=1)
        assert [f.success for f in entry.files] == [True, False, False]
        assert entry.files[1].error == "boom"
        assert entry.duration_ms == 40
        assert entry.directories_created == ("/out",)

    def test_type_is_rename_without_moves(self):
        entry = create_entry_from_result(batch_result((RenameOutcome.SUCCESS, False)))
        assert entry.operation_type is OperationType.RENAME

    def test_type_is_move_when_any_file_moved(self):
        entry = create_entry_from_result(batch_result((RenameOutcome.SUCCESS, False), (RenameOutcome.SUCCESS, True)))
        assert entry.operation_type is OperationType.MOVE

    def test_explicit_type(self):
        entry = create_entry_from_result(batch_result((RenameOutcome.SUCCESS, True)), OperationType.ORGANIZE)
        assert entry.operation_type is OperationType.ORGANIZE


class TestPruning:
    """Test retention rules."""

    def test_count_limit_keeps_newest(self):
        store = HistoryStore(entries=[history_entry(str(i), days_ago(i)) for i in range(5)])
        pruned = prune_history(store, PruneConfig(max_entries=3, max_age_days=0), now=NOW)
        assert [e.id for e in pruned.entries] == ["0", "1", "2"]
        assert pruned.last_pruned == NOW

    def test_age_limit(self):
        store = HistoryStore(entries=[history_entry("new", days_ago(1)), history_entry("old", days_ago(45))])
        pruned = prune_history(store, PruneConfig(max_entries=0, max_age_days=30), now=NOW)
        assert [e.id for e in pruned.entries] == ["new"]

    def test_count_then_age(self):
        store = HistoryStore(entries=[history_entry(str(i), days_ago(i * 10)) for i in range(6)])
        pruned = prune_history(store, PruneConfig(max_entries=4, max_age_days=25), now=NOW)
        assert [e.id for e in pruned.entries] == ["0", "1", "2"]

    def test_zero_disables_limits(self):
        store = HistoryStore(entries=[history_entry(str(i), days_ago(i * 100)) for i in range(3)])
        pruned = prune_history(store, PruneConfig(max_entries=0, max_age_days=0), now=NOW)
        assert len(pruned.entries) == 3
        assert pruned.last_pruned == NOW

    def test_pruning_is_idempotent(self):
        store = HistoryStore(entries=[history_entry(str(i), days_ago(i * 7)) for i in range(10)])
        config = PruneConfig(max_entries=6, max_age_days=30)
        once = prune_history(store, config, now=NOW)
        twice = prune_history(once, config, now=NOW)
        assert twice.entries == once.entries
        assert not should_prune(once, config, now=NOW)

    def test_should_prune(self):
        store = HistoryStore(entries=[history_entry("a", days_ago(1)), history_entry("b", days_ago(2))])
        assert should_prune(store, PruneConfig(max_entries=1, max_age_days=0), now=NOW)
        assert not should_prune(store, PruneConfig(max_entries=5, max_age_days=30), now=NOW)
        assert should_prune(store, PruneConfig(max_entries=0, max_age_days=1), now=NOW)


class TestMigration:
    """Test upgrading older history documents."""

    def test_v0_adds_move_flags(self):
        data = {"entries": [{
            "id": "old", "timestamp": "2024-01-01T00:00:00Z", "operationType": "move", "fileCount": 2,
            "summary": {"succeeded": 2},
            "files": [
                {"originalPath": "/a/x.txt", "newPath": "/b/x.txt", "success": True},
                {"originalPath": "/a/y.txt", "newPath": "/a/z.txt", "success": True},
            ],
        }]}
        migrated = migrate_store_data(data).value()
        assert migrated["version"] == 1
        files = migrated["entries"][0]["files"]
        assert [f["isMoveOperation"] for f in files] == [True, False]
        assert migrated["entries"][0]["directoriesCreated"] == []

    def test_bare_list_is_v0(self):
        assert migrate_store_data([]).value() == {"version": 1, "lastPruned": None, "entries": []}

    def test_newer_version_refused(self):
        result = migrate_store_data({"version": 99, "entries": []})
        assert result.error().code == HistoryError.UNSUPPORTED_VERSION
        assert result.error().details["supported"] == 1

    @pytest.mark.parametrize("data", ["text", {"version": "one"}, {"version": -1}])
    def test_malformed_documents(self, data):
        assert migrate_store_data(data).error().code == HistoryError.LOAD_FAILED


class TestOperationHistoryStore:
    """Test the persisted store."""

    @pytest.mark.asyncio
    async def test_missing_file_is_empty(self, history_store):
        store = (await history_store.load()).value()
        assert store.entries == []
        assert store.version == 1

    @pytest.mark.asyncio
    async def test_record_and_query_newest_first(self, history_store, history_path):
        await history_store.record(history_entry("first", days_ago(2)))
        await history_store.record(history_entry("second", days_ago(1)))

        entries = (await history_store.query()).value()
        assert [e.id for e in entries] == ["second", "first"]

        on_disk = json.loads(history_path.read_text())
        assert on_disk["version"] == 1
        assert [e["id"] for e in on_disk["entries"]] == ["second", "first"]
        assert [p.name for p in history_path.parent.iterdir()] == ["history.json"]

    @pytest.mark.asyncio
    async def test_query_filters(self, history_store):
        await history_store.record(history_entry("r", operation_type=OperationType.RENAME))
        await history_store.record(history_entry("m", operation_type=OperationType.MOVE))
        await history_store.record(history_entry("m2", operation_type=OperationType.MOVE))

        moves = (await history_store.query(operation_type=OperationType.MOVE)).value()
        assert [e.id for e in moves] == ["m2", "m"]
        assert len((await history_store.query(limit=1)).value()) == 1
        assert len((await history_store.query(limit=0)).value()) == 3
        assert (await history_store.count(OperationType.RENAME)).value() == 1

    @pytest.mark.asyncio
    async def test_get(self, history_store):
        await history_store.record(history_entry("known"))
        assert (await history_store.get("known")).value().id == "known"
        assert (await history_store.get("unknown")).value() is None

    @pytest.mark.asyncio
    async def test_record_batch_result(self, history_store):
        entry = (await history_store.record_batch_result(batch_result((RenameOutcome.SUCCESS, True)))).value()
        assert entry.operation_type is OperationType.MOVE
        stored = (await history_store.get(entry.id)).value()
        assert stored.id == entry.id
        assert stored.files == entry.files

    @pytest.mark.asyncio
    async def test_auto_prune_on_record(self, history_path):
        store = OperationHistoryStore(history_path, PruneConfig(max_entries=2, max_age_days=0))
        for i in range(4):
            await store.record(history_entry(str(i), utc_now() + timedelta(seconds=i)))
        loaded = (await store.load()).value()
        assert [e.id for e in loaded.entries] == ["3", "2"]
        assert loaded.last_pruned is not None

    @pytest.mark.asyncio
    async def test_auto_prune_can_be_disabled(self, history_path):
        store = OperationHistoryStore(history_path, PruneConfig(max_entries=1, max_age_days=0), auto_prune=False)
        await store.record(history_entry("a"))
        await store.record(history_entry("b"))
        assert (await store.count()).value() == 2

    @pytest.mark.asyncio
    async def test_prune_returns_removed_count(self, history_store):
        for i in range(3):
            await history_store.record(history_entry(str(i), utc_now() - timedelta(days=i * 40)))
        removed = (await history_store.prune(PruneConfig(max_entries=0, max_age_days=30))).value()
        assert removed == 2
        assert (await history_store.prune(PruneConfig(max_entries=0, max_age_days=30))).value() == 0

    @pytest.mark.asyncio
    async def test_mark_undone(self, history_store):
        await history_store.record(history_entry("op"))
        marked = (await history_store.mark_undone("op", NOW)).value()
        assert marked.undone_at == NOW
        assert (await history_store.get("op")).value().is_undone

    @pytest.mark.asyncio
    async def test_mark_undone_unknown(self, history_store):
        result = await history_store.mark_undone("ghost")
        assert result.error().code == HistoryError.NOT_FOUND

    @pytest.mark.asyncio
    async def test_load_sorts_entries(self, history_store, history_path):
        history_path.parent.mkdir(parents=True)
        store = HistoryStore(entries=[history_entry("older", days_ago(3)), history_entry("newer", days_ago(1))])
        history_path.write_text(json.dumps(store.to_dict()))
        assert [e.id for e in (await history_store.load()).value().entries] == ["newer", "older"]

    @pytest.mark.asyncio
    async def test_loads_v0_file(self, history_store, history_path):
        history_path.parent.mkdir(parents=True)
        history_path.write_text(json.dumps([{
            "id": "legacy", "timestamp": "2024-01-01T00:00:00Z", "operationType": "rename", "fileCount": 1,
            "summary": {"succeeded": 1},
            "files": [{"originalPath": "/a/x.txt", "newPath": "/a/y.txt", "success": True}],
        }]))
        entry = (await history_store.load()).value().entries[0]
        assert entry.id == "legacy"
        assert entry.files[0].is_move_operation is False


class TestCorruptedHistory:
    """Test recovery from damaged history files."""

    @pytest.mark.asyncio
    async def test_invalid_json_is_backed_up(self, history_store, history_path):
        history_path.parent.mkdir(parents=True)
        history_path.write_text("{ not json")

        store = (await history_store.load()).value()
        assert store.entries == []
        assert not history_path.exists()
        backups = list(history_path.parent.glob("history.json.backup.*"))
        assert len(backups) == 1
        assert backups[0].read_text() == "{ not json"

    @pytest.mark.asyncio
    async def test_invalid_entry_is_backed_up(self, history_store, history_path):
        history_path.parent.mkdir(parents=True)
        history_path.write_text(json.dumps({"version": 1, "entries": [{"id": "no-fields"}]}))
        assert (await history_store.load()).value().entries == []
        assert list(history_path.parent.glob("history.json.backup.*"))

    @pytest.mark.asyncio
    async def test_recording_after_corruption_starts_fresh(self, history_store, history_path):
        history_path.parent.mkdir(parents=True)
        history_path.write_text("garbage")
        await history_store.record(history_entry("fresh"))
        assert [e.id for e in (await history_store.query()).value()] == ["fresh"]

    @pytest.mark.asyncio
    async def test_newer_version_is_left_untouched(self, history_store, history_path):
        history_path.parent.mkdir(parents=True)
        content = json.dumps({"version": 7, "entries": []})
        history_path.write_text(content)

        result = await history_store.load()
        assert result.error().code == HistoryError.UNSUPPORTED_VERSION
        assert history_path.read_text() == content
        assert (await history_store.record(history_entry("x"))).is_failure()

    @pytest.mark.asyncio
    async def test_save_failure(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        store = OperationHistoryStore(blocker / "history.json")
        result = await store.save(HistoryStore())
        assert result.error().code == HistoryError.SAVE_FAILED


class TestLookupFileHistory:
    """Test per-file history lookup."""

    @pytest.mark.asyncio
    async def test_lookup_follows_a_file(self, history_store, tmp_path):
        start = tmp_path / "a.txt"
        middle = tmp_path / "b.txt"
        end = tmp_path / "sub" / "c.txt"
        await history_store.record(history_entry(
            "op1", days_ago(2), files=[FileHistoryRecord(str(start), str(middle))]))
        await history_store.record(history_entry(
            "op2", days_ago(1), files=[FileHistoryRecord(str(middle), str(end), is_move_operation=True)]))

        lookup = (await history_store.lookup_file_history(middle)).value()
        assert [o.operation_id for o in lookup.operations] == ["op2", "op1"]
        assert lookup.original_path == str(start)
        assert lookup.current_path == str(end)
        assert lookup.last_operation_id == "op2"
        assert lookup.is_at_original is False
        assert lookup.to_dict()["found"] is True

    @pytest.mark.asyncio
    async def test_lookup_unknown_path(self, history_store, tmp_path):
        await history_store.record(history_entry("op"))
        assert (await history_store.lookup_file_history(tmp_path / "nothing.txt")).value() is None

    @pytest.mark.asyncio
    async def test_lookup_multiple_files(self, history_store, tmp_path):
        renamed = tmp_path / "renamed.txt"
        await history_store.record(history_entry(
            "op", files=[FileHistoryRecord(str(tmp_path / "orig.txt"), str(renamed))]))

        lookups = (await history_store.lookup_multiple_files([renamed, tmp_path / "other.txt"])).value()
        assert list(lookups) == [str(renamed), str(tmp_path / "other.txt")]
        assert lookups[str(renamed)].last_operation_id == "op"
        assert lookups[str(tmp_path / "other.txt")] is None

    @pytest.mark.asyncio
    async def test_renamed_and_original_path(self, history_store, tmp_path):
        original = tmp_path / "orig.txt"
        renamed = tmp_path / "renamed.txt"
        renamed.write_text("x")
        await history_store.record(history_entry("op", files=[FileHistoryRecord(str(original), str(renamed))]))

        assert (await history_store.has_file_been_renamed(renamed)).value() is True
        assert (await history_store.get_original_path(renamed)).value() == str(original)
        assert (await history_store.has_file_been_renamed(tmp_path / "unknown.txt")).value() is False
        assert (await history_store.get_original_path(tmp_path / "unknown.txt")).value() is None

        renamed.rename(original)
        assert (await history_store.has_file_been_renamed(renamed)).value() is False
        assert (await history_store.get_original_path(renamed)).value() is None

    @pytest.mark.asyncio
    async def test_lookup_helpers_propagate_load_errors(self, history_store, history_path):
        history_path.parent.mkdir(parents=True)
        history_path.write_text('{"version": 99, "entries": []}')
        assert (await history_store.lookup_multiple_files(["/a"])).error().code == HistoryError.UNSUPPORTED_VERSION
        assert (await history_store.has_file_been_renamed("/a")).is_failure()
