"""Operation history persistence, querying and pruning.

History lives in a single JSON document (``history.json`` next to the user
configuration). Every mutation is a full read-modify-write of that document
and the write goes through a temporary file plus ``os.replace`` so a crash
never leaves a half-written store behind.
"""

import asyncio
import dataclasses
import json
import logging
import os
import time
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import aiofiles
import aiofiles.os

from ..domain.result import Failure, HistoryError, Result, Success
from ..models.config import default_config_dir
from ..models.history import (
    HISTORY_STORE_VERSION,
    FileHistoryLookup,
    FileHistoryRecord,
    FileOperationEntry,
    HistoryStore,
    OperationHistoryEntry,
    OperationSummary,
    OperationType,
    PruneConfig,
)
from ..models.rename import BatchRenameResult, RenameOutcome
from ..utils.dates import utc_now

logger = logging.getLogger(__name__)

HISTORY_FILENAME = "history.json"


def default_history_path() -> Path:
    return default_config_dir() / HISTORY_FILENAME


# Migrations


def _migrate_v0(data: Dict[str, Any]) -> Dict[str, Any]:
    """v0 stores had no version, no ``lastPruned`` and no move flags."""
    entries = []
    for entry in data.get("entries", []):
        entry = dict(entry)
        files = []
        for record in entry.get("files", []):
            record = dict(record)
            if "isMoveOperation" not in record:
                new_path = record.get("newPath")
                record["isMoveOperation"] = bool(new_path) and (
                    Path(record["originalPath"]).parent != Path(new_path).parent
                )
            files.append(record)
        entry["files"] = files
        entry.setdefault("directoriesCreated", [])
        entry.setdefault("durationMs", 0)
        entries.append(entry)
    return {"version": 1, "lastPruned": data.get("lastPruned"), "entries": entries}


MIGRATIONS: Dict[int, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    0: _migrate_v0,
}


def migrate_store_data(data: Union[Dict[str, Any], List[Any]]) -> Result[Dict[str, Any], HistoryError]:
    """Upgrade a raw history document to the current version.

    A bare list is read as the entries of a v0 store. Documents written by a
    newer version are refused rather than reinterpreted.
    """
    if isinstance(data, list):
        data = {"entries": data}
    if not isinstance(data, dict):
        return Failure(HistoryError(HistoryError.LOAD_FAILED, "History document is not an object"))

    version = data.get("version", 0)
    if not isinstance(version, int) or isinstance(version, bool) or version < 0:
        return Failure(HistoryError(HistoryError.LOAD_FAILED, f"Invalid history version: {version!r}"))
    if version > HISTORY_STORE_VERSION:
        return Failure(HistoryError(
            HistoryError.UNSUPPORTED_VERSION,
            f"History file version {version} is newer than supported version {HISTORY_STORE_VERSION}",
            {"version": version, "supported": HISTORY_STORE_VERSION},
        ))

    while version < HISTORY_STORE_VERSION:
        logger.info(f"Migrating history store from version {version}")
        data = MIGRATIONS[version](data)
        version = data["version"]
    return Success(data)


# Pruning


def _limits(config: Optional[PruneConfig]) -> PruneConfig:
    return config if config is not None else PruneConfig()


def should_prune(store: HistoryStore, config: Optional[PruneConfig] = None,
                 now: Optional[datetime] = None) -> bool:
    """True when the store exceeds the count limit or holds an expired entry."""
    config = _limits(config)
    if config.max_entries and len(store.entries) > config.max_entries:
        return True
    if config.max_age_days:
        cutoff = (now or utc_now()) - timedelta(days=config.max_age_days)
        return any(entry.timestamp < cutoff for entry in store.entries)
    return False


def prune_history(store: HistoryStore, config: Optional[PruneConfig] = None,
                  now: Optional[datetime] = None) -> HistoryStore:
    """Return a pruned copy of ``store``.

    The count limit is applied first (entries are newest first), then the
    age limit. A limit of 0 disables it. ``last_pruned`` is set to ``now``.
    """
    config = _limits(config)
    now = now or utc_now()
    entries = list(store.entries)

    if config.max_entries and len(entries) > config.max_entries:
        entries = entries[:config.max_entries]
    if config.max_age_days:
        cutoff = now - timedelta(days=config.max_age_days)
        entries = [entry for entry in entries if entry.timestamp >= cutoff]

    return HistoryStore(version=store.version, last_pruned=now, entries=entries)


def create_entry_from_result(result: BatchRenameResult,
                             operation_type: Optional[OperationType] = None) -> OperationHistoryEntry:
    """Build a history entry for a finished batch.

    The type is ``move`` when any file changed directory, else ``rename``.
    """
    files = tuple(
        FileHistoryRecord(
            original_path=r.original_path,
            new_path=r.new_path,
            is_move_operation=r.is_move_operation,
            success=r.outcome is RenameOutcome.SUCCESS,
            error=r.error,
        )
        for r in result.results
    )
    if operation_type is None:
        operation_type = OperationType.MOVE if any(f.is_move_operation for f in files) else OperationType.RENAME

    return OperationHistoryEntry(
        id=str(uuid.uuid4()),
        timestamp=utc_now(),
        operation_type=operation_type,
        file_count=len(files),
        summary=OperationSummary(
            succeeded=result.summary.succeeded,
            skipped=result.summary.skipped,
            failed=result.summary.failed,
            directories_created=result.summary.directories_created,
        ),
        duration_ms=result.duration_ms,
        files=files,
        directories_created=tuple(result.directories_created),
    )


class OperationHistoryStore:
    """Async access to the persisted operation history.

    Args:
        history_path: Location of the JSON document (defaults to the user
            config directory)
        prune_config: Retention applied automatically after each ``record``
        auto_prune: Disable to keep every recorded entry
    """

    def __init__(self, history_path: Optional[Path] = None,
                 prune_config: Optional[PruneConfig] = None,
                 auto_prune: bool = True):
        self.history_path = Path(history_path) if history_path else default_history_path()
        self.prune_config = prune_config if prune_config is not None else PruneConfig()
        self.auto_prune = auto_prune
        self._lock = asyncio.Lock()

    # Storage

    async def load(self) -> Result[HistoryStore, HistoryError]:
        """Read the store; a missing file is an empty store.

        Unparseable or structurally invalid files are moved aside to
        ``history.json.backup.<ms>`` and an empty store is returned.
        """
        try:
            async with aiofiles.open(self.history_path, "r", encoding="utf-8") as f:
                content = await f.read()
        except FileNotFoundError:
            return Success(HistoryStore())
        except OSError as e:
            return Failure(HistoryError(HistoryError.LOAD_FAILED, f"Failed to read history: {e}",
                                        {"path": str(self.history_path)}))

        try:
            raw = json.loads(content)
        except json.JSONDecodeError as e:
            return await self._reset_corrupted(f"invalid JSON ({e.msg})")

        migrated = migrate_store_data(raw)
        if migrated.is_failure():
            if migrated.error().code == HistoryError.UNSUPPORTED_VERSION:
                return migrated
            return await self._reset_corrupted(migrated.error().message)

        try:
            store = HistoryStore.from_dict(migrated.value())
        except (KeyError, TypeError, ValueError) as e:
            return await self._reset_corrupted(f"invalid entry ({e})")

        store.entries.sort(key=lambda entry: entry.timestamp, reverse=True)
        return Success(store)

    async def save(self, store: HistoryStore) -> Result[None, HistoryError]:
        """Write the whole store atomically."""
        content = json.dumps(store.to_dict(), indent=2)
        temp_path = self.history_path.with_name(f".{self.history_path.name}.{uuid.uuid4().hex}.tmp")
        try:
            await aiofiles.os.makedirs(self.history_path.parent, exist_ok=True)
            async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
                await f.write(content)
            await aiofiles.os.replace(temp_path, self.history_path)
        except OSError as e:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            return Failure(HistoryError(HistoryError.SAVE_FAILED, f"Failed to save history: {e}",
                                        {"path": str(self.history_path)}))
        return Success(None)

    async def _reset_corrupted(self, reason: str) -> Result[HistoryStore, HistoryError]:
        backup_path = self.history_path.with_name(
            f"{self.history_path.name}.backup.{int(time.time() * 1000)}"
        )
        try:
            await aiofiles.os.replace(self.history_path, backup_path)
        except OSError as e:
            return Failure(HistoryError(
                HistoryError.LOAD_FAILED,
                f"History file is corrupted ({reason}) and could not be backed up: {e}",
                {"path": str(self.history_path)},
            ))
        logger.warning(f"History file was corrupted ({reason}); moved to {backup_path}")
        return Success(HistoryStore())

    async def _modify(self, change: Callable[[HistoryStore], Result[Any, HistoryError]]) -> Result[Any, HistoryError]:
        """Locked read-modify-write; ``change`` mutates the store in place."""
        async with self._lock:
            loaded = await self.load()
            if loaded.is_failure():
                return loaded
            store = loaded.value()
            outcome = change(store)
            if outcome.is_failure():
                return outcome
            saved = await self.save(store)
            if saved.is_failure():
                return saved
            return outcome

    # Recording

    async def record(self, entry: OperationHistoryEntry) -> Result[OperationHistoryEntry, HistoryError]:
        """Prepend ``entry`` (newest first) and apply automatic pruning."""
        def change(store: HistoryStore) -> Result[OperationHistoryEntry, HistoryError]:
            store.entries.insert(0, entry)
            if self.auto_prune and should_prune(store, self.prune_config):
                pruned = prune_history(store, self.prune_config)
                store.entries = pruned.entries
                store.last_pruned = pruned.last_pruned
            return Success(entry)

        result = await self._modify(change)
        if result.is_success():
            logger.info(f"Recorded {entry.operation_type.value} operation {entry.id} ({entry.file_count} files)")
        return result

    async def record_batch_result(self, result: BatchRenameResult,
                                  operation_type: Optional[OperationType] = None
                                  ) -> Result[OperationHistoryEntry, HistoryError]:
        return await self.record(create_entry_from_result(result, operation_type))

    async def prune(self, config: Optional[PruneConfig] = None) -> Result[int, HistoryError]:
        """Apply retention limits; returns the number of entries removed."""
        config = config if config is not None else self.prune_config

        def change(store: HistoryStore) -> Result[int, HistoryError]:
            before = len(store.entries)
            pruned = prune_history(store, config)
            store.entries = pruned.entries
            store.last_pruned = pruned.last_pruned
            return Success(before - len(store.entries))

        result = await self._modify(change)
        if result.is_success():
            logger.info(f"Pruned {result.value()} history entries")
        return result

    async def mark_undone(self, entry_id: str,
                          undone_at: Optional[datetime] = None) -> Result[OperationHistoryEntry, HistoryError]:
        """Stamp ``undone_at`` on an entry."""
        when = undone_at or utc_now()

        def change(store: HistoryStore) -> Result[OperationHistoryEntry, HistoryError]:
            for i, entry in enumerate(store.entries):
                if entry.id == entry_id:
                    updated = dataclasses.replace(entry, undone_at=when)
                    store.entries[i] = updated
                    return Success(updated)
            return Failure(HistoryError(HistoryError.NOT_FOUND, f'Operation "{entry_id}" not found',
                                        {"id": entry_id}))

        return await self._modify(change)

    # Queries

    async def query(self, limit: Optional[int] = None,
                    operation_type: Optional[OperationType] = None) -> Result[List[OperationHistoryEntry], HistoryError]:
        """Entries newest first, optionally filtered by type; non-positive limits are ignored."""
        loaded = await self.load()
        if loaded.is_failure():
            return loaded
        entries = loaded.value().entries
        if operation_type is not None:
            entries = [e for e in entries if e.operation_type is operation_type]
        if limit is not None and limit > 0:
            entries = entries[:limit]
        return Success(entries)

    async def get(self, entry_id: str) -> Result[Optional[OperationHistoryEntry], HistoryError]:
        loaded = await self.load()
        if loaded.is_failure():
            return loaded
        return Success(next((e for e in loaded.value().entries if e.id == entry_id), None))

    async def count(self, operation_type: Optional[OperationType] = None) -> Result[int, HistoryError]:
        return (await self.query(operation_type=operation_type)).map(len)

    async def lookup_file_history(self, path: Union[str, Path]) -> Result[Optional[FileHistoryLookup], HistoryError]:
        """Every operation that touched ``path`` as its original or new location.

        Returns ``None`` inside the ``Success`` when the path never appears
        in history.
        """
        loaded = await self.load()
        if loaded.is_failure():
            return loaded
        return Success(build_file_lookup(loaded.value().entries, path))

    async def lookup_multiple_files(self, paths: Iterable[Union[str, Path]]
                                    ) -> Result[Dict[str, Optional[FileHistoryLookup]], HistoryError]:
        """Look up several paths against a single load of the store, keyed by the given path."""
        loaded = await self.load()
        if loaded.is_failure():
            return loaded
        entries = loaded.value().entries
        return Success({str(path): build_file_lookup(entries, path) for path in paths})

    async def has_file_been_renamed(self, path: Union[str, Path]) -> Result[bool, HistoryError]:
        """True when ``path`` is in history and no longer at its original location."""
        return (await self.lookup_file_history(path)).map(
            lambda lookup: lookup is not None and not lookup.is_at_original
        )

    async def get_original_path(self, path: Union[str, Path]) -> Result[Optional[str], HistoryError]:
        """The original path of a renamed file; ``None`` if unknown or already back."""
        return (await self.lookup_file_history(path)).map(
            lambda lookup: lookup.original_path if lookup is not None and not lookup.is_at_original else None
        )


def build_file_lookup(entries: Iterable[OperationHistoryEntry],
                      path: Union[str, Path]) -> Optional[FileHistoryLookup]:
    """Collect the records naming ``path``; ``None`` when there are none."""
    searched = os.path.abspath(str(path))
    matches = []
    for entry in entries:
        for record in entry.files:
            original = os.path.abspath(record.original_path)
            new = os.path.abspath(record.new_path) if record.new_path else None
            if searched in (original, new):
                matches.append((entry, record))
    if not matches:
        return None

    matches.sort(key=lambda m: m[0].timestamp, reverse=True)
    latest_entry, latest_record = matches[0]
    first_record = matches[-1][1]
    return FileHistoryLookup(
        searched_path=searched,
        original_path=first_record.original_path,
        current_path=latest_record.new_path,
        last_operation_id=latest_entry.id,
        last_modified=latest_entry.timestamp,
        is_at_original=os.path.exists(first_record.original_path),
        operations=[
            FileOperationEntry(
                operation_id=entry.id,
                timestamp=entry.timestamp,
                operation_type=entry.operation_type,
                original_path=record.original_path,
                new_path=record.new_path,
            )
            for entry, record in matches
        ],
    )
