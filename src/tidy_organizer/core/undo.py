"""Reverse a recorded batch operation.

An undo runs through four stages: validate the request and pre-flight
every file, move files back, remove directories the operation created
(only when empty) and finally stamp ``undone_at`` on the history entry.
Failures of individual files never abort the rest of the batch.
"""

import asyncio
import logging
import os
import shutil
import time
from typing import Callable, List, Optional, Set

from ..domain.result import Failure, Result, Success, UndoError
from ..models.history import FileHistoryRecord, OperationHistoryEntry
from ..models.undo import (
    SKIP_NO_DESTINATION,
    SKIP_ORIGINAL_FAILED,
    UndoFileResult,
    UndoResult,
    UndoStage,
)
from .operation_history import OperationHistoryStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 4


def check_reversal(record: FileHistoryRecord) -> Optional[UndoFileResult]:
    """Why ``record`` cannot be reversed, or ``None`` when it can."""
    if not record.success:
        return UndoFileResult.skip(record.original_path, record.new_path, SKIP_ORIGINAL_FAILED)
    if not record.new_path:
        return UndoFileResult.skip(record.original_path, None, SKIP_NO_DESTINATION)
    if not os.path.exists(record.new_path):
        return UndoFileResult.failed(record.original_path, record.new_path,
                                     "File no longer exists at expected location")
    if os.path.exists(record.original_path):
        return UndoFileResult.failed(record.original_path, record.new_path,
                                     "Original path is now occupied by another file")
    return None


def reverse_file(record: FileHistoryRecord) -> UndoFileResult:
    """Move one file back to its original path, recreating its directory."""
    problem = check_reversal(record)
    if problem is not None:
        return problem
    try:
        os.makedirs(os.path.dirname(record.original_path) or ".", exist_ok=True)
        shutil.move(record.new_path, record.original_path)
    except OSError as e:
        return UndoFileResult.failed(record.original_path, record.new_path, str(e))
    return UndoFileResult.restored(record.original_path, record.new_path)


def remove_empty_directories(directories: List[str]) -> List[str]:
    """Remove the given directories that are empty, deepest first."""
    removed = []
    for directory in sorted(directories, key=len, reverse=True):
        try:
            if os.path.isdir(directory) and not os.listdir(directory):
                os.rmdir(directory)
                removed.append(directory)
        except OSError as e:
            logger.debug(f"Could not remove directory {directory}: {e}")
    return removed


def _count(results: List[UndoFileResult]):
    restored = sum(1 for r in results if r.success)
    skipped = sum(1 for r in results if r.skipped)
    return restored, skipped, len(results) - restored - skipped


class UndoEngine:
    """Undoes operations recorded in an ``OperationHistoryStore``.

    Args:
        history: Store the operations are read from and marked in
        max_concurrency: Number of file moves allowed in flight at once
    """

    def __init__(self, history: OperationHistoryStore, max_concurrency: int = DEFAULT_MAX_CONCURRENCY):
        self.history = history
        self.max_concurrency = max_concurrency
        self._running: Set[asyncio.Task] = set()

    async def _find_entry(self, operation_id: Optional[str]) -> Result[OperationHistoryEntry, UndoError]:
        if operation_id:
            found = await self.history.get(operation_id)
            if found.is_failure():
                return Failure(UndoError(UndoError.HISTORY_ERROR, found.error().message))
            if found.value() is None:
                return Failure(UndoError(UndoError.NOT_FOUND, f"Operation not found: {operation_id}",
                                         {"id": operation_id}))
            return Success(found.value())

        latest = await self.history.query(limit=1)
        if latest.is_failure():
            return Failure(UndoError(UndoError.HISTORY_ERROR, latest.error().message))
        if not latest.value():
            return Failure(UndoError(UndoError.EMPTY_HISTORY, "No operations in history to undo"))
        return Success(latest.value()[0])

    async def undo(self, operation_id: Optional[str] = None, dry_run: bool = False,
                   force: bool = False) -> Result[UndoResult, UndoError]:
        """Undo ``operation_id`` (the most recent operation when omitted).

        Args:
            operation_id: History entry to reverse
            dry_run: Pre-flight only; nothing on disk or in history changes
            force: Proceed even when pre-flight found conflicts

        Returns:
            The ``UndoResult``. Without ``force``, pre-flight conflicts stop
            the undo and the preview comes back with ``success=False``.
        """
        start = time.monotonic()

        def elapsed() -> int:
            return int((time.monotonic() - start) * 1000)

        found = await self._find_entry(operation_id)
        if found.is_failure():
            return found
        entry = found.value()
        if entry.is_undone:
            return Failure(UndoError(UndoError.ALREADY_UNDONE, "Operation already undone",
                                     {"id": entry.id, "undoneAt": entry.undone_at.isoformat()}))

        preflight = [check_reversal(r) or UndoFileResult.restored(r.original_path, r.new_path)
                     for r in entry.files]
        restored, skipped, failed = _count(preflight)
        stages = [UndoStage.VALIDATE]

        if dry_run or (failed and not force):
            if not dry_run:
                logger.info(f"Undo of {entry.id} blocked by {failed} conflict(s); use force to proceed")
            return Success(UndoResult(
                operation_id=entry.id,
                success=failed == 0 and dry_run,
                dry_run=True,
                files_restored=restored if dry_run else 0,
                files_skipped=skipped,
                files_failed=failed,
                files=preflight,
                duration_ms=elapsed(),
                stages_completed=stages,
            ))

        # Once files start moving the undo runs to completion; a cancelled
        # caller abandons the task without stopping it.
        task = asyncio.ensure_future(self._apply(entry, stages, elapsed))
        self._running.add(task)
        task.add_done_callback(self._running.discard)
        return Success(await asyncio.shield(task))

    async def _apply(self, entry: OperationHistoryEntry, stages: List[UndoStage],
                     elapsed: Callable[[], int]) -> UndoResult:
        """REVERSE_FILES, REMOVE_DIRECTORIES and FINALIZE for a validated entry."""
        loop = asyncio.get_event_loop()
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded_reverse(record: FileHistoryRecord) -> UndoFileResult:
            async with semaphore:
                return await loop.run_in_executor(None, reverse_file, record)

        results = list(await asyncio.gather(*(bounded_reverse(r) for r in entry.files)))
        stages.append(UndoStage.REVERSE_FILES)

        removed = await loop.run_in_executor(None, remove_empty_directories, list(entry.directories_created))
        stages.append(UndoStage.REMOVE_DIRECTORIES)

        marked = await self.history.mark_undone(entry.id)
        if marked.is_failure():
            logger.warning(f"Failed to mark operation {entry.id} as undone: {marked.error().message}")
        else:
            stages.append(UndoStage.FINALIZE)

        restored, skipped, failed = _count(results)
        logger.info(f"Undo of {entry.id}: {restored} restored, {skipped} skipped, {failed} failed")
        return UndoResult(
            operation_id=entry.id,
            success=failed == 0,
            dry_run=False,
            files_restored=restored,
            files_skipped=skipped,
            files_failed=failed,
            directories_removed=removed,
            files=results,
            duration_ms=elapsed(),
            stages_completed=stages,
        )


async def undo_operation(history: OperationHistoryStore, operation_id: Optional[str] = None,
                         dry_run: bool = False, force: bool = False) -> Result[UndoResult, UndoError]:
    return await UndoEngine(history).undo(operation_id, dry_run=dry_run, force=force)
