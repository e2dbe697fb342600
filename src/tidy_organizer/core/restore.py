"""Restore individual files to their original names using history.

Where undo reverses a whole operation, a restore looks a single path up
in history (by its original or current location) and moves just that
file back. Restoring by operation id delegates to the undo engine.
"""

import asyncio
import logging
import os
import shutil
import time
from pathlib import Path
from typing import Optional, Union

from ..domain.result import DomainError, Failure, Result, Success
from ..models.history import FileHistoryRecord
from ..models.restore import RestoreResult
from .operation_history import OperationHistoryStore
from .undo import UndoEngine, check_reversal

logger = logging.getLogger(__name__)


async def restore_file(history: OperationHistoryStore, path: Union[str, Path, None],
                       dry_run: bool = False,
                       operation_id: Optional[str] = None) -> Result[RestoreResult, DomainError]:
    """Move the file at ``path`` back to its original location.

    Args:
        history: Store the file is looked up in
        path: Current or original path of the file
        dry_run: Run every check but leave the file where it is
        operation_id: Restore every file of this operation instead (same as undo)

    Returns:
        A ``RestoreResult``; expected problems (not in history, file gone,
        original occupied) are reported in it with ``success=False``.
        Only an unreadable history is a ``Failure``.
    """
    start = time.monotonic()

    def elapsed() -> int:
        return int((time.monotonic() - start) * 1000)

    if operation_id:
        return await _restore_operation(history, operation_id, str(path or ""), dry_run, elapsed)

    if not path:
        return Success(RestoreResult.failed("", "File path is required", elapsed()))
    searched = str(path)

    found = await history.lookup_file_history(searched)
    if found.is_failure():
        return found
    lookup = found.value()
    if lookup is None:
        return Success(RestoreResult.failed(searched, f"No history found for file: {searched}", elapsed()))

    if lookup.is_at_original:
        return Success(RestoreResult(
            success=True,
            searched_path=searched,
            original_path=lookup.original_path,
            previous_path=lookup.original_path,
            operation_id=lookup.last_operation_id,
            message="File is already at original location",
            duration_ms=elapsed(),
        ))

    def failed(error: str) -> Result[RestoreResult, DomainError]:
        return Success(RestoreResult.failed(searched, error, elapsed(), lookup.original_path,
                                            lookup.current_path, lookup.last_operation_id))

    if not lookup.current_path:
        return failed("File no longer exists at expected location. It may have been moved or deleted.")
    problem = check_reversal(FileHistoryRecord(lookup.original_path, lookup.current_path))
    if problem is not None:
        return failed(problem.error)
    parent = os.path.dirname(lookup.original_path)
    if parent and not os.path.isdir(parent):
        return failed(f"Parent directory does not exist: {parent}")

    if not dry_run:
        try:
            await asyncio.get_event_loop().run_in_executor(
                None, shutil.move, lookup.current_path, lookup.original_path
            )
        except OSError as e:
            return failed(str(e))
        logger.info(f"Restored {lookup.current_path} to {lookup.original_path}")

    return Success(RestoreResult(
        success=True,
        searched_path=searched,
        dry_run=dry_run,
        original_path=lookup.original_path,
        previous_path=lookup.current_path,
        operation_id=lookup.last_operation_id,
        duration_ms=elapsed(),
    ))


async def _restore_operation(history: OperationHistoryStore, operation_id: str, searched: str,
                             dry_run: bool, elapsed) -> Result[RestoreResult, DomainError]:
    undone = await UndoEngine(history).undo(operation_id, dry_run=dry_run)
    if undone.is_failure():
        return Failure(undone.error())
    outcome = undone.value()
    searched = searched or f"operation:{operation_id}"
    if not outcome.success and outcome.files_failed:
        return Success(RestoreResult(
            success=False,
            searched_path=searched,
            dry_run=outcome.dry_run,
            operation_id=outcome.operation_id,
            error=f"Restore failed: {outcome.files_failed} file(s) could not be restored",
            duration_ms=elapsed(),
        ))
    return Success(RestoreResult(
        success=outcome.success,
        searched_path=searched,
        dry_run=outcome.dry_run,
        operation_id=outcome.operation_id,
        message=f"Restored {outcome.files_restored} file(s) from operation",
        duration_ms=elapsed(),
    ))


async def can_restore_file(history: OperationHistoryStore,
                           path: Union[str, Path]) -> Result[bool, DomainError]:
    """Whether ``path`` would restore cleanly; a file already at its original is not restorable."""
    preview = await restore_file(history, path, dry_run=True)
    return preview.map(lambda result: result.success and result.message is None)
