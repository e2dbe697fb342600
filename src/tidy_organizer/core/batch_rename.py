"""Asynchronous batch rename/move executor.

Files are renamed independently with bounded concurrency: a failure on one
file is reported in its ``FileRenameResult`` and never stops the others.
Directories the batch had to create are listed in the result so an undo
can remove them again.
"""

import asyncio
import logging
import os
import shutil
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Set

import aiofiles.os

from ..models.rename import BatchRenameResult, FileRenameResult, RenameOutcome, RenameRequest
from ..utils.dates import utc_now

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, FileRenameResult], None]


def missing_directories(directory: Path) -> List[Path]:
    """Ancestors of ``directory`` (itself included) that do not exist, outermost first."""
    missing = []
    current = directory
    while not current.exists():
        missing.append(current)
        if current.parent == current:
            break
        current = current.parent
    return list(reversed(missing))


class BatchRenameExecutor:
    """Executes planned renames.

    Args:
        max_concurrency: Number of renames in flight at once
        create_directories: Create missing destination directories
    """

    def __init__(self, max_concurrency: int = 4, create_directories: bool = True):
        self.max_concurrency = max_concurrency
        self.create_directories = create_directories
        self._dir_lock = asyncio.Lock()

    async def execute(self, requests: Sequence[RenameRequest],
                      on_progress: Optional[ProgressCallback] = None,
                      cancel_event: Optional[asyncio.Event] = None) -> BatchRenameResult:
        """Run every request and report per-file outcomes in request order.

        Setting ``cancel_event`` skips every request that has not started
        yet and marks the batch as aborted.
        """
        started_at = utc_now()
        semaphore = asyncio.Semaphore(self.max_concurrency)
        created: List[str] = []
        seen_targets: Set[str] = set()
        completed = 0
        total = len(requests)

        duplicates = set()
        for index, request in enumerate(requests):
            target = os.path.abspath(str(request.new_path))
            if target in seen_targets:
                duplicates.add(index)
            seen_targets.add(target)

        async def run(index: int, request: RenameRequest) -> FileRenameResult:
            nonlocal completed
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    result = self._result(request, RenameOutcome.SKIPPED, "Operation cancelled")
                elif index in duplicates:
                    result = self._result(request, RenameOutcome.FAILED,
                                          f"Another file in this batch already targets {request.new_path}")
                else:
                    result = await self._rename_one(request, created)
            completed += 1
            if on_progress is not None:
                on_progress(completed, total, result)
            return result

        results = list(await asyncio.gather(*(run(i, r) for i, r in enumerate(requests))))
        aborted = cancel_event is not None and cancel_event.is_set()

        batch = BatchRenameResult.from_results(results, started_at, utc_now(), created, aborted)
        logger.info(f"Batch rename finished: {batch.summary.succeeded} succeeded, "
                    f"{batch.summary.skipped} skipped, {batch.summary.failed} failed")
        return batch

    async def _rename_one(self, request: RenameRequest, created: List[str]) -> FileRenameResult:
        source = Path(request.original_path)
        target = Path(request.new_path)

        if source == target:
            return self._result(request, RenameOutcome.SKIPPED, "Name unchanged")
        if not source.exists():
            return self._result(request, RenameOutcome.FAILED, f"Source file does not exist: {source}")
        # Case-only renames on case-insensitive file systems point at the source itself
        if target.exists() and not self._same_file(source, target):
            return self._result(request, RenameOutcome.FAILED, f"Target file already exists: {target}")

        loop = asyncio.get_event_loop()
        if not target.parent.exists():
            if not self.create_directories:
                return self._result(request, RenameOutcome.FAILED,
                                    f"Target directory does not exist: {target.parent}")
            async with self._dir_lock:
                missing = missing_directories(target.parent)
                try:
                    await aiofiles.os.makedirs(target.parent, exist_ok=True)
                except OSError as e:
                    return self._result(request, RenameOutcome.FAILED, f"Cannot create directory: {e}")
                created.extend(str(d) for d in missing)

        try:
            await loop.run_in_executor(None, shutil.move, str(source), str(target))
        except OSError as e:
            logger.debug(f"Rename of {source} failed: {e}")
            return self._result(request, RenameOutcome.FAILED, str(e))
        return self._result(request, RenameOutcome.SUCCESS)

    @staticmethod
    def _same_file(source: Path, target: Path) -> bool:
        try:
            return os.path.samefile(source, target)
        except OSError:
            return False

    @staticmethod
    def _result(request: RenameRequest, outcome: RenameOutcome, error: Optional[str] = None) -> FileRenameResult:
        return FileRenameResult(
            original_path=str(request.original_path),
            new_path=str(request.new_path),
            outcome=outcome,
            error=error,
            is_move_operation=request.is_move_operation,
            proposal_id=request.proposal_id,
        )


async def execute_batch_rename(requests: Sequence[RenameRequest],
                               on_progress: Optional[ProgressCallback] = None) -> BatchRenameResult:
    return await BatchRenameExecutor().execute(requests, on_progress)
