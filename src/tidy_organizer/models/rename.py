"""Batch rename request and result models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


class RenameOutcome(Enum):
    """Per-file outcome of a batch rename."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class RenameRequest:
    """One file to rename or move, as planned by template resolution."""
    original_path: Path
    new_path: Path
    proposal_id: Optional[str] = None

    @property
    def is_move_operation(self) -> bool:
        return Path(self.original_path).parent != Path(self.new_path).parent


@dataclass(slots=True, frozen=True)
class FileRenameResult:
    """What happened to one file in a batch."""
    original_path: str
    new_path: Optional[str]
    outcome: RenameOutcome
    error: Optional[str] = None
    is_move_operation: bool = False
    proposal_id: Optional[str] = None

    @property
    def original_name(self) -> str:
        return Path(self.original_path).name

    @property
    def new_name(self) -> Optional[str]:
        return Path(self.new_path).name if self.new_path else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposalId": self.proposal_id,
            "originalPath": self.original_path,
            "originalName": self.original_name,
            "newPath": self.new_path,
            "newName": self.new_name,
            "outcome": self.outcome.value,
            "error": self.error,
            "isMoveOperation": self.is_move_operation,
        }


@dataclass(slots=True, frozen=True)
class BatchRenameSummary:
    total: int = 0
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    directories_created: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "failed": self.failed,
            "directoriesCreated": self.directories_created,
        }


@dataclass(slots=True, frozen=True)
class BatchRenameResult:
    """Outcome of a whole batch; ``results`` keeps the request order."""
    results: List[FileRenameResult]
    summary: BatchRenameSummary
    started_at: datetime
    completed_at: datetime
    duration_ms: int
    directories_created: List[str] = field(default_factory=list)
    aborted: bool = False

    @property
    def success(self) -> bool:
        return self.summary.failed == 0 and not self.aborted

    @classmethod
    def from_results(cls, results: List[FileRenameResult], started_at: datetime,
                     completed_at: datetime, directories_created: Optional[List[str]] = None,
                     aborted: bool = False) -> "BatchRenameResult":
        """Build a result, deriving the summary counts from ``results``."""
        directories_created = list(directories_created or [])
        summary = BatchRenameSummary(
            total=len(results),
            succeeded=sum(1 for r in results if r.outcome is RenameOutcome.SUCCESS),
            skipped=sum(1 for r in results if r.outcome is RenameOutcome.SKIPPED),
            failed=sum(1 for r in results if r.outcome is RenameOutcome.FAILED),
            directories_created=len(directories_created),
        )
        duration_ms = max(0, int((completed_at - started_at).total_seconds() * 1000))
        return cls(
            results=list(results),
            summary=summary,
            started_at=started_at,
            completed_at=completed_at,
            duration_ms=duration_ms,
            directories_created=directories_created,
            aborted=aborted,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary.to_dict(),
            "startedAt": self.started_at.isoformat(),
            "completedAt": self.completed_at.isoformat(),
            "durationMs": self.duration_ms,
            "aborted": self.aborted,
            "directoriesCreated": self.directories_created,
        }
