"""Undo result models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class UndoStage(Enum):
    """Stages of the undo pipeline, in execution order."""
    VALIDATE = "validate"
    REVERSE_FILES = "reverse-files"
    REMOVE_DIRECTORIES = "remove-directories"
    FINALIZE = "finalize"


SKIP_ORIGINAL_FAILED = "original-operation-failed"
SKIP_NO_DESTINATION = "no-destination-recorded"


@dataclass(slots=True, frozen=True)
class UndoFileResult:
    """Outcome of reversing one file."""
    original_path: str
    current_path: Optional[str]
    success: bool
    error: Optional[str] = None
    skip_reason: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.skip_reason is not None

    @classmethod
    def restored(cls, original_path: str, current_path: str) -> "UndoFileResult":
        return cls(original_path, current_path, success=True)

    @classmethod
    def failed(cls, original_path: str, current_path: Optional[str], error: str) -> "UndoFileResult":
        return cls(original_path, current_path, success=False, error=error)

    @classmethod
    def skip(cls, original_path: str, current_path: Optional[str], reason: str) -> "UndoFileResult":
        return cls(original_path, current_path, success=False, skip_reason=reason)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "originalPath": self.original_path,
            "currentPath": self.current_path,
            "success": self.success,
            "error": self.error,
            "skipReason": self.skip_reason,
        }


@dataclass(slots=True, frozen=True)
class UndoResult:
    """Outcome of an undo request (or its dry-run preview)."""
    operation_id: str
    success: bool
    dry_run: bool
    files_restored: int = 0
    files_skipped: int = 0
    files_failed: int = 0
    directories_removed: List[str] = field(default_factory=list)
    files: List[UndoFileResult] = field(default_factory=list)
    duration_ms: int = 0
    stages_completed: List[UndoStage] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "operationId": self.operation_id,
            "success": self.success,
            "dryRun": self.dry_run,
            "filesRestored": self.files_restored,
            "filesSkipped": self.files_skipped,
            "filesFailed": self.files_failed,
            "directoriesRemoved": list(self.directories_removed),
            "files": [f.to_dict() for f in self.files],
            "durationMs": self.duration_ms,
            "stagesCompleted": [s.value for s in self.stages_completed],
        }
