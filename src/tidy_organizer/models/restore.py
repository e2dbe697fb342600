"""Single-file restore result model."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(slots=True, frozen=True)
class RestoreResult:
    """Outcome of restoring one file (or one operation) to its original name.

    ``message`` is set for informational outcomes such as a file that is
    already at its original location; ``error`` is set on failure.
    """
    success: bool
    searched_path: str
    dry_run: bool = False
    original_path: Optional[str] = None
    previous_path: Optional[str] = None
    operation_id: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None
    duration_ms: int = 0

    @classmethod
    def failed(cls, searched_path: str, error: str, duration_ms: int = 0,
               original_path: Optional[str] = None, previous_path: Optional[str] = None,
               operation_id: Optional[str] = None) -> "RestoreResult":
        return cls(False, searched_path, original_path=original_path, previous_path=previous_path,
                   operation_id=operation_id, error=error, duration_ms=duration_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "dryRun": self.dry_run,
            "searchedPath": self.searched_path,
            "originalPath": self.original_path,
            "previousPath": self.previous_path,
            "operationId": self.operation_id,
            "error": self.error,
            "message": self.message,
            "durationMs": self.duration_ms,
        }
