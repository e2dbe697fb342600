"""Operation history models.

An ``OperationHistoryEntry`` is the durable record of one batch rename/move
and is what the undo engine reverses. Entries are immutable except for
``undone_at``, which is set once by a successful undo.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..utils.dates import format_timestamp, parse_timestamp

HISTORY_STORE_VERSION = 1

DEFAULT_MAX_ENTRIES = 100
DEFAULT_MAX_AGE_DAYS = 30


class OperationType(Enum):
    """Kind of batch operation recorded."""
    RENAME = "rename"
    MOVE = "move"
    ORGANIZE = "organize"


@dataclass(slots=True, frozen=True)
class FileHistoryRecord:
    """One file of a recorded operation."""
    original_path: str
    new_path: Optional[str]
    is_move_operation: bool = False
    success: bool = True
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "originalPath": self.original_path,
            "newPath": self.new_path,
            "isMoveOperation": self.is_move_operation,
            "success": self.success,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileHistoryRecord":
        return cls(
            original_path=data["originalPath"],
            new_path=data.get("newPath"),
            is_move_operation=data.get("isMoveOperation", False),
            success=data.get("success", False),
            error=data.get("error"),
        )


@dataclass(slots=True, frozen=True)
class OperationSummary:
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    directories_created: int = 0

    @property
    def total(self) -> int:
        return self.succeeded + self.skipped + self.failed

    def to_dict(self) -> Dict[str, int]:
        return {
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "failed": self.failed,
            "directoriesCreated": self.directories_created,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OperationSummary":
        return cls(
            succeeded=data.get("succeeded", 0),
            skipped=data.get("skipped", 0),
            failed=data.get("failed", 0),
            directories_created=data.get("directoriesCreated", 0),
        )


@dataclass(slots=True, frozen=True)
class OperationHistoryEntry:
    """Durable record of one batch rename/move operation.

    Raises:
        ValueError: If ``files`` or ``summary`` disagree with ``file_count``.
    """
    id: str
    timestamp: datetime
    operation_type: OperationType
    file_count: int
    summary: OperationSummary
    duration_ms: int
    files: Tuple[FileHistoryRecord, ...] = ()
    directories_created: Tuple[str, ...] = ()
    undone_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not isinstance(self.files, tuple):
            object.__setattr__(self, "files", tuple(self.files))
        if not isinstance(self.directories_created, tuple):
            object.__setattr__(self, "directories_created", tuple(self.directories_created))
        if len(self.files) != self.file_count:
            raise ValueError(
                f"Entry {self.id}: {len(self.files)} file records but file_count={self.file_count}"
            )
        if self.summary.total != self.file_count:
            raise ValueError(
                f"Entry {self.id}: summary counts {self.summary.total} != file_count={self.file_count}"
            )

    @property
    def is_undone(self) -> bool:
        return self.undone_at is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "timestamp": format_timestamp(self.timestamp),
            "operationType": self.operation_type.value,
            "fileCount": self.file_count,
            "summary": self.summary.to_dict(),
            "durationMs": self.duration_ms,
            "files": [f.to_dict() for f in self.files],
            "directoriesCreated": list(self.directories_created),
            "undoneAt": format_timestamp(self.undone_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OperationHistoryEntry":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            timestamp=parse_timestamp(data["timestamp"]),
            operation_type=OperationType(data["operationType"]),
            file_count=data["fileCount"],
            summary=OperationSummary.from_dict(data["summary"]),
            duration_ms=data.get("durationMs", 0),
            files=tuple(FileHistoryRecord.from_dict(f) for f in data.get("files", [])),
            directories_created=tuple(data.get("directoriesCreated", [])),
            undone_at=parse_timestamp(data.get("undoneAt")),
        )


@dataclass(slots=True)
class HistoryStore:
    """The persisted history document, entries newest first."""
    version: int = HISTORY_STORE_VERSION
    last_pruned: Optional[datetime] = None
    entries: List[OperationHistoryEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "lastPruned": format_timestamp(self.last_pruned),
            "entries": [e.to_dict() for e in self.entries],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryStore":
        return cls(
            version=data.get("version", HISTORY_STORE_VERSION),
            last_pruned=parse_timestamp(data.get("lastPruned")),
            entries=[OperationHistoryEntry.from_dict(e) for e in data.get("entries", [])],
        )


@dataclass(slots=True, frozen=True)
class PruneConfig:
    """Retention limits. Zero disables a limit."""
    max_entries: int = DEFAULT_MAX_ENTRIES
    max_age_days: int = DEFAULT_MAX_AGE_DAYS

    def __post_init__(self) -> None:
        if self.max_entries < 0 or self.max_age_days < 0:
            raise ValueError("Prune limits must be non-negative")


@dataclass(slots=True, frozen=True)
class FileOperationEntry:
    """One operation that touched a looked-up file."""
    operation_id: str
    timestamp: datetime
    operation_type: OperationType
    original_path: str
    new_path: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operationId": self.operation_id,
            "timestamp": format_timestamp(self.timestamp),
            "operationType": self.operation_type.value,
            "originalPath": self.original_path,
            "newPath": self.new_path,
        }


@dataclass(slots=True, frozen=True)
class FileHistoryLookup:
    """History of a single file, operations newest first."""
    searched_path: str
    original_path: str
    current_path: Optional[str]
    last_operation_id: str
    last_modified: datetime
    is_at_original: bool
    operations: List[FileOperationEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "searchedPath": self.searched_path,
            "found": True,
            "originalPath": self.original_path,
            "currentPath": self.current_path,
            "lastOperationId": self.last_operation_id,
            "lastModified": format_timestamp(self.last_modified),
            "isAtOriginal": self.is_at_original,
            "operations": [o.to_dict() for o in self.operations],
        }
