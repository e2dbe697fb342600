"""File information model produced by the folder scanner."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from ..utils.dates import format_timestamp, parse_timestamp


class FileCategory(Enum):
    """Coarse file category used for filtering and organization."""
    IMAGE = "image"
    DOCUMENT = "document"
    VIDEO = "video"
    AUDIO = "audio"
    ARCHIVE = "archive"
    CODE = "code"
    DATA = "data"
    OTHER = "other"


class MetadataCapability(Enum):
    """How much metadata can be extracted for a file type."""
    FULL = "full"
    BASIC = "basic"


EXTENSION_CATEGORIES: Dict[str, FileCategory] = {
    # Images
    "jpg": FileCategory.IMAGE, "jpeg": FileCategory.IMAGE, "png": FileCategory.IMAGE,
    "gif": FileCategory.IMAGE, "webp": FileCategory.IMAGE, "heic": FileCategory.IMAGE,
    "tiff": FileCategory.IMAGE, "tif": FileCategory.IMAGE, "bmp": FileCategory.IMAGE,
    # Documents
    "pdf": FileCategory.DOCUMENT, "docx": FileCategory.DOCUMENT, "xlsx": FileCategory.DOCUMENT,
    "pptx": FileCategory.DOCUMENT, "doc": FileCategory.DOCUMENT, "txt": FileCategory.DOCUMENT,
    "md": FileCategory.DOCUMENT, "odt": FileCategory.DOCUMENT,
    # Video
    "mp4": FileCategory.VIDEO, "mov": FileCategory.VIDEO, "mkv": FileCategory.VIDEO,
    "avi": FileCategory.VIDEO, "webm": FileCategory.VIDEO,
    # Audio
    "mp3": FileCategory.AUDIO, "flac": FileCategory.AUDIO, "wav": FileCategory.AUDIO,
    "m4a": FileCategory.AUDIO, "ogg": FileCategory.AUDIO,
    # Archives
    "zip": FileCategory.ARCHIVE, "tar": FileCategory.ARCHIVE, "gz": FileCategory.ARCHIVE,
    "7z": FileCategory.ARCHIVE, "rar": FileCategory.ARCHIVE,
    # Code
    "py": FileCategory.CODE, "js": FileCategory.CODE, "ts": FileCategory.CODE,
    "rs": FileCategory.CODE, "go": FileCategory.CODE, "java": FileCategory.CODE,
    # Data
    "json": FileCategory.DATA, "csv": FileCategory.DATA, "xml": FileCategory.DATA,
    "yaml": FileCategory.DATA, "yml": FileCategory.DATA,
}

# Extensions with a dedicated extractor (EXIF, PDF info dict, OOXML core props)
FULL_METADATA_EXTENSIONS = {"jpg", "jpeg", "png", "heic", "tiff", "tif", "webp", "pdf", "docx", "xlsx", "pptx"}


def category_for_extension(extension: str) -> FileCategory:
    """Look up the category for an extension (without the dot)."""
    return EXTENSION_CATEGORIES.get(extension.lower(), FileCategory.OTHER)


@dataclass(slots=True, frozen=True)
class FileInfo:
    """A scanned file: path plus file system facts."""
    path: Path
    name: str
    extension: str
    size: int = 0
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    category: FileCategory = FileCategory.OTHER
    metadata_supported: bool = False
    metadata_capability: MetadataCapability = MetadataCapability.BASIC
    relative_path: Optional[str] = None
    mime_type: Optional[str] = None

    @property
    def full_name(self) -> str:
        """File name including the extension."""
        return f"{self.name}.{self.extension}" if self.extension else self.name

    @classmethod
    def from_path(cls, path: Path, size: int = 0,
                  created_at: Optional[datetime] = None,
                  modified_at: Optional[datetime] = None,
                  relative_path: Optional[str] = None) -> "FileInfo":
        """Build a FileInfo from a path, deriving name, extension and category."""
        path = Path(path)
        extension = path.suffix[1:] if path.suffix else ""
        name = path.stem if extension else path.name
        supported = extension.lower() in FULL_METADATA_EXTENSIONS
        return cls(
            path=path,
            name=name,
            extension=extension,
            size=size,
            created_at=created_at,
            modified_at=modified_at,
            category=category_for_extension(extension),
            metadata_supported=supported,
            metadata_capability=MetadataCapability.FULL if supported else MetadataCapability.BASIC,
            relative_path=relative_path,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "path": str(self.path),
            "name": self.name,
            "extension": self.extension,
            "fullName": self.full_name,
            "size": self.size,
            "createdAt": format_timestamp(self.created_at),
            "modifiedAt": format_timestamp(self.modified_at),
            "category": self.category.value,
            "metadataSupported": self.metadata_supported,
            "metadataCapability": self.metadata_capability.value,
            "relativePath": self.relative_path,
            "mimeType": self.mime_type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileInfo":
        """Create from dictionary."""
        return cls(
            path=Path(data["path"]),
            name=data["name"],
            extension=data.get("extension", ""),
            size=data.get("size", 0),
            created_at=parse_timestamp(data.get("createdAt")),
            modified_at=parse_timestamp(data.get("modifiedAt")),
            category=FileCategory(data.get("category", "other")),
            metadata_supported=data.get("metadataSupported", False),
            metadata_capability=MetadataCapability(data.get("metadataCapability", "basic")),
            relative_path=data.get("relativePath"),
            mime_type=data.get("mimeType"),
        )
