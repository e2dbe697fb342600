"""Resolve dotted field paths against unified metadata.

Paths are ``<namespace>.<field>[.<sub>]`` where the namespace is one of
``image``, ``pdf``, ``office`` or ``file``. A path that names a missing
section or an unset field resolves with ``exists=False``; only structurally
malformed paths (empty string, empty segments) are errors.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from ..domain.result import FieldResolutionError, Failure, Result, Success
from ..models.metadata import UnifiedMetadata
from ..utils.dates import format_timestamp

IMAGE_FIELDS: Dict[str, str] = {
    "dateTaken": "date_taken",
    "cameraMake": "camera_make",
    "cameraModel": "camera_model",
    "gps": "gps",
    "width": "width",
    "height": "height",
    "orientation": "orientation",
    "exposureTime": "exposure_time",
    "fNumber": "f_number",
    "iso": "iso",
    # aliases
    "make": "camera_make",
    "model": "camera_model",
}

PDF_FIELDS: Dict[str, str] = {
    "title": "title",
    "author": "author",
    "subject": "subject",
    "keywords": "keywords",
    "creator": "creator",
    "producer": "producer",
    "creationDate": "creation_date",
    "modificationDate": "modification_date",
    "pageCount": "page_count",
}

OFFICE_FIELDS: Dict[str, str] = {
    "title": "title",
    "subject": "subject",
    "creator": "creator",
    "keywords": "keywords",
    "description": "description",
    "lastModifiedBy": "last_modified_by",
    "created": "created",
    "modified": "modified",
    "revision": "revision",
    "category": "category",
    "application": "application",
    "appVersion": "app_version",
    "pageCount": "page_count",
    "wordCount": "word_count",
    # alias
    "author": "creator",
}

FILE_FIELDS: Dict[str, str] = {
    "path": "path",
    "name": "name",
    "extension": "extension",
    "fullName": "full_name",
    "size": "size",
    "createdAt": "created_at",
    "modifiedAt": "modified_at",
    "relativePath": "relative_path",
    "mimeType": "mime_type",
    "category": "category",
    "metadataSupported": "metadata_supported",
    "metadataCapability": "metadata_capability",
}

GPS_FIELDS = ("latitude", "longitude")

NAMESPACES = ("image", "pdf", "office", "file")

VALID_FIELD_PATHS: List[str] = sorted(
    [f"image.{name}" for name in IMAGE_FIELDS] + ["image.camera"]
    + [f"image.gps.{name}" for name in GPS_FIELDS]
    + [f"pdf.{name}" for name in PDF_FIELDS]
    + [f"office.{name}" for name in OFFICE_FIELDS]
    + [f"file.{name}" for name in FILE_FIELDS]
)


@dataclass(slots=True, frozen=True)
class FieldResolution:
    """Presence and native value of a resolved field."""
    exists: bool
    value: Any = None

    @property
    def original_type(self) -> str:
        return value_type(self.value)

    @property
    def text(self) -> Optional[str]:
        """String form of the value, used by the text operators."""
        return value_to_text(self.value)


_MISSING = FieldResolution(exists=False)


def value_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, datetime):
        return "date"
    if isinstance(value, str):
        return "string"
    return "object"


def value_to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, Enum):
        return str(value.value)
    if hasattr(value, "to_dict"):
        return json.dumps(value.to_dict(), sort_keys=True)
    return str(value)


def split_field_path(field_path: str) -> Result[List[str], FieldResolutionError]:
    """Split a dotted path, rejecting empty paths and empty segments."""
    if not isinstance(field_path, str) or not field_path.strip():
        return Failure(FieldResolutionError(
            FieldResolutionError.INVALID_FIELD_PATH, "Field path is empty",
            {"field_path": field_path},
        ))
    segments = field_path.strip().split(".")
    if any(not segment for segment in segments):
        return Failure(FieldResolutionError(
            FieldResolutionError.INVALID_FIELD_PATH,
            f"Field path '{field_path}' contains an empty segment",
            {"field_path": field_path},
        ))
    return Success(segments)


def _resolve_image(metadata: UnifiedMetadata, path: List[str]) -> FieldResolution:
    image = metadata.image
    if image is None:
        return _MISSING
    name = path[0]
    if name == "gps" and len(path) == 2:
        if image.gps is None or path[1] not in GPS_FIELDS:
            return _MISSING
        return _found(getattr(image.gps, path[1]))
    if len(path) != 1:
        return _MISSING
    if name == "camera":
        if image.camera_make and image.camera_model:
            return _found(f"{image.camera_make} {image.camera_model}")
        return _found(image.camera_make or image.camera_model)
    attr = IMAGE_FIELDS.get(name)
    return _found(getattr(image, attr)) if attr else _MISSING


def _resolve_section(section: Any, fields: Dict[str, str], path: List[str]) -> FieldResolution:
    if section is None or len(path) != 1:
        return _MISSING
    attr = fields.get(path[0])
    return _found(getattr(section, attr)) if attr else _MISSING


def _found(value: Any) -> FieldResolution:
    if value is None:
        return _MISSING
    return FieldResolution(exists=True, value=value)


def resolve_field(metadata: UnifiedMetadata, field_path: str) -> Result[FieldResolution, FieldResolutionError]:
    """Resolve ``field_path`` against ``metadata``.

    Native types are preserved: numbers stay numbers and dates stay
    ``datetime`` so comparisons work by value and by instant.
    """
    split = split_field_path(field_path)
    if split.is_failure():
        return split
    namespace, *path = split.value()

    if not path:
        return Success(_MISSING)
    if namespace == "image":
        return Success(_resolve_image(metadata, path))
    if namespace == "pdf":
        return Success(_resolve_section(metadata.pdf, PDF_FIELDS, path))
    if namespace == "office":
        return Success(_resolve_section(metadata.office, OFFICE_FIELDS, path))
    if namespace == "file":
        return Success(_resolve_section(metadata.file, FILE_FIELDS, path))
    return Success(_MISSING)


def field_exists(metadata: UnifiedMetadata, field_path: str) -> bool:
    """True if the path resolves to a present value (malformed paths are absent)."""
    return resolve_field(metadata, field_path).map(lambda r: r.exists).or_else(False)


def resolve_multiple_fields(metadata: UnifiedMetadata,
                            field_paths: Iterable[str]) -> Dict[str, Result[FieldResolution, FieldResolutionError]]:
    """Resolve several paths at once, keyed by path."""
    return {path: resolve_field(metadata, path) for path in field_paths}


def is_valid_field_path(field_path: str) -> bool:
    """True if the path names a field some extractor can produce."""
    return field_path in VALID_FIELD_PATHS
