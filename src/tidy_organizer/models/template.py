"""Naming template model."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple

from ..utils.dates import format_timestamp, parse_timestamp


@dataclass(slots=True, frozen=True)
class Template:
    """A naming pattern such as ``{year}-{month}-{day}_{original}``."""
    id: str
    name: str
    pattern: str
    is_default: bool = False
    file_types: Tuple[str, ...] = ()
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not isinstance(self.file_types, tuple):
            object.__setattr__(self, "file_types", tuple(self.file_types))

    def applies_to(self, extension: str) -> bool:
        """True if the template's file type filter accepts ``extension``."""
        if not self.file_types:
            return True
        ext = extension.lower().lstrip(".")
        return any(t.lower().lstrip(".") == ext for t in self.file_types)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "pattern": self.pattern,
            "isDefault": self.is_default,
        }
        if self.file_types:
            data["fileTypes"] = list(self.file_types)
        if self.description is not None:
            data["description"] = self.description
        if self.created_at is not None:
            data["createdAt"] = format_timestamp(self.created_at)
        if self.updated_at is not None:
            data["updatedAt"] = format_timestamp(self.updated_at)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Template":
        return cls(
            id=data["id"],
            name=data["name"],
            pattern=data["pattern"],
            is_default=data.get("isDefault", False),
            file_types=tuple(data.get("fileTypes") or ()),
            description=data.get("description"),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )


def get_default_template(templates: Iterable[Template], extension: str) -> Optional[Template]:
    """Find the default template for a file extension.

    A default template whose ``file_types`` lists the extension wins over a
    catch-all default (one with no ``file_types``).
    """
    templates = list(templates)
    ext = extension.lower().lstrip(".")
    for template in templates:
        if template.is_default and template.file_types and template.applies_to(ext):
            return template
    for template in templates:
        if template.is_default and not template.file_types:
            return template
    return None
