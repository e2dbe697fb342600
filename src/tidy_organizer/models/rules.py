"""Rule models for the two rule families.

Metadata-pattern rules match conditions against extracted metadata fields;
filename rules match a glob pattern against the file name. Both carry a
priority (higher is evaluated first), an enabled flag and a target template.
Rules are immutable; managers return updated copies via ``dataclasses.replace``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from ..utils.dates import format_timestamp, parse_timestamp


class RuleOperator(Enum):
    """Comparison operators for metadata rule conditions."""
    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    REGEX = "regex"
    EXISTS = "exists"
    NOT_EXISTS = "notExists"

    @classmethod
    def parse(cls, value: Union[str, "RuleOperator"]) -> "RuleOperator":
        """Parse an operator from camelCase, kebab-case or snake_case.

        Raises:
            ValueError: If the operator name is unknown.
        """
        if isinstance(value, cls):
            return value
        key = str(value).replace("-", "").replace("_", "").lower()
        operator = _OPERATOR_ALIASES.get(key)
        if operator is None:
            raise ValueError(f"Unknown rule operator: {value!r}")
        return operator

    @property
    def requires_value(self) -> bool:
        return self not in (RuleOperator.EXISTS, RuleOperator.NOT_EXISTS)


_OPERATOR_ALIASES: Dict[str, RuleOperator] = {
    op.value.lower(): op for op in RuleOperator
}
_OPERATOR_ALIASES.update({
    "eq": RuleOperator.EQUALS,
    "ne": RuleOperator.NOT_EQUALS,
    "gt": RuleOperator.GREATER_THAN,
    "lt": RuleOperator.LESS_THAN,
    "matches": RuleOperator.REGEX,
    "matchesregex": RuleOperator.REGEX,
})


class MatchMode(Enum):
    """How a rule combines its conditions."""
    ALL = "all"
    ANY = "any"


class RuleFamily(Enum):
    """The two independent rule collections."""
    METADATA = "metadata"
    FILENAME = "filename"


class RulePriorityMode(Enum):
    """How the two rule families are interleaved during resolution."""
    COMBINED = "combined"
    METADATA_FIRST = "metadata-first"
    FILENAME_FIRST = "filename-first"


@dataclass(slots=True, frozen=True)
class RuleCondition:
    """A single condition: dotted field path, operator and expected value."""
    field: str
    operator: RuleOperator
    value: Any = None
    case_sensitive: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.operator, RuleOperator):
            object.__setattr__(self, "operator", RuleOperator.parse(self.operator))

    def to_dict(self) -> Dict[str, Any]:
        data = {"field": self.field, "operator": self.operator.value}
        if self.value is not None:
            data["value"] = self.value
        if self.case_sensitive:
            data["caseSensitive"] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RuleCondition":
        return cls(
            field=data["field"],
            operator=RuleOperator.parse(data["operator"]),
            value=data.get("value"),
            case_sensitive=data.get("caseSensitive", False),
        )


@dataclass(slots=True, frozen=True)
class MetadataPatternRule:
    """A rule matching extracted metadata fields."""
    id: str
    name: str
    template_id: str
    conditions: Tuple[RuleCondition, ...] = ()
    match_mode: MatchMode = MatchMode.ALL
    priority: int = 0
    enabled: bool = True
    description: Optional[str] = None
    folder_structure_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not isinstance(self.conditions, tuple):
            object.__setattr__(self, "conditions", tuple(self.conditions))
        if not isinstance(self.match_mode, MatchMode):
            object.__setattr__(self, "match_mode", MatchMode(self.match_mode))

    @property
    def family(self) -> RuleFamily:
        return RuleFamily.METADATA

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "conditions": [c.to_dict() for c in self.conditions],
            "matchMode": self.match_mode.value,
            "templateId": self.template_id,
            "priority": self.priority,
            "enabled": self.enabled,
        }
        if self.description is not None:
            data["description"] = self.description
        if self.folder_structure_id is not None:
            data["folderStructureId"] = self.folder_structure_id
        if self.created_at is not None:
            data["createdAt"] = format_timestamp(self.created_at)
        if self.updated_at is not None:
            data["updatedAt"] = format_timestamp(self.updated_at)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MetadataPatternRule":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            template_id=data["templateId"],
            conditions=tuple(RuleCondition.from_dict(c) for c in data.get("conditions", [])),
            match_mode=MatchMode(data.get("matchMode", "all")),
            priority=data.get("priority", 0),
            enabled=data.get("enabled", True),
            description=data.get("description"),
            folder_structure_id=data.get("folderStructureId"),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )


@dataclass(slots=True, frozen=True)
class FilenamePatternRule:
    """A rule matching a glob pattern against the file name."""
    id: str
    name: str
    pattern: str
    template_id: str
    priority: int = 0
    enabled: bool = True
    case_sensitive: bool = False
    description: Optional[str] = None
    folder_structure_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def family(self) -> RuleFamily:
        return RuleFamily.FILENAME

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "pattern": self.pattern,
            "caseSensitive": self.case_sensitive,
            "templateId": self.template_id,
            "priority": self.priority,
            "enabled": self.enabled,
        }
        if self.description is not None:
            data["description"] = self.description
        if self.folder_structure_id is not None:
            data["folderStructureId"] = self.folder_structure_id
        if self.created_at is not None:
            data["createdAt"] = format_timestamp(self.created_at)
        if self.updated_at is not None:
            data["updatedAt"] = format_timestamp(self.updated_at)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FilenamePatternRule":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            pattern=data["pattern"],
            template_id=data["templateId"],
            priority=data.get("priority", 0),
            enabled=data.get("enabled", True),
            case_sensitive=data.get("caseSensitive", False),
            description=data.get("description"),
            folder_structure_id=data.get("folderStructureId"),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )


Rule = Union[MetadataPatternRule, FilenamePatternRule]


@dataclass(slots=True, frozen=True)
class RuleEvaluationResult:
    """Outcome of evaluating one metadata rule."""
    matches: bool
    matched_conditions: List[str] = field(default_factory=list)
    unmatched_conditions: List[str] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class FilenameRuleEvaluationResult:
    """Outcome of evaluating one filename rule."""
    matches: bool
    pattern: str
    filename: str
