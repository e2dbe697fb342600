"""CRUD, ordering and enable/disable for persisted rule collections.

Managers never mutate the lists they are given: every change returns a new
list (and the affected rule) inside a ``Result``.
"""

import dataclasses
import logging
import re
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Sequence, TypeVar

from ..domain.result import Failure, Result, RuleManagerError, Success
from ..models.rules import FilenamePatternRule, MetadataPatternRule, RuleOperator
from ..models.template import Template
from ..utils.dates import utc_now
from .field_resolver import is_valid_field_path
from .rule_evaluator import sort_by_priority
from .rule_schema import validate_metadata_rule_json

logger = logging.getLogger(__name__)

R = TypeVar("R", MetadataPatternRule, FilenamePatternRule)


@dataclass(slots=True, frozen=True)
class RuleChange(Generic[R]):
    """Updated collection plus the rule that was created or changed."""
    rules: List[R]
    rule: R


class BaseRuleManager(Generic[R]):
    """Shared behaviour of the metadata and filename rule managers.

    Subclasses provide the rule type, its JSON schema validator and the
    content checks specific to their family.
    """

    rule_type: type
    kind = "rule"
    validate_json: Callable[[Any], List[str]]

    def __init__(self, templates: Optional[Iterable[Template]] = None):
        self.templates = list(templates) if templates is not None else None

    # Hooks

    def _validate_content(self, rule: R) -> Optional[RuleManagerError]:
        return None

    # Queries

    def get(self, rules: Sequence[R], rule_id: str) -> Result[R, RuleManagerError]:
        for rule in rules:
            if rule.id == rule_id:
                return Success(rule)
        return Failure(self._not_found(rule_id))

    def get_by_name(self, rules: Sequence[R], name: str) -> Result[R, RuleManagerError]:
        """Case-insensitive lookup by name."""
        for rule in rules:
            if rule.name.lower() == name.lower():
                return Success(rule)
        return Failure(RuleManagerError(
            RuleManagerError.NOT_FOUND, f'{self.kind.capitalize()} named "{name}" not found', {"name": name},
        ))

    def list_rules(self, rules: Sequence[R]) -> List[R]:
        """All rules in evaluation order."""
        return sort_by_priority(rules)

    def list_enabled(self, rules: Sequence[R]) -> List[R]:
        return [rule for rule in sort_by_priority(rules) if rule.enabled]

    # Mutations

    def create(self, rules: Sequence[R], data: Dict[str, Any]) -> Result[RuleChange[R], RuleManagerError]:
        """Validate ``data`` (camelCase JSON fields, no id) and append a new rule."""
        candidate = {key: value for key, value in data.items() if value is not None}
        candidate["id"] = str(uuid.uuid4())
        now = utc_now()

        built = self._build(candidate)
        if built.is_failure():
            return built
        rule = dataclasses.replace(built.value(), created_at=now, updated_at=now)

        if self._name_taken(rules, rule.name):
            return Failure(self._duplicate_name(rule.name))

        logger.info(f"Created {self.kind} {rule.id} ({rule.name})")
        return Success(RuleChange([*rules, rule], rule))

    def update(self, rules: Sequence[R], rule_id: str,
               changes: Dict[str, Any]) -> Result[RuleChange[R], RuleManagerError]:
        """Apply camelCase field ``changes``; a ``None`` description clears it."""
        index = self._index(rules, rule_id)
        if index is None:
            return Failure(self._not_found(rule_id))
        existing = rules[index]

        merged = existing.to_dict()
        for key, value in changes.items():
            if key in ("id", "createdAt", "updatedAt"):
                continue
            if value is None:
                merged.pop(key, None)
            else:
                merged[key] = value

        built = self._build(merged)
        if built.is_failure():
            return built
        updated = dataclasses.replace(built.value(), created_at=existing.created_at, updated_at=utc_now())

        if updated.name.lower() != existing.name.lower() and self._name_taken(rules, updated.name):
            return Failure(self._duplicate_name(updated.name))

        new_rules = list(rules)
        new_rules[index] = updated
        return Success(RuleChange(new_rules, updated))

    def delete(self, rules: Sequence[R], rule_id: str) -> Result[List[R], RuleManagerError]:
        if self._index(rules, rule_id) is None:
            return Failure(self._not_found(rule_id))
        return Success([rule for rule in rules if rule.id != rule_id])

    def set_priority(self, rules: Sequence[R], rule_id: str, priority: int) -> Result[List[R], RuleManagerError]:
        if isinstance(priority, bool) or not isinstance(priority, int) or priority < 0:
            return Failure(RuleManagerError(
                RuleManagerError.VALIDATION_ERROR, "Priority must be a non-negative integer", {"priority": priority},
            ))
        index = self._index(rules, rule_id)
        if index is None:
            return Failure(self._not_found(rule_id))
        new_rules = list(rules)
        if new_rules[index].priority != priority:
            new_rules[index] = dataclasses.replace(new_rules[index], priority=priority, updated_at=utc_now())
        return Success(new_rules)

    def toggle_enabled(self, rules: Sequence[R], rule_id: str) -> Result[RuleChange[R], RuleManagerError]:
        index = self._index(rules, rule_id)
        if index is None:
            return Failure(self._not_found(rule_id))
        new_rules = list(rules)
        updated = dataclasses.replace(new_rules[index], enabled=not new_rules[index].enabled, updated_at=utc_now())
        new_rules[index] = updated
        return Success(RuleChange(new_rules, updated))

    def reorder(self, rules: Sequence[R], ordered_ids: Sequence[str]) -> Result[List[R], RuleManagerError]:
        """Renumber priorities so ``ordered_ids`` evaluate in that order.

        Listed rules come first with consecutive priorities above every
        unlisted rule; unlisted rules drop to priority 0 in their existing
        relative order.
        """
        by_id = {rule.id: rule for rule in rules}
        for rule_id in ordered_ids:
            if rule_id not in by_id:
                return Failure(self._not_found(rule_id))
        if len(set(ordered_ids)) != len(ordered_ids):
            return Failure(RuleManagerError(
                RuleManagerError.VALIDATION_ERROR, "Duplicate IDs in order list", {"ordered_ids": list(ordered_ids)},
            ))

        now = utc_now()
        listed = set(ordered_ids)
        excluded = [rule for rule in rules if rule.id not in listed]
        base = 1 if excluded else 0
        top = base + len(ordered_ids) - 1

        def renumber(rule: R, priority: int) -> R:
            if rule.priority == priority:
                return rule
            return dataclasses.replace(rule, priority=priority, updated_at=now)

        reordered = [renumber(by_id[rule_id], top - i) for i, rule_id in enumerate(ordered_ids)]
        return Success(reordered + [renumber(rule, 0) for rule in excluded])

    # Helpers

    def _build(self, data: Dict[str, Any]) -> Result[R, RuleManagerError]:
        errors = type(self).validate_json(data)
        if errors:
            return Failure(RuleManagerError(
                RuleManagerError.VALIDATION_ERROR, f"Invalid {self.kind} input", {"errors": errors},
            ))
        try:
            rule = self.rule_type.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            return Failure(RuleManagerError(RuleManagerError.VALIDATION_ERROR, f"Invalid {self.kind} input: {e}"))

        problem = self._validate_content(rule)
        if problem is not None:
            return Failure(problem)

        if self.templates is not None and not any(t.id == rule.template_id for t in self.templates):
            return Failure(RuleManagerError(
                RuleManagerError.TEMPLATE_NOT_FOUND, f'Template "{rule.template_id}" not found',
                {"template_id": rule.template_id},
            ))
        return Success(rule)

    @staticmethod
    def _index(rules: Sequence[R], rule_id: str) -> Optional[int]:
        for i, rule in enumerate(rules):
            if rule.id == rule_id:
                return i
        return None

    @staticmethod
    def _name_taken(rules: Sequence[R], name: str) -> bool:
        return any(rule.name.lower() == name.lower() for rule in rules)

    def _not_found(self, rule_id: str) -> RuleManagerError:
        return RuleManagerError(
            RuleManagerError.NOT_FOUND, f'{self.kind.capitalize()} with ID "{rule_id}" not found', {"rule_id": rule_id},
        )

    def _duplicate_name(self, name: str) -> RuleManagerError:
        return RuleManagerError(
            RuleManagerError.DUPLICATE_NAME, f'A {self.kind} named "{name}" already exists', {"name": name},
        )


class RuleManager(BaseRuleManager[MetadataPatternRule]):
    """Manages metadata-pattern rules."""

    rule_type = MetadataPatternRule
    kind = "rule"
    validate_json = staticmethod(validate_metadata_rule_json)

    def _validate_content(self, rule: MetadataPatternRule) -> Optional[RuleManagerError]:
        invalid_paths = [c.field for c in rule.conditions if not is_valid_field_path(c.field)]
        if invalid_paths:
            return RuleManagerError(
                RuleManagerError.INVALID_FIELD_PATH,
                f"Invalid field path(s): {', '.join(invalid_paths)}",
                {"invalid_paths": invalid_paths},
            )

        invalid_regex = []
        for condition in rule.conditions:
            if condition.operator is RuleOperator.REGEX and condition.value:
                try:
                    re.compile(str(condition.value))
                except re.error as e:
                    invalid_regex.append({"field": condition.field, "pattern": condition.value, "error": str(e)})
        if invalid_regex:
            return RuleManagerError(
                RuleManagerError.INVALID_REGEX, "Invalid regex pattern(s) in conditions",
                {"invalid_regex": invalid_regex},
            )
        return None
