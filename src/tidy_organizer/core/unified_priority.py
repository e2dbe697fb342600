"""One evaluation order across metadata rules and filename rules.

``combined`` mode sorts both families together by priority. At equal
priority a metadata rule comes before a filename rule, and rules of the same
family keep their configured order. ``metadata-first`` and
``filename-first`` place one whole family (priority-sorted) before the other.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from ..domain.result import DomainError, Failure, Result, RulePriorityError, Success
from ..models.config import AppConfig
from ..models.metadata import UnifiedMetadata
from ..models.rules import FilenamePatternRule, MetadataPatternRule, Rule, RuleFamily, RulePriorityMode
from ..utils.dates import utc_now
from .filename_evaluator import FilenameRuleEvaluator
from .rule_evaluator import RuleEvaluator

logger = logging.getLogger(__name__)

_FAMILY_ORDER = {RuleFamily.METADATA: 0, RuleFamily.FILENAME: 1}

OrderItem = Union[str, Tuple[str, Union[RuleFamily, str]]]


@dataclass(slots=True, frozen=True)
class UnifiedRule:
    """A rule of either family, tagged with its family."""
    family: RuleFamily
    rule: Rule

    @property
    def id(self) -> str:
        return self.rule.id

    @property
    def name(self) -> str:
        return self.rule.name

    @property
    def priority(self) -> int:
        return self.rule.priority

    @property
    def enabled(self) -> bool:
        return self.rule.enabled

    @property
    def template_id(self) -> str:
        return self.rule.template_id

    def to_dict(self):
        return {
            "ruleId": self.id,
            "name": self.name,
            "family": self.family.value,
            "priority": self.priority,
            "enabled": self.enabled,
            "templateId": self.template_id,
        }


def _by_priority(rules: List[UnifiedRule]) -> List[UnifiedRule]:
    return sorted(rules, key=lambda r: r.priority, reverse=True)


def order_rules(metadata_rules: Sequence[MetadataPatternRule],
                filename_rules: Sequence[FilenamePatternRule],
                mode: RulePriorityMode = RulePriorityMode.COMBINED) -> List[UnifiedRule]:
    """Evaluation order for the given rules under ``mode`` (disabled rules included)."""
    metadata = [UnifiedRule(RuleFamily.METADATA, r) for r in metadata_rules]
    filename = [UnifiedRule(RuleFamily.FILENAME, r) for r in filename_rules]

    if mode is RulePriorityMode.METADATA_FIRST:
        return _by_priority(metadata) + _by_priority(filename)
    if mode is RulePriorityMode.FILENAME_FIRST:
        return _by_priority(filename) + _by_priority(metadata)
    # Stable sort over metadata-then-filename puts metadata first on ties
    return sorted(metadata + filename, key=lambda r: (-r.priority, _FAMILY_ORDER[r.family]))


def get_unified_rule_priorities(config: AppConfig) -> List[UnifiedRule]:
    """Evaluation order for ``config`` under its ``rule_priority_mode``."""
    return order_rules(config.rules, config.filename_rules, config.preferences.rule_priority_mode)


def _coerce_family(family: Union[RuleFamily, str, None]) -> Optional[RuleFamily]:
    if family is None or isinstance(family, RuleFamily):
        return family
    return RuleFamily(family)


def _find(config: AppConfig, rule_id: str,
          family: Optional[RuleFamily]) -> Result[Tuple[RuleFamily, int], RulePriorityError]:
    """Locate a rule by id, using ``family`` to disambiguate shared ids."""
    hits = []
    if family in (None, RuleFamily.METADATA):
        hits += [(RuleFamily.METADATA, i) for i, r in enumerate(config.rules) if r.id == rule_id]
    if family in (None, RuleFamily.FILENAME):
        hits += [(RuleFamily.FILENAME, i) for i, r in enumerate(config.filename_rules) if r.id == rule_id]

    if not hits:
        return Failure(RulePriorityError(
            RulePriorityError.RULE_NOT_FOUND, f'Rule with ID "{rule_id}" not found', {"rule_id": rule_id},
        ))
    if len(hits) > 1:
        return Failure(RulePriorityError(
            RulePriorityError.AMBIGUOUS_ID,
            f'Rule ID "{rule_id}" exists in both rule families; specify the family',
            {"rule_id": rule_id},
        ))
    return Success(hits[0])


def _with_priority(rule: Rule, priority: int, now) -> Rule:
    if rule.priority == priority:
        return rule
    return dataclasses.replace(rule, priority=priority, updated_at=now)


def set_unified_rule_priority(config: AppConfig, rule_id: str, priority: int,
                              family: Union[RuleFamily, str, None] = None) -> Result[AppConfig, RulePriorityError]:
    """Return a copy of ``config`` with one rule's priority changed."""
    if isinstance(priority, bool) or not isinstance(priority, int) or priority < 0:
        return Failure(RulePriorityError(
            RulePriorityError.INVALID_PRIORITY, "Priority must be a non-negative integer",
            {"priority": priority},
        ))

    found = _find(config, rule_id, _coerce_family(family))
    if found.is_failure():
        return found
    found_family, index = found.value()
    now = utc_now()

    if found_family is RuleFamily.METADATA:
        rules = list(config.rules)
        rules[index] = _with_priority(rules[index], priority, now)
        return Success(dataclasses.replace(config, rules=rules))

    filename_rules = list(config.filename_rules)
    filename_rules[index] = _with_priority(filename_rules[index], priority, now)
    return Success(dataclasses.replace(config, filename_rules=filename_rules))


def reorder_unified_rules(config: AppConfig, new_order: Sequence[OrderItem]) -> Result[AppConfig, RulePriorityError]:
    """Rewrite priorities so the listed rules evaluate in ``new_order``.

    Items are rule ids, or ``(id, family)`` pairs when an id exists in both
    families. The listed rules reuse their own priority values, reassigned in
    descending order, which keeps the spacing between them. If those values
    contain duplicates, consecutive values are assigned instead. Unlisted
    rules keep their priority.
    """
    keys: List[Tuple[RuleFamily, int]] = []
    for item in new_order:
        rule_id, family = (item[0], item[1]) if isinstance(item, tuple) else (item, None)
        found = _find(config, rule_id, _coerce_family(family))
        if found.is_failure():
            return found
        keys.append(found.value())

    if len(set(keys)) != len(keys):
        return Failure(RulePriorityError(
            RulePriorityError.DUPLICATE_IDS, "Duplicate IDs in order list",
            {"order": [item if isinstance(item, str) else item[0] for item in new_order]},
        ))

    def rule_at(key: Tuple[RuleFamily, int]) -> Rule:
        family, index = key
        return config.rules[index] if family is RuleFamily.METADATA else config.filename_rules[index]

    existing = sorted((rule_at(key).priority for key in keys), reverse=True)
    if len(set(existing)) != len(existing):
        start = max(max(existing), len(keys) - 1)
        new_priorities = [start - i for i in range(len(keys))]
    else:
        new_priorities = existing

    now = utc_now()
    rules = list(config.rules)
    filename_rules = list(config.filename_rules)
    for (family, index), priority in zip(keys, new_priorities):
        if family is RuleFamily.METADATA:
            rules[index] = _with_priority(rules[index], priority, now)
        else:
            filename_rules[index] = _with_priority(filename_rules[index], priority, now)

    logger.debug(f"Reordered {len(keys)} rules")
    return Success(dataclasses.replace(config, rules=rules, filename_rules=filename_rules))


class UnifiedRuleEvaluator:
    """Dispatches a tagged rule to the evaluator for its family."""

    def __init__(self, rule_evaluator: Optional[RuleEvaluator] = None,
                 filename_evaluator: Optional[FilenameRuleEvaluator] = None):
        self.metadata_rules = rule_evaluator if rule_evaluator is not None else RuleEvaluator()
        self.filename_rules = filename_evaluator if filename_evaluator is not None else FilenameRuleEvaluator()

    def evaluate(self, unified: UnifiedRule, metadata: UnifiedMetadata) -> Result[bool, DomainError]:
        """True/False for an evaluable rule, or the family evaluator's error."""
        if unified.family is RuleFamily.METADATA:
            return self.metadata_rules.evaluate_rule(unified.rule, metadata).map(lambda r: r.matches)
        return self.filename_rules.evaluate_rule(unified.rule, metadata.file).map(lambda r: r.matches)

    def clear_caches(self) -> None:
        self.metadata_rules.conditions.clear_cache()
        self.filename_rules.glob.clear_cache()
