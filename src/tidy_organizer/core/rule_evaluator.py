"""Metadata-pattern rule evaluation.

A rule combines its conditions with ``all`` (AND) or ``any`` (OR) and
short-circuits as soon as the outcome is decided. A rule with no conditions
never matches in either mode.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from ..domain.result import ConditionEvaluationError, Failure, Result, RuleEvaluatorError, Success
from ..models.metadata import UnifiedMetadata
from ..models.rules import MatchMode, MetadataPatternRule, RuleEvaluationResult
from .condition_evaluator import ConditionEvaluator

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class RuleMatch:
    """A matching rule paired with its evaluation detail."""
    rule: MetadataPatternRule
    result: RuleEvaluationResult


def sort_by_priority(rules: Iterable) -> List:
    """Priority descending; ``sorted`` is stable so list order breaks ties."""
    return sorted(rules, key=lambda rule: rule.priority, reverse=True)


class RuleEvaluator:
    """Evaluates metadata rules against unified metadata."""

    def __init__(self, condition_evaluator: Optional[ConditionEvaluator] = None):
        self.conditions = condition_evaluator if condition_evaluator is not None else ConditionEvaluator()

    def evaluate_rule(self, rule: MetadataPatternRule,
                      metadata: UnifiedMetadata) -> Result[RuleEvaluationResult, RuleEvaluatorError]:
        """Evaluate one rule.

        Returns:
            Success with matched/unmatched field paths, or a
            ``RULE_DISABLED`` / ``CONDITION_ERROR`` failure. Condition errors
            are only reported when no short-circuit decided the outcome.
        """
        if not rule.enabled:
            return Failure(RuleEvaluatorError(
                RuleEvaluatorError.RULE_DISABLED, f'Rule "{rule.name}" is disabled', rule.id,
            ))

        matched: List[str] = []
        unmatched: List[str] = []
        errors: List[ConditionEvaluationError] = []

        for condition in rule.conditions:
            outcome = self.conditions.evaluate(condition, metadata)
            if outcome.is_failure():
                errors.append(outcome.error())
                unmatched.append(condition.field)
                continue

            if outcome.value().matched:
                matched.append(condition.field)
                if rule.match_mode is MatchMode.ANY:
                    return Success(RuleEvaluationResult(True, matched, unmatched))
            else:
                unmatched.append(condition.field)
                if rule.match_mode is MatchMode.ALL:
                    return Success(RuleEvaluationResult(False, matched, unmatched))

        if errors:
            return Failure(RuleEvaluatorError(
                RuleEvaluatorError.CONDITION_ERROR,
                f"{len(errors)} condition(s) failed to evaluate",
                rule.id,
                errors,
            ))

        if rule.match_mode is MatchMode.ALL:
            matches = bool(matched) and not unmatched
        else:
            matches = bool(matched)
        return Success(RuleEvaluationResult(matches, matched, unmatched))

    def find_matching_rule(self, rules: Iterable[MetadataPatternRule],
                           metadata: UnifiedMetadata) -> Optional[MetadataPatternRule]:
        """Highest-priority enabled rule that matches; earliest wins ties."""
        for rule in sort_by_priority(rules):
            if not rule.enabled:
                continue
            result = self.evaluate_rule(rule, metadata)
            if result.is_failure():
                logger.debug(f"Skipping rule {rule.id}: {result.error().message}")
                continue
            if result.value().matches:
                return rule
        return None

    def find_all_matching_rules(self, rules: Iterable[MetadataPatternRule],
                                metadata: UnifiedMetadata) -> List[RuleMatch]:
        """Every enabled matching rule, in evaluation order."""
        matches = []
        for rule in sort_by_priority(rules):
            if not rule.enabled:
                continue
            result = self.evaluate_rule(rule, metadata)
            if result.is_success() and result.value().matches:
                matches.append(RuleMatch(rule, result.value()))
        return matches

    def evaluate_all_rules(self, rules: Iterable[MetadataPatternRule],
                           metadata: UnifiedMetadata) -> Dict[str, Result[RuleEvaluationResult, RuleEvaluatorError]]:
        """Per-rule results keyed by rule id, disabled rules included."""
        return {rule.id: self.evaluate_rule(rule, metadata) for rule in rules}
