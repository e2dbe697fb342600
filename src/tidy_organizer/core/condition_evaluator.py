"""Evaluate single rule conditions against unified metadata."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

from ..domain.result import ConditionEvaluationError, Failure, Result, Success
from ..models.metadata import UnifiedMetadata
from ..models.rules import RuleCondition, RuleOperator
from ..utils.dates import parse_timestamp
from .field_resolver import FieldResolution, resolve_field, value_to_text
from .pattern_cache import RegexCache

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ConditionEvaluationResult:
    """Outcome of one condition."""
    matched: bool
    field_path: str
    resolved_value: Optional[str] = None
    expected_value: Any = None


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _to_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return parse_timestamp(value)
    if isinstance(value, str):
        try:
            return parse_timestamp(value)
        except ValueError:
            return None
    return None


def _comparable(actual: Any, expected: Any):
    """Pair up ``actual`` and ``expected`` as numbers or instants, or None."""
    if isinstance(actual, datetime):
        other = _to_datetime(expected)
        return (parse_timestamp(actual), other) if other is not None else None
    if isinstance(actual, (int, float)) and not isinstance(actual, bool):
        other = _to_number(expected)
        return (float(actual), other) if other is not None else None
    return None


class ConditionEvaluator:
    """Evaluates conditions, owning the regex cache used by ``regex`` operators."""

    def __init__(self, regex_cache: Optional[RegexCache] = None):
        self.regex_cache = regex_cache if regex_cache is not None else RegexCache()

    def clear_cache(self) -> None:
        self.regex_cache.clear()

    def evaluate(self, condition: RuleCondition,
                 metadata: UnifiedMetadata) -> Result[ConditionEvaluationResult, ConditionEvaluationError]:
        """Evaluate one condition.

        A missing field only matches ``notExists``; every other operator
        reports ``matched=False`` without an error. Type mismatches on
        ordering operators are non-matches.
        """
        resolved = resolve_field(metadata, condition.field)
        if resolved.is_failure():
            error = resolved.error()
            return Failure(ConditionEvaluationError(
                ConditionEvaluationError.EVALUATION_ERROR, error.message, condition.field,
            ))
        resolution: FieldResolution = resolved.value()
        operator = condition.operator

        if operator is RuleOperator.EXISTS:
            return Success(self._result(condition, resolution, resolution.exists))
        if operator is RuleOperator.NOT_EXISTS:
            return Success(self._result(condition, resolution, not resolution.exists))

        if not resolution.exists:
            return Success(self._result(condition, resolution, False))

        if operator is RuleOperator.REGEX:
            pattern = "" if condition.value is None else str(condition.value)
            try:
                compiled = self.regex_cache.compile(pattern, condition.case_sensitive)
            except re.error as e:
                logger.debug(f"Invalid regex '{pattern}' on {condition.field}: {e}")
                return Failure(ConditionEvaluationError(
                    ConditionEvaluationError.INVALID_REGEX,
                    f"Invalid regex pattern: {pattern} ({e})",
                    condition.field,
                    {"pattern": pattern},
                ))
            return Success(self._result(condition, resolution, compiled.search(resolution.text) is not None))

        if operator in (RuleOperator.GREATER_THAN, RuleOperator.LESS_THAN):
            pair = _comparable(resolution.value, condition.value)
            if pair is None:
                return Success(self._result(condition, resolution, False))
            actual, expected = pair
            matched = actual > expected if operator is RuleOperator.GREATER_THAN else actual < expected
            return Success(self._result(condition, resolution, matched))

        if operator in (RuleOperator.EQUALS, RuleOperator.NOT_EQUALS):
            equal = self._equals(resolution, condition)
            return Success(self._result(condition, resolution,
                                        equal if operator is RuleOperator.EQUALS else not equal))

        actual_text = resolution.text
        expected_text = value_to_text(condition.value) or ""
        if not condition.case_sensitive:
            actual_text = actual_text.lower()
            expected_text = expected_text.lower()

        if operator is RuleOperator.CONTAINS:
            matched = expected_text in actual_text
        elif operator is RuleOperator.STARTS_WITH:
            matched = actual_text.startswith(expected_text)
        elif operator is RuleOperator.ENDS_WITH:
            matched = actual_text.endswith(expected_text)
        else:
            return Failure(ConditionEvaluationError(
                ConditionEvaluationError.EVALUATION_ERROR,
                f"Unknown operator: {operator}", condition.field,
            ))
        return Success(self._result(condition, resolution, matched))

    def evaluate_all(self, conditions: List[RuleCondition],
                     metadata: UnifiedMetadata) -> List[Result[ConditionEvaluationResult, ConditionEvaluationError]]:
        """Evaluate every condition without short-circuiting."""
        return [self.evaluate(condition, metadata) for condition in conditions]

    @staticmethod
    def _equals(resolution: FieldResolution, condition: RuleCondition) -> bool:
        pair = _comparable(resolution.value, condition.value)
        if pair is not None:
            return pair[0] == pair[1]
        actual_text = resolution.text
        expected_text = value_to_text(condition.value) or ""
        if condition.case_sensitive:
            return actual_text == expected_text
        return actual_text.lower() == expected_text.lower()

    @staticmethod
    def _result(condition: RuleCondition, resolution: FieldResolution,
                matched: bool) -> ConditionEvaluationResult:
        return ConditionEvaluationResult(
            matched=matched,
            field_path=condition.field,
            resolved_value=resolution.text,
            expected_value=condition.value,
        )
