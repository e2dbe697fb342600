"""Domain layer: the Result type and the core error taxonomy."""

from .result import (
    Result,
    Success,
    Failure,
    success,
    failure,
    collect,
    partition,
    try_catch,
    DomainError,
    FieldResolutionError,
    ConditionEvaluationError,
    RuleEvaluatorError,
    FilenameRuleError,
    RulePriorityError,
    RuleManagerError,
    HistoryError,
    UndoError,
    TemplateError,
)

__all__ = [
    "Result",
    "Success",
    "Failure",
    "success",
    "failure",
    "collect",
    "partition",
    "try_catch",
    "DomainError",
    "FieldResolutionError",
    "ConditionEvaluationError",
    "RuleEvaluatorError",
    "FilenameRuleError",
    "RulePriorityError",
    "RuleManagerError",
    "HistoryError",
    "UndoError",
    "TemplateError",
]
