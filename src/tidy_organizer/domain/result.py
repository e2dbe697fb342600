"""Result pattern implementation for error handling.

This module implements the Result pattern, providing a type-safe way to handle
operations that can succeed or fail without relying on exceptions. Every public
operation of the rule engine and the history subsystem returns a Result; the
error side always carries one of the domain errors defined at the bottom of
this module.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, cast, overload

T = TypeVar('T')  # Success type
E = TypeVar('E', bound=Exception)  # Error type


class Result(ABC, Generic[T, E]):
    """Abstract base class for Result pattern.

    A Result represents either a successful operation with a value,
    or a failed operation with an error.
    """

    @abstractmethod
    def is_success(self) -> bool:
        """Check if the result is a success."""
        ...

    @abstractmethod
    def is_failure(self) -> bool:
        """Check if the result is a failure."""
        ...

    @abstractmethod
    def value(self) -> T:
        """Get the success value.

        Raises:
            ValueError: If the result is a failure.
        """
        ...

    @abstractmethod
    def error(self) -> E:
        """Get the error.

        Raises:
            ValueError: If the result is a success.
        """
        ...

    @abstractmethod
    def map(self, fn: Callable[[T], Any]) -> Result[Any, E]:
        """Map the success value through a function."""
        ...

    @abstractmethod
    def flat_map(self, fn: Callable[[T], Result[Any, E]]) -> Result[Any, E]:
        """Flat map the success value through a function that returns a Result."""
        ...

    @abstractmethod
    def map_error(self, fn: Callable[[E], Any]) -> Result[T, Any]:
        """Map the error through a function."""
        ...

    def or_else(self, default: T) -> T:
        """Get the success value or return a default."""
        return self.value() if self.is_success() else default

    def or_else_get(self, fn: Callable[[], T]) -> T:
        """Get the success value or compute a default."""
        return self.value() if self.is_success() else fn()

    def or_else_raise(self) -> T:
        """Get the success value or raise the error."""
        if self.is_failure():
            raise self.error()
        return self.value()

    @overload
    def match(self, *, success: Callable[[T], Any]) -> Any: ...

    @overload
    def match(self, *, failure: Callable[[E], Any]) -> Any: ...

    @overload
    def match(self, *, success: Callable[[T], Any], failure: Callable[[E], Any]) -> Any: ...

    def match(self, *, success: Callable[[T], Any] | None = None,
              failure: Callable[[E], Any] | None = None) -> Any:
        """Pattern match on the result."""
        if self.is_success() and success:
            return success(self.value())
        elif self.is_failure() and failure:
            return failure(self.error())
        return None


@dataclass(frozen=True, slots=True)
class Success(Result[T, E]):
    """Represents a successful operation with a value."""
    _value: T

    def __repr__(self) -> str:
        return f"Success({self._value!r})"

    def is_success(self) -> bool:
        return True

    def is_failure(self) -> bool:
        return False

    def value(self) -> T:
        return self._value

    def error(self) -> E:
        raise ValueError("Cannot get error from Success result")

    def map(self, fn: Callable[[T], Any]) -> Result[Any, E]:
        return Success(fn(self._value))

    def flat_map(self, fn: Callable[[T], Result[Any, E]]) -> Result[Any, E]:
        return fn(self._value)

    def map_error(self, fn: Callable[[E], Any]) -> Result[T, Any]:
        return self


@dataclass(frozen=True, slots=True)
class Failure(Result[T, E]):
    """Represents a failed operation with an error."""
    _error: E

    def __repr__(self) -> str:
        return f"Failure({self._error!r})"

    def is_success(self) -> bool:
        return False

    def is_failure(self) -> bool:
        return True

    def value(self) -> T:
        raise ValueError(f"Cannot get value from Failure result: {self._error}")

    def error(self) -> E:
        return self._error

    def map(self, fn: Callable[[T], Any]) -> Result[Any, E]:
        return self

    def flat_map(self, fn: Callable[[T], Result[Any, E]]) -> Result[Any, E]:
        return self

    def map_error(self, fn: Callable[[E], Any]) -> Result[T, Any]:
        return Failure(cast(Any, fn(self._error)))


# Helper functions for creating Results
def success(value: T) -> Result[T, Any]:
    """Create a Success result."""
    return Success(value)


def failure(error: E) -> Result[Any, E]:
    """Create a Failure result."""
    return Failure(error)


def collect(results: List[Result[T, E]]) -> Result[List[T], List[E]]:
    """Collect a list of Results into a single Result.

    If all results are Success, returns Success with a list of all values.
    If any results are Failure, returns Failure with a list of all errors.
    """
    values = []
    errors = []

    for result in results:
        if result.is_success():
            values.append(result.value())
        else:
            errors.append(result.error())

    return Success(values) if not errors else Failure(errors)


def partition(results: List[Result[T, E]]) -> tuple[List[T], List[E]]:
    """Partition a list of Results into successes and failures.

    Returns:
        A tuple of (success_values, failure_errors)
    """
    successes = []
    failures = []

    for result in results:
        if result.is_success():
            successes.append(result.value())
        else:
            failures.append(result.error())

    return successes, failures


def try_catch(fn: Callable[[], T], error_class: type[E] | tuple[type[E], ...] = Exception) -> Result[T, E]:
    """Try to execute a function and catch exceptions of specific type(s).

    Args:
        fn: Function to execute
        error_class: Exception class(es) to catch

    Returns:
        Success(value) if no exception, Failure(exception) if caught
    """
    try:
        return Success(fn())
    except error_class as e:
        return Failure(cast(E, e))


# Domain-specific errors for the rule engine and history subsystem
class DomainError(Exception):
    """Base class for domain-specific errors.

    Carries a machine-readable ``code`` and optional ``details`` so callers
    (CLI, GUI bridge) can render structured diagnostics.
    """

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code!r}, {self.message!r})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {"code": self.code, "message": self.message, "details": self.details}


class FieldResolutionError(DomainError):
    """Raised when a field path is structurally malformed."""

    INVALID_FIELD_PATH = "INVALID_FIELD_PATH"


class ConditionEvaluationError(DomainError):
    """Raised when a single condition cannot be evaluated."""

    INVALID_REGEX = "INVALID_REGEX"
    EVALUATION_ERROR = "EVALUATION_ERROR"

    def __init__(self, code: str, message: str, field_path: str,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(code, message, details)
        self.field_path = field_path


class RuleEvaluatorError(DomainError):
    """Raised when a metadata rule cannot be evaluated."""

    RULE_DISABLED = "RULE_DISABLED"
    CONDITION_ERROR = "CONDITION_ERROR"

    def __init__(self, code: str, message: str, rule_id: str,
                 condition_errors: Optional[List[ConditionEvaluationError]] = None):
        super().__init__(code, message, {"rule_id": rule_id})
        self.rule_id = rule_id
        self.condition_errors = list(condition_errors or [])


class FilenameRuleError(DomainError):
    """Raised when a filename rule cannot be evaluated."""

    INVALID_PATTERN = "INVALID_PATTERN"
    RULE_DISABLED = "RULE_DISABLED"


class RulePriorityError(DomainError):
    """Raised for invalid priority updates or reorder requests."""

    RULE_NOT_FOUND = "RULE_NOT_FOUND"
    INVALID_PRIORITY = "INVALID_PRIORITY"
    DUPLICATE_IDS = "DUPLICATE_IDS"
    AMBIGUOUS_ID = "AMBIGUOUS_ID"


class RuleManagerError(DomainError):
    """Raised when a rule CRUD operation is rejected."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE_NAME = "DUPLICATE_NAME"
    INVALID_FIELD_PATH = "INVALID_FIELD_PATH"
    INVALID_REGEX = "INVALID_REGEX"
    INVALID_PATTERN = "INVALID_PATTERN"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"


class HistoryError(DomainError):
    """Raised when the operation history cannot be read or written."""

    LOAD_FAILED = "LOAD_FAILED"
    SAVE_FAILED = "SAVE_FAILED"
    UNSUPPORTED_VERSION = "UNSUPPORTED_VERSION"
    NOT_FOUND = "NOT_FOUND"


class UndoError(DomainError):
    """Raised when an undo request cannot be started."""

    NOT_FOUND = "NOT_FOUND"
    ALREADY_UNDONE = "ALREADY_UNDONE"
    EMPTY_HISTORY = "EMPTY_HISTORY"
    HISTORY_ERROR = "HISTORY_ERROR"


class TemplateError(DomainError):
    """Raised when a naming template cannot be parsed or rendered."""

    UNCLOSED_BRACE = "UNCLOSED_BRACE"
    EMPTY_PLACEHOLDER = "EMPTY_PLACEHOLDER"
    UNEXPECTED_CLOSE_BRACE = "UNEXPECTED_CLOSE_BRACE"
    UNKNOWN_PLACEHOLDER = "UNKNOWN_PLACEHOLDER"
    NOT_FOUND = "TEMPLATE_NOT_FOUND"
