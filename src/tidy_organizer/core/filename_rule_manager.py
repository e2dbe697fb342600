"""CRUD and ordering for filename-pattern (glob) rules."""

from typing import Optional

from ..domain.result import RuleManagerError
from ..models.rules import FilenamePatternRule
from .glob_matcher import validate_glob_pattern
from .rule_manager import BaseRuleManager
from .rule_schema import validate_filename_rule_json


class FilenameRuleManager(BaseRuleManager[FilenamePatternRule]):
    """Manages filename-pattern rules; patterns are checked before they are stored."""

    rule_type = FilenamePatternRule
    kind = "filename rule"
    validate_json = staticmethod(validate_filename_rule_json)

    def _validate_content(self, rule: FilenamePatternRule) -> Optional[RuleManagerError]:
        validation = validate_glob_pattern(rule.pattern)
        if validation.valid:
            return None
        details = {"pattern": rule.pattern, "error": validation.error}
        if validation.position is not None:
            details["position"] = validation.position
        return RuleManagerError(
            RuleManagerError.INVALID_PATTERN, f"Invalid glob pattern: {validation.error}", details,
        )
