"""Filename (glob) rule evaluation."""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from ..domain.result import Failure, FilenameRuleError, Result, Success
from ..models.file_info import FileInfo
from ..models.rules import FilenamePatternRule, FilenameRuleEvaluationResult
from .glob_matcher import GlobMatcher, validate_glob_pattern
from .rule_evaluator import sort_by_priority

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class FilenameRuleMatch:
    rule: FilenamePatternRule
    result: FilenameRuleEvaluationResult


@dataclass(slots=True, frozen=True)
class FileRuleAssignment:
    """Result of batch evaluation for one file."""
    file: FileInfo
    matched_rule: Optional[FilenamePatternRule]

    @property
    def template_id(self) -> Optional[str]:
        return self.matched_rule.template_id if self.matched_rule else None


class FilenameRuleEvaluator:
    """Evaluates glob rules against a file's full name (name plus extension)."""

    def __init__(self, glob_matcher: Optional[GlobMatcher] = None):
        self.glob = glob_matcher if glob_matcher is not None else GlobMatcher()

    def evaluate_rule(self, rule: FilenamePatternRule,
                      file: FileInfo) -> Result[FilenameRuleEvaluationResult, FilenameRuleError]:
        """Evaluate one rule; disabled rules and invalid patterns are failures."""
        if not rule.enabled:
            return Failure(FilenameRuleError(
                FilenameRuleError.RULE_DISABLED, f'Rule "{rule.name}" is disabled', {"rule_id": rule.id},
            ))

        validation = validate_glob_pattern(rule.pattern)
        if not validation.valid:
            return Failure(FilenameRuleError(
                FilenameRuleError.INVALID_PATTERN,
                f'Invalid pattern in rule "{rule.name}": {rule.pattern} ({validation.error})',
                {"rule_id": rule.id, "pattern": rule.pattern},
            ))

        compiled = self.glob.compile(rule.pattern, rule.case_sensitive)
        if compiled.is_failure():
            return compiled

        filename = file.full_name
        return Success(FilenameRuleEvaluationResult(
            matches=compiled.value().match(filename) is not None,
            pattern=rule.pattern,
            filename=filename,
        ))

    def find_matching_rule(self, rules: Iterable[FilenamePatternRule],
                           file: FileInfo) -> Optional[FilenameRuleMatch]:
        """Highest-priority enabled rule that matches; earliest wins ties."""
        for rule in sort_by_priority(rules):
            if not rule.enabled:
                continue
            result = self.evaluate_rule(rule, file)
            if result.is_failure():
                logger.debug(f"Skipping filename rule {rule.id}: {result.error().message}")
                continue
            if result.value().matches:
                return FilenameRuleMatch(rule, result.value())
        return None

    def find_all_matching_rules(self, rules: Iterable[FilenamePatternRule],
                                file: FileInfo) -> List[FilenameRuleMatch]:
        matches = []
        for rule in sort_by_priority(rules):
            if not rule.enabled:
                continue
            result = self.evaluate_rule(rule, file)
            if result.is_success() and result.value().matches:
                matches.append(FilenameRuleMatch(rule, result.value()))
        return matches

    def evaluate_all_rules(self, rules: Iterable[FilenamePatternRule],
                           file: FileInfo) -> Dict[str, Result[FilenameRuleEvaluationResult, FilenameRuleError]]:
        return {rule.id: self.evaluate_rule(rule, file) for rule in rules}

    def evaluate_rules_for_files(self, rules: Iterable[FilenamePatternRule],
                                 files: Iterable[FileInfo]) -> List[FileRuleAssignment]:
        """First matching rule for each file, in file order."""
        rules = sort_by_priority(rules)
        assignments = []
        for file in files:
            match = self.find_matching_rule(rules, file)
            assignments.append(FileRuleAssignment(file, match.rule if match else None))
        return assignments
