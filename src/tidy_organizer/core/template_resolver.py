"""Resolve which naming template applies to a file.

The unified priority order is walked until the first enabled rule matches
and points at a known template. Rules that fail to evaluate, or whose
template no longer exists, are passed over and reported in
``skipped_rules``. With no match the default template for the file's
extension is used. Every result carries a ``reason``.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from ..models.config import AppConfig
from ..models.metadata import UnifiedMetadata
from ..models.rules import RuleFamily, RulePriorityMode
from ..models.template import get_default_template
from .unified_priority import UnifiedRule, UnifiedRuleEvaluator, order_rules

logger = logging.getLogger(__name__)


class ResolutionReason(Enum):
    RULE_MATCH = "rule-match"
    DEFAULT_FALLBACK = "default-fallback"
    NO_DEFAULT_AVAILABLE = "no-default-available"


SKIP_EVALUATION_ERROR = "evaluation-error"
SKIP_TEMPLATE_NOT_FOUND = "template-not-found"


@dataclass(slots=True, frozen=True)
class MatchedRule:
    rule_id: str
    rule_name: str
    family: RuleFamily
    template_id: str
    priority: int
    folder_structure_id: Optional[str] = None

    @classmethod
    def from_unified(cls, unified: UnifiedRule) -> "MatchedRule":
        return cls(
            rule_id=unified.id,
            rule_name=unified.name,
            family=unified.family,
            template_id=unified.template_id,
            priority=unified.priority,
            folder_structure_id=unified.rule.folder_structure_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "ruleName": self.rule_name,
            "family": self.family.value,
            "templateId": self.template_id,
            "priority": self.priority,
            "folderStructureId": self.folder_structure_id,
        }


@dataclass(slots=True, frozen=True)
class SkippedRule:
    rule_id: str
    family: RuleFamily
    reason: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"ruleId": self.rule_id, "family": self.family.value,
                "reason": self.reason, "message": self.message}


@dataclass(slots=True, frozen=True)
class TemplateResolutionResult:
    template_id: Optional[str]
    matched_rule: Optional[MatchedRule]
    reason: ResolutionReason
    explanation: str
    skipped_rules: List[SkippedRule] = field(default_factory=list)

    @property
    def matched_family(self) -> Optional[RuleFamily]:
        return self.matched_rule.family if self.matched_rule else None

    @property
    def folder_structure_id(self) -> Optional[str]:
        return self.matched_rule.folder_structure_id if self.matched_rule else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "templateId": self.template_id,
            "matchedRule": self.matched_rule.to_dict() if self.matched_rule else None,
            "matchedFamily": self.matched_family.value if self.matched_family else None,
            "reason": self.reason.value,
            "explanation": self.explanation,
            "skippedRules": [s.to_dict() for s in self.skipped_rules],
        }


class TemplateResolver:
    """Walks the unified rule order to pick a template for each file."""

    def __init__(self, evaluator: Optional[UnifiedRuleEvaluator] = None):
        self.evaluator = evaluator if evaluator is not None else UnifiedRuleEvaluator()

    def resolve(self, metadata: UnifiedMetadata, config: AppConfig,
                priority_mode: Optional[RulePriorityMode] = None) -> TemplateResolutionResult:
        """Resolve the template for one file.

        Args:
            metadata: Unified metadata of the file (its ``file`` gives the name)
            config: Rules, filename rules and templates
            priority_mode: Overrides ``config.preferences.rule_priority_mode``
        """
        mode = priority_mode or config.preferences.rule_priority_mode
        known_templates = {t.id for t in config.templates}
        skipped: List[SkippedRule] = []

        for unified in order_rules(config.rules, config.filename_rules, mode):
            if not unified.enabled:
                continue

            outcome = self.evaluator.evaluate(unified, metadata)
            if outcome.is_failure():
                message = outcome.error().message
                logger.debug(f"Rule {unified.id} skipped during resolution: {message}")
                skipped.append(SkippedRule(unified.id, unified.family, SKIP_EVALUATION_ERROR, message))
                continue
            if not outcome.value():
                continue

            if unified.template_id not in known_templates:
                logger.debug(f"Rule {unified.id} matched but template {unified.template_id} is unknown")
                skipped.append(SkippedRule(
                    unified.id, unified.family, SKIP_TEMPLATE_NOT_FOUND,
                    f'Template "{unified.template_id}" not found',
                ))
                continue

            return TemplateResolutionResult(
                template_id=unified.template_id,
                matched_rule=MatchedRule.from_unified(unified),
                reason=ResolutionReason.RULE_MATCH,
                explanation=self._explain(
                    f'Matched {unified.family.value} rule "{unified.name}" '
                    f'(priority {unified.priority}, {mode.value} mode)', skipped),
                skipped_rules=skipped,
            )

        extension = metadata.file.extension
        default = get_default_template(config.templates, extension)
        if default is not None:
            logger.debug(f"No rule matched {metadata.file.full_name}; using default template {default.id}")
            return TemplateResolutionResult(
                template_id=default.id,
                matched_rule=None,
                reason=ResolutionReason.DEFAULT_FALLBACK,
                explanation=self._explain(f'No rule matched; using default template "{default.name}"', skipped),
                skipped_rules=skipped,
            )

        return TemplateResolutionResult(
            template_id=None,
            matched_rule=None,
            reason=ResolutionReason.NO_DEFAULT_AVAILABLE,
            explanation=self._explain(
                f"No rule matched and no default template applies to '.{extension}' files"
                if extension else "No rule matched and no default template is configured", skipped),
            skipped_rules=skipped,
        )

    def resolve_many(self, metadata_items: Iterable[UnifiedMetadata], config: AppConfig,
                     priority_mode: Optional[RulePriorityMode] = None) -> List[TemplateResolutionResult]:
        return [self.resolve(metadata, config, priority_mode) for metadata in metadata_items]

    @staticmethod
    def _explain(text: str, skipped: List[SkippedRule]) -> str:
        if skipped:
            return f"{text}; {len(skipped)} rule(s) skipped"
        return text


def resolve_template_for_rule(metadata: UnifiedMetadata, config: AppConfig,
                              priority_mode: Optional[RulePriorityMode] = None) -> TemplateResolutionResult:
    """Resolve with a fresh resolver (and fresh pattern caches)."""
    return TemplateResolver().resolve(metadata, config, priority_mode)
