"""Dry-run view of rule evaluation order for one file, with tie detection."""

from dataclasses import dataclass, field
from itertools import groupby
from typing import Any, Dict, List, Optional

from ..models.config import AppConfig
from ..models.metadata import UnifiedMetadata
from .unified_priority import UnifiedRule, UnifiedRuleEvaluator, get_unified_rule_priorities

SKIP_DISABLED = "disabled"


@dataclass(slots=True, frozen=True)
class EvaluationOrderEntry:
    rule: UnifiedRule
    will_evaluate: bool
    skip_reason: Optional[str] = None
    matched: Optional[bool] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule": self.rule.to_dict(),
            "willEvaluate": self.will_evaluate,
            "skipReason": self.skip_reason,
            "matched": self.matched,
            "error": self.error,
        }


@dataclass(slots=True, frozen=True)
class PriorityTie:
    """Enabled rules sharing one priority value."""
    priority: int
    rules: List[UnifiedRule]

    @property
    def cross_family(self) -> bool:
        """True when the tie spans both rule families."""
        return len({r.family for r in self.rules}) > 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "priority": self.priority,
            "crossFamily": self.cross_family,
            "rules": [r.to_dict() for r in self.rules],
        }


@dataclass(slots=True, frozen=True)
class RulePriorityPreview:
    evaluation_order: List[EvaluationOrderEntry]
    winning_rule: Optional[UnifiedRule]
    matched_but_lost: List[UnifiedRule] = field(default_factory=list)
    priority_ties: List[PriorityTie] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "evaluationOrder": [e.to_dict() for e in self.evaluation_order],
            "winningRule": self.winning_rule.to_dict() if self.winning_rule else None,
            "matchedButLost": [r.to_dict() for r in self.matched_but_lost],
            "priorityTies": [t.to_dict() for t in self.priority_ties],
        }


def detect_priority_ties(config: AppConfig) -> List[PriorityTie]:
    """Groups of two or more enabled rules with equal priority, highest first.

    Rules inside a group appear in resolution order, so the first one is
    the rule that would win the tie.
    """
    ordered = [r for r in get_unified_rule_priorities(config) if r.enabled]
    ordered.sort(key=lambda r: r.priority, reverse=True)
    ties = []
    for priority, group in groupby(ordered, key=lambda r: r.priority):
        rules = list(group)
        if len(rules) > 1:
            ties.append(PriorityTie(priority, rules))
    return ties


def preview_rule_priority(metadata: UnifiedMetadata, config: AppConfig,
                          evaluator: Optional[UnifiedRuleEvaluator] = None) -> RulePriorityPreview:
    """Evaluate every enabled rule in resolution order without stopping at the winner."""
    evaluator = evaluator if evaluator is not None else UnifiedRuleEvaluator()
    order: List[EvaluationOrderEntry] = []
    matched_rules: List[UnifiedRule] = []
    winner: Optional[UnifiedRule] = None

    for rule in get_unified_rule_priorities(config):
        if not rule.enabled:
            order.append(EvaluationOrderEntry(rule, will_evaluate=False, skip_reason=SKIP_DISABLED))
            continue

        outcome = evaluator.evaluate(rule, metadata)
        if outcome.is_failure():
            order.append(EvaluationOrderEntry(rule, will_evaluate=True, matched=False,
                                              error=outcome.error().message))
            continue

        matched = outcome.value()
        order.append(EvaluationOrderEntry(rule, will_evaluate=True, matched=matched))
        if matched:
            matched_rules.append(rule)
            if winner is None:
                winner = rule

    return RulePriorityPreview(
        evaluation_order=order,
        winning_rule=winner,
        matched_but_lost=[r for r in matched_rules if r is not winner],
        priority_ties=detect_priority_ties(config),
    )
