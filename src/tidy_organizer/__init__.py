"""Tidy Organizer

Rule-driven file renaming: metadata and filename rules pick a naming
template for each file, and every batch is recorded so it can be undone.
"""

__version__ = "0.1.0"

from .core.rule_evaluator import RuleEvaluator
from .core.filename_evaluator import FilenameRuleEvaluator
from .core.template_resolver import TemplateResolver, resolve_template_for_rule
from .core.operation_history import OperationHistoryStore
from .core.undo import UndoEngine
from .models.config import AppConfig, load_config, save_config

__all__ = [
    "__version__",
    "RuleEvaluator",
    "FilenameRuleEvaluator",
    "TemplateResolver",
    "resolve_template_for_rule",
    "OperationHistoryStore",
    "UndoEngine",
    "AppConfig",
    "load_config",
    "save_config",
]
