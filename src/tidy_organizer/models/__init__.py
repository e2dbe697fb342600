"""Data models for tidy organizer."""

from .file_info import FileCategory, FileInfo
from .metadata import UnifiedMetadata
from .rules import FilenamePatternRule, MetadataPatternRule, RuleCondition, RuleOperator
from .template import Template

__all__ = [
    "FileCategory",
    "FileInfo",
    "UnifiedMetadata",
    "MetadataPatternRule",
    "FilenamePatternRule",
    "RuleCondition",
    "RuleOperator",
    "Template",
]
