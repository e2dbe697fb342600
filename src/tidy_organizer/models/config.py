"""Configuration model for tidy organizer."""

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .history import DEFAULT_MAX_AGE_DAYS, DEFAULT_MAX_ENTRIES, PruneConfig
from .rules import FilenamePatternRule, MetadataPatternRule, RulePriorityMode
from .template import Template
from ..exceptions import ConfigurationError

CONFIG_VERSION = 1


def default_config_dir() -> Path:
    """Per-user configuration directory (``$XDG_CONFIG_HOME/tidy-organizer``)."""
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "tidy-organizer"


def default_config_path() -> Path:
    return default_config_dir() / "config.json"


@dataclass
class Preferences:
    """User preferences."""
    rule_priority_mode: RulePriorityMode = RulePriorityMode.COMBINED
    default_output_format: str = "table"  # "table", "json" or "plain"
    confirm_before_apply: bool = True
    history_max_entries: int = DEFAULT_MAX_ENTRIES
    history_max_age_days: int = DEFAULT_MAX_AGE_DAYS

    @property
    def prune_config(self) -> PruneConfig:
        return PruneConfig(max_entries=self.history_max_entries,
                           max_age_days=self.history_max_age_days)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rulePriorityMode": self.rule_priority_mode.value,
            "defaultOutputFormat": self.default_output_format,
            "confirmBeforeApply": self.confirm_before_apply,
            "historyMaxEntries": self.history_max_entries,
            "historyMaxAgeDays": self.history_max_age_days,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Preferences":
        return cls(
            rule_priority_mode=RulePriorityMode(data.get("rulePriorityMode", "combined")),
            default_output_format=data.get("defaultOutputFormat", "table"),
            confirm_before_apply=data.get("confirmBeforeApply", True),
            history_max_entries=data.get("historyMaxEntries", DEFAULT_MAX_ENTRIES),
            history_max_age_days=data.get("historyMaxAgeDays", DEFAULT_MAX_AGE_DAYS),
        )


@dataclass
class AppConfig:
    """Main configuration model. Every collection may be empty."""
    templates: List[Template] = field(default_factory=list)
    rules: List[MetadataPatternRule] = field(default_factory=list)
    filename_rules: List[FilenamePatternRule] = field(default_factory=list)
    folder_structures: List[Dict[str, Any]] = field(default_factory=list)
    preferences: Preferences = field(default_factory=Preferences)
    version: int = CONFIG_VERSION

    def get_template(self, template_id: str) -> Optional[Template]:
        for template in self.templates:
            if template.id == template_id:
                return template
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "templates": [t.to_dict() for t in self.templates],
            "rules": [r.to_dict() for r in self.rules],
            "filenameRules": [r.to_dict() for r in self.filename_rules],
            "folderStructures": list(self.folder_structures),
            "preferences": self.preferences.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        return cls(
            templates=[Template.from_dict(t) for t in data.get("templates", [])],
            rules=[MetadataPatternRule.from_dict(r) for r in data.get("rules", [])],
            filename_rules=[FilenamePatternRule.from_dict(r) for r in data.get("filenameRules", [])],
            folder_structures=list(data.get("folderStructures", [])),
            preferences=Preferences.from_dict(data.get("preferences", {})),
            version=data.get("version", CONFIG_VERSION),
        )


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load configuration from a JSON file.

    A missing file yields the default (empty) configuration.

    Raises:
        ConfigurationError: If the file is unreadable, not JSON, or fails
            schema validation.
    """
    from ..core.rule_schema import validate_config_json

    config_path = Path(config_path) if config_path else default_config_path()
    if not config_path.exists():
        return AppConfig()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {config_path}: {e.msg} at line {e.lineno}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {config_path}: {e}") from e

    errors = validate_config_json(config_data)
    if errors:
        raise ConfigurationError(f"Invalid configuration in {config_path}: " + "; ".join(errors))

    return AppConfig.from_dict(config_data)


def save_config(config: AppConfig, config_path: Optional[Path] = None) -> None:
    """Save configuration to a JSON file, atomically."""
    config_path = Path(config_path) if config_path else default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=".config-", suffix=".tmp", dir=config_path.parent)
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(config.to_dict(), f, indent=2)
        os.replace(tmp_name, config_path)
    except OSError as e:
        Path(tmp_name).unlink(missing_ok=True)
        raise ConfigurationError(f"Cannot write {config_path}: {e}") from e
