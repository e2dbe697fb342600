"""JSON schemas and validation for the configuration file and its rules."""

import json
import re
from pathlib import Path
from typing import Any, Dict, List

import jsonschema

from ..models.rules import RuleOperator


def _operator_spellings() -> List[str]:
    """Every accepted spelling of every operator (camel, kebab, snake)."""
    names = {"matches-regex", "matches_regex"}
    for op in RuleOperator:
        snake = re.sub(r"(?<!^)(?=[A-Z])", "_", op.value).lower()
        names.update({op.value, snake, snake.replace("_", "-")})
    return sorted(names)


_VALUELESS_OPERATORS = ["exists", "notExists", "not_exists", "not-exists"]

CONDITION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["field", "operator"],
    "properties": {
        "field": {
            "type": "string",
            "minLength": 1,
            "description": "Dotted metadata field path, e.g. image.cameraMake"
        },
        "operator": {
            "type": "string",
            "enum": _operator_spellings(),
            "description": "Comparison operator"
        },
        "value": {
            "description": "Value to compare against (not used by exists/notExists)"
        },
        "caseSensitive": {
            "type": "boolean",
            "default": False
        }
    },
    "if": {
        "properties": {"operator": {"not": {"enum": _VALUELESS_OPERATORS}}},
        "required": ["operator"]
    },
    "then": {
        "required": ["value"]
    }
}

METADATA_RULE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["id", "name", "templateId"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "name": {"type": "string", "minLength": 1, "maxLength": 100},
        "description": {"type": "string", "maxLength": 500},
        "conditions": {"type": "array", "items": CONDITION_SCHEMA},
        "matchMode": {"type": "string", "enum": ["all", "any"], "default": "all"},
        "templateId": {"type": "string", "minLength": 1},
        "folderStructureId": {"type": ["string", "null"]},
        "priority": {"type": "integer", "minimum": 0, "default": 0},
        "enabled": {"type": "boolean", "default": True},
        "createdAt": {"type": "string", "format": "date-time"},
        "updatedAt": {"type": "string", "format": "date-time"}
    }
}

FILENAME_RULE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["id", "name", "pattern", "templateId"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "name": {"type": "string", "minLength": 1, "maxLength": 100},
        "description": {"type": "string", "maxLength": 500},
        "pattern": {"type": "string", "minLength": 1},
        "caseSensitive": {"type": "boolean", "default": False},
        "templateId": {"type": "string", "minLength": 1},
        "folderStructureId": {"type": ["string", "null"]},
        "priority": {"type": "integer", "minimum": 0, "default": 0},
        "enabled": {"type": "boolean", "default": True},
        "createdAt": {"type": "string", "format": "date-time"},
        "updatedAt": {"type": "string", "format": "date-time"}
    }
}

TEMPLATE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["id", "name", "pattern"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "name": {"type": "string", "minLength": 1},
        "pattern": {"type": "string", "minLength": 1},
        "description": {"type": "string"},
        "isDefault": {"type": "boolean", "default": False},
        "fileTypes": {"type": "array", "items": {"type": "string"}},
        "createdAt": {"type": "string", "format": "date-time"},
        "updatedAt": {"type": "string", "format": "date-time"}
    }
}

PREFERENCES_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "rulePriorityMode": {
            "type": "string",
            "enum": ["combined", "metadata-first", "filename-first"],
            "default": "combined"
        },
        "defaultOutputFormat": {"type": "string", "enum": ["table", "json", "plain"]},
        "confirmBeforeApply": {"type": "boolean"},
        "historyMaxEntries": {"type": "integer", "minimum": 0},
        "historyMaxAgeDays": {"type": "integer", "minimum": 0}
    }
}

# Unknown top-level keys are tolerated so newer config files still load
CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "version": {"type": "integer", "minimum": 1},
        "templates": {"type": "array", "items": TEMPLATE_SCHEMA},
        "rules": {"type": "array", "items": METADATA_RULE_SCHEMA},
        "filenameRules": {"type": "array", "items": FILENAME_RULE_SCHEMA},
        "folderStructures": {"type": "array", "items": {"type": "object"}},
        "preferences": PREFERENCES_SCHEMA
    }
}


def _validate(data: Any, schema: Dict[str, Any]) -> List[str]:
    validator = jsonschema.Draft7Validator(schema, format_checker=jsonschema.Draft7Validator.FORMAT_CHECKER)
    errors = []
    for error in sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path)):
        path = " -> ".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
        errors.append(f"Validation error at {path}: {error.message}")
    return errors


def validate_config_json(config_data: Any) -> List[str]:
    """Validate a configuration document.

    Returns:
        List of validation error messages (empty when valid)
    """
    return _validate(config_data, CONFIG_SCHEMA)


def validate_metadata_rule_json(rule_data: Any) -> List[str]:
    """Validate a single metadata-pattern rule object."""
    return _validate(rule_data, METADATA_RULE_SCHEMA)


def validate_filename_rule_json(rule_data: Any) -> List[str]:
    """Validate a single filename rule object."""
    return _validate(rule_data, FILENAME_RULE_SCHEMA)


def validate_config_file(file_path: Path) -> List[str]:
    """Validate a configuration JSON file.

    Args:
        file_path: Path to the config file

    Returns:
        List of validation error messages
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            config_data = json.load(f)
    except json.JSONDecodeError as e:
        return [f"JSON parsing error: {e.msg} at line {e.lineno}, column {e.colno}"]
    except OSError as e:
        return [f"Error reading file: {e}"]
    return validate_config_json(config_data)
