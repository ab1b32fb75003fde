"""Type-directed validation of setting values.

Every value written through the settings API passes through
:func:`validate_setting_value` first. Validation is pure: it looks only at
the setting definition and the candidate value.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from typing import Any

SETTING_KEY_PATTERN = re.compile(r"^[a-z0-9_]+$")
BOOLEAN_TOKENS = frozenset({"true", "false", "0", "1"})


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: str | None = None


def is_valid_setting_key(key: object) -> bool:
    return isinstance(key, str) and bool(SETTING_KEY_PATTERN.match(key))


def _is_absent(value: Any) -> bool:
    return value is None or value == ""


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return True
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if not isinstance(value, str):
        return False
    # float() also takes digit separators such as "1_000"
    if "_" in value:
        return False
    try:
        return math.isfinite(float(value.strip()))
    except ValueError:
        return False


def _is_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return True
    if isinstance(value, (int, str)):
        return str(value) in BOOLEAN_TOKENS
    return False


def _is_json(value: Any) -> bool:
    if not isinstance(value, str):
        # Structured request bodies already arrived as parsed JSON.
        return isinstance(value, (dict, list, int, float, bool))
    try:
        json.loads(value)
    except json.JSONDecodeError:
        return False
    return True


def validate_setting_value(setting, value: Any) -> ValidationResult:
    """Decide whether *value* may be stored for *setting*."""
    name = setting.setting_name
    if setting.is_required and _is_absent(value):
        return ValidationResult(False, f"{name} is required")

    data_type = setting.data_type
    if data_type == "number" and not _is_number(value):
        return ValidationResult(False, f"{name} must be a number")
    if data_type == "boolean" and not _is_boolean(value):
        return ValidationResult(False, f"{name} must be true or false")
    if data_type == "json" and not _is_json(value):
        return ValidationResult(False, f"{name} must be valid JSON")
    # "string" and unknown types accept anything
    return ValidationResult(True)


def to_storage_text(value: Any, data_type: str) -> str | None:
    """Render an accepted value as the text stored in ``setting_value``."""
    if value is None:
        return None
    if data_type == "boolean":
        if isinstance(value, bool):
            return "true" if value else "false"
        return "true" if str(value) in ("true", "1") else "false"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)
