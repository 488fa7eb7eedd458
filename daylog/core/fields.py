"""Field schema for log entries.

A category's form is an ordered tuple of field definitions. There are exactly
three kinds, and every consumer (defaults, coercion, the meaningful-data
predicate, widget descriptors) branches over all three explicitly.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple, Union

CHOICE = "choice"
NUMERIC = "numeric"
BOOLEAN = "boolean"

DIGITS_ONLY = re.compile(r"^\d*$")

FieldValue = Union[str, int, float, bool]


@dataclass(frozen=True)
class ChoiceOption:
    label: str
    value: Any


@dataclass(frozen=True)
class ChoiceField:
    key: str
    label: str
    options: Tuple[ChoiceOption, ...]
    default: Any
    kind: str = field(default=CHOICE, init=False)


@dataclass(frozen=True)
class NumericField:
    key: str
    label: str
    unit: str | None = None
    placeholder: str | None = None
    kind: str = field(default=NUMERIC, init=False)


@dataclass(frozen=True)
class BooleanField:
    key: str
    label: str
    true_label: str | None = None
    false_label: str | None = None
    kind: str = field(default=BOOLEAN, init=False)


FieldDefinition = Union[ChoiceField, NumericField, BooleanField]


def _unknown_field(definition) -> TypeError:
    return TypeError(f"Unsupported field definition: {definition!r}")


def default_value(definition: FieldDefinition) -> FieldValue:
    if isinstance(definition, ChoiceField):
        return definition.default
    if isinstance(definition, BooleanField):
        return False
    if isinstance(definition, NumericField):
        return ""
    raise _unknown_field(definition)


def default_values(fields: Tuple[FieldDefinition, ...]) -> Dict[str, FieldValue]:
    return {definition.key: default_value(definition) for definition in fields}


def _number_to_text(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def coerce_stored(definition: FieldDefinition, stored) -> FieldValue:
    """Convert a stored entry value into its form representation."""
    if isinstance(definition, NumericField):
        parsed = parse_numeric(stored)
        return "" if parsed is None else _number_to_text(parsed)
    if isinstance(definition, BooleanField):
        return bool(stored)
    if isinstance(definition, ChoiceField):
        return stored
    raise _unknown_field(definition)


def accepts_input(definition: FieldDefinition, value) -> bool:
    """Return whether ``value`` may enter the form for this field.

    Numeric fields take digit strings only, so a stray keystroke is dropped at
    the boundary instead of producing a validation error later.
    """
    if isinstance(definition, NumericField):
        return isinstance(value, str) and bool(DIGITS_ONLY.match(value))
    if isinstance(definition, BooleanField):
        return isinstance(value, bool)
    if isinstance(definition, ChoiceField):
        if isinstance(value, bool):
            return False
        return any(option.value == value for option in definition.options)
    raise _unknown_field(definition)


def parse_numeric(raw) -> int | float | None:
    text = raw.strip() if isinstance(raw, str) else str("" if raw is None else raw).strip()
    if not text:
        return None
    try:
        parsed = float(text)
    except ValueError:
        return None
    if not math.isfinite(parsed):
        return None
    if parsed.is_integer():
        return int(parsed)
    return parsed


def is_meaningful(definition: FieldDefinition, value) -> bool:
    if isinstance(definition, NumericField):
        parsed = parse_numeric(value)
        return parsed is not None and parsed != 0
    if isinstance(definition, BooleanField):
        return value is True
    if isinstance(definition, ChoiceField):
        current = definition.default if value is None else value
        return current != definition.default
    raise _unknown_field(definition)


def stored_value(definition: FieldDefinition, value):
    """Return the value to persist for a field, or ``None`` to omit it."""
    if isinstance(definition, NumericField):
        return parse_numeric(value)
    if isinstance(definition, BooleanField):
        return bool(value)
    if isinstance(definition, ChoiceField):
        return definition.default if value is None else value
    raise _unknown_field(definition)


def widget_descriptor(definition: FieldDefinition, value) -> Dict[str, Any]:
    base = {"kind": definition.kind, "key": definition.key, "label": definition.label, "value": value}
    if isinstance(definition, ChoiceField):
        base["options"] = [{"label": option.label, "value": option.value} for option in definition.options]
        base["default"] = definition.default
        return base
    if isinstance(definition, NumericField):
        base["unit"] = definition.unit
        base["placeholder"] = definition.placeholder
        base["input_pattern"] = DIGITS_ONLY.pattern
        return base
    if isinstance(definition, BooleanField):
        base["true_label"] = definition.true_label or "Yes"
        base["false_label"] = definition.false_label or "No"
        return base
    raise _unknown_field(definition)
