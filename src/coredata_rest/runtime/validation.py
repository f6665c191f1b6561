"""
Validation rules compiled from attribute declarations.

Rules are derived once per entity at startup and evaluated against every
candidate record before it is persisted (create and update). All failures
are collected; evaluation never stops at the first one.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from coredata_rest.specs.entity import AttributeSpec, AttributeType


class RecordValidationError(Exception):
    """Raised when a candidate record fails one or more rules."""

    def __init__(self, errors: dict[str, list[str]]):
        self.errors = errors
        fields = ", ".join(sorted(errors))
        super().__init__(f"Validation failed for: {fields}")


class RuleKind(StrEnum):
    INTEGER = "integer"
    NUMERIC = "numeric"
    MIN_LENGTH = "min_length"
    MAX_LENGTH = "max_length"


def _parses_as_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    try:
        int(str(value).strip())
    except ValueError:
        return False
    return True


def _parses_as_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    try:
        float(str(value).strip())
    except ValueError:
        return False
    return True


@dataclass(frozen=True)
class ValidationRule:
    """
    One compiled check against one attribute.

    A missing (None) value passes every rule; nullability is enforced by the
    column definition, not here.
    """

    attribute: str
    kind: RuleKind
    bound: int | None = None

    def check(self, value: Any) -> str | None:
        """Return an error message, or None when the value passes."""
        if value is None:
            return None
        if self.kind == RuleKind.INTEGER:
            return None if _parses_as_integer(value) else "is not an integer"
        if self.kind == RuleKind.NUMERIC:
            return None if _parses_as_number(value) else "is not a number"

        length = len(value) if isinstance(value, str) else len(str(value))
        if self.kind == RuleKind.MIN_LENGTH and self.bound is not None and length < self.bound:
            return f"is shorter than {self.bound} characters"
        if self.kind == RuleKind.MAX_LENGTH and self.bound is not None and length > self.bound:
            return f"is longer than {self.bound} characters"
        return None


def compile_validations(attributes: Iterable[AttributeSpec]) -> tuple[ValidationRule, ...]:
    """
    Derive validation rules from attribute types and declared bounds.

    - Integer 16/32/64: value must parse as an integer
    - Float/Double/Decimal: value must parse as a number
    - String with minimum/maximum: length bounds

    No rule is generated for a bound that is not declared.
    """
    rules: list[ValidationRule] = []
    for attribute in attributes:
        if attribute.transient:
            continue
        if attribute.type.is_integer:
            rules.append(ValidationRule(attribute.name, RuleKind.INTEGER))
        elif attribute.type.is_numeric:
            rules.append(ValidationRule(attribute.name, RuleKind.NUMERIC))
        elif attribute.type == AttributeType.STRING:
            if attribute.minimum_value is not None:
                rules.append(
                    ValidationRule(attribute.name, RuleKind.MIN_LENGTH, int(attribute.minimum_value))
                )
            if attribute.maximum_value is not None:
                rules.append(
                    ValidationRule(attribute.name, RuleKind.MAX_LENGTH, int(attribute.maximum_value))
                )
    return tuple(rules)


def run_validations(
    rules: Iterable[ValidationRule], record: Mapping[str, Any]
) -> dict[str, list[str]]:
    """Evaluate every rule against ``record`` and collect messages per attribute."""
    errors: dict[str, list[str]] = {}
    for rule in rules:
        message = rule.check(record.get(rule.attribute))
        if message:
            errors.setdefault(rule.attribute, []).append(message)
    return errors
