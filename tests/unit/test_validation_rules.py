"""
Tests for validation rules compiled from attribute declarations.
"""

from __future__ import annotations

import pytest

from coredata_rest.runtime.validation import (
    RecordValidationError,
    RuleKind,
    ValidationRule,
    compile_validations,
    run_validations,
)
from coredata_rest.specs import AttributeSpec


class TestCompileValidations:
    def test_integer_types_get_integer_rule(self):
        for type_name in ("Integer 16", "Integer 32", "Integer 64"):
            rules = compile_validations([AttributeSpec(name="n", type=type_name)])
            assert rules == (ValidationRule("n", RuleKind.INTEGER),)

    def test_float_types_get_numeric_rule(self):
        for type_name in ("Float", "Double", "Decimal"):
            rules = compile_validations([AttributeSpec(name="x", type=type_name)])
            assert rules == (ValidationRule("x", RuleKind.NUMERIC),)

    def test_string_bounds(self):
        rules = compile_validations(
            [AttributeSpec(name="name", minimum_value=2, maximum_value=40)]
        )
        assert rules == (
            ValidationRule("name", RuleKind.MIN_LENGTH, 2),
            ValidationRule("name", RuleKind.MAX_LENGTH, 40),
        )

    def test_undeclared_bounds_produce_no_rule(self):
        assert compile_validations([AttributeSpec(name="body")]) == ()
        assert compile_validations([AttributeSpec(name="flag", type="Boolean")]) == ()

    def test_transient_attributes_are_skipped(self):
        assert compile_validations([AttributeSpec(name="n", type="Integer 32", transient=True)]) == ()


class TestRuleChecks:
    @pytest.mark.parametrize("value", [3, "42", " -7 "])
    def test_integer_accepts(self, value):
        assert ValidationRule("n", RuleKind.INTEGER).check(value) is None

    @pytest.mark.parametrize("value", ["abc", "1.5", True])
    def test_integer_rejects(self, value):
        assert ValidationRule("n", RuleKind.INTEGER).check(value) == "is not an integer"

    @pytest.mark.parametrize("value", [1, 2.5, "3.25", "1e3"])
    def test_numeric_accepts(self, value):
        assert ValidationRule("x", RuleKind.NUMERIC).check(value) is None

    def test_numeric_rejects(self):
        assert ValidationRule("x", RuleKind.NUMERIC).check("lots") == "is not a number"

    def test_length_bounds(self):
        short = ValidationRule("name", RuleKind.MIN_LENGTH, 2)
        long = ValidationRule("name", RuleKind.MAX_LENGTH, 4)

        assert short.check("a") == "is shorter than 2 characters"
        assert short.check("ab") is None
        assert long.check("abcd") is None
        assert long.check("abcde") == "is longer than 4 characters"

    def test_none_passes_every_rule(self):
        for kind in RuleKind:
            assert ValidationRule("f", kind, 1).check(None) is None


class TestRunValidations:
    def test_collects_every_failure(self):
        rules = compile_validations(
            [
                AttributeSpec(name="age", type="Integer 16"),
                AttributeSpec(name="score", type="Double"),
                AttributeSpec(name="name", minimum_value=2),
            ]
        )
        errors = run_validations(rules, {"age": "old", "score": "high", "name": "a"})

        assert errors == {
            "age": ["is not an integer"],
            "score": ["is not a number"],
            "name": ["is shorter than 2 characters"],
        }

    def test_valid_record_has_no_errors(self):
        rules = compile_validations([AttributeSpec(name="age", type="Integer 16")])
        assert run_validations(rules, {"age": 30}) == {}

    def test_missing_values_are_not_checked(self):
        rules = compile_validations([AttributeSpec(name="name", minimum_value=2)])
        assert run_validations(rules, {}) == {}

    def test_error_carries_messages(self):
        exc = RecordValidationError({"name": ["is shorter than 2 characters"]})
        assert exc.errors["name"] == ["is shorter than 2 characters"]
        assert "name" in str(exc)
