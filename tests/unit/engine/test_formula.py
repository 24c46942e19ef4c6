"""Tests for the restricted formula evaluator."""

from __future__ import annotations

import pytest

from character_vault.core.exceptions import FormulaError
from character_vault.engine.formula import (
    FormulaEvaluator,
    evaluate_formula,
    formula_tokens,
    screen_expression,
    substitute_tokens,
)


@pytest.fixture
def evaluator() -> FormulaEvaluator:
    """Evaluator with the zero-result guard on."""
    return FormulaEvaluator()


class TestTokens:
    """Tests for token discovery and substitution."""

    def test_formula_tokens(self) -> None:
        assert formula_tokens("@attributes.ac.armor + @abilities.dex.mod") == [
            "attributes.ac.armor",
            "abilities.dex.mod",
        ]
        assert formula_tokens("10 + 2") == []

    def test_substitution_with_or_without_prefix(self) -> None:
        text, substituted = substitute_tokens("@prof + @abilities.dex.mod", {"@prof": 2, "abilities.dex.mod": 3})
        assert text == "2 + 3"
        assert substituted is True

    def test_unknown_token_becomes_zero(self) -> None:
        text, substituted = substitute_tokens("@nope + 1", {})
        assert text == "0 + 1"
        assert substituted is True

    def test_negative_values_are_parenthesised(self) -> None:
        text, _ = substitute_tokens("10 - @abilities.dex.mod", {"abilities.dex.mod": -1})
        assert text == "10 - (-1)"

    def test_no_tokens(self) -> None:
        assert substitute_tokens("1 + 2", {}) == ("1 + 2", False)


class TestScreening:
    """Tests for the character and identifier screen."""

    def test_math_prefix_stripped(self) -> None:
        assert screen_expression("Math.max(1, 2)") == "max(1, 2)"

    @pytest.mark.parametrize("expression", ["1; 2", "{1}", "`1`", "__import__('os')", "a[0]"])
    def test_disallowed_characters(self, expression: str) -> None:
        with pytest.raises(FormulaError):
            screen_expression(expression)

    @pytest.mark.parametrize("identifier", ["eval", "Function", "document", "window", "process", "require"])
    def test_disallowed_identifiers(self, identifier: str) -> None:
        with pytest.raises(FormulaError) as exc_info:
            screen_expression(f"{identifier}(1)")
        assert identifier in exc_info.value.message


class TestFormulaEvaluator:
    """Tests for FormulaEvaluator."""

    def test_token_arithmetic(self, evaluator: FormulaEvaluator) -> None:
        assert evaluator.evaluate("@abilities.dex.mod + 2", {"@abilities.dex.mod": 3}) == 5

    def test_numbers_pass_through(self, evaluator: FormulaEvaluator) -> None:
        assert evaluator.evaluate(4, {}) == 4.0
        assert evaluator.evaluate("-2", {}) == -2.0
        assert evaluator.evaluate("0", {}) == 0.0

    @pytest.mark.parametrize(
        ("formula", "expected"),
        [
            ("Math.max(13, 10 + @abilities.dex.mod)", 14),
            ("floor(7 / 2)", 3),
            ("ceil(1.2)", 2),
            ("round(2.5)", 3),
            ("min(@prof, 1) * 2", 2),
            ("10 - @abilities.dex.mod", 11),
        ],
    )
    def test_allowed_functions(self, evaluator: FormulaEvaluator, formula: str, expected: float) -> None:
        context = {"abilities.dex.mod": 4 if "max" in formula else -1, "prof": 3}
        assert evaluator.evaluate(formula, context) == expected

    def test_unmapped_token_zero_is_failure(self, evaluator: FormulaEvaluator) -> None:
        """A token formula evaluating to exactly 0 is reported as failed, not 0."""
        assert evaluator.evaluate("@missing.token", {}) is None

    def test_legitimate_zero_is_also_flagged(self, evaluator: FormulaEvaluator) -> None:
        """Known over-approximation: a real zero from tokens is indistinguishable."""
        assert evaluator.evaluate("@abilities.dex.mod", {"abilities.dex.mod": 0}) is None

    def test_zero_without_tokens_is_allowed(self, evaluator: FormulaEvaluator) -> None:
        assert evaluator.evaluate("1 - 1", {}) == 0.0

    def test_zero_guard_disabled(self) -> None:
        evaluator = FormulaEvaluator(zero_result_is_failure=False)
        assert evaluator.evaluate("@missing.token", {}) == 0.0

    @pytest.mark.parametrize(
        "formula",
        [
            "1; 2",
            "{1}",
            "`1`",
            "eval(1)",
            "Function(1)",
            "document",
            "window.alert(1)",
            "process",
            "require(1)",
            "@abilities.dex.mod; process",
        ],
    )
    def test_unsafe_input_rejected(self, evaluator: FormulaEvaluator, formula: str) -> None:
        assert evaluator.evaluate(formula, {"abilities.dex.mod": 3}) is None

    @pytest.mark.parametrize("formula", ["", "   ", "1 +", "1 / 0", "(1", None, ["1"]])
    def test_malformed_input_fails(self, evaluator: FormulaEvaluator, formula: object) -> None:
        assert evaluator.evaluate(formula, {}) is None

    @pytest.mark.parametrize("formula", ["10**400", "-(10**400)", "10**400 / 3", "max(10**400, 1)"])
    def test_out_of_range_result_fails(self, evaluator: FormulaEvaluator, formula: str) -> None:
        """Results too large for a float fail cleanly instead of raising."""
        assert evaluator.evaluate(formula, {}) is None
        with pytest.raises(FormulaError):
            evaluator.evaluate_strict(formula, {})

    def test_evaluate_strict_raises(self, evaluator: FormulaEvaluator) -> None:
        with pytest.raises(FormulaError) as exc_info:
            evaluator.evaluate_strict("1 / 0", {})
        assert exc_info.value.details["formula"] == "1 / 0"

    def test_evaluate_or(self, evaluator: FormulaEvaluator) -> None:
        assert evaluator.evaluate_or("bogus", {}, 7.0) == 7.0
        assert evaluator.evaluate_or("2 * 3", {}, 7.0) == 6.0

    def test_module_helper(self) -> None:
        assert evaluate_formula("@prof * 2", {"@prof": 3}) == 6
        assert evaluate_formula("@prof", {}, zero_result_is_failure=False) == 0
