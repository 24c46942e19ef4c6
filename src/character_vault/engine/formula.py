"""
Formula Evaluation
==================
Restricted evaluation of character-authored formula strings.

Formulas such as ``"@abilities.dex.mod + 2"`` or
``"max(13, 10 + @abilities.dex.mod)"`` arrive as untrusted text inside
snapshots. Evaluation happens in three steps:

1. every ``@token`` is substituted with its numeric value from the supplied
   context (0 when the token is unknown);
2. the residual text is screened: only digits, ``+ - * / ( ) . ,``, spaces
   and letters may remain, and the only identifiers allowed are
   ``Math``, ``min``, ``max``, ``floor``, ``ceil`` and ``round``;
3. the screened arithmetic is evaluated with simpleeval.

A failed evaluation returns ``None``, never 0. When a formula referenced a
token and still evaluates to exactly 0, that is reported as a failure too
(a likely token-mapping problem), unless the guard is switched off.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import Any

from simpleeval import simple_eval

from character_vault.core.exceptions import FormulaError
from character_vault.core.logging import get_logger
from character_vault.engine.accessors import round_half_up, try_number


logger = get_logger(__name__)


# =============================================================================
# SAFE FUNCTIONS FOR FORMULAS
# =============================================================================

SAFE_FUNCTIONS = {
    "min": min,
    "max": max,
    "floor": math.floor,
    "ceil": math.ceil,
    "round": round_half_up,
}

ALLOWED_IDENTIFIERS = frozenset({"Math", "min", "max", "floor", "ceil", "round"})

TOKEN_PATTERN = re.compile(r"@([A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z0-9_]+)*)")
_ALLOWED_TEXT = re.compile(r"^[0-9+\-*/(). ,A-Za-z]*$")
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_MATH_PREFIX = re.compile(r"\bMath\s*\.\s*")


def formula_tokens(formula: str) -> list[str]:
    """List the ``@`` tokens a formula references, without the ``@``.

    Example:
        >>> formula_tokens("@attributes.ac.armor + @abilities.dex.mod")
        ['attributes.ac.armor', 'abilities.dex.mod']
    """
    if not isinstance(formula, str):
        return []
    return TOKEN_PATTERN.findall(formula)


def _format_number(value: float) -> str:
    """Render a substituted value as plain arithmetic text."""
    if value.is_integer():
        text = str(int(value))
    else:
        text = repr(value)
        if "e" in text or "E" in text:
            text = format(value, ".12f").rstrip("0").rstrip(".")
    return f"({text})" if value < 0 else text


def _lookup(context: Mapping[str, Any], token: str) -> float:
    """Resolve a token against a context keyed with or without the ``@``."""
    for key in (f"@{token}", token):
        if key in context:
            number = try_number(context[key])
            return 0.0 if number is None else number
    return 0.0


def substitute_tokens(formula: str, context: Mapping[str, Any]) -> tuple[str, bool]:
    """Replace every ``@token`` with its context value.

    Args:
        formula: Raw formula text.
        context: Token values, keyed ``"@abilities.dex.mod"`` or ``"abilities.dex.mod"``.

    Returns:
        The substituted text and whether any substitution happened.
    """
    substituted = False

    def replace(match: re.Match[str]) -> str:
        nonlocal substituted
        substituted = True
        token = match.group(1).rstrip(".")
        return _format_number(_lookup(context, token))

    return TOKEN_PATTERN.sub(replace, formula), substituted


def screen_expression(expression: str, *, formula: str | None = None) -> str:
    """Reject anything but plain arithmetic and the allowed functions.

    Args:
        expression: Text after token substitution.
        formula: Original formula, for error context.

    Returns:
        The expression with ``Math.`` prefixes normalised away.

    Raises:
        FormulaError: If disallowed characters or identifiers remain.
    """
    if not _ALLOWED_TEXT.match(expression):
        raise FormulaError("Formula contains disallowed characters", formula=formula)
    for identifier in _IDENTIFIER.findall(expression):
        if identifier not in ALLOWED_IDENTIFIERS:
            raise FormulaError(
                f"Formula references disallowed identifier '{identifier}'",
                formula=formula,
            )
    return _MATH_PREFIX.sub("", expression)


class FormulaEvaluator:
    """Evaluates snapshot formulas against a token context.

    Example:
        >>> evaluator = FormulaEvaluator()
        >>> evaluator.evaluate("@abilities.dex.mod + 2", {"@abilities.dex.mod": 3})
        5.0
        >>> evaluator.evaluate("eval(1)", {}) is None
        True
    """

    def __init__(self, *, zero_result_is_failure: bool = True) -> None:
        """Initialize the evaluator.

        Args:
            zero_result_is_failure: Report token formulas that evaluate to
                exactly 0 as failures.
        """
        self.zero_result_is_failure = zero_result_is_failure

    def evaluate_strict(self, formula: str, context: Mapping[str, Any]) -> float:
        """Evaluate a formula, raising on any failure.

        Args:
            formula: Formula text.
            context: Token values.

        Returns:
            The finite numeric result.

        Raises:
            FormulaError: On empty, unsafe, malformed or suspicious formulas.
        """
        if not isinstance(formula, str) or not formula.strip():
            raise FormulaError("Empty formula", formula=formula if isinstance(formula, str) else None)

        expression, substituted = substitute_tokens(formula, context)
        expression = screen_expression(expression, formula=formula)

        try:
            result = simple_eval(expression, functions=SAFE_FUNCTIONS, names={})
            number = try_number(result)
        except ArithmeticError as exc:
            raise FormulaError(f"Formula result out of range: {exc}", formula=formula) from exc
        except Exception as exc:
            raise FormulaError(f"Formula could not be evaluated: {exc}", formula=formula) from exc

        if number is None:
            raise FormulaError("Formula did not produce a finite number", formula=formula)
        if substituted and number == 0 and self.zero_result_is_failure:
            raise FormulaError("Token formula evaluated to exactly 0", formula=formula)
        return number

    def evaluate(self, formula: Any, context: Mapping[str, Any]) -> float | None:
        """Evaluate a formula or plain number.

        Args:
            formula: Formula text, or a number that is returned as-is.
            context: Token values.

        Returns:
            The result, or None when evaluation failed.
        """
        number = try_number(formula)
        if number is not None:
            return number
        if not isinstance(formula, str):
            return None
        try:
            return self.evaluate_strict(formula, context)
        except FormulaError as exc:
            logger.debug("Formula evaluation failed", formula=formula, reason=exc.message)
            return None

    def evaluate_or(self, formula: Any, context: Mapping[str, Any], default: float) -> float:
        """Evaluate, falling back to ``default`` on failure or absence."""
        result = self.evaluate(formula, context)
        return default if result is None else result


def evaluate_formula(
    formula: Any,
    context: Mapping[str, Any],
    *,
    zero_result_is_failure: bool = True,
) -> float | None:
    """Evaluate a formula with a one-off evaluator.

    Args:
        formula: Formula text or number.
        context: Token values.
        zero_result_is_failure: See FormulaEvaluator.

    Returns:
        The result, or None when evaluation failed.
    """
    return FormulaEvaluator(zero_result_is_failure=zero_result_is_failure).evaluate(formula, context)


__all__ = [
    "SAFE_FUNCTIONS",
    "ALLOWED_IDENTIFIERS",
    "FormulaEvaluator",
    "evaluate_formula",
    "formula_tokens",
    "substitute_tokens",
    "screen_expression",
]
