"""
Formula Evaluator

Evaluates the arithmetic formula of a metric once its variables have been
measured. Formula text is user-authored configuration, so it is never handed
to eval(): variables are substituted textually, the result is checked
against a strict character whitelist, and a small recursive-descent parser
computes the value.

Grammar:
    expression := term (('+' | '-') term)*
    term       := factor (('*' | '/') factor)*
    factor     := NUMBER | '(' expression ')' | ('+' | '-') factor
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union
import logging
import math
import re

from qualityeval.config import get_config
from qualityeval.errors import (
    DisallowedTokenError,
    DivisionByZeroError,
    EmptyFormulaError,
    EvaluationError,
    FormulaParseError,
    InvalidCharacterError,
    NonFiniteResultError,
    UnbalancedParenthesisError,
    UnboundVariableError,
    UnexpectedEndError,
)
from .rounding import format_plain, round_half_up


logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"\b[a-zA-Z_][a-zA-Z0-9_]*\b")
_TOKEN = re.compile(r"\s*(?:(\d+\.?\d*|\.\d+)|(.))")
_MAX_NESTING = 100


@dataclass(frozen=True)
class VariableBinding:
    """A measured value for one formula symbol."""
    symbol: str
    value: float

    def to_dict(self) -> Dict:
        return {"symbol": self.symbol, "value": self.value}


VariablesInput = Union[Mapping[str, float], Iterable]


def normalize_variables(variables: Optional[VariablesInput]) -> List[VariableBinding]:
    """
    Accept the shapes callers hand us and return bindings in input order.

    Supported: a {symbol: value} mapping, VariableBinding objects,
    (symbol, value) tuples and {"symbol": .., "value": ..} dicts.
    """
    if variables is None:
        return []

    if isinstance(variables, Mapping):
        items = list(variables.items())
    else:
        items = []
        for item in variables:
            if isinstance(item, VariableBinding):
                items.append((item.symbol, item.value))
            elif isinstance(item, Mapping):
                try:
                    items.append((item["symbol"], item["value"]))
                except KeyError as e:
                    raise FormulaParseError(f"Variable entry is missing {e}", {"entry": dict(item)}) from e
            else:
                symbol, value = item
                items.append((symbol, value))

    bindings = []
    for symbol, value in items:
        try:
            number = float(value)
        except (TypeError, ValueError) as e:
            raise EvaluationError(
                f"Variable {symbol} has a non-numeric value: {value!r}",
                {"symbol": symbol},
            ) from e
        if not math.isfinite(number):
            raise NonFiniteResultError(f"Variable {symbol} is not a finite number", {"symbol": symbol})
        if isinstance(value, int) and not isinstance(value, bool):
            number = value
        bindings.append(VariableBinding(str(symbol), number))
    return bindings


class _ExpressionParser:
    """Recursive-descent parser over a substituted expression."""

    def __init__(self, expression: str):
        self.expression = expression
        self.tokens = self._tokenize(expression)
        self.pos = 0
        self.depth = 0

    @staticmethod
    def _tokenize(expression: str) -> List[Tuple[str, object]]:
        tokens = []
        for match in _TOKEN.finditer(expression):
            number, symbol = match.groups()
            if number is not None:
                tokens.append(("num", float(number)))
            elif symbol is not None and not symbol.isspace():
                tokens.append(("op", symbol))
        return tokens

    def parse(self) -> float:
        if not self.tokens:
            raise UnexpectedEndError("Expression is empty after substitution")

        value = self._expression()

        if self.pos < len(self.tokens):
            _, token = self.tokens[self.pos]
            if token == ")":
                raise UnbalancedParenthesisError(
                    f"Unmatched ')' in expression: {self.expression}",
                    {"expression": self.expression},
                )
            raise FormulaParseError(
                f"Unexpected token {token!r} in expression: {self.expression}",
                {"expression": self.expression},
            )
        return value

    def _peek(self) -> Optional[object]:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos][1]
        return None

    def _expression(self) -> float:
        value = self._term()
        while self._peek() in ("+", "-"):
            op = self.tokens[self.pos][1]
            self.pos += 1
            right = self._term()
            value = value + right if op == "+" else value - right
        return value

    def _term(self) -> float:
        value = self._factor()
        while self._peek() in ("*", "/"):
            op = self.tokens[self.pos][1]
            self.pos += 1
            right = self._factor()
            if op == "*":
                value = value * right
            else:
                if right == 0:
                    raise DivisionByZeroError(
                        f"Division by zero in expression: {self.expression}",
                        {"expression": self.expression},
                    )
                value = value / right
        return value

    def _factor(self) -> float:
        if self.pos >= len(self.tokens):
            raise UnexpectedEndError(
                f"Unexpected end of expression: {self.expression}",
                {"expression": self.expression},
            )

        kind, token = self.tokens[self.pos]

        if kind == "num":
            self.pos += 1
            return token

        if token in ("+", "-"):
            self.pos += 1
            operand = self._nested(self._factor)
            return operand if token == "+" else -operand

        if token == "(":
            self.pos += 1
            value = self._nested(self._expression)
            if self._peek() != ")":
                raise UnbalancedParenthesisError(
                    f"Missing ')' in expression: {self.expression}",
                    {"expression": self.expression},
                )
            self.pos += 1
            return value

        if token == ")":
            raise UnbalancedParenthesisError(
                f"Unexpected ')' in expression: {self.expression}",
                {"expression": self.expression},
            )

        raise FormulaParseError(
            f"Unexpected token {token!r} in expression: {self.expression}",
            {"expression": self.expression},
        )

    def _nested(self, rule) -> float:
        self.depth += 1
        if self.depth > _MAX_NESTING:
            raise FormulaParseError(
                f"Expression nests deeper than {_MAX_NESTING} levels",
                {"expression": self.expression},
            )
        try:
            return rule()
        finally:
            self.depth -= 1


class FormulaEvaluator:
    """
    Substitute variables into a formula and evaluate it.

    Usage:
        evaluator = FormulaEvaluator()
        evaluator.evaluate("(A/B)*100", {"A": 3, "B": 4})   # 75.0
    """

    def __init__(self, config: Optional[Dict] = None):
        config = config or get_config()
        self.decimals = config["scoring"]["formula_decimals"]
        self.blacklist = [re.compile(p, re.IGNORECASE) for p in config["formula"]["blacklist"]]
        self.allowed = re.compile(config["formula"]["allowed_pattern"])

    def evaluate(self, formula: str, variables: Optional[VariablesInput] = None) -> float:
        """
        Evaluate a formula with the given variable values.

        Args:
            formula: Arithmetic expression, e.g. "a/b"
            variables: Symbol bindings (see normalize_variables)

        Returns:
            Result rounded to the configured number of decimals (4)

        Raises:
            FormulaParseError: the formula is empty, unsafe, or malformed
            EvaluationError: division by zero or a non-finite result
        """
        bindings = normalize_variables(variables)
        logger.debug(f"Evaluating formula: {formula} with {[b.to_dict() for b in bindings]}")

        expression = self.prepare_expression(formula, bindings)
        value = _ExpressionParser(expression).parse()

        if not math.isfinite(value):
            raise NonFiniteResultError(
                f"Invalid calculation result: {value}",
                {"formula": formula, "expression": expression},
            )

        result = round_half_up(value, self.decimals)
        if result == 0:
            result = 0.0
        return result

    def prepare_expression(self, formula: str, bindings: List[VariableBinding]) -> str:
        """Validate the raw formula and substitute every bound symbol."""
        if formula is None or not formula.strip():
            raise EmptyFormulaError("Formula cannot be empty")

        self._check_blacklist(formula)

        expression = formula.strip()

        # Longest symbols first so "AB" is never rewritten through "A"
        seen = set()
        ordered = []
        for binding in bindings:
            if binding.symbol not in seen:
                seen.add(binding.symbol)
                ordered.append(binding)
        ordered.sort(key=lambda b: len(b.symbol), reverse=True)

        for binding in ordered:
            pattern = r"(?<![A-Za-z0-9_])" + re.escape(binding.symbol) + r"(?![A-Za-z0-9_])"
            replacement = format_plain(binding.value)
            expression = re.sub(pattern, lambda _m, r=replacement: r, expression)

        if re.search(r"[a-zA-Z]", expression):
            raise UnboundVariableError(
                f"Expression contains unreplaced variables: {expression}",
                {"formula": formula, "missing": find_missing_variables(expression, [])},
            )

        if not self.allowed.match(expression):
            raise InvalidCharacterError(
                f"Expression contains invalid characters: {expression}",
                {"formula": formula},
            )

        return expression

    def _check_blacklist(self, formula: str):
        for pattern in self.blacklist:
            if pattern.search(formula):
                raise DisallowedTokenError(
                    "Expression contains invalid characters",
                    {"formula": formula, "pattern": pattern.pattern},
                )


def find_missing_variables(formula: str, provided: Iterable) -> List[str]:
    """
    List identifiers referenced by a formula that have no binding.

    Args:
        formula: Formula text
        provided: Bound symbols, as strings or VariableBinding objects

    Returns:
        Missing symbols in order of first appearance
    """
    symbols = {p.symbol if isinstance(p, VariableBinding) else str(p) for p in provided}
    missing = []
    for name in _IDENTIFIER.findall(formula or ""):
        if name not in symbols and name not in missing:
            missing.append(name)
    return missing


_default_evaluator: Optional[FormulaEvaluator] = None


def evaluate_formula(formula: str, variables: Optional[VariablesInput] = None) -> float:
    """Evaluate a formula with the default configuration."""
    global _default_evaluator
    if _default_evaluator is None:
        _default_evaluator = FormulaEvaluator()
    return _default_evaluator.evaluate(formula, variables)
