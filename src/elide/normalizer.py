"""Predicate text → :class:`~elide.types.LinearConstraint`.

Only a closed set of shapes is recognized. Everything else, including ``!=``,
disjunctions and products of variables, yields ``None``: the caller treats an
unparseable predicate as "no information", never as an error.

Shapes are tried in a fixed order, first match wins::

    VAR_OP_ZERO     x > 0
    VAR_OP_VAR      x >= y
    SUM_OP_ZERO     x + y > 0
    DIFF_OP_ZERO    x - y >= 0
    VAR_OP_CONST    x <= 255
    CONST_OP_VAR    5 < x          (read as x > 5)
    VAR_EQ_VAR      x == y
    SUM_OP_CONST    x + y >= 8
    DIFF_OP_CONST   x - y < 3
    VAR_EQ_CONST    x == 5
    CONST_OP_CONST  5 > 3
"""

from __future__ import annotations

import re
from enum import Enum
from fractions import Fraction
from typing import Callable, Iterable

from .types import Fact, LinearConstraint, Op, to_number

NUMBER = r"-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?"
IDENT = r"(?:[^\W\d]|\$)[\w$]*"

_INEQ = r"(?P<op><=|>=|<|>)"
_EQ = r"(?P<op>===|==)"
_A = rf"(?P<a>{IDENT})"
_B = rf"(?P<b>{IDENT})"
_N = rf"(?P<n>{NUMBER})"


class Shape(Enum):
    """Recognized predicate shapes, in matching order."""

    VAR_OP_ZERO = "var_op_zero"
    VAR_OP_VAR = "var_op_var"
    SUM_OP_ZERO = "sum_op_zero"
    DIFF_OP_ZERO = "diff_op_zero"
    VAR_OP_CONST = "var_op_const"
    CONST_OP_VAR = "const_op_var"
    VAR_EQ_VAR = "var_eq_var"
    SUM_OP_CONST = "sum_op_const"
    DIFF_OP_CONST = "diff_op_const"
    VAR_EQ_CONST = "var_eq_const"
    CONST_OP_CONST = "const_op_const"


_PATTERNS: dict[Shape, re.Pattern[str]] = {
    Shape.VAR_OP_ZERO: re.compile(rf"{_A}\s*{_INEQ}\s*0"),
    Shape.VAR_OP_VAR: re.compile(rf"{_A}\s*{_INEQ}\s*{_B}"),
    Shape.SUM_OP_ZERO: re.compile(rf"{_A}\s*\+\s*{_B}\s*{_INEQ}\s*0"),
    Shape.DIFF_OP_ZERO: re.compile(rf"{_A}\s*-\s*{_B}\s*{_INEQ}\s*0"),
    Shape.VAR_OP_CONST: re.compile(rf"{_A}\s*{_INEQ}\s*{_N}"),
    Shape.CONST_OP_VAR: re.compile(rf"{_N}\s*{_INEQ}\s*{_A}"),
    Shape.VAR_EQ_VAR: re.compile(rf"{_A}\s*{_EQ}\s*{_B}"),
    Shape.SUM_OP_CONST: re.compile(rf"{_A}\s*\+\s*{_B}\s*{_INEQ}\s*{_N}"),
    Shape.DIFF_OP_CONST: re.compile(rf"{_A}\s*-\s*{_B}\s*{_INEQ}\s*{_N}"),
    Shape.VAR_EQ_CONST: re.compile(rf"{_A}\s*{_EQ}\s*{_N}"),
    Shape.CONST_OP_CONST: re.compile(
        rf"(?P<m>{NUMBER})\s*(?P<op><=|>=|<|>|===|==)\s*{_N}"
    ),
}


# ---------------------------------------------------------------------------
# Builders, one per shape
# ---------------------------------------------------------------------------

def _coeffs(*pairs: tuple[str, int]) -> dict[str, Fraction]:
    """Accumulate coefficients so ``x - x`` collapses to nothing."""
    out: dict[str, Fraction] = {}
    for var, c in pairs:
        out[var] = out.get(var, Fraction(0)) + c
    return out


def _var_op_zero(m: re.Match[str], text: str) -> LinearConstraint:
    return LinearConstraint({m["a"]: 1}, Op.from_text(m["op"]), 0, text)


def _var_op_var(m: re.Match[str], text: str) -> LinearConstraint:
    return LinearConstraint(
        _coeffs((m["a"], 1), (m["b"], -1)), Op.from_text(m["op"]), 0, text
    )


def _sum_op_const(m: re.Match[str], text: str) -> LinearConstraint:
    n = to_number(m["n"]) if "n" in m.groupdict() else Fraction(0)
    return LinearConstraint(
        _coeffs((m["a"], 1), (m["b"], 1)), Op.from_text(m["op"]), n, text
    )


def _diff_op_const(m: re.Match[str], text: str) -> LinearConstraint:
    n = to_number(m["n"]) if "n" in m.groupdict() else Fraction(0)
    return LinearConstraint(
        _coeffs((m["a"], 1), (m["b"], -1)), Op.from_text(m["op"]), n, text
    )


def _var_op_const(m: re.Match[str], text: str) -> LinearConstraint:
    return LinearConstraint({m["a"]: 1}, Op.from_text(m["op"]), to_number(m["n"]), text)


def _const_op_var(m: re.Match[str], text: str) -> LinearConstraint:
    # c op x  ≡  x flip(op) c
    op = Op.from_text(m["op"]).flipped()
    return LinearConstraint({m["a"]: 1}, op, to_number(m["n"]), text)


def _const_op_const(m: re.Match[str], text: str) -> LinearConstraint:
    # m op n  ≡  0 op n - m
    return LinearConstraint(
        {}, Op.from_text(m["op"]), to_number(m["n"]) - to_number(m["m"]), text
    )


_BUILDERS: dict[Shape, Callable[[re.Match[str], str], LinearConstraint]] = {
    Shape.VAR_OP_ZERO: _var_op_zero,
    Shape.VAR_OP_VAR: _var_op_var,
    Shape.SUM_OP_ZERO: _sum_op_const,
    Shape.DIFF_OP_ZERO: _diff_op_const,
    Shape.VAR_OP_CONST: _var_op_const,
    Shape.CONST_OP_VAR: _const_op_var,
    Shape.VAR_EQ_VAR: _var_op_var,
    Shape.SUM_OP_CONST: _sum_op_const,
    Shape.DIFF_OP_CONST: _diff_op_const,
    Shape.VAR_EQ_CONST: _var_op_const,
    Shape.CONST_OP_CONST: _const_op_const,
}

assert set(_BUILDERS) == set(Shape), "every Shape needs a builder"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def classify(text: str) -> tuple[Shape, re.Match[str]] | None:
    """Return the first shape whose pattern matches the whole predicate."""
    text = text.strip()
    for shape, pattern in _PATTERNS.items():
        m = pattern.fullmatch(text)
        if m is not None:
            return shape, m
    return None


def parse(text: str) -> LinearConstraint | None:
    """Normalize predicate text into a linear constraint.

    Args:
        text: A single atomic predicate such as ``"x + y >= 8"``.

    Returns:
        The constraint, or ``None`` when the text has no recognized shape.
    """
    if not isinstance(text, str):
        return None
    hit = classify(text)
    if hit is None:
        return None
    shape, m = hit
    builder = _BUILDERS.get(shape)
    if builder is None:
        raise AssertionError(f"no builder for shape {shape}")
    return builder(m, text.strip())


def split_predicate(text: str) -> list[str]:
    """Split a conjunction on ``&&``. Disjunctions are left whole."""
    if "||" in text:
        return [text.strip()]
    parts = [p.strip() for p in text.split("&&")]
    return [p for p in parts if p]


def split_facts(facts: Iterable[Fact]) -> list[Fact]:
    """Split every compound ``a && b`` fact into atomic facts.

    A fact containing ``||`` is kept whole (and will not parse).
    """
    out: list[Fact] = []
    for fact in facts:
        for part in split_predicate(fact.predicate):
            out.append(Fact(fact.variable, part))
    return out


def parse_facts(facts: Iterable[Fact]) -> list[tuple[Fact, LinearConstraint]]:
    """Split and parse, dropping facts that have no linear reading."""
    parsed: list[tuple[Fact, LinearConstraint]] = []
    for fact in split_facts(facts):
        constraint = parse(fact.predicate)
        if constraint is not None:
            parsed.append((fact, constraint))
    return parsed
