"""Algebraic proof rules — equational laws over structured expressions.

Goals have the form ``lhs == rhs`` (``===`` is accepted). Both sides are
parsed with :mod:`ast`; operations are written as calls ``op(a, b)`` or
method calls ``a.op(b)``. A law only fires when a fact declares it for the
operation, e.g. ``associative(combine)`` or ``Semigroup<combine>``::

    facts = [Fact("combine", "associative(combine)")]
    goal = "combine(combine(a, b), c) == combine(a, combine(b, c))"
    try_algebraic_proof(goal, facts).proven   # True

Reflexivity (``a == a``) needs no fact.
"""

from __future__ import annotations

import ast
import re
from dataclasses import dataclass
from typing import Callable, Sequence

from .certificate import (
    Method,
    ProofCertificate,
    create_certificate,
    create_step,
    fail_certificate,
    succeed_certificate,
)
from .types import Fact

Matcher = Callable[[str, Sequence[Fact]], "tuple[Fact, ...] | None"]


@dataclass(frozen=True)
class AlgebraicRule:
    """A named law.

    Attributes:
        name: Rule identifier, recorded as the proof step's ``rule``.
        description: The law, e.g. ``"op(a, b) == op(b, a)"``.
        match: ``match(goal, facts)`` returns the facts the law relied on
            when it applies, or ``None`` when it does not.
    """

    name: str
    description: str
    match: Matcher


# ---------------------------------------------------------------------------
# Expression helpers
# ---------------------------------------------------------------------------

def _expr(text: str) -> ast.expr | None:
    try:
        return ast.parse(text.strip(), mode="eval").body
    except (SyntaxError, ValueError, RecursionError, MemoryError):
        return None


def _equation(goal: str) -> tuple[ast.expr, ast.expr] | None:
    """Split ``lhs == rhs`` (or ``eqv(lhs, rhs)``) into its two sides."""
    node = _expr(goal.replace("===", "=="))
    if node is None:
        return None
    if (
        isinstance(node, ast.Compare)
        and len(node.ops) == 1
        and isinstance(node.ops[0], ast.Eq)
    ):
        return node.left, node.comparators[0]
    binop = _binary(node)
    if binop is not None and binop[0] == "eqv":
        return binop[1], binop[2]
    return None


def _binary(node: ast.expr) -> tuple[str, ast.expr, ast.expr] | None:
    """Read ``op(a, b)`` or ``a.op(b)`` as ``(op, a, b)``."""
    if not isinstance(node, ast.Call) or node.keywords:
        return None
    func = node.func
    if isinstance(func, ast.Name) and len(node.args) == 2:
        return func.id, node.args[0], node.args[1]
    if isinstance(func, ast.Attribute) and len(node.args) == 1:
        return func.attr, func.value, node.args[0]
    if isinstance(func, ast.Attribute) and len(node.args) == 2:
        # E.eqv(a, b), M.combine(a, b)
        return func.attr, node.args[0], node.args[1]
    return None


def _same(a: ast.expr, b: ast.expr) -> bool:
    try:
        return ast.dump(a) == ast.dump(b)
    except RecursionError:
        return False


def _is_identity_element(node: ast.expr) -> bool:
    if isinstance(node, ast.Name):
        return node.id in ("empty", "mempty")
    if isinstance(node, ast.Call) and not node.args and not node.keywords:
        func = node.func
        if isinstance(func, ast.Name):
            return func.id == "empty"
        if isinstance(func, ast.Attribute):
            return func.attr == "empty"
    return False


def _is_identity_function(node: ast.expr) -> bool:
    if isinstance(node, ast.Name):
        return node.id in ("id", "identity")
    if isinstance(node, ast.Lambda):
        args = node.args.args
        return (
            len(args) == 1
            and isinstance(node.body, ast.Name)
            and node.body.id == args[0].arg
        )
    return False


def _law_facts(facts: Sequence[Fact], *templates: str) -> tuple[Fact, ...]:
    patterns = [re.compile(t) for t in templates]
    return tuple(f for f in facts if any(p.search(f.predicate) for p in patterns))


def _declares(op: str, law: str, classes: Sequence[str]) -> list[str]:
    name = re.escape(op)
    out = [rf"\b{law}\(\s*{name}\s*\)", rf"\b{name} is {law}\b"]
    out += [rf"\b{cls}\s*[<\[(]\s*{name}\s*[>\])]" for cls in classes]
    return out


# ---------------------------------------------------------------------------
# Built-in laws
# ---------------------------------------------------------------------------

def _reflexivity(goal: str, facts: Sequence[Fact]) -> tuple[Fact, ...] | None:
    eq = _equation(goal)
    if eq is not None and _same(*eq):
        return ()
    return None


def _left_identity(goal: str, facts: Sequence[Fact]) -> tuple[Fact, ...] | None:
    eq = _equation(goal)
    if eq is None:
        return None
    op = _binary(eq[0])
    if op is None or not _is_identity_element(op[1]) or not _same(op[2], eq[1]):
        return None
    used = _law_facts(facts, *_declares(op[0], "identity", ("Monoid",)))
    return used or None


def _right_identity(goal: str, facts: Sequence[Fact]) -> tuple[Fact, ...] | None:
    eq = _equation(goal)
    if eq is None:
        return None
    op = _binary(eq[0])
    if op is None or not _is_identity_element(op[2]) or not _same(op[1], eq[1]):
        return None
    used = _law_facts(facts, *_declares(op[0], "identity", ("Monoid",)))
    return used or None


def _associativity(goal: str, facts: Sequence[Fact]) -> tuple[Fact, ...] | None:
    eq = _equation(goal)
    if eq is None:
        return None
    left, right = _binary(eq[0]), _binary(eq[1])
    if left is None or right is None or left[0] != right[0]:
        return None
    op = left[0]
    matched = False
    for nested, flat in ((left, right), (right, left)):
        # op(op(a, b), c) == op(a, op(b, c))
        inner_l, inner_r = _binary(nested[1]), _binary(flat[2])
        if (
            inner_l is not None
            and inner_r is not None
            and inner_l[0] == op
            and inner_r[0] == op
            and _same(inner_l[1], flat[1])
            and _same(inner_l[2], inner_r[1])
            and _same(nested[2], inner_r[2])
        ):
            matched = True
            break
    if not matched:
        return None
    used = _law_facts(
        facts, *_declares(op, "associative", ("Semigroup", "Monoid"))
    )
    return used or None


def _commutativity(goal: str, facts: Sequence[Fact]) -> tuple[Fact, ...] | None:
    eq = _equation(goal)
    if eq is None:
        return None
    left, right = _binary(eq[0]), _binary(eq[1])
    if left is None or right is None or left[0] != right[0]:
        return None
    if not (_same(left[1], right[2]) and _same(left[2], right[1])):
        return None
    used = _law_facts(
        facts, *_declares(left[0], "commutative", ("CommutativeSemigroup",))
    )
    return used or None


def _functor_identity(goal: str, facts: Sequence[Fact]) -> tuple[Fact, ...] | None:
    eq = _equation(goal)
    if eq is None:
        return None
    op = _binary(eq[0])
    if op is None or op[0] != "map":
        return None
    # map(id, fa) or fa.map(id)
    fn, value = op[1], op[2]
    call = eq[0]
    if isinstance(call, ast.Call) and isinstance(call.func, ast.Attribute) and len(call.args) == 1:
        fn, value = op[2], op[1]
    if not _is_identity_function(fn) or not _same(value, eq[1]):
        return None
    used = _law_facts(facts, r"\bFunctor\b")
    return used or None


def _functor_composition(goal: str, facts: Sequence[Fact]) -> tuple[Fact, ...] | None:
    eq = _equation(goal)
    if eq is None:
        return None
    for nested_side, composed_side in (eq, eq[::-1]):
        outer, composed = _binary(nested_side), _binary(composed_side)
        if outer is None or composed is None or outer[0] != "map" or composed[0] != "map":
            continue
        inner = _binary(outer[2])
        fn = _binary(composed[1])
        # map(g, map(f, fa)) == map(compose(g, f), fa)
        if (
            inner is not None
            and inner[0] == "map"
            and fn is not None
            and fn[0] == "compose"
            and _same(fn[1], outer[1])
            and _same(fn[2], inner[1])
            and _same(inner[2], composed[2])
        ):
            used = _law_facts(facts, r"\bFunctor\b")
            return used or None
    return None


_DOUBLE = re.compile(r"2\s*\*\s*(?P<x>\w+)\s*>\s*(?P<y>\w+)")


def _double_positive(goal: str, facts: Sequence[Fact]) -> tuple[Fact, ...] | None:
    m = _DOUBLE.fullmatch(goal.strip())
    if m is None or m["x"] != m["y"]:
        return None
    positive = re.compile(rf"{re.escape(m['x'])}\s*>\s*0")
    used = tuple(f for f in facts if positive.fullmatch(f.predicate.strip()))
    return used[:1] or None


BUILTIN_RULES: tuple[AlgebraicRule, ...] = (
    AlgebraicRule("reflexivity", "a == a", _reflexivity),
    AlgebraicRule("left_identity", "op(empty, a) == a", _left_identity),
    AlgebraicRule("right_identity", "op(a, empty) == a", _right_identity),
    AlgebraicRule(
        "associativity", "op(op(a, b), c) == op(a, op(b, c))", _associativity
    ),
    AlgebraicRule("commutativity", "op(a, b) == op(b, a)", _commutativity),
    AlgebraicRule("functor_identity", "map(id, fa) == fa", _functor_identity),
    AlgebraicRule(
        "functor_composition",
        "map(g, map(f, fa)) == map(compose(g, f), fa)",
        _functor_composition,
    ),
    AlgebraicRule("double_positive", "x > 0 implies 2 * x > x", _double_positive),
)


def try_algebraic_proof(
    goal: str,
    facts: Sequence[Fact],
    rules: Sequence[AlgebraicRule] = BUILTIN_RULES,
) -> ProofCertificate:
    """Try each rule in order; the first that applies proves the goal."""
    cert = create_certificate(goal, facts)
    for rule in rules:
        used = rule.match(goal, facts)
        if used is None:
            continue
        step = create_step(
            rule.name,
            rule.description,
            f"Applied algebraic rule: {rule.description}",
            used,
        )
        return succeed_certificate(cert, Method.ALGEBRA, step)
    return fail_certificate(cert, "no algebraic rule applies")
