"""Fourier–Motzkin elimination over exact rationals.

Proof by contradiction: the negated goal is added to the facts and variables
are eliminated one at a time. If a constant-only row such as ``0 < -2``
appears, the system is infeasible and the goal follows from the facts.

Every constraint is kept in upper-bound form ``sum(a * x) < c`` (or ``<=``).
Rows remember which facts they were derived from, so the certificate names
exactly the facts that contributed to the contradiction.
"""

from __future__ import annotations

from fractions import Fraction
from typing import NamedTuple, Sequence

from .certificate import (
    Method,
    ProofCertificate,
    create_certificate,
    create_step,
    fail_certificate,
    succeed_certificate,
)
from .normalizer import parse_facts, parse
from .types import Fact, LinearConstraint, Op

_MAX_ROWS = 4096
_GOAL = -1


class _Row(NamedTuple):
    coeffs: tuple[tuple[str, Fraction], ...]
    strict: bool
    constant: Fraction
    origins: frozenset[int]

    @property
    def key(self) -> tuple:
        return self.coeffs, self.strict, self.constant

    def coefficient(self, var: str) -> Fraction:
        for v, a in self.coeffs:
            if v == var:
                return a
        return Fraction(0)

    def is_contradiction(self) -> bool:
        if self.coeffs:
            return False
        return self.constant <= 0 if self.strict else self.constant < 0

    def is_tautology(self) -> bool:
        if self.coeffs:
            return False
        return not self.is_contradiction()

    def as_constraint(self) -> LinearConstraint:
        return LinearConstraint(
            dict(self.coeffs), Op.LT if self.strict else Op.LE, self.constant
        )


def _row(coeffs: dict[str, Fraction], strict: bool, constant: Fraction,
         origins: frozenset[int]) -> _Row:
    """Build a row scaled so its first coefficient has magnitude 1."""
    items = sorted((v, a) for v, a in coeffs.items() if a != 0)
    if items:
        scale = abs(items[0][1])
        items = [(v, a / scale) for v, a in items]
        constant = constant / scale
    return _Row(tuple(items), strict, constant, origins)


def _rows(c: LinearConstraint, origin: int) -> list[_Row]:
    """Rewrite one constraint into upper-bound rows."""
    origins = frozenset((origin,))
    coeffs = dict(c.coefficients)
    negated = {v: -a for v, a in coeffs.items()}
    if c.op is Op.LT:
        return [_row(coeffs, True, c.constant, origins)]
    if c.op is Op.LE:
        return [_row(coeffs, False, c.constant, origins)]
    if c.op is Op.GT:
        return [_row(negated, True, -c.constant, origins)]
    if c.op is Op.GE:
        return [_row(negated, False, -c.constant, origins)]
    return [
        _row(coeffs, False, c.constant, origins),
        _row(negated, False, -c.constant, origins),
    ]


def _combine(p: _Row, n: _Row, var: str) -> _Row:
    ap = p.coefficient(var)
    an = -n.coefficient(var)
    coeffs: dict[str, Fraction] = {}
    for v, a in p.coeffs:
        coeffs[v] = coeffs.get(v, Fraction(0)) + a * an
    for v, a in n.coeffs:
        coeffs[v] = coeffs.get(v, Fraction(0)) + a * ap
    coeffs.pop(var, None)
    return _row(
        coeffs,
        p.strict or n.strict,
        p.constant * an + n.constant * ap,
        p.origins | n.origins,
    )


def _dedupe(rows: Sequence[_Row]) -> list[_Row]:
    seen: dict[tuple, _Row] = {}
    for r in rows:
        if r.is_tautology():
            continue
        seen.setdefault(r.key, r)
    return list(seen.values())


def _eliminate(rows: Sequence[_Row], var: str) -> list[_Row]:
    pos = [r for r in rows if r.coefficient(var) > 0]
    neg = [r for r in rows if r.coefficient(var) < 0]
    out = [r for r in rows if r.coefficient(var) == 0]
    out.extend(_combine(p, n, var) for p in pos for n in neg)
    return _dedupe(out)


def _first_contradiction(rows: Sequence[_Row]) -> _Row | None:
    for r in rows:
        if r.is_contradiction():
            return r
    return None


class _Refutation(NamedTuple):
    refuted: bool
    eliminated: tuple[str, ...]
    contradiction: _Row | None
    reason: str


def _refute(rows: list[_Row]) -> _Refutation:
    order: list[str] = []
    for r in rows:
        for v, _ in r.coeffs:
            if v not in order:
                order.append(v)
    rows = _dedupe(rows)
    eliminated: list[str] = []
    found = _first_contradiction(rows)
    for var in order:
        if found is not None:
            break
        rows = _eliminate(rows, var)
        eliminated.append(var)
        if len(rows) > _MAX_ROWS:
            return _Refutation(False, tuple(eliminated), None,
                               f"elimination exceeded {_MAX_ROWS} constraints")
        found = _first_contradiction(rows)
    if found is None:
        return _Refutation(False, tuple(eliminated), None,
                           "no contradiction after eliminating all variables")
    return _Refutation(True, tuple(eliminated), found, "")


def _describe(ref: _Refutation) -> str:
    assert ref.contradiction is not None
    if ref.eliminated:
        return (
            f"eliminating {', '.join(ref.eliminated)} yields "
            f"{ref.contradiction.as_constraint()}"
        )
    return f"{ref.contradiction.as_constraint()} is false"


def decide(goal: str, facts: Sequence[Fact]) -> ProofCertificate:
    """Decide whether the linear facts entail *goal*.

    Args:
        goal: Predicate text; must parse to a linear constraint.
        facts: Known facts. Compound facts are split, unparseable ones are
            ignored.

    Returns:
        A certificate with method ``linear`` when proven. Unproven when the
        goal does not parse, when there are no usable facts for a goal that
        has variables, or when no contradiction exists.
    """
    cert = create_certificate(goal, facts)
    goal_c = parse(goal)
    if goal_c is None:
        return fail_certificate(cert, "goal is not a linear constraint")
    parsed = parse_facts(facts)
    if not parsed and not goal_c.is_ground:
        return fail_certificate(cert, "no linear facts")

    base: list[_Row] = []
    for i, (_, c) in enumerate(parsed):
        base.extend(_rows(c, i))

    subgoals: list[ProofCertificate] = []
    used: dict[Fact, None] = {}
    for negation in goal_c.negate():
        ref = _refute(base + _rows(negation, _GOAL))
        if not ref.refuted:
            return fail_certificate(cert, ref.reason)
        assert ref.contradiction is not None
        contributing = tuple(
            parsed[i][0] for i in sorted(ref.contradiction.origins) if i != _GOAL
        )
        for f in contributing:
            used.setdefault(f, None)
        sub = create_certificate(str(negation), facts)
        sub = succeed_certificate(
            sub,
            Method.LINEAR,
            create_step("fourier_motzkin", f"refute {negation}", _describe(ref), contributing),
        )
        subgoals.append(sub)

    if len(subgoals) == 1:
        return succeed_certificate(
            cert,
            Method.LINEAR,
            create_step(
                "fourier_motzkin",
                f"{goal.strip()} by contradiction",
                subgoals[0].steps[0].justification,
                tuple(used),
            ),
        )
    return succeed_certificate(
        cert,
        Method.LINEAR,
        create_step(
            "fourier_motzkin",
            f"{goal.strip()} by refuting both {' and '.join(s.goal for s in subgoals)}",
            "every disjunct of the negated goal is infeasible",
            tuple(used),
            subgoals,
        ),
    )
