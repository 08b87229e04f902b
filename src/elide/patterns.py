"""Pattern prover — cheap syntactic rules tried before elimination.

Rules work on the normalized structure of goal and facts, never on raw
substrings, so ``x > 10`` is not mistaken for ``x > 1``. In order, first
match wins:

1. direct match
2. bound tightening        ``x > 5``  ⊢ ``x > 0``
3. equality implication    ``x == 5`` ⊢ ``x < 10``
4. sum of bounds           ``x > 0, y >= 0`` ⊢ ``x + y > 0``
5. transitivity            ``a > b, b > 0`` ⊢ ``a > 0``
6. bound separation        ``x > 0, y < 0`` ⊢ ``x > y``
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
from .normalizer import parse, split_facts
from .types import Fact, LinearConstraint, Op, format_number


class Bound(NamedTuple):
    """``var > value`` / ``var >= value`` (lower) or the mirrored upper bound."""

    var: str
    value: Fraction
    strict: bool
    fact: Fact


# ---------------------------------------------------------------------------
# Structure readers
# ---------------------------------------------------------------------------

def _bound(c: LinearConstraint) -> tuple[str, Op, Fraction] | None:
    """``x op k`` with unit coefficient."""
    if len(c.coefficients) != 1:
        return None
    ((var, coeff),) = c.coefficients.items()
    if coeff == 1:
        return var, c.op, c.constant
    if coeff == -1:
        return var, c.op.flipped(), -c.constant
    return None


def _relations(c: LinearConstraint) -> list[tuple[str, Op, str]]:
    """``x op y`` in both orientations, for ``x - y op 0``."""
    if c.constant != 0 or c.op is Op.EQ or len(c.coefficients) != 2:
        return []
    pos = [v for v, k in c.coefficients.items() if k == 1]
    neg = [v for v, k in c.coefficients.items() if k == -1]
    if len(pos) != 1 or len(neg) != 1:
        return []
    x, y = pos[0], neg[0]
    return [(x, c.op, y), (y, c.op.flipped(), x)]


def _sum(c: LinearConstraint) -> tuple[str, str, Op, Fraction] | None:
    """``x + y op k``."""
    if len(c.coefficients) != 2 or any(k != 1 for k in c.coefficients.values()):
        return None
    x, y = c.coefficients
    return x, y, c.op, c.constant


def _dominates(value: Fraction, strict: bool, target: Fraction, target_op: Op) -> bool:
    """Does ``v op' value`` (same direction as *target_op*) imply ``v target_op target``?"""
    if target_op.is_lower:
        if value != target:
            return value > target
    else:
        if value != target:
            return value < target
    return strict or not target_op.is_strict


def _tightest(
    var: str,
    lower: bool,
    parsed: Sequence[tuple[Fact, LinearConstraint]],
    with_equalities: bool = True,
) -> Bound | None:
    best: Bound | None = None
    for fact, c in parsed:
        b = _bound(c)
        if b is None or b[0] != var:
            continue
        _, op, k = b
        if op is Op.EQ:
            if not with_equalities:
                continue
            strict = False
        elif op.is_lower == lower:
            strict = op.is_strict
        else:
            continue
        if best is None:
            best = Bound(var, k, strict, fact)
            continue
        tighter = k > best.value if lower else k < best.value
        if tighter or (k == best.value and strict and not best.strict):
            best = Bound(var, k, strict, fact)
    return best


def _bound_text(b: Bound, lower: bool) -> str:
    if lower:
        op = ">" if b.strict else ">="
    else:
        op = "<" if b.strict else "<="
    return f"{b.var} {op} {format_number(b.value)}"


def _parse_all(facts: Sequence[Fact]) -> list[tuple[Fact, LinearConstraint]]:
    out: list[tuple[Fact, LinearConstraint]] = []
    for f in facts:
        c = parse(f.predicate)
        if c is not None:
            out.append((f, c))
    return out


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

_Hit = tuple[str, str, tuple[Fact, ...]]  # rule, justification, used facts


def _direct(goal: str, goal_c: LinearConstraint | None, atoms, parsed) -> _Hit | None:
    text = goal.strip()
    for f in atoms:
        if f.predicate.strip() == text:
            return "direct_match", f"{text} is a known fact", (f,)
    if goal_c is not None:
        for f, c in parsed:
            if c.key == goal_c.key:
                return "direct_match", f"{f.predicate} is {text}", (f,)
    return None


def _tightening(goal: str, goal_c, atoms, parsed) -> _Hit | None:
    b = _bound(goal_c) if goal_c is not None else None
    if b is None or b[1] is Op.EQ:
        return None
    var, op, k = b
    best = _tightest(var, op.is_lower, parsed, with_equalities=False)
    if best is None or not _dominates(best.value, best.strict, k, op):
        return None
    have = _bound_text(best, op.is_lower)
    rel = ">=" if op.is_lower else "<="
    why = f"{have} implies {goal.strip()} since {format_number(best.value)} {rel} {format_number(k)}"
    return "bound_tightening", why, (best.fact,)


def _equality(goal: str, goal_c, atoms, parsed) -> _Hit | None:
    b = _bound(goal_c) if goal_c is not None else None
    if b is None:
        return None
    var, op, k = b
    for f, c in parsed:
        fb = _bound(c)
        if fb is None or fb[0] != var or fb[1] is not Op.EQ:
            continue
        v = fb[2]
        if op.holds(v, k):
            why = f"{var} == {format_number(v)} and {format_number(v)} {op} {format_number(k)}"
            return "equality_implication", why, (f,)
    return None


def _sum_of_bounds(goal: str, goal_c, atoms, parsed) -> _Hit | None:
    s = _sum(goal_c) if goal_c is not None else None
    if s is None or s[2] is Op.EQ:
        return None
    x, y, op, k = s
    lower = op.is_lower
    bx, by = _tightest(x, lower, parsed), _tightest(y, lower, parsed)
    if bx is None or by is None:
        return None
    total = bx.value + by.value
    strict = bx.strict or by.strict
    if not _dominates(total, strict, k, op):
        return None
    if k == 0 and bx.value == 0 and by.value == 0 and lower:
        if bx.strict and by.strict:
            rule = "sum_of_positives"
        elif strict:
            rule = "sum_of_positive_and_non_negative"
        else:
            rule = "sum_of_non_negatives"
    else:
        rule = "sum_of_bounds"
    why = (
        f"{_bound_text(bx, lower)} and {_bound_text(by, lower)} "
        f"gives {x} + {y} {'>' if lower else '<'}{'' if strict else '='} "
        f"{format_number(total)}"
    )
    return rule, why, tuple(dict.fromkeys((bx.fact, by.fact)))


def _transitivity(goal: str, goal_c, atoms, parsed) -> _Hit | None:
    if goal_c is None:
        return None
    rel_facts = [(f, r) for f, c in parsed for r in _relations(c)]

    goal_rels = _relations(goal_c)
    if goal_rels:
        x, op, z = goal_rels[0]
        for f1, (a, op1, y) in rel_facts:
            if a != x or op1.is_lower != op.is_lower:
                continue
            for f2, (b, op2, c) in rel_facts:
                if f2 is f1 or b != y or c != z or op2.is_lower != op.is_lower:
                    continue
                strict = op1.is_strict or op2.is_strict
                if op.is_strict and not strict:
                    continue
                why = f"{x} {op1} {y} and {y} {op2} {z} gives {x} {op} {z}"
                return "transitivity", why, (f1, f2)
        return None

    # x op k from x op1 y and y op2 k
    b = _bound(goal_c)
    if b is None or b[1] is Op.EQ:
        return None
    x, op, k = b
    for f1, (a, op1, y) in rel_facts:
        if a != x or op1.is_lower != op.is_lower:
            continue
        yb = _tightest(y, op.is_lower, parsed)
        if yb is None:
            continue
        strict = op1.is_strict or yb.strict
        if not _dominates(yb.value, strict, k, op):
            continue
        why = (
            f"{x} {op1} {y} and {_bound_text(yb, op.is_lower)} "
            f"gives {goal.strip()}"
        )
        return "transitivity", why, (f1, yb.fact)
    return None


def _separation(goal: str, goal_c, atoms, parsed) -> _Hit | None:
    rels = _relations(goal_c) if goal_c is not None else []
    if not rels:
        return None
    # orient as x >/>= y
    x, op, y = rels[0] if rels[0][1].is_lower else rels[1]
    lo = _tightest(x, True, parsed)
    hi = _tightest(y, False, parsed)
    if lo is None or hi is None:
        return None
    if lo.value != hi.value:
        ok = lo.value > hi.value
    else:
        ok = lo.strict or hi.strict or not op.is_strict
    if not ok:
        return None
    rule = (
        "positive_greater_than_negative"
        if lo.value == 0 and hi.value == 0 and lo.strict and hi.strict
        else "bound_separation"
    )
    why = f"{_bound_text(lo, True)} and {_bound_text(hi, False)} gives {x} {op} {y}"
    return rule, why, tuple(dict.fromkeys((lo.fact, hi.fact)))


_RULES = (_direct, _tightening, _equality, _sum_of_bounds, _transitivity, _separation)


def try_simple(goal: str, facts: Sequence[Fact]) -> ProofCertificate:
    """Try the pattern rules against *goal*.

    Compound facts are split on ``&&`` first. Returns an unproven certificate
    when no rule applies.
    """
    cert = create_certificate(goal, facts)
    atoms = split_facts(facts)
    parsed = _parse_all(atoms)
    goal_c = parse(goal)
    for rule in _RULES:
        hit = rule(goal, goal_c, atoms, parsed)
        if hit is None:
            continue
        name, why, used = hit
        used_text = ", ".join(f.predicate for f in used)
        step = create_step(name, f"{goal.strip()} from {used_text}", why, used)
        return succeed_certificate(cert, Method.LINEAR, step)
    return fail_certificate(cert, "no pattern rule applies")
