"""Bridge between elide's prover and Hypothesis property testing.

Install: pip install elide[hypothesis]

This module provides:
- ``from_facts`` — an integer strategy bounded by a variable's facts
- ``falsify`` — search for an assignment that satisfies the facts but
  violates the goal

A counterexample from :func:`falsify` shows that a goal is *not* entailed;
a proof from :func:`~elide.engine.try_prove` shows that it is. The two never
disagree for linear goals over integers.

All hypothesis imports are lazy so this module is importable without
hypothesis installed (raises ImportError with an install hint on use).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence

from .normalizer import parse, parse_facts
from .types import Fact, Op


def _require_hypothesis() -> Any:
    """Import and return hypothesis.strategies, raising a helpful error if missing."""
    try:
        from hypothesis import strategies

        return strategies
    except ImportError as exc:
        raise ImportError(
            "hypothesis is required for this feature. "
            "Install it with: pip install elide[hypothesis]"
        ) from exc


# ---------------------------------------------------------------------------
# from_facts
# ---------------------------------------------------------------------------


def from_facts(variable: str, facts: Sequence[Fact], limit: int = 1000) -> Any:
    """Build an integer strategy for *variable* from its single-variable facts.

    Args:
        variable: The variable to draw values for.
        facts: Known facts; compound facts are split, facts about other
            variables or with more than one variable are ignored.
        limit: Magnitude used for sides the facts leave unbounded.

    Returns:
        A ``hypothesis.strategies`` strategy (``nothing()`` when the bounds
        admit no integer).

    Raises:
        ImportError: If hypothesis is not installed.

    Example::

        strategy = from_facts("x", [Fact("x", "x >= 0 && x < 10")])
        # Draws integers in [0, 9]
    """
    st = _require_hypothesis()

    lo: int | None = None
    hi: int | None = None
    pinned: set[Any] = set()
    for _, c in parse_facts(facts):
        if set(c.coefficients) != {variable}:
            continue
        k = c.coefficients[variable]
        bound = c.constant / k
        op = c.op if k > 0 else c.op.flipped()
        if op is Op.EQ:
            pinned.add(bound)
            continue
        if op is Op.GT:
            new_lo = math.floor(bound) + 1
        elif op is Op.GE:
            new_lo = math.ceil(bound)
        else:
            new_lo = None
        if new_lo is not None:
            lo = new_lo if lo is None else max(lo, new_lo)
            continue
        new_hi = math.ceil(bound) - 1 if op is Op.LT else math.floor(bound)
        hi = new_hi if hi is None else min(hi, new_hi)

    if pinned:
        if len(pinned) > 1:
            return st.nothing()
        (value,) = pinned
        if value.denominator != 1:
            return st.nothing()
        v = int(value)
        if (lo is not None and v < lo) or (hi is not None and v > hi):
            return st.nothing()
        return st.just(v)

    if lo is None:
        lo = min(-limit, hi) if hi is not None else -limit
    if hi is None:
        hi = max(limit, lo)
    if lo > hi:
        return st.nothing()
    return st.integers(min_value=lo, max_value=hi)


# ---------------------------------------------------------------------------
# HypothesisResult + falsify
# ---------------------------------------------------------------------------


@dataclass
class HypothesisResult:
    """Result of a Hypothesis falsification run.

    Attributes:
        passed: ``True`` if no counterexample was found.
        counterexample: The falsifying assignment, or ``None`` if the run
            passed.
        examples_run: Number of examples Hypothesis executed.
    """

    passed: bool
    counterexample: dict[str, int] | None
    examples_run: int


def falsify(goal: str, facts: Sequence[Fact], max_examples: int = 1000) -> HypothesisResult:
    """Search for integers satisfying every parsed fact but violating *goal*.

    Args:
        goal: A linear predicate.
        facts: Known facts; unparseable facts are ignored.
        max_examples: Maximum number of Hypothesis examples (default 1000).

    Returns:
        :class:`HypothesisResult` with ``passed``, ``counterexample`` and
        ``examples_run``.

    Raises:
        ValueError: If *goal* is not a linear constraint.
        ImportError: If hypothesis is not installed.

    Example::

        result = falsify("x > 10", [Fact("x", "x > 5")])
        assert not result.passed   # e.g. {"x": 6}
    """
    st = _require_hypothesis()

    from hypothesis import HealthCheck, assume, given, settings
    from hypothesis.errors import Unsatisfiable

    goal_c = parse(goal)
    if goal_c is None:
        raise ValueError(f"goal {goal!r} is not a linear constraint")
    constraints = [c for _, c in parse_facts(facts)]

    variables: list[str] = []
    for c in [goal_c, *constraints]:
        for v in c.variables:
            if v not in variables:
                variables.append(v)

    counter: dict[str, int] = {"n": 0}
    found: dict[str, Any] = {"ce": None}

    if not variables:
        counter["n"] = 1
        holds = all(c.evaluate({}) for c in constraints)
        if holds and not goal_c.evaluate({}):
            found["ce"] = {}
        ce = found["ce"]
        return HypothesisResult(passed=ce is None, counterexample=ce, examples_run=1)

    per_var = {v: from_facts(v, facts) for v in variables}
    if any(s.is_empty for s in per_var.values()):
        # no integer satisfies the facts
        return HypothesisResult(passed=True, counterexample=None, examples_run=0)
    strategy = st.fixed_dictionaries(per_var)

    # suppress_health_check=list(HealthCheck) allows this to be called
    # from within a pytest test (suppresses nested_given, filter_too_much).
    @settings(
        max_examples=max_examples,
        suppress_health_check=list(HealthCheck),
        deadline=None,
        database=None,
    )
    @given(assignment=strategy)
    def _test(assignment: dict[str, int]) -> None:
        counter["n"] += 1
        assume(all(c.evaluate(assignment) for c in constraints))
        if not goal_c.evaluate(assignment):
            found["ce"] = dict(assignment)
            raise AssertionError(f"goal {goal!r} fails at {assignment}")

    try:
        _test()
    except (AssertionError, Unsatisfiable):
        pass

    ce = found["ce"]
    return HypothesisResult(
        passed=ce is None,
        counterexample=ce,
        examples_run=counter["n"],
    )
