"""Soundness checks: a proven goal holds at every point that satisfies the facts.

Integers are a subset of the rationals the prover reasons over, so any
integer point where the facts hold and the goal fails exposes an unsound
proof.
"""

from __future__ import annotations

from itertools import product

import pytest
from conftest import facts
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from elide.engine import try_prove
from elide.hypothesis import falsify
from elide.normalizer import parse
from elide.types import Fact

VARS = ("x", "y", "z")
GRID = range(-4, 5)


def _counterexample(goal: str, fs: list[Fact]) -> dict[str, int] | None:
    goal_c = parse(goal)
    assert goal_c is not None
    fact_cs = [parse(f.predicate) for f in fs]
    for values in product(GRID, repeat=len(VARS)):
        point = dict(zip(VARS, values, strict=True))
        holds = all(c is not None and c.evaluate(point) for c in fact_cs)
        if holds and not goal_c.evaluate(point):
            return point
    return None


@st.composite
def atoms(draw: st.DrawFn) -> str:
    a, b = draw(st.permutations(VARS))[:2]
    k = draw(st.integers(-3, 3))
    shape = draw(st.sampled_from(["const", "var", "sum", "diff", "eq_const", "eq_var"]))
    op = draw(st.sampled_from(["<", "<=", ">", ">="]))
    if shape == "const":
        return f"{a} {op} {k}"
    if shape == "var":
        return f"{a} {op} {b}"
    if shape == "sum":
        return f"{a} + {b} {op} {k}"
    if shape == "diff":
        return f"{a} - {b} {op} {k}"
    if shape == "eq_const":
        return f"{a} == {k}"
    return f"{a} == {b}"


def _fact(text: str) -> Fact:
    return Fact(text.split()[0], text)


# ---------------------------------------------------------------------------
# Hand-picked cases
# ---------------------------------------------------------------------------

CASES = [
    ("x + y > 0", ["x > 0", "y >= 0"]),
    ("x > 0", ["x >= 0"]),
    ("x > z", ["x > y", "y > z"]),
    ("x >= z", ["x >= y", "y >= z"]),
    ("x > z", ["x >= y", "y >= z"]),
    ("x == 2", ["x >= 2", "x <= 2"]),
    ("x == y", ["x >= y", "y >= x"]),
    ("x == y", ["x >= y"]),
    ("x - z <= 3", ["x - y <= 1", "y - z <= 2"]),
    ("x + y >= 1", ["x >= 1", "y >= 0"]),
    ("x > y", ["x > 0", "y < 0"]),
    ("x > y", ["x >= 0", "y <= 0"]),
    ("y < 3", ["x == 2", "y < x"]),
    ("x < 0", ["x > 0"]),
]


class TestHandPicked:
    @pytest.mark.parametrize(("goal", "preds"), CASES)
    def test_proof_implies_no_counterexample(self, goal: str, preds: list[str]) -> None:
        fs = facts(*preds)
        cert = try_prove(goal, fs)
        ce = _counterexample(goal, fs)
        if cert.proven:
            assert ce is None, f"{goal} proven from {preds} but fails at {ce}"

    @pytest.mark.parametrize(
        ("goal", "preds"),
        [
            ("x + y > 0", ["x > 0", "y >= 0"]),
            ("x > z", ["x > y", "y > z"]),
            ("x == 2", ["x >= 2", "x <= 2"]),
            ("x - z <= 3", ["x - y <= 1", "y - z <= 2"]),
            ("y < 3", ["x == 2", "y < x"]),
        ],
    )
    def test_expected_proofs(self, goal: str, preds: list[str]) -> None:
        assert try_prove(goal, facts(*preds)).proven

    @pytest.mark.parametrize(
        ("goal", "preds"),
        [
            ("x > z", ["x >= y", "y >= z"]),
            ("x == y", ["x >= y"]),
            ("x > y", ["x >= 0", "y <= 0"]),
            ("x < 0", ["x > 0"]),
        ],
    )
    def test_expected_refusals(self, goal: str, preds: list[str]) -> None:
        fs = facts(*preds)
        assert not try_prove(goal, fs).proven
        assert _counterexample(goal, fs) is not None

    @pytest.mark.parametrize(("goal", "preds"), CASES)
    def test_falsify_and_prover_agree(self, goal: str, preds: list[str]) -> None:
        fs = facts(*preds)
        result = falsify(goal, fs, max_examples=100)
        if not result.passed:
            assert not try_prove(goal, fs).proven


# ---------------------------------------------------------------------------
# Generated cases
# ---------------------------------------------------------------------------


class TestGenerated:
    @settings(max_examples=200, deadline=None, suppress_health_check=list(HealthCheck))
    @given(goal=atoms(), preds=st.lists(atoms(), min_size=0, max_size=3))
    def test_never_proves_a_false_goal(self, goal: str, preds: list[str]) -> None:
        fs = [_fact(p) for p in preds]
        cert = try_prove(goal, fs)
        if cert.proven:
            ce = _counterexample(goal, fs)
            assert ce is None, f"{goal} proven from {preds} but fails at {ce}"

