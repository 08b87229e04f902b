"""Tests for elide.patterns — the cheap syntactic rules."""

from __future__ import annotations

from conftest import facts

from elide.certificate import Method
from elide.patterns import try_simple
from elide.types import Fact


def _rule(goal: str, *preds: str) -> str | None:
    cert = try_simple(goal, facts(*preds))
    return cert.step.rule if cert.proven and cert.step else None


class TestDirectMatch:
    def test_same_text(self) -> None:
        cert = try_simple("x > 0", facts("x > 0"))
        assert cert.proven
        assert cert.method is Method.LINEAR
        assert cert.step is not None and cert.step.rule == "direct_match"

    def test_same_constraint_different_text(self) -> None:
        assert _rule("x > 0", "0 < x") == "direct_match"


class TestBoundTightening:
    def test_strict_looser(self) -> None:
        assert _rule("x > 0", "x > 5") == "bound_tightening"

    def test_non_strict_looser(self) -> None:
        assert _rule("x >= 0", "x >= 10") == "bound_tightening"

    def test_strict_implies_non_strict_same_bound(self) -> None:
        assert _rule("x >= 0", "x > 0") == "bound_tightening"

    def test_non_strict_does_not_imply_strict(self) -> None:
        assert not try_simple("x > 0", facts("x >= 0")).proven

    def test_tighter_goal_not_implied(self) -> None:
        assert not try_simple("x > 10", facts("x > 5")).proven

    def test_upper_bounds(self) -> None:
        assert _rule("x < 10", "x <= 5") == "bound_tightening"
        assert _rule("x <= 10", "x < 10") == "bound_tightening"
        assert not try_simple("x < 5", facts("x <= 5")).proven

    def test_substring_not_mistaken(self) -> None:
        assert not try_simple("x > 10", facts("x > 1")).proven

    def test_uses_split_compound_fact(self) -> None:
        cert = try_simple("x > 0", [Fact("x", "x >= 0 && x <= 100 && x > 5")])
        assert cert.proven
        assert cert.used_facts == (Fact("x", "x > 5"),)

    def test_justification_mentions_numbers(self) -> None:
        cert = try_simple("x > 0", facts("x > 5"))
        assert cert.step is not None
        assert "5 >= 0" in cert.step.justification


class TestEqualityImplication:
    def test_equal_value_satisfies_bounds(self) -> None:
        for goal in ("x > 0", "x >= 0", "x < 10", "x >= 5", "x <= 5"):
            assert _rule(goal, "x == 5") == "equality_implication", goal

    def test_triple_equals(self) -> None:
        assert _rule("x >= 5", "x === 5") == "equality_implication"

    def test_equal_value_violates_bound(self) -> None:
        assert not try_simple("x > 5", facts("x == 5")).proven


class TestSumOfBounds:
    def test_positive_and_non_negative(self) -> None:
        assert _rule("x + y > 0", "x > 0", "y >= 0") == "sum_of_positive_and_non_negative"

    def test_two_positives(self) -> None:
        assert _rule("x + y > 0", "x > 0", "y > 0") == "sum_of_positives"

    def test_two_non_negatives(self) -> None:
        assert _rule("x + y >= 0", "x >= 0", "y >= 0") == "sum_of_non_negatives"

    def test_two_non_negatives_not_strict(self) -> None:
        assert not try_simple("x + y > 0", facts("x >= 0", "y >= 0")).proven

    def test_lower_bounds_sum(self) -> None:
        assert _rule("x + y >= 8", "x >= 5", "y >= 3") == "sum_of_bounds"

    def test_lower_bounds_sum_too_small(self) -> None:
        assert not try_simple("x + y >= 9", facts("x >= 5", "y >= 3")).proven

    def test_used_facts_are_both_bounds(self) -> None:
        cert = try_simple("x + y > 0", facts("x > 0", "y >= 0", "z > 0"))
        assert set(cert.used_facts) == {Fact("x", "x > 0"), Fact("y", "y >= 0")}


class TestTransitivity:
    def test_relational_chain(self) -> None:
        assert _rule("x > z", "x > y", "y > z") == "transitivity"

    def test_mixed_strictness(self) -> None:
        assert _rule("x > z", "x >= y", "y > z") == "transitivity"
        assert _rule("x >= z", "x >= y", "y >= z") == "transitivity"

    def test_non_strict_chain_does_not_give_strict(self) -> None:
        assert not try_simple("x > z", facts("x >= y", "y >= z")).proven

    def test_less_than_family(self) -> None:
        assert _rule("a < c", "a < b", "b <= c") == "transitivity"

    def test_reversed_orientation_fact(self) -> None:
        assert _rule("x > z", "y < x", "y > z") == "transitivity"

    def test_zero_anchored_names_both_facts(self) -> None:
        cert = try_simple("a > 0", facts("a > b", "b > 0"))
        assert cert.proven
        assert cert.step is not None and cert.step.rule == "transitivity"
        assert set(cert.used_facts) == {Fact("a", "a > b"), Fact("b", "b > 0")}

    def test_mixed_families_rejected(self) -> None:
        assert not try_simple("x > z", facts("x > y", "y < z")).proven


class TestSeparation:
    def test_positive_greater_than_negative(self) -> None:
        assert _rule("x > y", "x > 0", "y < 0") == "positive_greater_than_negative"

    def test_general_separation(self) -> None:
        assert _rule("x >= y", "x >= 3", "y <= 3") == "bound_separation"

    def test_touching_bounds_not_strict(self) -> None:
        assert not try_simple("x > y", facts("x >= 3", "y <= 3")).proven


class TestNoMatch:
    def test_no_facts(self) -> None:
        cert = try_simple("x > 0", [])
        assert not cert.proven
        assert cert.reason

    def test_unrelated_variable(self) -> None:
        assert not try_simple("y > 0", facts("x > 0")).proven

    def test_opposite_bound(self) -> None:
        assert not try_simple("x < 0", facts("x > 0")).proven

    def test_disjunction_fact_unusable(self) -> None:
        assert not try_simple("x > 0", [Fact("x", "x > 0 || x < -10")]).proven
