"""Tests for elide.engine — the layered prover, plugins and diagnostics."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

import pytest
from conftest import facts

import elide
from elide.algebra import AlgebraicRule
from elide.certificate import (
    Method,
    ProofCertificate,
    create_certificate,
    create_step,
    fail_certificate,
    succeed_certificate,
)
from elide.engine import (
    Prover,
    ProverPlugin,
    configure,
    emit_decidability_warning,
    report_fallback,
    try_prove,
    try_prove_async,
)
from elide.registry import Registries
from elide.types import Decidability, Fact

# ---------------------------------------------------------------------------
# Fake plugins
# ---------------------------------------------------------------------------


class AlwaysPlugin:
    """Proves every goal and counts calls."""

    name = "always"

    def __init__(self) -> None:
        self.calls = 0
        self.ready = False

    async def init(self) -> None:
        self.ready = True

    def is_ready(self) -> bool:
        return self.ready

    async def prove(
        self, goal: str, facts: Sequence[Fact], timeout_ms: int | None = None
    ) -> ProofCertificate:
        await self.init()
        self.calls += 1
        step = create_step("oracle", f"{goal} by oracle", "", tuple(facts))
        return succeed_certificate(create_certificate(goal, facts), Method.PLUGIN, step)


class NeverPlugin(AlwaysPlugin):
    name = "never"

    async def prove(
        self, goal: str, facts: Sequence[Fact], timeout_ms: int | None = None
    ) -> ProofCertificate:
        self.calls += 1
        return fail_certificate(create_certificate(goal, facts), "no idea")


class BrokenPlugin(AlwaysPlugin):
    name = "broken"

    async def prove(
        self, goal: str, facts: Sequence[Fact], timeout_ms: int | None = None
    ) -> ProofCertificate:
        raise RuntimeError("solver crashed")


class SlowPlugin(AlwaysPlugin):
    name = "slow"

    async def prove(
        self, goal: str, facts: Sequence[Fact], timeout_ms: int | None = None
    ) -> ProofCertificate:
        await asyncio.sleep(5)
        return await super().prove(goal, facts, timeout_ms)


NONLINEAR = "x * y > 0"


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_sum_of_positive_and_non_negative(self) -> None:
        cert = try_prove("x + y > 0", facts("x > 0", "y >= 0"))
        assert cert.proven
        assert cert.method is Method.LINEAR

    def test_weaker_fact(self) -> None:
        cert = try_prove("x > 10", facts("x > 5"))
        assert not cert.proven
        assert cert.reason

    def test_non_linear_goal(self) -> None:
        cert = try_prove(NONLINEAR, facts("x > 0", "y > 0"))
        assert not cert.proven
        assert cert.reason == "goal is not a linear constraint"

    def test_ground_goal(self) -> None:
        cert = try_prove("5 > 3")
        assert cert.proven
        assert cert.method is Method.LINEAR

    def test_transitivity_names_both_facts(self) -> None:
        fs = facts("a > b", "b > 0")
        cert = try_prove("a > 0", fs)
        assert cert.proven
        assert cert.step is not None and cert.step.rule == "transitivity"
        assert set(cert.used_facts) == set(fs)

    def test_time_recorded(self) -> None:
        assert try_prove("x > 0", facts("x > 5")).time_ms >= 0


class TestConstantLayer:
    def test_true(self) -> None:
        cert = try_prove("true")
        assert cert.proven
        assert cert.method is Method.CONSTANT
        assert cert.step is not None and cert.step.rule == "constant_eval"

    def test_false(self) -> None:
        cert = try_prove("false", facts("x > 0"))
        assert not cert.proven
        assert cert.reason == "statically false"

    def test_false_never_reaches_plugins(self) -> None:
        plugin = AlwaysPlugin()
        cert = Prover(plugins=[plugin]).try_prove("false")
        assert not cert.proven
        assert plugin.calls == 0


class TestTypeLayer:
    def test_goal_is_a_fact(self) -> None:
        cert = try_prove("x > 0", facts("x > 0"))
        assert cert.method is Method.TYPE
        assert cert.step is not None and cert.step.rule == "type_fact"

    def test_goal_is_part_of_compound_fact(self) -> None:
        fact = Fact("b", "b >= 0 && b <= 255")
        cert = try_prove("b <= 255", [fact])
        assert cert.proven
        assert cert.step is not None
        assert cert.step.rule == "type_fact_conjunction"
        assert cert.used_facts == (fact,)

    def test_non_linear_fact_text(self) -> None:
        cert = try_prove("len(s) > 0", [Fact("s", "len(s) > 0")])
        assert cert.proven
        assert cert.method is Method.TYPE


class TestConjunction:
    def test_each_conjunct_proven(self) -> None:
        cert = try_prove("x > 0 && y > 0", facts("x > 5", "y > 1"))
        assert cert.proven
        assert cert.step is not None and cert.step.rule == "conjunction"
        assert [s.goal for s in cert.step.subgoals] == ["x > 0", "y > 0"]
        assert cert.method is Method.LINEAR

    def test_method_is_latest_layer(self) -> None:
        fs = [Fact("x", "x > 5"), Fact("s", "len(s) > 0")]
        cert = try_prove("len(s) > 0 && x > 0", fs)
        assert cert.proven
        assert cert.method is Method.LINEAR

    def test_one_conjunct_fails(self) -> None:
        cert = try_prove("x > 0 && y > 0", facts("x > 5"))
        assert not cert.proven
        assert "'y > 0'" in cert.reason

    def test_disjunction_not_split(self) -> None:
        assert not try_prove("x > 0 || y > 0", facts("x > 5")).proven


class TestAlgebraLayer:
    def test_default_laws(self) -> None:
        cert = try_prove("f(a) == f(a)")
        assert cert.proven
        assert cert.method is Method.ALGEBRA

    def test_compound_law_fact_is_split(self) -> None:
        fact = Fact("combine", "associative(combine) && identity(combine)")
        cert = try_prove("combine(a, empty) == a", [fact])
        assert cert.proven
        assert cert.method is Method.ALGEBRA

    def test_injected_registries(self) -> None:
        rule = AlgebraicRule("always", "anything goes", lambda goal, fs: ())
        r = Registries()
        r.register_algebraic_rule(rule)
        assert Prover(r).try_prove("g(a) == h(b)").proven
        assert not try_prove("g(a) == h(b)").proven

    def test_deeply_nested_goal_is_unproven(self) -> None:
        cert = try_prove("-" * 3000 + "a == a")
        assert not cert.proven
        assert cert.reason


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestConfigure:
    def test_unknown_key(self) -> None:
        with pytest.raises(ValueError, match="Unknown configure"):
            configure(bogus=1)

    def test_bad_level(self) -> None:
        with pytest.raises(ValueError, match="warn_on_fallback"):
            configure(warn_on_fallback="loud")

    def test_ignore_brands_stored_as_tuple(self) -> None:
        from elide import engine

        configure(ignore_brands=["Positive"])
        assert engine._config["ignore_brands"] == ("Positive",)

    def test_log_level(self) -> None:
        configure(log_level="DEBUG")
        assert logging.getLogger("elide").level == logging.DEBUG
        configure(log_level="WARNING")


# ---------------------------------------------------------------------------
# Plugins
# ---------------------------------------------------------------------------


class TestPlugins:
    def test_fakes_satisfy_protocol(self) -> None:
        assert isinstance(AlwaysPlugin(), ProverPlugin)

    def test_plugin_proves_what_layers_cannot(self) -> None:
        plugin = AlwaysPlugin()
        cert = Prover(plugins=[plugin]).try_prove(NONLINEAR, facts("x > 0", "y > 0"))
        assert cert.proven
        assert cert.method is Method.PLUGIN
        assert cert.step is not None and cert.step.rule == "oracle"
        assert plugin.calls == 1

    def test_plugin_not_called_when_layers_prove(self) -> None:
        plugin = AlwaysPlugin()
        assert Prover(plugins=[plugin]).try_prove("x > 0", facts("x > 5")).proven
        assert plugin.calls == 0

    def test_failing_plugin_keeps_static_reason(self) -> None:
        plugin = NeverPlugin()
        cert = Prover(plugins=[plugin]).try_prove(NONLINEAR, facts("x > 0"))
        assert not cert.proven
        assert cert.reason == "goal is not a linear constraint"
        assert plugin.calls == 1

    def test_plugins_tried_in_order(self) -> None:
        never, always = NeverPlugin(), AlwaysPlugin()
        cert = Prover(plugins=[never, always]).try_prove(NONLINEAR)
        assert cert.proven
        assert (never.calls, always.calls) == (1, 1)

    def test_exception_is_logged_not_raised(self, caplog: pytest.LogCaptureFixture) -> None:
        prover = Prover(plugins=[BrokenPlugin(), AlwaysPlugin()])
        with caplog.at_level(logging.WARNING, logger="elide"):
            cert = prover.try_prove(NONLINEAR)
        assert cert.proven
        assert "solver crashed" in caplog.text

    def test_timeout(self, caplog: pytest.LogCaptureFixture) -> None:
        prover = Prover(plugins=[SlowPlugin()])
        with caplog.at_level(logging.WARNING, logger="elide"):
            cert = prover.try_prove(NONLINEAR, timeout_ms=20)
        assert not cert.proven
        assert "timed out" in caplog.text

    def test_async_path(self) -> None:
        prover = Prover(plugins=[AlwaysPlugin()])
        cert = asyncio.run(prover.try_prove_async(NONLINEAR))
        assert cert.proven
        assert cert.method is Method.PLUGIN

    def test_sync_call_inside_running_loop_skips_plugins(self) -> None:
        plugin = AlwaysPlugin()
        prover = Prover(plugins=[plugin])

        async def main() -> ProofCertificate:
            return prover.try_prove(NONLINEAR)

        cert = asyncio.run(main())
        assert not cert.proven
        assert plugin.calls == 0

    def test_default_prover_registration(self) -> None:
        elide.register_prover_plugin(AlwaysPlugin())
        assert try_prove(NONLINEAR).proven
        assert asyncio.run(try_prove_async(NONLINEAR)).proven
        elide.clear_prover_plugins()
        assert not try_prove(NONLINEAR).proven


# ---------------------------------------------------------------------------
# Decidability diagnostics
# ---------------------------------------------------------------------------


class TestDecidabilityWarnings:
    def test_compile_time_fallback_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="elide"):
            level = emit_decidability_warning(
                "Positive", Decidability.COMPILE_TIME, "runtime", "x > 0"
            )
        assert level == "warn"
        assert caplog.records[-1].levelno == logging.WARNING
        assert "'Positive'" in caplog.text and "x > 0" in caplog.text

    def test_static_proof_is_silent(self) -> None:
        assert emit_decidability_warning("Positive", Decidability.COMPILE_TIME, "type") == "off"

    def test_solver_use_is_info(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="elide"):
            level = emit_decidability_warning("Int", Decidability.DECIDABLE, "z3")
        assert level == "info"
        assert "external solver" in caplog.text

    def test_error_level(self, caplog: pytest.LogCaptureFixture) -> None:
        configure(warn_on_fallback="error")
        with caplog.at_level(logging.INFO, logger="elide"):
            level = emit_decidability_warning("Byte", Decidability.COMPILE_TIME, "runtime")
        assert level == "error"
        assert caplog.records[-1].levelno == logging.ERROR

    def test_ignored_brand(self) -> None:
        configure(ignore_brands=["Positive"])
        assert emit_decidability_warning("Positive", Decidability.COMPILE_TIME, "runtime") == "off"

    def test_report_fallback(self) -> None:
        warned = report_fallback("x > 0", ["Positive", "Email", "Unknown", "Positive"])
        assert warned == ["Positive"]

    def test_report_fallback_decidable_only_warns_for_solver(self) -> None:
        assert report_fallback("x == int(x)", ["Int"]) == []
        assert report_fallback("x == int(x)", ["Int"], used_plugin=True) == ["Int"]

    def test_report_fallback_off(self) -> None:
        configure(warn_on_fallback="off")
        assert report_fallback("x > 0", ["Positive"]) == []
