"""Tests for elide.z3_plugin — Z3 as the last proof layer."""

from __future__ import annotations

import asyncio

from conftest import facts

from elide.certificate import Method, ProofCertificate
from elide.engine import Prover, ProverPlugin
from elide.types import Fact
from elide.z3_plugin import Z3Plugin


def _prove(goal: str, fs: list[Fact], timeout_ms: int | None = None) -> ProofCertificate:
    return asyncio.run(Z3Plugin().prove(goal, fs, timeout_ms))


class TestLifecycle:
    def test_protocol(self) -> None:
        assert isinstance(Z3Plugin(), ProverPlugin)

    def test_init_is_idempotent(self) -> None:
        plugin = Z3Plugin()
        assert not plugin.is_ready()
        asyncio.run(plugin.init())
        version = plugin.version
        asyncio.run(plugin.init())
        assert plugin.is_ready()
        assert version and plugin.version == version

    def test_prove_initializes(self) -> None:
        plugin = Z3Plugin()
        asyncio.run(plugin.prove("x > 0", facts("x > 1")))
        assert plugin.is_ready()


class TestProve:
    def test_non_linear_proven(self) -> None:
        fs = facts("x > 0", "y > 0")
        cert = _prove("x * y > 0", fs)
        assert cert.proven
        assert cert.method is Method.PLUGIN
        assert cert.step is not None and cert.step.rule == "z3"
        assert set(cert.used_facts) == set(fs)

    def test_counterexample(self) -> None:
        cert = _prove("x > 10", facts("x > 5"))
        assert not cert.proven
        assert cert.reason.startswith("counterexample:")
        assert "'x'" in cert.reason

    def test_untranslatable_goal(self) -> None:
        cert = _prove("xs[0] > 0", [])
        assert not cert.proven
        assert cert.reason.startswith("cannot translate goal")

    def test_untranslatable_facts_skipped(self) -> None:
        ok = Fact("x", "x > 1")
        cert = _prove("x > 0", [ok, Fact("s", "s.startswith('a')")])
        assert cert.proven
        assert cert.used_facts == (ok,)

    def test_len_side_condition(self) -> None:
        assert _prove("len(xs) + 1 > 0", []).proven

    def test_time_recorded(self) -> None:
        assert _prove("x > 0", facts("x > 1")).time_ms >= 0


class TestWithProver:
    def test_proves_what_built_in_layers_cannot(self) -> None:
        prover = Prover(plugins=[Z3Plugin()])
        cert = prover.try_prove("x * y > 0", facts("x > 0", "y > 0"))
        assert cert.proven
        assert cert.method is Method.PLUGIN

    def test_refutes_false_goal(self) -> None:
        prover = Prover(plugins=[Z3Plugin()])
        assert not prover.try_prove("x * y > 0", facts("x > 0", "y < 0")).proven

    def test_async(self) -> None:
        prover = Prover(plugins=[Z3Plugin()])
        cert = asyncio.run(prover.try_prove_async("abs(x) >= x"))
        assert cert.proven
