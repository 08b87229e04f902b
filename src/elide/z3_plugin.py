"""Z3-backed prover plugin.

Used as the last layer when every built-in layer has failed::

    from elide import register_prover_plugin
    from elide.z3_plugin import Z3Plugin

    register_prover_plugin(Z3Plugin(timeout_ms=2_000))

The facts it can translate are asserted together with ``Not(goal)``; the goal
is proven iff Z3 answers ``unsat``. Each call builds its own Z3 context and
runs the solver in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import Any, Sequence

import z3

from .certificate import (
    Method,
    ProofCertificate,
    create_certificate,
    create_step,
    fail_certificate,
    succeed_certificate,
)
from .translator import PredicateTranslator, TranslationError
from .types import Fact

logger = logging.getLogger("elide")


def _z3_val_to_python(val: Any) -> int | float | bool | str:
    """Convert a Z3 value to a Python scalar."""
    try:
        if z3.is_int_value(val):
            return val.as_long()
        if z3.is_rational_value(val):
            frac = val.as_fraction()
            return int(frac) if frac.denominator == 1 else float(frac)
        if z3.is_true(val):
            return True
        if z3.is_false(val):
            return False
    except (AttributeError, ValueError, ArithmeticError, OverflowError):
        pass
    return str(val)


class Z3Plugin:
    """Decide goals with the Z3 SMT solver.

    Args:
        timeout_ms: Default solver timeout, used when :meth:`prove` is not
            given one.
    """

    name = "z3"

    def __init__(self, timeout_ms: int = 1000) -> None:
        self.timeout_ms = timeout_ms
        self._ready = False
        self.version = ""

    async def init(self) -> None:
        if self._ready:
            return
        self.version = z3.get_version_string()
        self._ready = True
        logger.debug("z3 plugin ready (z3 %s)", self.version)

    def is_ready(self) -> bool:
        return self._ready

    async def prove(
        self,
        goal: str,
        facts: Sequence[Fact],
        timeout_ms: int | None = None,
    ) -> ProofCertificate:
        """Prove *goal* from *facts*; any failure yields an unproven certificate."""
        if not self._ready:
            await self.init()
        timeout = int(timeout_ms if timeout_ms is not None else self.timeout_ms)
        cert = create_certificate(goal, facts)
        t0 = time.monotonic()
        try:
            verdict, used, model = await asyncio.to_thread(self._check, goal, facts, timeout)
        except TranslationError as e:
            return fail_certificate(cert, f"cannot translate goal: {e}")
        elapsed = (time.monotonic() - t0) * 1000

        if verdict == "unsat":
            step = create_step(
                "z3",
                f"{goal.strip()} proven by Z3",
                f"facts together with not ({goal.strip()}) are unsatisfiable",
                used,
            )
            cert = succeed_certificate(cert, Method.PLUGIN, step)
        elif verdict == "sat":
            cert = fail_certificate(cert, f"counterexample: {model}")
        else:
            cert = fail_certificate(cert, f"Z3 returned unknown (timeout {timeout}ms?)")
        return replace(cert, time_ms=elapsed)

    def _check(
        self, goal: str, facts: Sequence[Fact], timeout_ms: int
    ) -> tuple[str, tuple[Fact, ...], dict[str, Any]]:
        ctx = z3.Context()
        translator = PredicateTranslator(ctx)
        goal_expr = translator.translate(goal)

        solver = z3.Solver(ctx=ctx)
        solver.set("timeout", timeout_ms)
        used: list[Fact] = []
        for fact in facts:
            try:
                solver.add(translator.translate(fact.predicate))
            except TranslationError as e:
                logger.debug("z3: skipping fact %r: %s", fact.predicate, e)
                continue
            used.append(fact)
        for side in translator.constraints:
            solver.add(side)
        solver.add(z3.Not(goal_expr, ctx))

        check = solver.check()
        model: dict[str, Any] = {}
        if check == z3.sat:
            m = solver.model()
            for name, var in translator.variables.items():
                model[name] = _z3_val_to_python(m.eval(var, model_completion=True))
        return str(check), tuple(used), model
