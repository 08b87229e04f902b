"""Proof orchestrator — runs the layers in order and returns a certificate.

Pipeline (first proven layer wins):
  1. Constant     ``true`` / ``false`` literals
  2. Type         goal is a fact, or a conjunct of a compound fact
  3. Conjunction  ``a && b`` goals are proven conjunct by conjunct
  4. Pattern      cheap rules over normalized constraints
  5. Algebra      equational laws gated on law facts
  6. Linear       Fourier–Motzkin elimination
  7. Plugins      external decision procedures, only when registered

Unproven is never an error: it means "keep the runtime check".

Global configuration
--------------------
Use :func:`configure` to set defaults that apply to every subsequent call::

    from elide import configure
    configure(timeout_ms=2_000, warn_on_fallback="error")
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import Any, Iterable, Protocol, Sequence, runtime_checkable

from .algebra import try_algebraic_proof
from .certificate import (
    Method,
    ProofCertificate,
    create_certificate,
    create_step,
    fail_certificate,
    succeed_certificate,
)
from .elimination import decide
from .normalizer import split_facts, split_predicate
from .patterns import try_simple
from .registry import DEFAULT, Registries
from .types import Decidability, Fact

logger = logging.getLogger("elide")


# ---------------------------------------------------------------------------
# Global configuration
# ---------------------------------------------------------------------------

_LEVELS = ("error", "warn", "info", "off")

_config: dict[str, Any] = {
    "timeout_ms": 1000,
    "log_level": "WARNING",
    "warn_on_fallback": "warn",
    "warn_on_smt": "info",
    "ignore_brands": (),
}


def configure(**kwargs: Any) -> None:
    """Set global prover defaults.

    Supported keys:

    - ``timeout_ms`` (int): Plugin timeout in milliseconds (default 1000).
    - ``log_level`` (str): Python logging level for the ``elide`` logger
      (default ``"WARNING"``).
    - ``warn_on_fallback`` (str): Level for compile-time brands that fell back
      to a runtime check: ``"error"``, ``"warn"``, ``"info"`` or ``"off"``.
    - ``warn_on_smt`` (str): Level for brands that needed an external solver
      (default ``"info"``).
    - ``ignore_brands`` (iterable of str): Brands never warned about.

    Raises:
        ValueError: If an unknown key or warning level is provided.
    """
    unknown = set(kwargs) - set(_config)
    if unknown:
        raise ValueError(f"Unknown configure() keys: {sorted(unknown)}")
    for key in ("warn_on_fallback", "warn_on_smt"):
        if key in kwargs and kwargs[key] not in _LEVELS:
            raise ValueError(f"{key} must be one of {_LEVELS}, got {kwargs[key]!r}")
    if "ignore_brands" in kwargs:
        kwargs["ignore_brands"] = tuple(kwargs["ignore_brands"])
    _config.update(kwargs)

    if "log_level" in kwargs:
        logger.setLevel(getattr(logging, kwargs["log_level"], logging.WARNING))


# ---------------------------------------------------------------------------
# Plugin contract
# ---------------------------------------------------------------------------

@runtime_checkable
class ProverPlugin(Protocol):
    """An external decision procedure.

    ``init`` must be idempotent and ``prove`` initializes on first use.
    """

    name: str

    async def init(self) -> None: ...

    def is_ready(self) -> bool: ...

    async def prove(
        self, goal: str, facts: Sequence[Fact], timeout_ms: int | None = None
    ) -> ProofCertificate: ...


# ---------------------------------------------------------------------------
# Prover
# ---------------------------------------------------------------------------

_LAYER_ORDER = (Method.CONSTANT, Method.TYPE, Method.ALGEBRA, Method.LINEAR, Method.PLUGIN)


def _type_fact(goal: str, facts: Sequence[Fact]) -> ProofCertificate | None:
    cert = create_certificate(goal, facts)
    for fact in facts:
        if fact.predicate.strip() == goal:
            step = create_step(
                "type_fact",
                f"goal matches type fact from {fact.variable}",
                f"{fact.variable} has refined type guaranteeing: {fact.predicate}",
                (fact,),
            )
            return succeed_certificate(cert, Method.TYPE, step)
        parts = split_predicate(fact.predicate)
        if len(parts) > 1 and goal in parts:
            step = create_step(
                "type_fact_conjunction",
                f"goal is part of compound type fact from {fact.variable}",
                f"{fact.variable} has refined type guaranteeing: "
                f"{fact.predicate} (includes {goal})",
                (fact,),
            )
            return succeed_certificate(cert, Method.TYPE, step)
    return None


class Prover:
    """Runs the proof layers against one set of registries.

    Args:
        registries: Brand knowledge; defaults to the process-wide registries.
        plugins: External decision procedures tried after every built-in
            layer has failed.
    """

    def __init__(
        self,
        registries: Registries | None = None,
        plugins: Iterable[ProverPlugin] = (),
    ) -> None:
        self.registries = registries if registries is not None else DEFAULT
        self.plugins: list[ProverPlugin] = list(plugins)

    def register_plugin(self, plugin: ProverPlugin) -> None:
        self.plugins.append(plugin)

    def clear_plugins(self) -> None:
        self.plugins.clear()

    # -- built-in layers ----------------------------------------------------

    def _static(self, goal: str, facts: Sequence[Fact]) -> ProofCertificate:
        cert = create_certificate(goal, facts)
        text = goal.strip()
        if text.lower() == "true":
            step = create_step("constant_eval", "evaluated statically",
                               "expression is the literal true")
            return succeed_certificate(cert, Method.CONSTANT, step)
        if text.lower() == "false":
            return fail_certificate(cert, "statically false")

        typed = _type_fact(text, facts)
        if typed is not None:
            return replace(cert, proven=True, method=typed.method, steps=typed.steps)

        parts = split_predicate(text)
        if len(parts) > 1:
            return self._conjunction(cert, parts, facts)

        layers = (
            lambda: try_simple(text, facts),
            lambda: try_algebraic_proof(
                text, split_facts(facts), self.registries.algebraic_rules
            ),
            lambda: decide(text, facts),
        )
        result = cert
        for layer in layers:
            result = layer()
            if result.proven:
                return replace(cert, proven=True, method=result.method, steps=result.steps)
        return fail_certificate(cert, result.reason or "no proof method succeeded")

    def _conjunction(
        self, cert: ProofCertificate, parts: list[str], facts: Sequence[Fact]
    ) -> ProofCertificate:
        subs = [self._static(p, facts) for p in parts]
        for sub in subs:
            if not sub.proven:
                return fail_certificate(cert, f"conjunct {sub.goal!r} not proven: {sub.reason}")
        used: dict[Fact, None] = {}
        for sub in subs:
            for f in sub.used_facts:
                used.setdefault(f, None)
        method = max((s.method for s in subs), key=_LAYER_ORDER.index)
        step = create_step(
            "conjunction",
            f"all {len(subs)} conjuncts proven",
            " and ".join(s.goal for s in subs),
            tuple(used),
            subs,
        )
        return succeed_certificate(cert, method, step)

    # -- plugins ------------------------------------------------------------

    async def _plugin_layer(
        self, goal: str, facts: Sequence[Fact], timeout_ms: int
    ) -> ProofCertificate | None:
        cert = create_certificate(goal, facts)
        for plugin in self.plugins:
            name = getattr(plugin, "name", type(plugin).__name__)
            try:
                result = await asyncio.wait_for(
                    plugin.prove(goal, facts, timeout_ms), timeout_ms / 1000
                )
            except asyncio.TimeoutError:
                logger.warning("plugin %s timed out after %dms on %r", name, timeout_ms, goal)
                continue
            except Exception as e:
                logger.warning("plugin %s failed on %r: %s", name, goal, e)
                continue
            if result is None or not result.proven:
                continue
            steps = result.steps or (
                create_step(name, f"proven by {name}", "external decision procedure"),
            )
            logger.debug("Q.E.D. %s via plugin %s", goal, name)
            return replace(cert, proven=True, method=Method.PLUGIN, steps=steps)
        return None

    def _plugins_sync(
        self, goal: str, facts: Sequence[Fact], timeout_ms: int
    ) -> ProofCertificate | None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self._plugin_layer(goal, facts, timeout_ms))
        logger.debug("event loop running; skipping prover plugins for %r", goal)
        return None

    # -- public API ---------------------------------------------------------

    def try_prove(
        self, goal: str, facts: Sequence[Fact] = (), timeout_ms: int | None = None
    ) -> ProofCertificate:
        """Try to prove *goal* from *facts*.

        Plugins run only when no event loop is running in this thread; use
        :meth:`try_prove_async` from async code.
        """
        t0 = time.monotonic()
        facts = tuple(facts)
        cert = self._static(goal, facts)
        if not cert.proven and self.plugins and cert.reason != "statically false":
            timeout = int(timeout_ms if timeout_ms is not None else _config["timeout_ms"])
            plugged = self._plugins_sync(goal, facts, timeout)
            if plugged is not None:
                cert = plugged
        return self._finish(cert, t0)

    async def try_prove_async(
        self, goal: str, facts: Sequence[Fact] = (), timeout_ms: int | None = None
    ) -> ProofCertificate:
        """Like :meth:`try_prove`, awaiting plugins with a timeout."""
        t0 = time.monotonic()
        facts = tuple(facts)
        cert = self._static(goal, facts)
        if not cert.proven and self.plugins and cert.reason != "statically false":
            timeout = int(timeout_ms if timeout_ms is not None else _config["timeout_ms"])
            plugged = await self._plugin_layer(goal, facts, timeout)
            if plugged is not None:
                cert = plugged
        return self._finish(cert, t0)

    @staticmethod
    def _finish(cert: ProofCertificate, t0: float) -> ProofCertificate:
        elapsed = (time.monotonic() - t0) * 1000
        if cert.proven:
            logger.debug("Q.E.D. %s (%s, %.1fms)", cert.goal, cert.method.value, elapsed)
        else:
            logger.debug("UNPROVEN %s: %s", cert.goal, cert.reason)
        return replace(cert, time_ms=elapsed)


# ---------------------------------------------------------------------------
# Decidability diagnostics
# ---------------------------------------------------------------------------

def emit_decidability_warning(
    brand: str,
    expected: Decidability,
    actual: str,
    reason: str = "",
) -> str:
    """Log a decidability mismatch for *brand* at the configured level.

    Args:
        brand: The refined brand, e.g. ``"Positive"``.
        expected: The brand's registered decidability.
        actual: The strategy actually used, e.g. ``"runtime"`` or ``"z3"``.
        reason: Extra context appended to the message.

    Returns:
        The level used: ``"error"``, ``"warn"``, ``"info"`` or ``"off"``.
    """
    if brand in _config["ignore_brands"]:
        return "off"

    level = "off"
    message = ""
    if expected is Decidability.COMPILE_TIME and actual not in ("constant", "type"):
        level = _config["warn_on_fallback"]
        message = f"predicate {brand!r} marked compile-time decidable fell back to {actual}"
    elif actual in ("z3", "plugin"):
        level = _config["warn_on_smt"]
        message = f"predicate {brand!r} required an external solver"
    if reason and message:
        message += f": {reason}"

    if level == "error":
        logger.error(message)
    elif level == "warn":
        logger.warning(message)
    elif level == "info":
        logger.info(message)
    return level


def report_fallback(
    goal: str,
    brands: Iterable[str],
    registries: Registries | None = None,
    used_plugin: bool = False,
) -> list[str]:
    """Warn for every statically decidable brand whose goal was not proven.

    Returns:
        The brands a warning was emitted for.
    """
    registries = registries if registries is not None else DEFAULT
    actual = "z3" if used_plugin else "runtime"
    reason = (
        f"used external solver for: {goal}"
        if used_plugin
        else f"could not prove statically: {goal}"
    )
    warned: list[str] = []
    for brand in dict.fromkeys(brands):
        info = registries.get_decidability(brand)
        if info is None or not info.decidability.provable_statically:
            continue
        if emit_decidability_warning(brand, info.decidability, actual, reason) != "off":
            warned.append(brand)
    return warned


# ---------------------------------------------------------------------------
# Module-level API on a default prover
# ---------------------------------------------------------------------------

_default = Prover()


def try_prove(
    goal: str, facts: Sequence[Fact] = (), timeout_ms: int | None = None
) -> ProofCertificate:
    """Prove *goal* from *facts* with the default registries and plugins."""
    return _default.try_prove(goal, facts, timeout_ms)


async def try_prove_async(
    goal: str, facts: Sequence[Fact] = (), timeout_ms: int | None = None
) -> ProofCertificate:
    return await _default.try_prove_async(goal, facts, timeout_ms)


def register_prover_plugin(plugin: ProverPlugin) -> None:
    _default.register_plugin(plugin)


def clear_prover_plugins() -> None:
    _default.clear_plugins()
