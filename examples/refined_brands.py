"""Brands, annotated signatures and decidability warnings.

Demonstrates:
  - Facts extracted from ``Annotated`` parameters
  - Registering a custom brand and a widening rule
  - Parameterized brands (``Vec<N>``)
  - Fallback warnings for brands that should have been provable
  - Z3 as the last layer for non-linear goals
"""

from __future__ import annotations

import logging
from typing import Annotated

from elide import (
    Between,
    Brand,
    Port,
    Prover,
    Registries,
    SubtypingRule,
    configure,
    extract_facts,
    register_builtins,
    report_fallback,
)
from elide.z3_plugin import Z3Plugin

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

# ---------------------------------------------------------------------------
# 1. Facts from a signature
# ---------------------------------------------------------------------------

registries = register_builtins(Registries())
registries.register_refinement_predicate("Latitude", "$ >= -90 && $ <= 90")
registries.register_subtyping_rule(
    SubtypingRule("Latitude", "Finite", "latitude_is_finite", "bounded values are finite")
)


def connect(port: Port, weight: Annotated[float, Between(0, 1)]) -> None: ...


def locate(lat: Annotated[float, Brand("Latitude")]) -> None: ...


prover = Prover(registries)
facts = extract_facts(connect, registries)

print("=== 1. Facts ===")
for fact in facts:
    print(f"  {fact.variable}: {fact.predicate}")
for goal in ("port > 0", "port + weight >= 1", "weight < 1"):
    print(f"  {prover.try_prove(goal, facts)}")
print()


# ---------------------------------------------------------------------------
# 2. Custom brands and widening
# ---------------------------------------------------------------------------

print("=== 2. Custom brand ===")
lat_facts = extract_facts(locate, registries)
print(f"  {prover.try_prove('lat <= 90', lat_facts)}")
print(f"  Latitude widens to: {registries.get_widen_targets('Latitude')}")
print(f"  Vec<3> predicate:   {registries.get_refinement_predicate('Vec<3>')}")
print()


# ---------------------------------------------------------------------------
# 3. Fallback warnings
# ---------------------------------------------------------------------------

print("=== 3. Warnings ===")
configure(warn_on_fallback="warn")
cert = prover.try_prove("weight > 0", facts)
if not cert.proven:
    report_fallback(cert.goal, ["Positive"], registries)
print()


# ---------------------------------------------------------------------------
# 4. Non-linear goals with Z3
# ---------------------------------------------------------------------------

print("=== 4. Z3 plugin ===")
smt = Prover(registries, plugins=[Z3Plugin(timeout_ms=2_000)])
nonlinear = smt.try_prove("port * port >= port", facts)
print(f"  {nonlinear}")
if nonlinear.proven:
    report_fallback(nonlinear.goal, ["Port"], registries, used_plugin=True)
