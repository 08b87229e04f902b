"""Basic elide usage — which runtime checks can be dropped?

Demonstrates:
  - Proving a goal from facts and reading the certificate
  - What an unproven goal looks like
  - Equality goals, proven one side at a time
  - The human-readable proof
"""

from __future__ import annotations

from elide import Fact, format_certificate, try_prove

# ---------------------------------------------------------------------------
# 1. A goal that follows from the facts
# ---------------------------------------------------------------------------

facts = [Fact("x", "x > 0"), Fact("y", "y >= 0")]
cert = try_prove("x + y > 0", facts)

print("=== 1. Proven ===")
print(f"Proven:     {cert.proven}")
print(f"Method:     {cert.method.value if cert.method else None}")
print(f"Rule:       {cert.step.rule if cert.step else None}")
print(f"Used facts: {[f.predicate for f in cert.used_facts]}")
print(f"Time:       {cert.time_ms:.2f}ms")
print(f"Summary:    {cert}")
print()


# ---------------------------------------------------------------------------
# 2. A goal the facts do not guarantee: keep the runtime check
# ---------------------------------------------------------------------------

cert2 = try_prove("x > 10", [Fact("x", "x > 5")])

print("=== 2. Not proven ===")
print(f"Proven: {cert2.proven}")
print(f"Reason: {cert2.reason}")
print()


# ---------------------------------------------------------------------------
# 3. Relational facts and elimination
# ---------------------------------------------------------------------------

chain = [Fact("x", "x - y <= 1"), Fact("y", "y - z <= 2")]
cert3 = try_prove("x - z <= 3", chain)

print("=== 3. Elimination ===")
print(format_certificate(cert3))
print()


# ---------------------------------------------------------------------------
# 4. Equality goals need both directions
# ---------------------------------------------------------------------------

cert4 = try_prove("x == 5", [Fact("x", "x >= 5 && x <= 5")])
cert5 = try_prove("x == 5", [Fact("x", "x >= 5")])

print("=== 4. Equality ===")
print(format_certificate(cert4))
print(cert5)
print()


# ---------------------------------------------------------------------------
# 5. Serialization
# ---------------------------------------------------------------------------

print("=== 5. JSON ===")
print(cert.to_json())
