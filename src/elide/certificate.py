"""Proof certificates — the immutable result of every proof attempt.

A certificate is returned whether or not the goal was proven. Builders return
new instances; nothing is ever mutated after construction::

    cert = create_certificate("x > 0", facts)
    cert = add_step(cert, create_step("bound_tightening", "...", "5 > 0", used))
    cert = succeed_certificate(cert, Method.LINEAR)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Sequence

from .types import Fact


class Method(Enum):
    """Which layer settled the goal."""

    CONSTANT = "constant"
    TYPE = "type"
    ALGEBRA = "algebra"
    LINEAR = "linear"
    PLUGIN = "plugin"


@dataclass(frozen=True)
class ProofStep:
    """One inference in a proof.

    Attributes:
        rule: Machine-readable rule name, e.g. ``"transitivity"``.
        description: What the step establishes.
        justification: The arithmetic or logical reason, one line.
        used_facts: Facts the step depends on.
        subgoals: Certificates of sub-proofs (e.g. each disjunct of a
            negated equality).
    """

    rule: str
    description: str
    justification: str = ""
    used_facts: tuple[Fact, ...] = ()
    subgoals: tuple["ProofCertificate", ...] = ()

    def to_json(self) -> dict[str, Any]:
        return {
            "rule": self.rule,
            "description": self.description,
            "justification": self.justification,
            "used_facts": [f.to_json() for f in self.used_facts],
            "subgoals": [c.to_json() for c in self.subgoals],
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "ProofStep":
        return cls(
            rule=data["rule"],
            description=data.get("description", ""),
            justification=data.get("justification", ""),
            used_facts=tuple(Fact.from_json(f) for f in data.get("used_facts", [])),
            subgoals=tuple(
                ProofCertificate.from_json(c) for c in data.get("subgoals", [])
            ),
        )


@dataclass(frozen=True)
class ProofCertificate:
    """Immutable record of a proof attempt.

    Attributes:
        goal: The predicate that was to be proven.
        assumptions: The facts that were available.
        proven: ``True`` iff the goal is guaranteed by the assumptions.
        method: The layer that proved it, or ``None`` when unproven.
        steps: Inference steps, in order. The last one is the conclusion.
        reason: Why the goal was not proven (empty when proven).
        time_ms: Wall-clock time of the attempt.
    """

    goal: str
    assumptions: tuple[Fact, ...] = ()
    proven: bool = False
    method: Method | None = None
    steps: tuple[ProofStep, ...] = ()
    reason: str = ""
    time_ms: float = field(default=0.0, compare=False)

    @property
    def step(self) -> ProofStep | None:
        """The concluding step, if any."""
        return self.steps[-1] if self.steps else None

    @property
    def used_facts(self) -> tuple[Fact, ...]:
        """Distinct facts referenced by any step, in first-use order."""
        seen: dict[Fact, None] = {}
        for s in self.steps:
            for f in s.used_facts:
                seen.setdefault(f, None)
        return tuple(seen)

    def __bool__(self) -> bool:
        return self.proven

    def __str__(self) -> str:
        if self.proven:
            method = self.method.value if self.method else "?"
            return f"[Q.E.D.] {self.goal} ({method})"
        out = f"[UNPROVEN] {self.goal}"
        if self.reason:
            out += f" ({self.reason})"
        return out

    def to_json(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict (see :meth:`from_json`)."""
        return {
            "goal": self.goal,
            "assumptions": [f.to_json() for f in self.assumptions],
            "proven": self.proven,
            "method": self.method.value if self.method else None,
            "steps": [s.to_json() for s in self.steps],
            "reason": self.reason,
            "time_ms": self.time_ms,
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "ProofCertificate":
        """Inverse of :meth:`to_json`.

        Raises:
            KeyError: If ``goal`` is missing.
            ValueError: If ``method`` is not a valid :class:`Method`.
        """
        method = data.get("method")
        return cls(
            goal=data["goal"],
            assumptions=tuple(Fact.from_json(f) for f in data.get("assumptions", [])),
            proven=bool(data.get("proven", False)),
            method=Method(method) if method is not None else None,
            steps=tuple(ProofStep.from_json(s) for s in data.get("steps", [])),
            reason=data.get("reason", ""),
            time_ms=float(data.get("time_ms", 0.0)),
        )


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def create_certificate(goal: str, assumptions: Iterable[Fact] = ()) -> ProofCertificate:
    """Start an unproven certificate for *goal*."""
    return ProofCertificate(goal=goal, assumptions=tuple(assumptions))


def create_step(
    rule: str,
    description: str,
    justification: str = "",
    used_facts: Sequence[Fact] = (),
    subgoals: Sequence[ProofCertificate] = (),
) -> ProofStep:
    return ProofStep(rule, description, justification, tuple(used_facts), tuple(subgoals))


def add_step(cert: ProofCertificate, step: ProofStep) -> ProofCertificate:
    return replace(cert, steps=cert.steps + (step,))


def succeed_certificate(
    cert: ProofCertificate,
    method: Method,
    step: ProofStep | None = None,
) -> ProofCertificate:
    """Mark *cert* proven by *method*, optionally appending a final step."""
    if step is not None:
        cert = add_step(cert, step)
    return replace(cert, proven=True, method=method, reason="")


def fail_certificate(cert: ProofCertificate, reason: str) -> ProofCertificate:
    return replace(cert, proven=False, method=None, reason=reason)


def format_certificate(cert: ProofCertificate, indent: int = 0) -> str:
    """Render a certificate as an indented, human-readable proof.

    Example output::

        Goal: x + y > 0
        Status: PROVEN (linear)
        Assumptions:
          - x > 0
          - y >= 0
        Steps:
          1. [sum_of_positive_and_non_negative] x + y > 0 from x > 0, y >= 0
             x > 0 and y >= 0 gives x + y > 0
    """
    pad = "  " * indent
    lines = [f"{pad}Goal: {cert.goal}"]
    if cert.proven:
        method = cert.method.value if cert.method else "?"
        lines.append(f"{pad}Status: PROVEN ({method})")
    else:
        status = f"{pad}Status: NOT PROVEN"
        if cert.reason:
            status += f" ({cert.reason})"
        lines.append(status)
    if cert.assumptions:
        lines.append(f"{pad}Assumptions:")
        for f in cert.assumptions:
            lines.append(f"{pad}  - {f.predicate}")
    if cert.steps:
        lines.append(f"{pad}Steps:")
        for i, s in enumerate(cert.steps, 1):
            lines.append(f"{pad}  {i}. [{s.rule}] {s.description}")
            if s.justification:
                lines.append(f"{pad}     {s.justification}")
            for sub in s.subgoals:
                lines.append(format_certificate(sub, indent + 3))
    if cert.time_ms:
        lines.append(f"{pad}Time: {cert.time_ms:.2f}ms")
    return "\n".join(lines)
