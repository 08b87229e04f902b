"""Core value types for elide, plus refinement markers for ``typing.Annotated``.

Facts, linear constraints, subtyping rules and decidability metadata are all
immutable value objects: every transformation returns a new instance.

Refinement markers
------------------
``Brand("Positive")``  — look the predicate up in the brand registry
``Gt(0)``, ``Ge(0)``, ``Lt(1)``, ``Le(1)``, ``Between(0, 255)``, ``NotEq(0)``
— inline bounds, rendered as predicate text on the annotated name::

    port: Annotated[int, Brand("Port")]
    ratio: Annotated[float, Between(0, 1)]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from typing import Annotated, Any, Mapping


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------

def to_number(value: int | float | str | Fraction) -> Fraction:
    """Convert a literal (``"1e-3"``, ``2``, ``0.5``) to an exact ``Fraction``."""
    if isinstance(value, Fraction):
        return value
    if isinstance(value, float):
        return Fraction(str(value))
    return Fraction(value)


def format_number(value: Fraction | int | float) -> str:
    """Render a number the way a person would write it in a predicate."""
    value = to_number(value)
    if value.denominator == 1:
        return str(value.numerator)
    return repr(float(value))


# ---------------------------------------------------------------------------
# Comparison operators
# ---------------------------------------------------------------------------

class Op(Enum):
    """Comparison operator of a linear constraint."""

    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    EQ = "=="

    @classmethod
    def from_text(cls, text: str) -> "Op":
        """Parse ``<``, ``<=``, ``>``, ``>=``, ``==`` or ``===``."""
        if text == "===":
            return cls.EQ
        return cls(text)

    @property
    def is_strict(self) -> bool:
        return self in (Op.LT, Op.GT)

    @property
    def is_lower(self) -> bool:
        """``True`` for ``>`` and ``>=`` (the left side is bounded below)."""
        return self in (Op.GT, Op.GE)

    def flipped(self) -> "Op":
        """Operator after swapping both sides (``a < b`` → ``b > a``)."""
        return _FLIPPED[self]

    def negated(self) -> "Op":
        """Operator of the logical negation. Undefined for ``==``."""
        if self is Op.EQ:
            raise ValueError("'==' has no single-operator negation")
        return _NEGATED[self]

    def holds(self, lhs: Fraction | int, rhs: Fraction | int) -> bool:
        """Evaluate ``lhs <op> rhs`` on concrete numbers."""
        if self is Op.LT:
            return lhs < rhs
        if self is Op.LE:
            return lhs <= rhs
        if self is Op.GT:
            return lhs > rhs
        if self is Op.GE:
            return lhs >= rhs
        return lhs == rhs

    def __str__(self) -> str:
        return self.value


_FLIPPED = {Op.LT: Op.GT, Op.LE: Op.GE, Op.GT: Op.LT, Op.GE: Op.LE, Op.EQ: Op.EQ}
_NEGATED = {Op.LT: Op.GE, Op.LE: Op.GT, Op.GT: Op.LE, Op.GE: Op.LT}


# ---------------------------------------------------------------------------
# Facts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Fact:
    """Something known to be true about a named value.

    Attributes:
        variable: The value the fact is about.
        predicate: Normalized boolean text, e.g. ``"x >= 0 && x <= 255"``.
    """

    variable: str
    predicate: str

    def __str__(self) -> str:
        return self.predicate

    def to_json(self) -> dict[str, str]:
        return {"variable": self.variable, "predicate": self.predicate}

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "Fact":
        return cls(variable=data["variable"], predicate=data["predicate"])


# ---------------------------------------------------------------------------
# Linear constraints
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LinearConstraint:
    """``sum(coefficients[v] * v) <op> constant``.

    Zero coefficients are dropped on construction, so a constraint with an
    empty ``coefficients`` map is ground (``0 <op> constant``).

    Attributes:
        coefficients: Sparse map from variable name to coefficient.
        op: The comparison operator.
        constant: Right-hand side.
        provenance: Human-readable origin, carried through negation and
            elimination so a contradiction can be traced back to its inputs.
    """

    coefficients: Mapping[str, Fraction]
    op: Op
    constant: Fraction
    provenance: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        coeffs = {
            var: to_number(c) for var, c in self.coefficients.items() if c != 0
        }
        object.__setattr__(self, "coefficients", coeffs)
        object.__setattr__(self, "constant", to_number(self.constant))

    @property
    def variables(self) -> tuple[str, ...]:
        return tuple(self.coefficients)

    @property
    def is_ground(self) -> bool:
        return not self.coefficients

    @property
    def key(self) -> tuple[Any, ...]:
        """Hashable identity ignoring provenance."""
        return (tuple(sorted(self.coefficients.items())), self.op, self.constant)

    def coefficient(self, variable: str) -> Fraction:
        return self.coefficients.get(variable, Fraction(0))

    def evaluate(self, assignment: Mapping[str, int | float | Fraction]) -> bool:
        """Check the constraint under a concrete assignment.

        Raises:
            KeyError: If a variable of the constraint is not assigned.
        """
        lhs = sum(
            (c * to_number(assignment[v]) for v, c in self.coefficients.items()),
            Fraction(0),
        )
        return self.op.holds(lhs, self.constant)

    def is_trivially_true(self) -> bool:
        return self.is_ground and self.op.holds(Fraction(0), self.constant)

    def is_trivially_false(self) -> bool:
        return self.is_ground and not self.op.holds(Fraction(0), self.constant)

    def negate(self) -> tuple["LinearConstraint", ...]:
        """Return the negation as a disjunction of constraints.

        Inequalities negate to a single constraint. ``==`` negates to the two
        disjuncts ``<`` and ``>``; a refutation must close both.
        """
        origin = f"not ({self.provenance or self})"
        if self.op is Op.EQ:
            return (
                LinearConstraint(self.coefficients, Op.LT, self.constant, origin),
                LinearConstraint(self.coefficients, Op.GT, self.constant, origin),
            )
        return (
            LinearConstraint(self.coefficients, self.op.negated(), self.constant, origin),
        )

    def scaled(self, factor: Fraction) -> "LinearConstraint":
        """Multiply both sides by a positive factor."""
        if factor <= 0:
            raise ValueError("scale factor must be positive")
        return LinearConstraint(
            {v: c * factor for v, c in self.coefficients.items()},
            self.op,
            self.constant * factor,
            self.provenance,
        )

    def __str__(self) -> str:
        terms: list[str] = []
        for var, coeff in self.coefficients.items():
            magnitude = abs(coeff)
            term = var if magnitude == 1 else f"{format_number(magnitude)}*{var}"
            if not terms:
                terms.append(term if coeff > 0 else f"-{term}")
            else:
                terms.append(f"+ {term}" if coeff > 0 else f"- {term}")
        lhs = " ".join(terms) if terms else "0"
        return f"{lhs} {self.op} {format_number(self.constant)}"


# ---------------------------------------------------------------------------
# Registry records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SubtypingRule:
    """Every value of ``from_brand`` also satisfies ``to_brand``.

    Attributes:
        from_brand: Source brand, e.g. ``"Positive"``.
        to_brand: Target brand, e.g. ``"NonNegative"``.
        proof: Name of the rule that justifies the widening.
        justification: Human-readable reason, e.g. ``"x > 0 implies x >= 0"``.
    """

    from_brand: str
    to_brand: str
    proof: str
    justification: str


class Decidability(Enum):
    """How a brand's predicate can be settled."""

    COMPILE_TIME = "compile-time"
    DECIDABLE = "decidable"
    RUNTIME = "runtime"
    UNDECIDABLE = "undecidable"

    @property
    def provable_statically(self) -> bool:
        return self in (Decidability.COMPILE_TIME, Decidability.DECIDABLE)


class Strategy(Enum):
    """Preferred proof strategy for a brand."""

    CONSTANT = "constant"
    TYPE = "type"
    ALGEBRA = "algebra"
    LINEAR = "linear"
    Z3 = "z3"


@dataclass(frozen=True)
class DecidabilityInfo:
    """Decidability metadata for one brand."""

    brand: str
    decidability: Decidability
    preferred_strategy: Strategy


# ---------------------------------------------------------------------------
# Refinement markers for typing.Annotated
# ---------------------------------------------------------------------------

class Brand:
    """Named refinement looked up in the predicate registry.

    Example::

        port: Annotated[int, Brand("Port")]   # port >= 1 && port <= 65535
    """

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"Brand({self.name!r})"


class Gt:
    """Strictly greater than a bound."""

    __slots__ = ("bound",)

    def __init__(self, bound: int | float) -> None:
        self.bound = bound

    def predicate(self, name: str) -> str:
        return f"{name} > {self.bound}"

    def __repr__(self) -> str:
        return f"Gt({self.bound})"


class Ge:
    """Greater than or equal to a bound."""

    __slots__ = ("bound",)

    def __init__(self, bound: int | float) -> None:
        self.bound = bound

    def predicate(self, name: str) -> str:
        return f"{name} >= {self.bound}"

    def __repr__(self) -> str:
        return f"Ge({self.bound})"


class Lt:
    """Strictly less than a bound."""

    __slots__ = ("bound",)

    def __init__(self, bound: int | float) -> None:
        self.bound = bound

    def predicate(self, name: str) -> str:
        return f"{name} < {self.bound}"

    def __repr__(self) -> str:
        return f"Lt({self.bound})"


class Le:
    """Less than or equal to a bound."""

    __slots__ = ("bound",)

    def __init__(self, bound: int | float) -> None:
        self.bound = bound

    def predicate(self, name: str) -> str:
        return f"{name} <= {self.bound}"

    def __repr__(self) -> str:
        return f"Le({self.bound})"


class Between:
    """Inclusive range [lo, hi], rendered as a compound fact."""

    __slots__ = ("lo", "hi")

    def __init__(self, lo: int | float, hi: int | float) -> None:
        self.lo = lo
        self.hi = hi

    def predicate(self, name: str) -> str:
        return f"{name} >= {self.lo} && {name} <= {self.hi}"

    def __repr__(self) -> str:
        return f"Between({self.lo}, {self.hi})"


class NotEq:
    """Not equal to a value.

    ``!=`` is not a linear constraint, so the resulting fact is carried along
    but never used by the built-in layers.
    """

    __slots__ = ("val",)

    def __init__(self, val: int | float) -> None:
        self.val = val

    def predicate(self, name: str) -> str:
        return f"{name} != {self.val}"

    def __repr__(self) -> str:
        return f"NotEq({self.val})"


BOUND_MARKERS = (Gt, Ge, Lt, Le, Between, NotEq)


# ---------------------------------------------------------------------------
# Convenience type aliases
# ---------------------------------------------------------------------------

#: ``float`` that is strictly greater than zero.
Positive = Annotated[float, Brand("Positive")]

#: ``float`` that is greater than or equal to zero.
NonNegative = Annotated[float, Brand("NonNegative")]

#: ``int`` in ``[0, 255]``.
Byte = Annotated[int, Brand("Byte")]

#: ``int`` in ``[1, 65535]``.
Port = Annotated[int, Brand("Port")]

#: ``float`` in ``[0, 100]``.
Percentage = Annotated[float, Brand("Percentage")]
