"""Brand registries — predicate templates, widening rules, decidability.

A :class:`Registries` instance is pure data. The prover receives one
explicitly; the module-level functions below operate on :data:`DEFAULT`,
which is seeded with the built-in brands at import::

    from elide import register_refinement_predicate, get_refinement_predicate

    register_refinement_predicate("Latitude", "$ >= -90 && $ <= 90")
    get_refinement_predicate("Latitude")   # "$ >= -90 && $ <= 90"

Templates use ``$`` as the placeholder for the refined value. Every mutation
is a single dict insert or list append; the last registration for a key wins.
"""

from __future__ import annotations

import re
from typing import Callable

from .algebra import BUILTIN_RULES, AlgebraicRule
from .types import (
    Decidability,
    DecidabilityInfo,
    Strategy,
    SubtypingRule,
)

Generator = Callable[[re.Match[str]], str]


class Registries:
    """All brand knowledge the prover consults."""

    def __init__(self) -> None:
        self.predicates: dict[str, str] = {}
        self.generators: list[tuple[re.Pattern[str], Generator]] = []
        self.subtyping: dict[tuple[str, str], SubtypingRule] = {}
        self.decidability: dict[str, DecidabilityInfo] = {}
        self.algebraic_rules: list[AlgebraicRule] = list(BUILTIN_RULES)

    # -- predicates ---------------------------------------------------------

    def register_refinement_predicate(self, brand: str, template: str) -> None:
        self.predicates[brand] = template

    def register_dynamic_predicate_generator(
        self, pattern: str | re.Pattern[str], generate: Generator
    ) -> None:
        """Add a generator for parameterized brands such as ``Vec<3>``.

        Args:
            pattern: Regex matched against the brand name.
            generate: Called with the match; returns the predicate template.
        """
        self.generators.append((re.compile(pattern), generate))

    def get_refinement_predicate(self, brand: str) -> str | None:
        """Static templates first, then dynamic generators in registration order."""
        template = self.predicates.get(brand)
        if template is not None:
            return template
        for pattern, generate in self.generators:
            m = pattern.match(brand)
            if m is not None:
                return generate(m)
        return None

    # -- subtyping ----------------------------------------------------------

    def register_subtyping_rule(self, rule: SubtypingRule) -> None:
        self.subtyping[(rule.from_brand, rule.to_brand)] = rule

    def get_subtyping_rule(self, from_brand: str, to_brand: str) -> SubtypingRule | None:
        return self.subtyping.get((from_brand, to_brand))

    def can_widen(self, from_brand: str, to_brand: str) -> bool:
        """``True`` for the identity widening or a registered rule."""
        return from_brand == to_brand or (from_brand, to_brand) in self.subtyping

    def get_widen_targets(self, from_brand: str) -> list[str]:
        return [to for (src, to) in self.subtyping if src == from_brand]

    def all_subtyping_rules(self) -> list[SubtypingRule]:
        return list(self.subtyping.values())

    # -- decidability -------------------------------------------------------

    def register_decidability(self, info: DecidabilityInfo) -> None:
        self.decidability[info.brand] = info

    def get_decidability(self, brand: str) -> DecidabilityInfo | None:
        return self.decidability.get(brand)

    def get_preferred_strategy(self, brand: str) -> Strategy:
        info = self.decidability.get(brand)
        return info.preferred_strategy if info else Strategy.ALGEBRA

    def is_compile_time_decidable(self, brand: str) -> bool:
        """Unregistered brands are assumed decidable."""
        info = self.decidability.get(brand)
        return info.decidability.provable_statically if info else True

    def requires_runtime_check(self, brand: str) -> bool:
        info = self.decidability.get(brand)
        return info is not None and not info.decidability.provable_statically

    def all_decidability_info(self) -> list[DecidabilityInfo]:
        return list(self.decidability.values())

    # -- algebra ------------------------------------------------------------

    def register_algebraic_rule(self, rule: AlgebraicRule) -> None:
        self.algebraic_rules.append(rule)


# ---------------------------------------------------------------------------
# Built-in brands
# ---------------------------------------------------------------------------

_C = Decidability.COMPILE_TIME
_D = Decidability.DECIDABLE
_R = Decidability.RUNTIME

# brand: (template, decidability, preferred strategy)
BUILTIN_BRANDS: dict[str, tuple[str, Decidability, Strategy]] = {
    "Positive": ("$ > 0", _C, Strategy.ALGEBRA),
    "NonNegative": ("$ >= 0", _C, Strategy.ALGEBRA),
    "Negative": ("$ < 0", _C, Strategy.ALGEBRA),
    "Int": ("$ == int($)", _D, Strategy.CONSTANT),
    "Byte": ("$ >= 0 && $ <= 255", _C, Strategy.LINEAR),
    "Port": ("$ >= 1 && $ <= 65535", _C, Strategy.LINEAR),
    "Percentage": ("$ >= 0 && $ <= 100", _C, Strategy.LINEAR),
    "Finite": ("math.isfinite($)", _D, Strategy.CONSTANT),
    "NonEmpty": ("len($) > 0", _C, Strategy.CONSTANT),
    "Trimmed": ("$ == $.strip()", _R, Strategy.CONSTANT),
    "Lowercase": ("$ == $.lower()", _R, Strategy.CONSTANT),
    "Uppercase": ("$ == $.upper()", _R, Strategy.CONSTANT),
    "Email": (r"re.fullmatch(r'[^\s@]+@[^\s@]+\.[^\s@]+', $)", _R, Strategy.CONSTANT),
    "Url": ("$.startswith(('http://', 'https://'))", _R, Strategy.CONSTANT),
    "Uuid": (
        r"re.fullmatch(r'[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-"
        r"[0-9a-fA-F]{4}-[0-9a-fA-F]{12}', $)",
        _R,
        Strategy.CONSTANT,
    ),
    "NonEmptyArray": ("len($) > 0", _C, Strategy.CONSTANT),
}

BUILTIN_SUBTYPING: tuple[SubtypingRule, ...] = (
    SubtypingRule("Positive", "NonNegative", "positive_implies_non_negative",
                  "x > 0 implies x >= 0"),
    SubtypingRule("Byte", "NonNegative", "byte_lower_bound",
                  "0 <= x <= 255 implies x >= 0"),
    SubtypingRule("Byte", "Int", "byte_is_integer", "bytes are integers"),
    SubtypingRule("Port", "Positive", "port_is_positive",
                  "1 <= x <= 65535 implies x > 0"),
    SubtypingRule("Port", "NonNegative", "port_is_non_negative",
                  "1 <= x <= 65535 implies x >= 0"),
    SubtypingRule("Port", "Int", "port_is_integer", "ports are integers"),
    SubtypingRule("Percentage", "NonNegative", "percentage_lower_bound",
                  "0 <= x <= 100 implies x >= 0"),
    SubtypingRule("Positive", "Finite", "positive_is_finite",
                  "refined positive numbers are finite"),
    SubtypingRule("NonNegative", "Finite", "non_negative_is_finite",
                  "refined non-negative numbers are finite"),
    SubtypingRule("Negative", "Finite", "negative_is_finite",
                  "refined negative numbers are finite"),
)

VEC_PATTERN = r"^Vec<(\d+)>$"


def _vec_predicate(m: re.Match[str]) -> str:
    return f"len($) == {m.group(1)}"


def register_builtins(registries: Registries) -> Registries:
    """Seed *registries* with the built-in brands, rules and generators."""
    for brand, (template, decidability, strategy) in BUILTIN_BRANDS.items():
        registries.register_refinement_predicate(brand, template)
        registries.register_decidability(DecidabilityInfo(brand, decidability, strategy))
    for rule in BUILTIN_SUBTYPING:
        registries.register_subtyping_rule(rule)
    registries.register_dynamic_predicate_generator(VEC_PATTERN, _vec_predicate)
    return registries


DEFAULT = register_builtins(Registries())


# ---------------------------------------------------------------------------
# Module-level API on the default registries
# ---------------------------------------------------------------------------

def register_refinement_predicate(brand: str, template: str) -> None:
    DEFAULT.register_refinement_predicate(brand, template)


def get_refinement_predicate(brand: str) -> str | None:
    return DEFAULT.get_refinement_predicate(brand)


def register_dynamic_predicate_generator(
    pattern: str | re.Pattern[str], generate: Generator
) -> None:
    DEFAULT.register_dynamic_predicate_generator(pattern, generate)


def register_subtyping_rule(rule: SubtypingRule) -> None:
    DEFAULT.register_subtyping_rule(rule)


def get_subtyping_rule(from_brand: str, to_brand: str) -> SubtypingRule | None:
    return DEFAULT.get_subtyping_rule(from_brand, to_brand)


def can_widen(from_brand: str, to_brand: str) -> bool:
    return DEFAULT.can_widen(from_brand, to_brand)


def get_widen_targets(from_brand: str) -> list[str]:
    return DEFAULT.get_widen_targets(from_brand)


def all_subtyping_rules() -> list[SubtypingRule]:
    return DEFAULT.all_subtyping_rules()


def register_decidability(info: DecidabilityInfo) -> None:
    DEFAULT.register_decidability(info)


def get_decidability(brand: str) -> DecidabilityInfo | None:
    return DEFAULT.get_decidability(brand)


def get_preferred_strategy(brand: str) -> Strategy:
    return DEFAULT.get_preferred_strategy(brand)


def is_compile_time_decidable(brand: str) -> bool:
    return DEFAULT.is_compile_time_decidable(brand)


def requires_runtime_check(brand: str) -> bool:
    return DEFAULT.requires_runtime_check(brand)


def all_decidability_info() -> list[DecidabilityInfo]:
    return DEFAULT.all_decidability_info()


def register_algebraic_rule(rule: AlgebraicRule) -> None:
    DEFAULT.register_algebraic_rule(rule)
