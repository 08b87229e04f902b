"""Facts from ``typing.Annotated`` parameter hints.

A thin adapter between annotated Python signatures and the prover::

    def scale(port: Annotated[int, Brand("Port")], ratio: Annotated[float, Between(0, 1)]):
        ...

    extract_facts(scale)
    # [Fact("port", "port >= 1 && port <= 65535"),
    #  Fact("ratio", "ratio >= 0 && ratio <= 1")]
"""

from __future__ import annotations

from typing import Annotated, Any, Callable, get_args, get_origin, get_type_hints

from .registry import DEFAULT, Registries
from .types import BOUND_MARKERS, Brand, Fact


def facts_for(name: str, brand: str, registries: Registries | None = None) -> list[Fact]:
    """Instantiate *brand*'s predicate template for the value *name*.

    Returns an empty list for unknown brands.
    """
    registries = registries if registries is not None else DEFAULT
    template = registries.get_refinement_predicate(brand)
    if template is None:
        return []
    return [Fact(name, template.replace("$", name))]


def _markers(typ: Any) -> list[Any]:
    """Flatten nested ``Annotated`` metadata, innermost first."""
    if get_origin(typ) is not Annotated:
        return []
    args = get_args(typ)
    out = _markers(args[0])
    for marker in args[1:]:
        if get_origin(marker) is Annotated:
            out.extend(_markers(marker))
        else:
            out.append(marker)
    return out


def brands_from_annotation(typ: Any) -> list[str]:
    """Brand names attached to *typ*, in declaration order."""
    return [m.name for m in _markers(typ) if isinstance(m, Brand)]


def facts_from_annotation(
    name: str, typ: Any, registries: Registries | None = None
) -> list[Fact]:
    """Facts implied by the refinement markers on *typ* for the value *name*."""
    facts: list[Fact] = []
    for marker in _markers(typ):
        if isinstance(marker, Brand):
            facts.extend(facts_for(name, marker.name, registries))
        elif isinstance(marker, BOUND_MARKERS):
            facts.append(Fact(name, marker.predicate(name)))
    return facts


def extract_facts(
    func: Callable[..., Any], registries: Registries | None = None
) -> list[Fact]:
    """Collect facts from every annotated parameter of *func*.

    The return annotation is ignored: it is what a caller would want to
    prove, not something known.
    """
    try:
        hints = get_type_hints(func, include_extras=True)
    except (NameError, TypeError):
        hints = {}
    facts: list[Fact] = []
    for name, typ in hints.items():
        if name == "return":
            continue
        facts.extend(facts_from_annotation(name, typ, registries))
    return facts
