"""elide test configuration."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from elide.types import Fact


@pytest.fixture(autouse=True)
def _clean_state() -> Iterator[None]:
    """Restore global config, default plugins and default registries per test."""
    from elide import engine
    from elide.registry import DEFAULT

    old_config = dict(engine._config)
    old_plugins = list(engine._default.plugins)
    snapshot = (
        dict(DEFAULT.predicates),
        list(DEFAULT.generators),
        dict(DEFAULT.subtyping),
        dict(DEFAULT.decidability),
        list(DEFAULT.algebraic_rules),
    )
    yield
    engine._config.clear()
    engine._config.update(old_config)
    engine._default.plugins[:] = old_plugins
    (
        DEFAULT.predicates,
        DEFAULT.generators,
        DEFAULT.subtyping,
        DEFAULT.decidability,
        DEFAULT.algebraic_rules,
    ) = snapshot


def facts(*predicates: str) -> list[Fact]:
    """Build facts whose variable is the first identifier of each predicate."""
    out = []
    for p in predicates:
        name = p.strip().split()[0].lstrip("-")
        out.append(Fact(name, p))
    return out
