"""elide — prove refinement predicates so runtime checks can be dropped.

Give it what is known and what is wanted; get back a proof certificate.

    from elide import Fact, try_prove

    cert = try_prove("x + y > 0", [Fact("x", "x > 0"), Fact("y", "y >= 0")])
    assert cert.proven            # the runtime check can be elided
    print(cert.method)            # Method.LINEAR

Facts from annotated signatures:

    from typing import Annotated
    from elide import Brand, extract_facts

    def send(port: Annotated[int, Brand("Port")]) -> None: ...

    try_prove("port > 0", extract_facts(send)).proven   # True

External solver (Z3) as the last layer:

    from elide import register_prover_plugin
    from elide.z3_plugin import Z3Plugin

    register_prover_plugin(Z3Plugin())
"""

from __future__ import annotations

__version__ = "0.1.0"

from .algebra import AlgebraicRule
from .certificate import (
    Method,
    ProofCertificate,
    ProofStep,
    add_step,
    create_certificate,
    create_step,
    fail_certificate,
    format_certificate,
    succeed_certificate,
)
from .elimination import decide
from .engine import (
    Prover,
    ProverPlugin,
    clear_prover_plugins,
    configure,
    emit_decidability_warning,
    register_prover_plugin,
    report_fallback,
    try_prove,
    try_prove_async,
)
from .facts import extract_facts, facts_for, facts_from_annotation
from .normalizer import Shape, parse, split_facts
from .patterns import try_simple
from .registry import (
    Registries,
    all_decidability_info,
    all_subtyping_rules,
    can_widen,
    get_decidability,
    get_preferred_strategy,
    get_refinement_predicate,
    get_subtyping_rule,
    get_widen_targets,
    is_compile_time_decidable,
    register_algebraic_rule,
    register_builtins,
    register_decidability,
    register_dynamic_predicate_generator,
    register_refinement_predicate,
    register_subtyping_rule,
    requires_runtime_check,
)
from .translator import TranslationError
from .types import (
    Between,
    Brand,
    Byte,
    Decidability,
    DecidabilityInfo,
    Fact,
    Ge,
    Gt,
    Le,
    LinearConstraint,
    Lt,
    NonNegative,
    NotEq,
    Op,
    Percentage,
    Port,
    Positive,
    Strategy,
    SubtypingRule,
)

__all__ = [
    # Proving
    "try_prove",
    "try_prove_async",
    "Prover",
    "configure",
    # Layers
    "try_simple",
    "decide",
    "parse",
    "split_facts",
    "Shape",
    # Certificates
    "ProofCertificate",
    "ProofStep",
    "Method",
    "create_certificate",
    "create_step",
    "add_step",
    "succeed_certificate",
    "fail_certificate",
    "format_certificate",
    # Plugins
    "ProverPlugin",
    "register_prover_plugin",
    "clear_prover_plugins",
    # Diagnostics
    "emit_decidability_warning",
    "report_fallback",
    # Registries
    "Registries",
    "register_builtins",
    "register_refinement_predicate",
    "get_refinement_predicate",
    "register_dynamic_predicate_generator",
    "register_subtyping_rule",
    "get_subtyping_rule",
    "can_widen",
    "get_widen_targets",
    "all_subtyping_rules",
    "register_decidability",
    "get_decidability",
    "get_preferred_strategy",
    "is_compile_time_decidable",
    "requires_runtime_check",
    "all_decidability_info",
    "register_algebraic_rule",
    "AlgebraicRule",
    # Data model
    "Fact",
    "LinearConstraint",
    "Op",
    "SubtypingRule",
    "Decidability",
    "DecidabilityInfo",
    "Strategy",
    # Fact extraction
    "extract_facts",
    "facts_for",
    "facts_from_annotation",
    # Refinement markers
    "Brand",
    "Gt",
    "Ge",
    "Lt",
    "Le",
    "Between",
    "NotEq",
    # Convenience aliases
    "Positive",
    "NonNegative",
    "Byte",
    "Port",
    "Percentage",
    # Errors
    "TranslationError",
    # Metadata
    "__version__",
]
