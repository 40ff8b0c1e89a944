"""Rule-based inference over ground facts.

This package provides a small production-rule engine with two modes:

- Forward chaining: derive every consequence of the current facts,
  including recommended actions, with a trace of each rule firing
- Backward chaining: prove or disprove one goal and explain the proof

Example usage:
    from homereason.logic import (
        BackwardChainer,
        FactBase,
        ForwardChainer,
        KBLoader,
        parse_literal,
    )

    rules = KBLoader.load_modules(["smart_home"])
    facts = FactBase([parse_literal("Temperature(Bedroom,15.0)")])

    result = ForwardChainer(rules).run(facts)
    print(result.actions)          # [TurnOn(Heater)]

    answer = BackwardChainer(rules).prove(parse_literal("TurnOn(Heater)"), facts)
    print(answer.provable)         # True
"""

from .terms import (
    Constant,
    Variable,
    Term,
    Literal,
    Substitution,
    format_bindings,
    parse_literal,
    render_value,
)
from .comparisons import (
    BUILTINS,
    is_builtin,
    evaluate_builtin,
)
from .fact_base import (
    FactOrigin,
    Fact,
    FactBase,
)
from .unification import (
    match,
    find_matches,
    unify_patterns,
    join,
)
from .rule import (
    Rule,
    RuleSet,
)
from .forward import (
    ForwardChainer,
    ForwardResult,
    Firing,
)
from .backward import (
    BackwardChainer,
    BackwardResult,
    ProofStep,
)
from .kb_loader import (
    KBLoader,
    KB_DIR,
)

__all__ = [
    # Terms
    "Constant",
    "Variable",
    "Term",
    "Literal",
    "Substitution",
    "format_bindings",
    "parse_literal",
    "render_value",
    # Comparisons
    "BUILTINS",
    "is_builtin",
    "evaluate_builtin",
    # Fact storage
    "FactOrigin",
    "Fact",
    "FactBase",
    # Unification
    "match",
    "find_matches",
    "unify_patterns",
    "join",
    # Rules
    "Rule",
    "RuleSet",
    # Engines
    "ForwardChainer",
    "ForwardResult",
    "Firing",
    "BackwardChainer",
    "BackwardResult",
    "ProofStep",
    # Rule modules
    "KBLoader",
    "KB_DIR",
]
