"""Variable binding and matching against ground facts.

There are no function symbols, so matching a rule pattern against a
ground fact only needs a flat dictionary of bindings. Every variable that
occurs more than once, within one literal or across the antecedents of a
rule, must bind to the same constant.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator, Sequence

from .comparisons import evaluate_builtin, is_builtin
from .terms import Constant, Literal, Substitution, Variable

if TYPE_CHECKING:
    from .fact_base import Fact, FactBase

__all__ = [
    "match",
    "find_matches",
    "unify_patterns",
    "join",
]


def match(
    pattern: Literal,
    fact: Literal,
    bindings: Substitution | None = None,
) -> Substitution | None:
    """Try to match a pattern literal against a ground literal.

    Extends the given bindings if matching succeeds. Returns None on a
    predicate mismatch, an arity mismatch, or a binding conflict. The
    input bindings are never modified.

    Args:
        pattern: Literal that may contain variables
        fact: Ground literal
        bindings: Existing variable bindings

    Returns:
        Extended bindings if matching succeeds, None otherwise
    """
    if pattern.predicate != fact.predicate:
        return None
    if pattern.arity != fact.arity:
        return None

    new_bindings = dict(bindings) if bindings else {}

    for pattern_arg, fact_arg in zip(pattern.args, fact.args):
        if isinstance(pattern_arg, Variable):
            bound = new_bindings.get(pattern_arg.name)
            if bound is None:
                new_bindings[pattern_arg.name] = fact_arg
            elif bound != fact_arg:
                return None
        elif pattern_arg != fact_arg:
            return None

    return new_bindings


def find_matches(
    pattern: Literal,
    fact_base: "FactBase",
    bindings: Substitution | None = None,
) -> Iterator[tuple[Substitution, "Fact"]]:
    """Find every way to match a pattern against the fact base.

    Only the bucket of facts sharing the pattern's predicate is scanned.

    Yields:
        (extended_bindings, matched_fact) pairs in insertion order
    """
    for fact in fact_base.by_predicate(pattern.predicate):
        extended = match(pattern, fact.literal, bindings)
        if extended is not None:
            yield extended, fact


def unify_patterns(head: Literal, goal: Literal) -> Substitution | None:
    """Check whether a rule head can produce a (possibly partial) goal.

    Constant positions of the goal constrain the head: a head constant
    must be equal, a head variable gets bound. Variable positions of the
    goal are left open and checked once the head is instantiated.

    Returns:
        Bindings for the head's variables, or None if they cannot unify
    """
    if head.predicate != goal.predicate or head.arity != goal.arity:
        return None

    bindings: Substitution = {}
    for head_arg, goal_arg in zip(head.args, goal.args):
        if not isinstance(goal_arg, Constant):
            continue
        if isinstance(head_arg, Variable):
            bound = bindings.get(head_arg.name)
            if bound is None:
                bindings[head_arg.name] = goal_arg
            elif bound != goal_arg:
                return None
        elif head_arg != goal_arg:
            return None

    return bindings


def join(
    body: Sequence[Literal],
    fact_base: "FactBase",
    bindings: Substitution | None = None,
) -> Iterator[tuple[Substitution, list[Literal]]]:
    """Left-to-right backtracking join of a conjunction against facts.

    Matches the first literal, then extends each resulting binding by
    matching the next literal under it, and so on. Built-in comparisons
    are evaluated under the current bindings instead of being matched.

    Args:
        body: Antecedent literals, in order
        fact_base: Facts to match against
        bindings: Initial bindings

    Yields:
        (final_bindings, ground_antecedents) for each solution
    """
    bindings = bindings or {}

    if not body:
        yield bindings, []
        return

    first, rest = body[0], body[1:]

    if is_builtin(first):
        ground = first.substitute(bindings)
        if ground.is_ground() and evaluate_builtin(ground):
            for final, closed in join(rest, fact_base, bindings):
                yield final, [ground] + closed
        return

    for extended, fact in find_matches(first, fact_base, bindings):
        for final, closed in join(rest, fact_base, extended):
            yield final, [fact.literal] + closed
