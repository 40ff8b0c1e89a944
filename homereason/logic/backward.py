"""Goal-directed proof search (backward chaining).

To prove a goal:

1. If the goal is already a fact, it holds directly.
2. Otherwise try each rule whose consequent unifies with the goal, in
   declaration order, proving its antecedents left to right with the
   bindings of earlier antecedents threaded into later ones. The first
   rule whose antecedents all hold proves the goal.
3. If neither works the goal is not satisfied. This is a normal result,
   not an error.

Antecedents whose variables are not fixed by the consequent (such as
``Temperature(?Room, ?T)`` under ``TurnOn(Heater)``) have several
solutions; the search backtracks over them when a later antecedent fails.

A rule is never re-entered while it is already on the current branch,
which makes mutually recursive rules fail finitely instead of looping.
A depth cap backs this up and raises instead of truncating silently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import AbstractSet, Iterator, Sequence

from homereason.errors import EngineInternalLimitExceeded, MalformedInput

from .comparisons import evaluate_builtin, is_builtin
from .fact_base import FactBase, FactOrigin
from .rule import RuleSet
from .terms import Literal, Substitution
from .unification import find_matches, match, unify_patterns

__all__ = [
    "BackwardChainer",
    "BackwardResult",
    "ProofStep",
]

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64


@dataclass
class ProofStep:
    """One node of a proof tree.

    Attributes:
        goal: The goal literal, instantiated as far as it was proven
        rule_used: Id of the rule that proved it, None for a direct fact
            or comparison (or when unsatisfied)
        satisfied_by: Ground literals that discharged the goal; empty if
            the goal was not satisfied
        children: Proof steps for each antecedent of the rule used
    """

    goal: Literal
    rule_used: str | None = None
    satisfied_by: list[Literal] = field(default_factory=list)
    children: list[ProofStep] = field(default_factory=list)

    @property
    def satisfied(self) -> bool:
        return bool(self.satisfied_by)

    def walk(self, depth: int = 0) -> Iterator[tuple[int, ProofStep]]:
        """Preorder traversal yielding (depth, step)."""
        yield depth, self
        for child in self.children:
            yield from child.walk(depth + 1)

    def render(self, indent: str = "  ") -> str:
        """Indented, human-readable proof tree."""
        lines = []
        for depth, step in self.walk():
            if not step.satisfied:
                how = "not satisfied"
            elif step.rule_used:
                how = f"by rule {step.rule_used}"
            else:
                how = "holds"
            lines.append(f"{indent * depth}{step.goal} ({how})")
        return "\n".join(lines)


@dataclass
class BackwardResult:
    """Outcome of a backward-chaining query.

    Attributes:
        goal: The queried goal
        provable: Whether a proof was found
        proof_tree: Root proof step (unsatisfied and childless if not provable)
    """

    goal: Literal
    provable: bool
    proof_tree: ProofStep

    @property
    def proof(self) -> list[tuple[int, ProofStep]]:
        """Proof tree flattened in preorder as (depth, step) pairs."""
        return list(self.proof_tree.walk())


class BackwardChainer:
    """Proves single goals against a fact base and rule set.

    Holds no per-query state; the visited set and depth travel as
    arguments through the recursion.
    """

    def __init__(self, rules: RuleSet, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        """Initialize the chainer.

        Args:
            rules: The shared, immutable rule set
            max_depth: Maximum sub-goal nesting before the search is
                reported as exceeding its limit
        """
        if max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        self.rules = rules
        self.max_depth = max_depth

    def prove(
        self,
        goal: Literal,
        facts: FactBase,
        visited: AbstractSet[str] = frozenset(),
    ) -> BackwardResult:
        """Prove a ground goal.

        Ground sub-goals proven through a rule are added to ``facts`` as
        derived facts.

        Args:
            goal: Ground goal literal
            facts: The request's fact base
            visited: Rule ids that may not be used (cycle guard seed)

        Returns:
            BackwardResult with the first proof found, if any

        Raises:
            MalformedInput: If the goal contains variables
            EngineInternalLimitExceeded: If the depth cap is exceeded
        """
        if not goal.is_ground():
            raise MalformedInput(f"Goal must be ground: {goal}")

        for _, step in self._solve(goal, {}, facts, frozenset(visited), 0):
            logger.debug(f"Proved {goal} (rule: {step.rule_used})")
            return BackwardResult(goal=goal, provable=True, proof_tree=step)

        logger.debug(f"Could not prove {goal}")
        return BackwardResult(goal=goal, provable=False, proof_tree=ProofStep(goal))

    def _solve(
        self,
        goal: Literal,
        bindings: Substitution,
        facts: FactBase,
        visited: frozenset[str],
        depth: int,
    ) -> Iterator[tuple[Substitution, ProofStep]]:
        """Yield every distinct way to satisfy ``goal`` under ``bindings``.

        Ground goals yield at most once.

        Yields:
            (extended_bindings, proof_step) pairs
        """
        if depth > self.max_depth:
            logger.warning(f"Backward chaining hit the depth cap ({self.max_depth})")
            raise EngineInternalLimitExceeded(
                "backward",
                self.max_depth,
                f"sub-goal {goal.substitute(bindings)} is nested deeper than {self.max_depth}",
            )

        current = goal.substitute(bindings)

        if is_builtin(current):
            if current.is_ground() and evaluate_builtin(current):
                yield bindings, ProofStep(current, satisfied_by=[current])
            return

        ground = current.is_ground()
        if ground and facts.contains(current):
            yield bindings, ProofStep(current, satisfied_by=[current])
            return

        seen: set[str] = set()

        for extended, fact in find_matches(goal, facts, bindings):
            seen.add(fact.literal.key)
            yield extended, ProofStep(fact.literal, satisfied_by=[fact.literal])

        for rule in self.rules.rules_for(current.predicate):
            if rule.id in visited:
                logger.debug(f"Skipping rule {rule.id} for {current}: already on this branch")
                continue

            head_bindings = unify_patterns(rule.consequent, current)
            if head_bindings is None:
                continue

            for body_bindings, children in self._solve_all(
                rule.antecedents, head_bindings, facts, visited | {rule.id}, depth + 1
            ):
                derived = rule.consequent.substitute(body_bindings)
                extended = match(goal, derived, bindings)
                if extended is None or derived.key in seen:
                    continue
                seen.add(derived.key)

                facts.add(derived, FactOrigin.DERIVED, rule.id)
                step = ProofStep(
                    goal=derived,
                    rule_used=rule.id,
                    satisfied_by=[child.goal for child in children],
                    children=children,
                )
                yield extended, step

                if ground:
                    return

    def _solve_all(
        self,
        body: Sequence[Literal],
        bindings: Substitution,
        facts: FactBase,
        visited: frozenset[str],
        depth: int,
    ) -> Iterator[tuple[Substitution, list[ProofStep]]]:
        """Prove a conjunction left to right, backtracking on failure."""
        if not body:
            yield bindings, []
            return

        first, rest = body[0], body[1:]
        for extended, step in self._solve(first, bindings, facts, visited, depth):
            for final, steps in self._solve_all(rest, extended, facts, visited, depth):
                yield final, [step] + steps
