"""Forward-chaining inference to a fixpoint.

Each pass walks the rule set in declaration order. For every rule, all
consistent bindings of its antecedents are found with a backtracking join
and the consequent is instantiated under each one. New ground literals are
added to the fact base and recorded in the trace. Passes repeat until one
adds nothing.

Rule application is monotone, so the final fact base is the unique least
fixpoint and does not depend on rule order; only the trace narrative does.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from homereason.errors import EngineInternalLimitExceeded

from .fact_base import FactBase, FactOrigin
from .rule import Rule, RuleSet
from .terms import Literal, Substitution, format_bindings
from .unification import join

__all__ = [
    "ForwardChainer",
    "ForwardResult",
    "Firing",
]

logger = logging.getLogger(__name__)

DEFAULT_MAX_PASSES = 100


@dataclass(frozen=True)
class Firing:
    """One rule application that produced a new literal.

    Attributes:
        rule: The rule that fired
        bindings: Variable bindings used
        premises: Ground antecedents that held
        conclusion: The newly derived literal
    """

    rule: Rule
    bindings: Substitution
    premises: tuple[Literal, ...]
    conclusion: Literal

    def __str__(self) -> str:
        premises = ", ".join(str(p) for p in self.premises)
        text = f"{self.rule.id}: {premises} => {self.conclusion}"
        if self.bindings:
            text += f" [{format_bindings(self.bindings)}]"
        return text


@dataclass
class ForwardResult:
    """Outcome of a forward-chaining run.

    Attributes:
        initial_facts: Facts present before the run
        inferred_facts: Newly derived non-action literals, first-derivation order
        actions: Newly derived action literals, first-derivation order
        firings: Every productive rule application, in order
        passes: Number of passes including the final unchanged one
    """

    initial_facts: list[Literal] = field(default_factory=list)
    inferred_facts: list[Literal] = field(default_factory=list)
    actions: list[Literal] = field(default_factory=list)
    firings: list[Firing] = field(default_factory=list)
    passes: int = 0

    @property
    def trace(self) -> list[str]:
        return [str(firing) for firing in self.firings]

    def derived(self) -> set[Literal]:
        return set(self.inferred_facts) | set(self.actions)


class ForwardChainer:
    """Derives every consequence of a fact base under a rule set.

    The chainer holds no per-run state, so one instance can serve
    concurrent requests as long as each brings its own fact base.
    """

    def __init__(self, rules: RuleSet, max_passes: int = DEFAULT_MAX_PASSES) -> None:
        """Initialize the chainer.

        Args:
            rules: The shared, immutable rule set
            max_passes: Pass cap; reaching it without a fixpoint is an error
        """
        if max_passes < 1:
            raise ValueError("max_passes must be at least 1")
        self.rules = rules
        self.max_passes = max_passes

    def run(self, facts: FactBase) -> ForwardResult:
        """Run to fixpoint, adding derived literals to ``facts``.

        Args:
            facts: The request's fact base, seeded with asserted facts

        Returns:
            ForwardResult describing what was derived and why

        Raises:
            EngineInternalLimitExceeded: If no fixpoint within max_passes
        """
        result = ForwardResult(initial_facts=facts.literals())

        for pass_number in range(1, self.max_passes + 1):
            added = 0
            for rule in self.rules:
                added += self._apply(rule, facts, result)

            if not added:
                result.passes = pass_number
                logger.debug(
                    f"Fixpoint reached after {pass_number} passes: "
                    f"{len(result.inferred_facts)} facts, {len(result.actions)} actions"
                )
                return result

            logger.debug(f"Pass {pass_number} derived {added} new literals")

        logger.warning(f"Forward chaining hit the pass cap ({self.max_passes})")
        raise EngineInternalLimitExceeded(
            "forward",
            self.max_passes,
            f"still deriving after {self.max_passes} passes "
            f"({facts.size()} facts in the fact base)",
        )

    def _apply(self, rule: Rule, facts: FactBase, result: ForwardResult) -> int:
        """Fire one rule under every satisfying binding.

        Solutions are collected before inserting so that a firing never
        feeds the join it came from within the same rule application.

        Returns:
            Number of new literals added
        """
        solutions = list(join(rule.antecedents, facts))
        added = 0

        for bindings, premises in solutions:
            conclusion = rule.consequent.substitute(bindings)
            if not facts.add(conclusion, FactOrigin.DERIVED, rule.id):
                continue

            added += 1
            if self.rules.is_action(conclusion):
                result.actions.append(conclusion)
            else:
                result.inferred_facts.append(conclusion)
            result.firings.append(
                Firing(
                    rule=rule,
                    bindings=_used_bindings(rule, bindings),
                    premises=tuple(premises),
                    conclusion=conclusion,
                )
            )

        return added


def _used_bindings(rule: Rule, bindings: Substitution) -> Substitution:
    """Restrict bindings to the rule's variables, in rule order."""
    return {name: bindings[name] for name in rule.variables() if name in bindings}
