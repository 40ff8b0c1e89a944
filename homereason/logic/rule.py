"""Production rules and the immutable rule set.

A rule reads: consequent <= antecedent1, antecedent2, ...
The antecedents form a conjunction that must hold under one consistent
binding. Rules are checked for safety when they are constructed, so an
engine never sees a rule that could derive a non-ground literal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from homereason.errors import RuleSafetyViolation, RuleSetError

from .comparisons import BUILTINS, is_builtin
from .terms import Literal, parse_literal

__all__ = [
    "Rule",
    "RuleSet",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rule:
    """A production rule.

    Attributes:
        id: Unique rule id, reported as ``rule_used`` in proofs
        antecedents: Body literals (conjunction), matched left to right
        consequent: Head literal instantiated on each firing
        description: Optional human-readable summary
    """

    id: str
    antecedents: tuple[Literal, ...]
    consequent: Literal
    description: str = ""

    def __post_init__(self) -> None:
        self._check_safety()

    def __str__(self) -> str:
        body = ", ".join(str(atom) for atom in self.antecedents)
        return f"{self.consequent} <= {body}"

    @classmethod
    def parse(
        cls,
        id: str,
        antecedents: Iterable[str],
        consequent: str,
        description: str = "",
    ) -> Rule:
        """Build a rule from literal text with ``?Var`` variables.

        Raises:
            MalformedInput: If any literal text is unparsable
            RuleSafetyViolation: If the rule is unsafe
        """
        return cls(
            id=id,
            antecedents=tuple(parse_literal(a, allow_variables=True) for a in antecedents),
            consequent=parse_literal(consequent, allow_variables=True),
            description=description,
        )

    def variables(self) -> list[str]:
        """All variables of the rule in order of first occurrence."""
        seen: list[str] = []
        for atom in self.antecedents + (self.consequent,):
            for name in atom.variables():
                if name not in seen:
                    seen.append(name)
        return seen

    def _check_safety(self) -> None:
        if self.consequent.predicate in BUILTINS:
            raise RuleSafetyViolation(
                self.id, [], f"consequent {self.consequent} is a built-in comparison"
            )

        bound: set[str] = set()
        for atom in self.antecedents:
            if is_builtin(atom):
                unbound = [v for v in atom.variables() if v not in bound]
                if unbound:
                    raise RuleSafetyViolation(
                        self.id,
                        sorted(unbound),
                        f"comparison {atom} uses variables not bound by an earlier antecedent",
                    )
            else:
                bound.update(atom.variables())

        unbound = [v for v in self.consequent.variables() if v not in bound]
        if unbound:
            raise RuleSafetyViolation(
                self.id,
                sorted(unbound),
                "consequent variables do not occur in any antecedent",
            )


@dataclass(frozen=True)
class RuleSet:
    """Ordered, immutable collection of rules shared by all requests.

    Attributes:
        rules: Rules in declaration order
        action_predicates: Predicates whose literals are reported as actions
        source: Where the rules were loaded from (for diagnostics)
    """

    rules: tuple[Rule, ...]
    action_predicates: frozenset[str] = frozenset()
    source: str = "<memory>"
    _by_head: dict[str, tuple[Rule, ...]] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "action_predicates", frozenset(self.action_predicates))
        self._validate()

        by_head: dict[str, list[Rule]] = {}
        for rule in self.rules:
            by_head.setdefault(rule.consequent.predicate, []).append(rule)
        object.__setattr__(
            self, "_by_head", {pred: tuple(rules) for pred, rules in by_head.items()}
        )

        logger.debug(
            f"Built rule set from {self.source}: {len(self.rules)} rules, "
            f"{len(self.action_predicates)} action predicates"
        )

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self):
        return iter(self.rules)

    def rules_for(self, predicate: str) -> tuple[Rule, ...]:
        """Rules whose consequent has the given predicate, in declaration order."""
        return self._by_head.get(predicate, ())

    def is_action(self, literal: Literal) -> bool:
        return literal.predicate in self.action_predicates

    def reordered(self, order: Iterable[str]) -> RuleSet:
        """Copy of this rule set with rules in the given id order."""
        ids = list(order)
        if sorted(ids) != sorted(rule.id for rule in self.rules):
            raise RuleSetError("Reordering must name every rule exactly once")
        by_id = {rule.id: rule for rule in self.rules}
        return RuleSet(
            rules=tuple(by_id[i] for i in ids),
            action_predicates=self.action_predicates,
            source=self.source,
        )

    def _validate(self) -> None:
        seen: set[str] = set()
        arities: dict[str, tuple[int, str]] = {}

        for rule in self.rules:
            if rule.id in seen:
                raise RuleSetError(f"Duplicate rule id '{rule.id}' in {self.source}")
            seen.add(rule.id)

            for atom in rule.antecedents + (rule.consequent,):
                if atom.predicate in BUILTINS:
                    if not is_builtin(atom):
                        raise RuleSetError(
                            f"Rule '{rule.id}': comparison {atom} must have two arguments"
                        )
                    continue
                known = arities.get(atom.predicate)
                if known is None:
                    arities[atom.predicate] = (atom.arity, rule.id)
                elif known[0] != atom.arity:
                    raise RuleSetError(
                        f"Predicate '{atom.predicate}' used with arity {atom.arity} in "
                        f"rule '{rule.id}' but arity {known[0]} in rule '{known[1]}'"
                    )
