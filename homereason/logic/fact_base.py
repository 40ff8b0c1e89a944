"""Per-request storage of ground facts.

Facts are indexed by predicate so that rule matching only scans the
bucket for the predicate being matched. Each fact is keyed by the
canonical rendering of its literal; adding a literal that is already
present is a no-op.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator

from .terms import Literal, Variable

__all__ = [
    "FactOrigin",
    "Fact",
    "FactBase",
]


class FactOrigin(str, Enum):
    """Where a fact came from."""

    ASSERTED = "asserted"
    DERIVED = "derived"


@dataclass(frozen=True)
class Fact:
    """A ground literal with provenance.

    Attributes:
        literal: The ground literal
        origin: Asserted by the caller or derived by a rule
        rule_id: Id of the rule that first derived it (derived facts only)
    """

    literal: Literal
    origin: FactOrigin = FactOrigin.ASSERTED
    rule_id: str | None = None

    def __str__(self) -> str:
        return str(self.literal)


class FactBase:
    """Indexed, grow-only set of ground facts for one request.

    Iteration order is insertion order, both globally and within a
    predicate bucket, which keeps engine output reproducible.
    """

    def __init__(self, literals: Iterable[Literal] = ()) -> None:
        # Primary storage: canonical key -> Fact
        self._facts: dict[str, Fact] = {}

        # Index by predicate for rule body matching
        self._by_predicate: dict[str, dict[str, Fact]] = defaultdict(dict)

        for literal in literals:
            self.add(literal)

    def add(
        self,
        literal: Literal,
        origin: FactOrigin = FactOrigin.ASSERTED,
        rule_id: str | None = None,
    ) -> bool:
        """Add a ground literal.

        Args:
            literal: The literal to store
            origin: Asserted or derived
            rule_id: Producing rule for derived facts

        Returns:
            True if this is a new fact, False if it was already present

        Raises:
            ValueError: If the literal contains variables
        """
        if not literal.is_ground():
            raise ValueError(f"Only ground literals can be stored: {literal}")

        key = literal.key
        if key in self._facts:
            return False

        fact = Fact(literal=literal, origin=origin, rule_id=rule_id)
        self._facts[key] = fact
        self._by_predicate[literal.predicate][key] = fact
        return True

    def get(self, literal: Literal) -> Fact | None:
        return self._facts.get(literal.key)

    def contains(self, literal: Literal) -> bool:
        return literal.key in self._facts

    def __contains__(self, literal: object) -> bool:
        return isinstance(literal, Literal) and self.contains(literal)

    def by_predicate(self, predicate: str) -> tuple[Fact, ...]:
        """Snapshot of the facts with a given predicate.

        A tuple is returned so callers may keep adding facts while
        iterating over the result.
        """
        bucket = self._by_predicate.get(predicate)
        return tuple(bucket.values()) if bucket else ()

    def query(self, pattern: Literal) -> Iterator[Fact]:
        """Yield facts matching a partially instantiated pattern.

        Constant arguments must match exactly; variable arguments are
        wildcards. Repeated variables are not checked for consistency
        here (use the unifier for that).
        """
        for fact in self.by_predicate(pattern.predicate):
            if fact.literal.arity != pattern.arity:
                continue
            if all(
                isinstance(p, Variable) or p == a
                for p, a in zip(pattern.args, fact.literal.args)
            ):
                yield fact

    def facts(self, origin: FactOrigin | None = None) -> Iterator[Fact]:
        """Iterate over stored facts, optionally filtered by origin."""
        for fact in list(self._facts.values()):
            if origin is None or fact.origin is origin:
                yield fact

    def literals(self) -> list[Literal]:
        return [fact.literal for fact in self._facts.values()]

    def size(self) -> int:
        return len(self._facts)

    def __len__(self) -> int:
        return len(self._facts)
